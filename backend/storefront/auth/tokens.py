from __future__ import annotations

import hashlib
import re
import time
import uuid
from dataclasses import dataclass
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from ..settings import Settings

TOKEN_ACCESS = "access"
TOKEN_REFRESH = "refresh"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


class InvalidTokenError(ValueError):
    pass


@dataclass
class TokenClaims:
    user_id: int
    email: str | None
    role: str | None
    token_type: str
    jti: str | None
    exp: int
    claims: dict[str, Any]


def parse_duration(value: str | int) -> int:
    """`"15m"` -> 900. A bare number is seconds."""
    if isinstance(value, int):
        return value
    m = _DURATION_RE.match(str(value or ""))
    if not m:
        raise ValueError(f"Invalid duration: {value!r}")
    return int(m.group(1)) * _UNIT_SECONDS[m.group(2).lower()]


def fingerprint(token: str) -> str:
    # Refresh tokens are stored only as their SHA-256.
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenService:
    """Issues and verifies HS256 access/refresh tokens."""

    def __init__(self, settings: Settings):
        self.algorithm = settings.jwt_algorithm
        self._secrets = {
            TOKEN_ACCESS: settings.jwt_secret,
            TOKEN_REFRESH: settings.jwt_refresh_secret,
        }
        self._ttl = {
            TOKEN_ACCESS: parse_duration(settings.jwt_expires_in),
            TOKEN_REFRESH: parse_duration(settings.jwt_refresh_expires_in),
        }

    @property
    def access_ttl_seconds(self) -> int:
        return self._ttl[TOKEN_ACCESS]

    def issue(self, *, user_id: int, email: str, role: str, token_type: str = TOKEN_ACCESS) -> str:
        now = int(time.time())
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._ttl[token_type],
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)

    def issue_pair(self, *, user_id: int, email: str, role: str) -> dict[str, str]:
        return {
            "access_token": self.issue(user_id=user_id, email=email, role=role, token_type=TOKEN_ACCESS),
            "refresh_token": self.issue(
                user_id=user_id, email=email, role=role, token_type=TOKEN_REFRESH
            ),
        }

    def verify(self, token: str, token_type: str = TOKEN_ACCESS) -> TokenClaims:
        if not token:
            raise InvalidTokenError("missing token")
        try:
            claims = jwt.decode(token, self._secrets[token_type], algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise InvalidTokenError("token expired") from e
        except JWTError as e:
            raise InvalidTokenError("invalid token") from e

        if claims.get("type") != token_type:
            raise InvalidTokenError("wrong token type")

        try:
            user_id = int(claims.get("sub"))
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("invalid sub") from e

        return TokenClaims(
            user_id=user_id,
            email=claims.get("email"),
            role=claims.get("role"),
            token_type=token_type,
            jti=claims.get("jti"),
            exp=int(claims.get("exp") or 0),
            claims=claims,
        )
