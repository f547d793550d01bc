from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(slots=True, eq=False)
class StorefrontError(Exception):
    """Base error for service-layer failures.

    Services raise these; a FastAPI exception handler renders them into
    RFC7807 problem-details responses using `status_code` and `title`.
    """

    message: str
    entity: str | None = None
    key: dict[str, Any] | None = None
    cause: Exception | None = None

    status_code: ClassVar[int] = 500
    title: ClassVar[str] = "Internal Server Error"

    def __str__(self) -> str:
        return self.message

    def extensions(self) -> dict[str, Any] | None:
        out = {"entity": self.entity, "key": self.key}
        out = {k: v for k, v in out.items() if v is not None}
        return out or None


@dataclass(slots=True, eq=False)
class BadRequest(StorefrontError):
    status_code: ClassVar[int] = 400
    title: ClassVar[str] = "Bad Request"


@dataclass(slots=True, eq=False)
class Unauthorized(StorefrontError):
    status_code: ClassVar[int] = 401
    title: ClassVar[str] = "Unauthorized"


@dataclass(slots=True, eq=False)
class Forbidden(StorefrontError):
    status_code: ClassVar[int] = 403
    title: ClassVar[str] = "Forbidden"


@dataclass(slots=True, eq=False)
class NotFound(StorefrontError):
    status_code: ClassVar[int] = 404
    title: ClassVar[str] = "Not Found"


@dataclass(slots=True, eq=False)
class Conflict(StorefrontError):
    status_code: ClassVar[int] = 409
    title: ClassVar[str] = "Conflict"


@dataclass(slots=True, eq=False)
class ServiceUnavailable(StorefrontError):
    status_code: ClassVar[int] = 503
    title: ClassVar[str] = "Service Unavailable"
