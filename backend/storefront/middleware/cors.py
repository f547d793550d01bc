from __future__ import annotations


def build_allowed_origins(*, cors_origins: str | None) -> list[str]:
    """
    Parse the comma-separated CORS_ORIGINS setting.

    An empty value or a "*" entry means any origin is accepted.
    """
    origins = [s.strip() for s in str(cors_origins or "").split(",") if s.strip()]
    if not origins or "*" in origins:
        return ["*"]
    return sorted(set(origins))


def allow_credentials_for(origins: list[str]) -> bool:
    # Browsers reject credentialed responses with a wildcard origin.
    return origins != ["*"]
