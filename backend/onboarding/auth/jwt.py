"""JWT creation and decoding for reviewer/admin access.

Token claims:
  - sub:          reviewer id
  - role:         "reviewer" | "admin"
  - permissions:  list of effective permission strings
  - type:         "access"
  - exp:          expiry timestamp

Applicants never hold a JWT; their credential is the resume token.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from onboarding.config import settings


def create_access_token(
    user_id: str,
    role: str,
    permissions: list[str],
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "role": role,
        "permissions": permissions,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return {}
