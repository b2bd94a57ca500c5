"""Opaque identifier generation.

Two independent random strings per application:

  application_id  10 symbols  ~60 bits   public, shown in URLs
  resume_token    32 symbols  ~192 bits  bearer secret for cross-device resume

Both are drawn from ``secrets`` over the 64-symbol URL-safe alphabet, so
neither carries any information about the applicant or the surrogate key.
"""

import secrets
import string
import uuid

from onboarding.config import settings

ALPHABET = string.ascii_letters + string.digits + "_-"
_ALPHABET_SET = frozenset(ALPHABET)
# Width of the resume_token column
MAX_TOKEN_LENGTH = 64


def _random_string(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def new_internal_id() -> str:
    return str(uuid.uuid4())


def new_application_id(length: int | None = None) -> str:
    return _random_string(length or settings.application_id_length)


def new_resume_token(length: int | None = None) -> str:
    """Generate a resume token; always longer than the public id."""
    length = length or settings.resume_token_length
    if length <= settings.application_id_length:
        raise ValueError(
            f"resume token length ({length}) must exceed application id "
            f"length ({settings.application_id_length})"
        )
    if length > MAX_TOKEN_LENGTH:
        raise ValueError(f"resume token length must be <= {MAX_TOKEN_LENGTH}")
    return _random_string(length)


def looks_like_token(value: str) -> bool:
    """Cheap shape check: resume-token length range, alphabet symbols only."""
    if not settings.application_id_length < len(value) <= MAX_TOKEN_LENGTH:
        return False
    return all(c in _ALPHABET_SET for c in value)
