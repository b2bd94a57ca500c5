"""Resume resolver: opaque token → application.

The token is the only credential for continuing an application from
another device, so lookups are exact-match only and every failure
(malformed, unknown, near-miss) raises the same ApplicationNotFoundError.
"""

import io
import secrets
from urllib.parse import urlsplit

import segno

from onboarding.config import settings
from onboarding.middleware.exceptions import ApplicationNotFoundError
from onboarding.models.application import AgentApplication
from onboarding.services.identifiers import looks_like_token
from onboarding.services.store import ApplicationStore

RESUME_PATH = "/resume/"


def extract_token(raw: str) -> str:
    """Pull the token out of a raw string or a scanned resume URL.

        "AbC...xyz"                                  → "AbC...xyz"
        "https://host/resume/AbC...xyz?utm=qr#top"  → "AbC...xyz"
    """
    value = (raw or "").strip()
    if RESUME_PATH in value:
        path = urlsplit(value).path if "://" in value else value.split("?", 1)[0].split("#", 1)[0]
        value = path.rsplit(RESUME_PATH, 1)[-1].strip("/")
    return value


def resume_url(token: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}{RESUME_PATH}{token}"


def resume_qr_svg(token: str) -> bytes:
    """SVG QR code encoding the resume URL."""
    qr = segno.make(resume_url(token))
    buf = io.BytesIO()
    qr.save(buf, kind="svg", scale=4, dark="#1e3a8a")
    return buf.getvalue()


class ResumeResolver:
    def __init__(self, store: ApplicationStore):
        self.store = store

    async def resolve(self, raw_token: str) -> AgentApplication:
        token = extract_token(raw_token)
        if not looks_like_token(token):
            raise ApplicationNotFoundError()

        application = await self.store.get_by_resume_token(token)
        if application is None or not secrets.compare_digest(
            application.resume_token.encode(), token.encode()
        ):
            raise ApplicationNotFoundError()
        return application
