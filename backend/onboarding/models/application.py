"""AgentApplication: one onboarding application per applicant.

Step data lives in one nullable JSON section per wizard step rather than
scores of flat columns, so each step's gate and partial merge only ever
touch their own section:

    personal_info     (step 1)   background_check (step 2)
    business_info     (step 3)   location         (step 4)
    package           (step 5)   documents        (step 6)
    signature         (step 7)

Identifiers:
  - id              internal surrogate key, used by history rows
  - application_id  short public id (safe to show in URLs / support tickets)
  - resume_token    long secret granting edit access from another device
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from onboarding.database import Base

# Section column name per wizard step
STEP_SECTIONS: dict[int, str] = {
    1: "personal_info",
    2: "background_check",
    3: "business_info",
    4: "location",
    5: "package",
    6: "documents",
    7: "signature",
}
SECTION_NAMES: tuple[str, ...] = tuple(STEP_SECTIONS.values())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentApplication(Base):
    __tablename__ = "agent_applications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    application_id: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )
    resume_token: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )

    # draft | submitted | under_review | approved | rejected
    status: Mapped[str] = mapped_column(
        String(20), default="draft", nullable=False, index=True
    )
    # Highest step reached (UI position only, never gates validity)
    last_step: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # ── Step sections ────────────────────────────────────────
    personal_info: Mapped[dict | None] = mapped_column(JSON, default=None)
    background_check: Mapped[dict | None] = mapped_column(JSON, default=None)
    business_info: Mapped[dict | None] = mapped_column(JSON, default=None)
    # {"address": {...}, "business_location": {...}, "latitude": .., "longitude": ..}
    location: Mapped[dict | None] = mapped_column(JSON, default=None)
    package: Mapped[dict | None] = mapped_column(JSON, default=None)
    # {"uploaded": {"id_front": "<file ref>", ...}}
    documents: Mapped[dict | None] = mapped_column(JSON, default=None)
    signature: Mapped[dict | None] = mapped_column(JSON, default=None)

    # ── Timestamps ───────────────────────────────────────────
    submit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # ── Relationships ────────────────────────────────────────
    history = relationship(
        "ApplicationHistory",
        back_populates="application",
        order_by="ApplicationHistory.timestamp.desc()",
        lazy="select",
    )

    def snapshot(self) -> dict:
        """Plain-dict view of the gate-relevant state (sections + status)."""
        data = {name: getattr(self, name) for name in SECTION_NAMES}
        data["status"] = self.status
        data["last_step"] = self.last_step
        return data
