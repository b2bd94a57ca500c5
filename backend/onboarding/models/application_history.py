"""ApplicationHistory: append-only audit trail of lifecycle transitions.

One row per transition (submit, review, approve, reject) plus reviewer
notes.  Rows are never updated or deleted; the store only inserts.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from onboarding.database import Base
from onboarding.models.application import utcnow


class ApplicationHistory(Base):
    __tablename__ = "application_history"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    application_pk: Mapped[str] = mapped_column(
        String(36), ForeignKey("agent_applications.id"), nullable=False, index=True
    )
    # submit | review | approve | reject | note
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    # Status of the application after this entry
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text)
    performed_by: Mapped[str | None] = mapped_column(String(64))  # reviewer id
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    application = relationship("AgentApplication", back_populates="history")
