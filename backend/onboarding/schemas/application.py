"""Request / response schemas for applications and their history."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from onboarding.schemas.steps import (
    BackgroundCheckData,
    BusinessInfoData,
    DocumentsData,
    LocationData,
    PackageData,
    PersonalInfoData,
    SignatureData,
)
from onboarding.services.lifecycle import ApplicationStatus


# ── Requests ─────────────────────────────────────────────────

class ApplicationCreate(BaseModel):
    email: EmailStr | None = None


class ApplicationUpdate(BaseModel):
    """Partial save.  Only sections (and keys inside them) that are sent are touched."""
    model_config = {"extra": "forbid"}

    personal_info: PersonalInfoData | None = None
    background_check: BackgroundCheckData | None = None
    business_info: BusinessInfoData | None = None
    location: LocationData | None = None
    package: PackageData | None = None
    documents: DocumentsData | None = None
    signature: SignatureData | None = None
    # Step number reached; advances the resume watermark
    last_step: int | None = Field(None, ge=0, le=9)


class TransitionRequest(BaseModel):
    status: ApplicationStatus
    comment: str | None = Field(None, max_length=2000)


class HistoryNoteCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)


# ── Responses ────────────────────────────────────────────────

class ApplicationOut(BaseModel):
    """Applicant-facing view.  Never includes the resume token."""
    model_config = {"from_attributes": True}

    application_id: str
    status: str
    last_step: int
    personal_info: dict | None = None
    background_check: dict | None = None
    business_info: dict | None = None
    location: dict | None = None
    package: dict | None = None
    documents: dict | None = None
    signature: dict | None = None
    submit_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ApplicationCreated(ApplicationOut):
    """Returned once, at creation: the only response carrying the resume token."""
    resume_token: str
    resume_url: str


class AdminApplicationOut(ApplicationOut):
    id: str
    progress: int = 0  # percent of data steps passing


class ApplicationStatusOut(BaseModel):
    status: str


class StepGateOut(BaseModel):
    step: int
    key: str
    passed: bool
    unmet: list[str] = []


class StepProgressOut(BaseModel):
    last_step: int
    progress: int  # percent of data steps passing
    incomplete_steps: list[str]
    steps: list[StepGateOut]


class HistoryEntryOut(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    action: str
    status: str
    comments: str | None = None
    performed_by: str | None = None
    timestamp: datetime


class StatisticsOut(BaseModel):
    total: int
    by_status: dict[str, int]
