"""Applicant-facing application endpoints.

Endpoints:
  POST  /api/applications                      → start a new draft
  GET   /api/applications/resume/{token}       → continue on another device
  GET   /api/applications/resume/{token}/qr    → QR code of the resume link
  GET   /api/applications/{application_id}     → current record
  PATCH /api/applications/{application_id}     → save partial step data
  GET   /api/applications/{application_id}/status
  GET   /api/applications/{application_id}/steps
  POST  /api/applications/{application_id}/submit

No login: the public id (or, for resume, the token) is the credential.
The resume token is only ever returned at creation.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from onboarding.models.application import AgentApplication
from onboarding.routers.deps import get_service
from onboarding.schemas.application import (
    ApplicationCreate,
    ApplicationCreated,
    ApplicationOut,
    ApplicationStatusOut,
    ApplicationUpdate,
    StepGateOut,
    StepProgressOut,
)
from onboarding.services import step_gate
from onboarding.services.applications import ApplicationService
from onboarding.services.lifecycle import ApplicationStatus
from onboarding.services.notifications import Notifier, dispatch_status_change, get_notifier
from onboarding.services.resume import resume_qr_svg, resume_url

router = APIRouter()


def _created(application: AgentApplication) -> ApplicationCreated:
    return ApplicationCreated(
        **ApplicationOut.model_validate(application).model_dump(),
        resume_token=application.resume_token,
        resume_url=resume_url(application.resume_token),
    )


# ── POST /api/applications ───────────────────────────────────

@router.post("", response_model=ApplicationCreated, status_code=status.HTTP_201_CREATED)
async def create_application(
    body: ApplicationCreate | None = None,
    service: ApplicationService = Depends(get_service),
):
    application = await service.create(body.email if body else None)
    return _created(application)


# ── Resume (declared before /{application_id}) ──────────────

@router.get("/resume/{token}", response_model=ApplicationOut)
async def resume_application(
    token: str,
    service: ApplicationService = Depends(get_service),
):
    """Load a draft by its resume token; unknown or malformed tokens are a plain 404."""
    return await service.resume(token)


@router.get("/resume/{token}/qr")
async def resume_qr(
    token: str,
    service: ApplicationService = Depends(get_service),
):
    application = await service.resume(token)
    return Response(
        content=resume_qr_svg(application.resume_token),
        media_type="image/svg+xml",
    )


# ── Record ───────────────────────────────────────────────────

@router.get("/{application_id}", response_model=ApplicationOut)
async def get_application(
    application_id: str,
    service: ApplicationService = Depends(get_service),
):
    return await service.get(application_id)


@router.patch("/{application_id}", response_model=ApplicationOut)
async def save_application(
    application_id: str,
    body: ApplicationUpdate,
    service: ApplicationService = Depends(get_service),
):
    """Merge the sent sections; keys that are not sent keep their stored value.

    Moving ``last_step`` forward past the saved watermark requires every
    skipped step to be complete.  On failure nothing is saved.
    """
    sections = body.model_dump(mode="json", exclude_unset=True)
    last_step = sections.pop("last_step", None)
    return await service.save_step(application_id, sections, last_step)


@router.get("/{application_id}/status", response_model=ApplicationStatusOut)
async def get_status(
    application_id: str,
    service: ApplicationService = Depends(get_service),
):
    application = await service.get(application_id)
    return ApplicationStatusOut(status=application.status)


@router.get("/{application_id}/steps", response_model=StepProgressOut)
async def get_steps(
    application_id: str,
    service: ApplicationService = Depends(get_service),
):
    application, results = await service.step_results(application_id)
    failing = [r.key for r in results if r.step in step_gate.DATA_STEPS and not r.passed]
    passed = len(step_gate.DATA_STEPS) - len(failing)
    return StepProgressOut(
        last_step=application.last_step,
        progress=round(passed * 100 / len(step_gate.DATA_STEPS)),
        incomplete_steps=failing,
        steps=[
            StepGateOut(step=r.step, key=r.key, passed=r.passed, unmet=r.unmet)
            for r in results
        ],
    )


# ── POST /api/applications/{application_id}/submit ──────────

@router.post("/{application_id}/submit", response_model=ApplicationOut)
async def submit_application(
    application_id: str,
    background_tasks: BackgroundTasks,
    service: ApplicationService = Depends(get_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Submit a complete draft.  Submitting twice returns the record unchanged."""
    application, transitioned = await service.submit(application_id)
    if transitioned:
        background_tasks.add_task(
            dispatch_status_change, notifier, application, ApplicationStatus.SUBMITTED.value
        )
    return application
