"""Reviewer endpoints.

All routes require a reviewer bearer token:
  applications.read      list, statistics, history
  applications.review    status transitions
  applications.annotate  free-form history notes
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from onboarding.auth.deps import Reviewer, require_permission
from onboarding.models.application import AgentApplication
from onboarding.routers.deps import get_service, get_store
from onboarding.schemas.application import (
    AdminApplicationOut,
    HistoryEntryOut,
    HistoryNoteCreate,
    StatisticsOut,
    TransitionRequest,
)
from onboarding.services import step_gate
from onboarding.services.applications import ApplicationService
from onboarding.services.lifecycle import ApplicationStatus
from onboarding.services.notifications import Notifier, dispatch_status_change, get_notifier
from onboarding.services.store import ApplicationStore

router = APIRouter()


def _admin_view(application: AgentApplication) -> AdminApplicationOut:
    out = AdminApplicationOut.model_validate(application)
    out.progress = step_gate.progress(application.snapshot())
    return out


@router.get("/applications", response_model=list[AdminApplicationOut])
async def list_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    include_drafts: bool = False,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: ApplicationStore = Depends(get_store),
    _reviewer: Reviewer = Depends(require_permission("applications.read")),
):
    """Applications, most recently updated first.  Drafts are hidden by default."""
    applications = await store.list_applications(
        status=status_filter, include_drafts=include_drafts, limit=limit, offset=offset
    )
    return [_admin_view(a) for a in applications]


@router.get("/statistics", response_model=StatisticsOut)
async def statistics(
    store: ApplicationStore = Depends(get_store),
    _reviewer: Reviewer = Depends(require_permission("applications.read")),
):
    counts = await store.count_by_status()
    return StatisticsOut(total=sum(counts.values()), by_status=counts)


@router.post("/applications/{application_id}/transition", response_model=AdminApplicationOut)
async def transition_application(
    application_id: str,
    body: TransitionRequest,
    background_tasks: BackgroundTasks,
    service: ApplicationService = Depends(get_service),
    notifier: Notifier = Depends(get_notifier),
    reviewer: Reviewer = Depends(require_permission("applications.review")),
):
    application = await service.review(
        application_id, body.status, comment=body.comment, performed_by=reviewer.id
    )
    background_tasks.add_task(dispatch_status_change, notifier, application, application.status)
    return _admin_view(application)


@router.get("/applications/{application_id}/history", response_model=list[HistoryEntryOut])
async def get_history(
    application_id: str,
    service: ApplicationService = Depends(get_service),
    _reviewer: Reviewer = Depends(require_permission("applications.read")),
):
    return await service.history(application_id)


@router.post(
    "/applications/{application_id}/history",
    response_model=HistoryEntryOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_history_note(
    application_id: str,
    body: HistoryNoteCreate,
    service: ApplicationService = Depends(get_service),
    reviewer: Reviewer = Depends(require_permission("applications.annotate")),
):
    return await service.add_note(application_id, body.comment, performed_by=reviewer.id)
