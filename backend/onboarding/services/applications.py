"""Application use cases shared by the applicant and admin routers.

Composes the record store, step gate, lifecycle table and resume
resolver.  Routers stay thin: they parse the request, call one method
here, and shape the response.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from onboarding.middleware.exceptions import ApplicationNotFoundError, IllegalTransitionError
from onboarding.models.application import AgentApplication
from onboarding.models.application_history import ApplicationHistory
from onboarding.services import step_gate
from onboarding.services.lifecycle import ApplicationStatus
from onboarding.services.resume import ResumeResolver
from onboarding.services.step_gate import DocumentsPresent, GateResult
from onboarding.services.store import ApplicationStore

logger = logging.getLogger("onboarding.applications")

# Supplied by the document subsystem: application → "is this type uploaded?"
DocumentLookup = Callable[[AgentApplication], DocumentsPresent]


class ApplicationService:
    def __init__(
        self,
        store: ApplicationStore,
        document_lookup: DocumentLookup | None = None,
    ):
        self.store = store
        self.resolver = ResumeResolver(store)
        self.document_lookup = document_lookup

    def _documents_present(self, application: AgentApplication) -> DocumentsPresent | None:
        if self.document_lookup is None:
            return None
        return self.document_lookup(application)

    async def _require(self, application_id: str) -> AgentApplication:
        application = await self.store.get_by_application_id(application_id)
        if application is None:
            raise ApplicationNotFoundError()
        return application

    # ── Applicant flow ───────────────────────────────────────

    async def create(self, email: str | None = None) -> AgentApplication:
        sections = {"personal_info": {"email": email}} if email else None
        return await self.store.create(sections)

    async def get(self, application_id: str) -> AgentApplication:
        return await self._require(application_id)

    async def resume(self, token: str) -> AgentApplication:
        return await self.resolver.resolve(token)

    async def save_step(
        self,
        application_id: str,
        sections: Mapping,
        last_step: int | None = None,
    ) -> AgentApplication:
        """Merge a partial save; moving the watermark forward is gated."""
        application = await self._require(application_id)
        documents_present = self._documents_present(application)

        def guard(previous: dict, merged: dict) -> None:
            if last_step is not None:
                step_gate.check_navigation(
                    merged, previous["last_step"], last_step, documents_present
                )

        return await self.store.update(application.id, sections, last_step, guard=guard)

    async def step_results(
        self, application_id: str
    ) -> tuple[AgentApplication, list[GateResult]]:
        application = await self._require(application_id)
        results = step_gate.evaluate_steps(
            application.snapshot(), self._documents_present(application)
        )
        return application, results

    async def submit(self, application_id: str) -> tuple[AgentApplication, bool]:
        """Gate-checked draft → submitted.

        The full step gate runs inside the store's submit transaction on the
        locked row.  Returns ``(application, transitioned)``; a repeated
        submit of an already-submitted application is a no-op with
        ``transitioned=False``.
        """
        application = await self._require(application_id)
        documents_present = self._documents_present(application)

        def guard(snapshot: dict) -> None:
            step_gate.check_submission(snapshot, documents_present)

        return await self.store.submit(application.id, guard=guard)

    # ── Reviewer flow ────────────────────────────────────────

    async def review(
        self,
        application_id: str,
        target: ApplicationStatus | str,
        comment: str | None = None,
        performed_by: str | None = None,
    ) -> AgentApplication:
        """Reviewer-driven transition (submitted → under_review → approved|rejected)."""
        application = await self._require(application_id)
        if ApplicationStatus(target) is ApplicationStatus.SUBMITTED:
            # Submission is the applicant's action and carries the full gate
            raise IllegalTransitionError(application.status, ApplicationStatus.SUBMITTED.value)
        return await self.store.transition(
            application.id, target, comment=comment, performed_by=performed_by
        )

    async def history(self, application_id: str) -> list[ApplicationHistory]:
        application = await self._require(application_id)
        return await self.store.list_history(application.id)

    async def add_note(
        self,
        application_id: str,
        comment: str,
        performed_by: str | None = None,
    ) -> ApplicationHistory:
        application = await self._require(application_id)
        return await self.store.add_history(
            application.id,
            action="note",
            status=application.status,
            comments=comment,
            performed_by=performed_by,
        )
