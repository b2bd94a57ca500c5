"""Application record store and history ledger.

Every public method opens its own session from the injected session
factory and runs under :func:`with_retry`, so a dropped connection gets a
fresh session on the next attempt.  Writes are shaped so re-running them
after a transient failure is safe:

  - ``update`` is a field-level merge (re-applying a payload is a no-op
    apart from ``updated_at``)
  - ``submit`` / ``transition`` are compare-and-set on the expected
    status, so a retried or duplicated call can never stamp twice or
    append a second history row
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding.database import async_session
from onboarding.middleware.exceptions import ApplicationNotFoundError, IllegalTransitionError
from onboarding.models.application import SECTION_NAMES, AgentApplication, utcnow
from onboarding.models.application_history import ApplicationHistory
from onboarding.services.identifiers import new_application_id, new_internal_id, new_resume_token
from onboarding.services.lifecycle import ApplicationStatus, action_for, check_transition
from onboarding.services.retry import with_retry
from onboarding.services.step_gate import CONFIRMATION_STEP

logger = logging.getLogger("onboarding.store")

# Fresh identifiers tried per create() before giving up on unique collisions
ID_COLLISION_ATTEMPTS = 3

# guard(previous_snapshot, merged_snapshot); raising aborts the write
MergeGuard = Callable[[dict, dict], None]
# guard(snapshot) run on the locked draft before it is submitted
SubmitGuard = Callable[[dict], None]


def _merge_fields(old: Mapping, new: Mapping) -> dict:
    merged = dict(old)
    for key, value in new.items():
        if isinstance(value, Mapping) and isinstance(old.get(key), Mapping):
            merged[key] = _merge_fields(old[key], value)
        else:
            merged[key] = value
    return merged


def merge_sections(current: Mapping, partial: Mapping) -> dict:
    """Field-level merge of step sections.

    Sections absent from ``partial`` are kept as-is.  For a supplied
    section, only the keys it carries overwrite (nested objects such as
    ``location.address`` or ``documents.uploaded`` merge the same way);
    an explicit ``None`` section clears it.  Never mutates its inputs.
    """
    merged = dict(current)
    for name, value in partial.items():
        if name not in SECTION_NAMES:
            raise ValueError(f"Unknown section: {name}")
        if value is None:
            merged[name] = None
        else:
            merged[name] = _merge_fields(current.get(name) or {}, value)
    return merged


class ApplicationStore:
    """Durable storage for applications and their history entries."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session):
        self._session_factory = session_factory

    # ── Reads ────────────────────────────────────────────────

    async def _select_one(self, db: AsyncSession, *criteria, lock: bool = False):
        stmt = select(AgentApplication).where(*criteria)
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @with_retry()
    async def get(self, internal_id: str) -> AgentApplication | None:
        async with self._session_factory() as db:
            return await self._select_one(db, AgentApplication.id == internal_id)

    @with_retry()
    async def get_by_application_id(self, application_id: str) -> AgentApplication | None:
        async with self._session_factory() as db:
            return await self._select_one(db, AgentApplication.application_id == application_id)

    @with_retry()
    async def get_by_resume_token(self, token: str) -> AgentApplication | None:
        async with self._session_factory() as db:
            return await self._select_one(db, AgentApplication.resume_token == token)

    @with_retry()
    async def list_applications(
        self,
        status: ApplicationStatus | str | None = None,
        include_drafts: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AgentApplication]:
        """Applications newest-updated first (drafts hidden unless asked for)."""
        stmt = select(AgentApplication)
        if status is not None:
            stmt = stmt.where(AgentApplication.status == ApplicationStatus(status).value)
        elif not include_drafts:
            stmt = stmt.where(AgentApplication.status != ApplicationStatus.DRAFT.value)
        stmt = stmt.order_by(AgentApplication.updated_at.desc()).limit(limit).offset(offset)
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())

    @with_retry()
    async def count_by_status(self) -> dict[str, int]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AgentApplication.status, func.count(AgentApplication.id))
                .group_by(AgentApplication.status)
            )
            counts = {s.value: 0 for s in ApplicationStatus}
            for status, count in result.all():
                counts[status] = count
            return counts

    # ── Writes ───────────────────────────────────────────────

    @with_retry()
    async def create(self, sections: Mapping | None = None) -> AgentApplication:
        """Insert a new draft with freshly generated identifiers."""
        initial = merge_sections({name: None for name in SECTION_NAMES}, sections or {})

        for attempt in range(1, ID_COLLISION_ATTEMPTS + 1):
            now = utcnow()
            application = AgentApplication(
                id=new_internal_id(),
                application_id=new_application_id(),
                resume_token=new_resume_token(),
                status=ApplicationStatus.DRAFT.value,
                last_step=0,
                created_at=now,
                updated_at=now,
                **initial,
            )
            async with self._session_factory() as db:
                db.add(application)
                try:
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    if attempt >= ID_COLLISION_ATTEMPTS:
                        raise
                    logger.warning("Identifier collision on create, regenerating (attempt %d)", attempt)
                    continue
            logger.info("Created application %s", application.application_id)
            return application

        raise AssertionError("unreachable")  # pragma: no cover

    @with_retry()
    async def update(
        self,
        internal_id: str,
        sections: Mapping,
        last_step: int | None = None,
        guard: MergeGuard | None = None,
    ) -> AgentApplication:
        """Merge ``sections`` into a draft and advance the step watermark.

        The row is locked for the read-merge-write so concurrent saves to
        disjoint fields of the same section both survive.  ``guard`` sees
        the before/after snapshots and may raise to abort the whole write.
        """
        async with self._session_factory() as db:
            async with db.begin():
                application = await self._select_one(
                    db, AgentApplication.id == internal_id, lock=True
                )
                if application is None:
                    raise ApplicationNotFoundError()
                if application.status != ApplicationStatus.DRAFT.value:
                    raise IllegalTransitionError(application.status, ApplicationStatus.DRAFT.value)

                previous = application.snapshot()
                merged = merge_sections(previous, sections)
                if last_step is not None:
                    merged["last_step"] = max(previous["last_step"], last_step)
                if guard is not None:
                    guard(previous, merged)

                for name in sections:
                    setattr(application, name, merged[name])
                application.last_step = merged["last_step"]
                application.updated_at = utcnow()
            return application

    @with_retry()
    async def submit(
        self,
        internal_id: str,
        guard: SubmitGuard | None = None,
        comment: str | None = "Application submitted by applicant",
        performed_by: str | None = None,
    ) -> tuple[AgentApplication, bool]:
        """draft → submitted as a single-row compare-and-set.

        ``guard`` sees the snapshot of the locked row and may raise to
        abort (the step gate runs here, so no save can slip in between
        the check and the status change).  Returns
        ``(application, transitioned)``.  A record that is already
        ``submitted`` comes back unchanged with ``transitioned=False``; any
        later status is an illegal transition.
        """
        async with self._session_factory() as db:
            async with db.begin():
                application = await self._select_one(
                    db, AgentApplication.id == internal_id, lock=True
                )
                if application is None:
                    raise ApplicationNotFoundError()
                if application.status == ApplicationStatus.SUBMITTED.value:
                    return application, False
                check_transition(application.status, ApplicationStatus.SUBMITTED)
                if guard is not None:
                    guard(application.snapshot())

                now = utcnow()
                result = await db.execute(
                    update(AgentApplication)
                    .where(
                        AgentApplication.id == internal_id,
                        AgentApplication.status == ApplicationStatus.DRAFT.value,
                    )
                    .values(
                        status=ApplicationStatus.SUBMITTED.value,
                        submit_date=now,
                        updated_at=now,
                        last_step=CONFIRMATION_STEP,
                    )
                    .execution_options(synchronize_session=False)
                )
                transitioned = result.rowcount == 1
                if transitioned:
                    db.add(ApplicationHistory(
                        application_pk=internal_id,
                        action=action_for(ApplicationStatus.SUBMITTED),
                        status=ApplicationStatus.SUBMITTED.value,
                        comments=comment,
                        performed_by=performed_by,
                        timestamp=now,
                    ))
                    await db.flush()
                await db.refresh(application)

        if transitioned:
            logger.info("Application %s submitted", application.application_id)
        elif application.status != ApplicationStatus.SUBMITTED.value:
            check_transition(application.status, ApplicationStatus.SUBMITTED)
        return application, transitioned

    @with_retry()
    async def transition(
        self,
        internal_id: str,
        target: ApplicationStatus | str,
        comment: str | None = None,
        performed_by: str | None = None,
    ) -> AgentApplication:
        """Apply a table-checked status change and append its history entry."""
        async with self._session_factory() as db:
            async with db.begin():
                application = await self._select_one(
                    db, AgentApplication.id == internal_id, lock=True
                )
                if application is None:
                    raise ApplicationNotFoundError()
                current = application.status
                dest = check_transition(current, target)

                now = utcnow()
                result = await db.execute(
                    update(AgentApplication)
                    .where(
                        AgentApplication.id == internal_id,
                        AgentApplication.status == current,
                    )
                    .values(status=dest.value, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise IllegalTransitionError(current, dest.value)
                db.add(ApplicationHistory(
                    application_pk=internal_id,
                    action=action_for(dest),
                    status=dest.value,
                    comments=comment,
                    performed_by=performed_by,
                    timestamp=now,
                ))

            await db.refresh(application)

        logger.info(
            "Application %s moved %s -> %s", application.application_id, current, dest.value
        )
        return application

    # ── History ledger ───────────────────────────────────────

    @with_retry()
    async def add_history(
        self,
        internal_id: str,
        action: str,
        status: ApplicationStatus | str,
        comments: str | None = None,
        performed_by: str | None = None,
    ) -> ApplicationHistory:
        entry = ApplicationHistory(
            application_pk=internal_id,
            action=action,
            status=ApplicationStatus(status).value,
            comments=comments,
            performed_by=performed_by,
            timestamp=utcnow(),
        )
        async with self._session_factory() as db:
            db.add(entry)
            await db.commit()
        return entry

    @with_retry()
    async def list_history(self, internal_id: str) -> list[ApplicationHistory]:
        """History entries for one application, newest first."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(ApplicationHistory)
                .where(ApplicationHistory.application_pk == internal_id)
                .order_by(ApplicationHistory.timestamp.desc())
            )
            return list(result.scalars().all())
