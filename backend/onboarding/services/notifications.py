"""Best-effort status-change notices.

Delivery (email, SMS) belongs to the notification subsystem; this module
only defines the seam and a logging default.  ``dispatch_status_change``
runs as a FastAPI background task after the transition has committed,
and swallows delivery failures so a notice can never undo a transition.
"""

import logging
from typing import Protocol

from onboarding.models.application import AgentApplication

logger = logging.getLogger("onboarding.notifications")


class Notifier(Protocol):
    async def notify_status_change(self, application: AgentApplication, status: str) -> None:
        ...


class LogNotifier:
    """Default notifier: records the notice in the application log."""

    async def notify_status_change(self, application: AgentApplication, status: str) -> None:
        email = (application.personal_info or {}).get("email")
        logger.info(
            "Status notice for %s: %s (recipient %s)",
            application.application_id,
            status,
            "on file" if email else "none",
        )


_notifier: Notifier = LogNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency; override in tests or at startup."""
    return _notifier


async def dispatch_status_change(
    notifier: Notifier, application: AgentApplication, status: str
) -> None:
    try:
        await notifier.notify_status_change(application, status)
    except Exception:
        logger.exception(
            "Status notice failed for %s (%s)", application.application_id, status
        )
