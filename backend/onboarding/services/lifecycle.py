"""Application lifecycle state machine.

    draft ──submit──▶ submitted ──review──▶ under_review ──approve──▶ approved
                                                        └──reject───▶ rejected

Forward-only; ``approved`` and ``rejected`` are terminal.  Every status
change goes through :func:`check_transition` before the store mutates a
row, and the store applies it as a compare-and-set on the expected
current status.
"""

import enum

from onboarding.middleware.exceptions import IllegalTransitionError


class ApplicationStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: frozenset({ApplicationStatus.SUBMITTED}),
    ApplicationStatus.SUBMITTED: frozenset({ApplicationStatus.UNDER_REVIEW}),
    ApplicationStatus.UNDER_REVIEW: frozenset(
        {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

# History action recorded for the transition into each status
TRANSITION_ACTIONS: dict[ApplicationStatus, str] = {
    ApplicationStatus.SUBMITTED: "submit",
    ApplicationStatus.UNDER_REVIEW: "review",
    ApplicationStatus.APPROVED: "approve",
    ApplicationStatus.REJECTED: "reject",
}

# Canonical order, used to check that observed statuses never go backwards
STATUS_ORDER: dict[ApplicationStatus, int] = {
    ApplicationStatus.DRAFT: 0,
    ApplicationStatus.SUBMITTED: 1,
    ApplicationStatus.UNDER_REVIEW: 2,
    ApplicationStatus.APPROVED: 3,
    ApplicationStatus.REJECTED: 3,
}


def _coerce(value: "ApplicationStatus | str") -> ApplicationStatus | None:
    try:
        return ApplicationStatus(value)
    except ValueError:
        return None


def _label(value: "ApplicationStatus | str") -> str:
    return value.value if isinstance(value, ApplicationStatus) else str(value)


def allowed_targets(current: "ApplicationStatus | str") -> frozenset[ApplicationStatus]:
    status = _coerce(current)
    if status is None:
        return frozenset()
    return TRANSITIONS[status]


def is_terminal(current: "ApplicationStatus | str") -> bool:
    return not allowed_targets(current)


def check_transition(
    current: "ApplicationStatus | str",
    target: "ApplicationStatus | str",
) -> ApplicationStatus:
    """Return the target status, or raise if the move is not in the table."""
    source = _coerce(current)
    dest = _coerce(target)
    if source is None or dest is None or dest not in TRANSITIONS[source]:
        raise IllegalTransitionError(_label(current), _label(target))
    return dest


def action_for(target: "ApplicationStatus | str") -> str:
    return TRANSITION_ACTIONS[ApplicationStatus(target)]
