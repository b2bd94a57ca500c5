"""Step gate: is a wizard step's data complete enough to move on?

Pure functions over an application snapshot (the dict returned by
``AgentApplication.snapshot()``); nothing here touches the database or
mutates its input.

Steps (fixed, linear):

    0 welcome          5 package
    1 personal_info    6 documents
    2 background_check 7 signature
    3 business_info    8 review        (every step 1-7 passes)
    4 location         9 confirmation  (application has left draft)

Navigation rules:
  - backward moves are always allowed
  - a forward move from step N to step M requires steps N..M-1 to pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

from pydantic import BaseModel, ValidationError

from onboarding.middleware.exceptions import StepValidationError
from onboarding.schemas.steps import (
    BackgroundCheckComplete,
    BusinessInfoComplete,
    LocationComplete,
    PackageComplete,
    PersonalInfoComplete,
    REQUIRED_DOCUMENTS,
    SignatureComplete,
)

DocumentsPresent = Callable[[str], bool]

STEP_KEYS: dict[int, str] = {
    0: "welcome",
    1: "personal_info",
    2: "background_check",
    3: "business_info",
    4: "location",
    5: "package",
    6: "documents",
    7: "signature",
    8: "review",
    9: "confirmation",
}
TOTAL_STEPS = len(STEP_KEYS)
DATA_STEPS: tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7)
REVIEW_STEP = 8
CONFIRMATION_STEP = 9

# Completion schema per data step (documents is checked separately)
COMPLETE_SCHEMAS: dict[int, type[BaseModel]] = {
    1: PersonalInfoComplete,
    2: BackgroundCheckComplete,
    3: BusinessInfoComplete,
    4: LocationComplete,
    5: PackageComplete,
    7: SignatureComplete,
}


@dataclass
class GateResult:
    step: int
    key: str
    passed: bool
    unmet: list[str] = field(default_factory=list)


# ── Predicates ───────────────────────────────────────────────

def _format_error(key: str, error: dict) -> str:
    loc = ".".join(str(part) for part in error.get("loc", ()))
    msg = error.get("msg", "invalid")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{key}.{loc}: {msg}" if loc else f"{key}: {msg}"


def _schema_gate(step: int, section: Mapping | None) -> list[str]:
    key = STEP_KEYS[step]
    try:
        COMPLETE_SCHEMAS[step].model_validate(dict(section or {}))
    except ValidationError as exc:
        return [_format_error(key, e) for e in exc.errors()]
    return []


def _uploaded_documents(snapshot: Mapping) -> DocumentsPresent:
    uploaded = (snapshot.get("documents") or {}).get("uploaded") or {}
    return lambda doc_type: bool(uploaded.get(doc_type))


def _documents_gate(snapshot: Mapping, documents_present: DocumentsPresent | None) -> list[str]:
    present = documents_present or _uploaded_documents(snapshot)
    return [
        f"documents.{doc}: required document is missing"
        for doc in REQUIRED_DOCUMENTS
        if not present(doc)
    ]


# ── Public API ───────────────────────────────────────────────

def evaluate_step(
    snapshot: Mapping,
    step: int,
    documents_present: DocumentsPresent | None = None,
) -> GateResult:
    """Evaluate one step's gate against the current snapshot."""
    if step not in STEP_KEYS:
        raise ValueError(f"Unknown step: {step}")
    key = STEP_KEYS[step]

    if step == 0:
        unmet: list[str] = []
    elif step == 6:
        unmet = _documents_gate(snapshot, documents_present)
    elif step == REVIEW_STEP:
        unmet = [
            f"{STEP_KEYS[s]}: step is incomplete"
            for s in DATA_STEPS
            if not evaluate_step(snapshot, s, documents_present).passed
        ]
    elif step == CONFIRMATION_STEP:
        unmet = [] if snapshot.get("status", "draft") != "draft" else [
            "confirmation: application has not been submitted"
        ]
    else:
        unmet = _schema_gate(step, snapshot.get(key))

    return GateResult(step=step, key=key, passed=not unmet, unmet=unmet)


def evaluate_steps(
    snapshot: Mapping,
    documents_present: DocumentsPresent | None = None,
) -> list[GateResult]:
    return [evaluate_step(snapshot, s, documents_present) for s in STEP_KEYS]


def incomplete_steps(
    snapshot: Mapping,
    documents_present: DocumentsPresent | None = None,
) -> list[str]:
    """Keys of data steps whose gate fails, in wizard order."""
    return [
        STEP_KEYS[s]
        for s in DATA_STEPS
        if not evaluate_step(snapshot, s, documents_present).passed
    ]


def progress(snapshot: Mapping, documents_present: DocumentsPresent | None = None) -> int:
    """Percentage of data steps that pass (0-100)."""
    done = len(DATA_STEPS) - len(incomplete_steps(snapshot, documents_present))
    return round(done * 100 / len(DATA_STEPS))


def _raise_for(results: list[GateResult], message: str) -> None:
    failed = [r for r in results if not r.passed]
    if failed:
        raise StepValidationError(
            incomplete_steps=[r.key for r in failed],
            errors=[u for r in failed for u in r.unmet],
            message=message,
        )


def check_submission(
    snapshot: Mapping,
    documents_present: DocumentsPresent | None = None,
) -> None:
    """Pre-submission check: every data step must pass."""
    _raise_for(
        [evaluate_step(snapshot, s, documents_present) for s in DATA_STEPS],
        "Application is incomplete",
    )


def check_navigation(
    snapshot: Mapping,
    from_step: int,
    to_step: int,
    documents_present: DocumentsPresent | None = None,
) -> None:
    """Raise unless moving from ``from_step`` to ``to_step`` is permitted."""
    if to_step not in STEP_KEYS:
        raise ValueError(f"Unknown step: {to_step}")
    if to_step <= from_step:
        return
    _raise_for(
        [evaluate_step(snapshot, s, documents_present) for s in range(from_step, to_step)],
        "Complete the current step before continuing",
    )
