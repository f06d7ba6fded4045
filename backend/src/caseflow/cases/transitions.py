"""Case status transition table and precondition checks.

Pure functions: the callers load whatever the checks need (hearing count,
merged case state) and decide what to write.
"""

from collections.abc import Iterable

from ..errors import InvalidTransition, PreconditionFailed
from .models import Case, CaseStatus, TERMINAL_STATUSES

PENDING = CaseStatus.PENDING.value
FILED = CaseStatus.FILED.value
SCHEDULED = CaseStatus.SCHEDULED.value
IN_PROGRESS = CaseStatus.IN_PROGRESS.value
ON_HOLD = CaseStatus.ON_HOLD.value
DISMISSED = CaseStatus.DISMISSED.value
CLOSED = CaseStatus.CLOSED.value

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({FILED}),
    FILED: frozenset({SCHEDULED}),
    SCHEDULED: frozenset({IN_PROGRESS, ON_HOLD, DISMISSED, CLOSED}),
    IN_PROGRESS: frozenset({ON_HOLD, SCHEDULED, CLOSED}),
    ON_HOLD: frozenset({SCHEDULED, DISMISSED, CLOSED}),
    CaseStatus.ACTIVE.value: frozenset(),
    DISMISSED: frozenset(),
    CLOSED: frozenset(),
}

# Statuses in which a judgement may be issued
POST_FILING_STATUSES = frozenset({SCHEDULED, IN_PROGRESS, ON_HOLD})


def status_value(status: CaseStatus | str) -> str:
    """Normalise an enum member or raw string to the stored value."""
    return CaseStatus(status).value


def allowed_targets(status: CaseStatus | str) -> frozenset[str]:
    return ALLOWED_TRANSITIONS.get(status_value(status), frozenset())


def check_transition(case_id: str, current: CaseStatus | str, target: CaseStatus | str) -> None:
    """Raise InvalidTransition unless current -> target is in the table."""
    current, target = status_value(current), status_value(target)
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(case_id, current, target, reason="case is terminal")
    if target not in allowed_targets(current):
        raise InvalidTransition(case_id, current, target)


def check_preconditions(
    case: Case,
    target: CaseStatus | str,
    hearing_count: int = 0,
    administrative: bool = False,
) -> None:
    """Raise PreconditionFailed when co-fields required by target are missing.

    Args:
        case: Case state with the pending field updates already merged in
        target: Status being entered
        hearing_count: Hearings stored for the case
        administrative: Clerk closure that does not need a judgement
    """
    target = status_value(target)
    missing: list[str] = []

    if target == FILED:
        if case.plaintiff_lawyer is None:
            missing.append("plaintiff_lawyer")
        if case.defendant_lawyer is None:
            missing.append("defendant_lawyer")
    elif target == SCHEDULED:
        if case.judge is None:
            missing.append("judge")
        if not case.court_room:
            missing.append("court_room")
        if hearing_count < 1:
            missing.append("hearing")
    elif target == CLOSED:
        if case.judgement is None and not administrative:
            missing.append("judgement")

    if missing:
        raise PreconditionFailed(
            f"Case {case.id} cannot enter {target}: missing {', '.join(missing)}",
            case_id=case.id,
            to_status=target,
            missing=missing,
        )


def describe(statuses: Iterable[str]) -> str:
    return ", ".join(sorted(statuses)) or "none"
