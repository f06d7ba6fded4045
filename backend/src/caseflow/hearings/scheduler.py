"""Hearing scheduling and rescheduling.

Scheduling is two writes: the hearing record first, then the case (judge,
courtroom, next hearing date, status). The case transition to ``scheduled``
needs a stored hearing, which fixes the order. If the case write fails the
hearing stays and PartiallyApplied carries its id.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..errors import (
    CaseflowError,
    Conflict,
    InvalidTransition,
    NotFound,
    PartiallyApplied,
    PreconditionFailed,
)
from ..logging import log_partial_failure, log_workflow_step
from ..store import (
    SERVER_TIMESTAMP,
    ArrayAppend,
    DocumentNotFound,
    FieldFilter,
    PreconditionMismatch,
    StoreError,
)
from ..cases.manager import CaseManager, get_case_manager
from ..cases.models import (
    HEARINGS,
    Case,
    CaseStatus,
    Hearing,
    HearingStatus,
    JudgeRef,
    ReschedulingRecord,
    UserRole,
    utc_now,
)
from ..cases.validation import coerce_datetime
from .predicates import is_past, next_upcoming, sort_hearings

logger = logging.getLogger(__name__)

WORKFLOW = "schedule_hearing"
STEP_HEARING = "hearing"
STEP_CASE_UPDATE = "case_update"

# Case statuses from which a new hearing moves the case to ``scheduled``
SCHEDULABLE_STATUSES = frozenset({
    CaseStatus.FILED.value,
    CaseStatus.SCHEDULED.value,
    CaseStatus.IN_PROGRESS.value,
    CaseStatus.ON_HOLD.value,
})


def participant_ids(case: Case, judge_id: str | None) -> list[str]:
    """Snapshot of everyone expected at a hearing, in a fixed order."""
    ordered = [
        case.plaintiff_client_id,
        case.defendant_client_id,
        case.plaintiff_lawyer_id,
        case.defendant_lawyer_id,
        judge_id,
    ]
    return list(dict.fromkeys(p for p in ordered if p))


class HearingScheduler:
    """Creates, reschedules and reads hearings."""

    def __init__(
        self,
        cases: CaseManager | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._cases = cases or get_case_manager()
        self._store = self._cases.store
        self._users = self._cases.users
        self._clock = clock or utc_now

    async def schedule_hearing(
        self,
        case_id: str,
        date: Any,
        location: str,
        description: str,
        judge_id: str,
        court_room: str | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Hearing:
        """Create a hearing and move the case to ``scheduled``.

        Args:
            case_id: Case being heard
            date: Hearing date and time
            location: Where the hearing takes place
            description: Purpose of the hearing
            judge_id: Presiding judge
            court_room: Courtroom; defaults to the case's, then to the location
            notes: Free-form clerk notes
            actor_id: Account scheduling the hearing

        Raises:
            NotFound: Unknown case or judge
            InvalidTransition: Case is not filed yet, or is terminal
            PreconditionFailed: Date cannot be parsed
            Conflict: Case already has a different judge
            PartiallyApplied: Hearing stored but the case update failed
        """
        case = await self._cases.require_case(case_id)
        if case.is_terminal:
            raise InvalidTransition(case.id, case.status, reason="case is terminal")
        if case.status not in SCHEDULABLE_STATUSES:
            raise InvalidTransition(
                case.id,
                case.status,
                CaseStatus.SCHEDULED.value,
                reason="hearings need a filed case",
            )

        when = coerce_datetime(date)
        if when is None:
            raise PreconditionFailed(f"Invalid hearing date: {date!r}", case_id=case_id)

        if case.judge is not None and case.judge.id != judge_id:
            raise Conflict(
                f"Case {case_id} is already assigned to judge {case.judge.id}",
                case_id=case_id,
                judge_id=judge_id,
            )
        judge = await self._users.require_user(judge_id, UserRole.JUDGE)
        judge_ref = case.judge or JudgeRef(id=judge.id, name=judge.name, assigned_at=self._clock())

        court_room = court_room or case.court_room or location
        if not court_room:
            raise PreconditionFailed("A courtroom or location is required", case_id=case_id)

        hearing = Hearing(
            case_id=case.id,
            date=when,
            original_date=when,
            location=location,
            description=description,
            judge_id=judge_id,
            court_room=court_room,
            participants=participant_ids(case, judge_id),
            notes=notes,
        )
        document = hearing.to_document()
        document["created_at"] = SERVER_TIMESTAMP
        await self._store.create(HEARINGS, document, document_id=hearing.id)
        context = {"case_id": case.id, "hearing_id": hearing.id}
        log_workflow_step(WORKFLOW, STEP_HEARING, **context)

        changes: dict[str, Any] = {
            "judge": judge_ref,
            "court_room": court_room,
            "status": CaseStatus.SCHEDULED.value,
        }
        if self._is_sooner(case.next_hearing_date, when):
            changes["next_hearing_date"] = when

        try:
            await self._cases.apply_workflow_update(case.id, changes, actor_id=actor_id)
        except (CaseflowError, StoreError) as e:
            log_partial_failure(WORKFLOW, [STEP_HEARING], STEP_CASE_UPDATE, str(e), **context)
            raise PartiallyApplied(WORKFLOW, [STEP_HEARING], STEP_CASE_UPDATE, e, **context) from e
        log_workflow_step(WORKFLOW, STEP_CASE_UPDATE, **context)

        logger.info(f"Scheduled hearing {hearing.id} for case {case.id} at {when.isoformat()}")
        return await self.require_hearing(hearing.id)

    def _is_sooner(self, current: datetime | None, candidate: datetime) -> bool:
        """Whether candidate should replace the case's next hearing date."""
        if current is None:
            return True
        now = self._clock()
        if is_past(current, now):
            return not is_past(candidate, now)
        return candidate < current

    async def reschedule_hearing(
        self,
        hearing_id: str,
        new_date: Any,
        reason: str,
        actor_id: str,
    ) -> Hearing:
        """Move a hearing, appending the change to its history.

        The case's next hearing date is left alone; callers that moved the
        case's most imminent hearing call refresh_next_hearing_date.

        Raises:
            NotFound: Unknown hearing
            InvalidTransition: The case is terminal
            PreconditionFailed: Hearing is cancelled or completed, or bad date
            Conflict: The hearing was rescheduled concurrently
        """
        hearing = await self.require_hearing(hearing_id)
        case = await self._cases.get_case(hearing.case_id)
        if case is not None and case.is_terminal:
            raise InvalidTransition(case.id, case.status, reason="case is terminal")
        if hearing.status != HearingStatus.SCHEDULED.value:
            raise PreconditionFailed(
                f"Hearing {hearing_id} is {hearing.status} and cannot be rescheduled",
                hearing_id=hearing_id,
                status=hearing.status,
            )

        when = coerce_datetime(new_date)
        if when is None:
            raise PreconditionFailed(f"Invalid hearing date: {new_date!r}", hearing_id=hearing_id)

        entry = ReschedulingRecord(
            previous_date=hearing.current_date,
            new_date=when,
            reason=reason,
            actor_id=actor_id,
        ).model_dump()
        entry["rescheduled_at"] = SERVER_TIMESTAMP

        expected = None
        if self._store.supports_conditional_writes:
            expected = {"date": hearing.date}
        try:
            record = await self._store.update(
                HEARINGS,
                hearing_id,
                {
                    "rescheduling_history": ArrayAppend(entry),
                    "rescheduled": True,
                    "date": when,
                },
                expected=expected,
            )
        except DocumentNotFound as e:
            raise NotFound(HEARINGS, hearing_id) from e
        except PreconditionMismatch as e:
            raise Conflict(
                f"Hearing {hearing_id} was rescheduled concurrently",
                hearing_id=hearing_id,
            ) from e

        logger.info(
            f"Rescheduled hearing {hearing_id} from {hearing.current_date.isoformat()} "
            f"to {when.isoformat()}"
        )
        return Hearing.model_validate(record)

    async def update_hearing_status(
        self, hearing_id: str, status: HearingStatus | str, actor_id: str | None = None
    ) -> Hearing:
        """Mark a scheduled hearing completed or cancelled."""
        status = HearingStatus(status).value
        hearing = await self.require_hearing(hearing_id)
        if hearing.status != HearingStatus.SCHEDULED.value:
            raise PreconditionFailed(
                f"Hearing {hearing_id} is already {hearing.status}",
                hearing_id=hearing_id,
                status=hearing.status,
            )
        if status == hearing.status:
            return hearing
        record = await self._store.update(HEARINGS, hearing_id, {"status": status})
        logger.info(f"Hearing {hearing_id} marked {status} by {actor_id or 'system'}")
        return Hearing.model_validate(record)

    # =========================
    # Readers
    # =========================

    async def get_hearing(self, hearing_id: str) -> Hearing | None:
        record = await self._store.get_by_id(HEARINGS, hearing_id)
        return Hearing.model_validate(record) if record is not None else None

    async def require_hearing(self, hearing_id: str) -> Hearing:
        hearing = await self.get_hearing(hearing_id)
        if hearing is None:
            raise NotFound(HEARINGS, hearing_id)
        return hearing

    async def get_hearings_by_case_id(self, case_id: str) -> list[Hearing]:
        """Hearings of a case in chronological order of their current dates."""
        records = await self._store.query(HEARINGS, filters=[FieldFilter("case_id", case_id)])
        return sort_hearings(Hearing.model_validate(r) for r in records)

    async def get_hearings_for_participant(self, user_id: str) -> list[Hearing]:
        """Hearings whose participant snapshot includes the account."""
        # Equality filters cannot express "array contains"
        records = await self._store.query(HEARINGS)
        return sort_hearings(
            Hearing.model_validate(r) for r in records if user_id in (r.get("participants") or [])
        )

    async def list_hearings(self) -> list[Hearing]:
        records = await self._store.query(HEARINGS)
        return sort_hearings(Hearing.model_validate(r) for r in records)

    async def refresh_next_hearing_date(self, case_id: str) -> Case:
        """Write the earliest upcoming hearing date of a case onto the case."""
        case = await self._cases.require_case(case_id)
        if case.is_terminal:
            return case
        upcoming = next_upcoming(await self.get_hearings_by_case_id(case_id), self._clock())
        value = upcoming.current_date if upcoming else None
        if value == case.next_hearing_date:
            return case
        return await self._cases.apply_workflow_update(case_id, {"next_hearing_date": value})


# Singleton instance
_scheduler: HearingScheduler | None = None


def get_hearing_scheduler() -> HearingScheduler:
    """Get the hearing scheduler singleton."""
    global _scheduler
    if _scheduler is None:
        _scheduler = HearingScheduler()
    return _scheduler
