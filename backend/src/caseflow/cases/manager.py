"""Case lifecycle management.

The CaseManager owns the case status field. Every write to a case goes
through it so the transition table, co-field preconditions and the
terminal-state freeze apply no matter which workflow triggered the change.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from ..config import get_settings
from ..errors import (
    CaseflowError,
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    PreconditionFailed,
)
from ..logging import log_date_dropped, log_status_transition
from ..store import (
    SERVER_TIMESTAMP,
    ArrayAppend,
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    FieldFilter,
    PreconditionMismatch,
    StoreError,
    get_document_store,
)
from ..users import UserDirectory, get_user_directory
from . import transitions
from .models import (
    CASE_NUMBERS,
    CASES,
    HEARINGS,
    Case,
    CaseStatus,
    CreateCaseRequest,
    EvidenceItem,
    LawyerRef,
    PartyIdentity,
    UserRole,
    Witness,
    utc_now,
)
from .validation import check_party_identity, coerce_datetime

logger = logging.getLogger(__name__)

# Fields a caller may set through update_case
EDITABLE_FIELDS = frozenset({
    "title",
    "description",
    "case_type",
    "plaintiff",
    "defendant",
    "plaintiff_lawyer",
    "defendant_lawyer",
    "court_room",
    "next_hearing_date",
    "filed_date",
    "case_number",
    "status",
})

DATE_FIELDS = ("next_hearing_date", "filed_date")


class CaseManager:
    """Manages the case aggregate and its status transitions.

    Responsibilities:
    - Creating cases and reserving case numbers
    - Validating and committing field updates and status transitions
    - Evidence and witness lists, per side
    - Refreshing denormalised lawyer and judge names on request
    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        users: UserDirectory | None = None,
        clock: Callable[[], datetime] | None = None,
        case_number_prefix: str | None = None,
    ):
        """Initialize the CaseManager.

        Args:
            store: Document store; defaults to the process store
            users: User directory used for name snapshots
            clock: Source of "now" for values computed in the core
            case_number_prefix: Prefix of allocated case numbers
        """
        self._store = store or get_document_store()
        self._users = users or UserDirectory(self._store)
        self._clock = clock or utc_now
        self._prefix = case_number_prefix or get_settings().case_number_prefix

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def users(self) -> UserDirectory:
        return self._users

    # =========================
    # Creation
    # =========================

    async def create_case(self, request: CreateCaseRequest, created_by: str | None = None) -> Case:
        """Create a new case in ``pending`` status.

        Args:
            request: Case details
            created_by: Account that filed the form

        Returns:
            The stored Case
        """
        check_party_identity(request.plaintiff, "plaintiff")
        check_party_identity(request.defendant, "defendant")

        await self._users.require_user(request.plaintiff_client_id, UserRole.CLIENT)

        plaintiff_lawyer = None
        if request.plaintiff_lawyer_id:
            plaintiff_lawyer = await self.lawyer_ref(request.plaintiff_lawyer_id)

        case = Case(
            title=request.title,
            description=request.description,
            case_type=request.case_type,
            plaintiff=request.plaintiff,
            defendant=request.defendant,
            plaintiff_client_id=request.plaintiff_client_id,
            plaintiff_lawyer=plaintiff_lawyer,
            created_by=created_by or request.plaintiff_client_id,
        )

        logger.info(f"Creating case '{case.title}' for client {case.plaintiff_client_id}")

        if request.case_number:
            await self._reserve_case_number(request.case_number, case.id)
            case.case_number = request.case_number

        document = case.to_document()
        document["created_at"] = SERVER_TIMESTAMP
        document["updated_at"] = SERVER_TIMESTAMP
        await self._store.create(CASES, document, document_id=case.id)

        logger.info(f"Created case {case.id}")
        return await self.require_case(case.id)

    # =========================
    # Readers
    # =========================

    async def get_case(self, case_id: str) -> Case | None:
        """Get a case by ID, or None."""
        record = await self._store.get_by_id(CASES, case_id)
        return Case.model_validate(record) if record is not None else None

    async def require_case(self, case_id: str) -> Case:
        """Get a case by ID or raise NotFound."""
        case = await self.get_case(case_id)
        if case is None:
            raise NotFound(CASES, case_id)
        return case

    async def get_cases_by_user_id(self, user_id: str) -> list[Case]:
        """Cases on which an account is a party, a lawyer or the judge."""
        records = await self._store.query(
            CASES,
            any_of=[
                FieldFilter("plaintiff_client_id", user_id),
                FieldFilter("defendant_client_id", user_id),
                FieldFilter("plaintiff_lawyer.id", user_id),
                FieldFilter("defendant_lawyer.id", user_id),
                FieldFilter("judge.id", user_id),
            ],
        )
        return [Case.model_validate(r) for r in records]

    async def list_cases(self, status: CaseStatus | str | None = None) -> list[Case]:
        """List cases, optionally restricted to one status."""
        filters = []
        if status is not None:
            filters.append(FieldFilter("status", transitions.status_value(status)))
        records = await self._store.query(CASES, filters=filters)
        return [Case.model_validate(r) for r in records]

    async def get_defense_cases_by_client_id(self, client_id: str) -> list[Case]:
        records = await self._store.query(
            CASES, filters=[FieldFilter("defendant_client_id", client_id)]
        )
        return [Case.model_validate(r) for r in records]

    async def get_defense_cases_by_lawyer_id(self, lawyer_id: str) -> list[Case]:
        records = await self._store.query(
            CASES, filters=[FieldFilter("defendant_lawyer.id", lawyer_id)]
        )
        return [Case.model_validate(r) for r in records]

    async def count_hearings(self, case_id: str) -> int:
        records = await self._store.query(HEARINGS, filters=[FieldFilter("case_id", case_id)])
        return len(records)

    # =========================
    # Updates
    # =========================

    async def update_case(
        self,
        case_id: str,
        fields: Mapping[str, Any],
        actor_id: str | None = None,
        administrative: bool = False,
    ) -> Case:
        """Apply field updates and an optional status transition as one write.

        Args:
            case_id: Case to update
            fields: Editable fields; ``status`` requests a transition
            actor_id: Account making the change, for the log
            administrative: Clerk closure that does not need a judgement

        Returns:
            The updated Case

        Raises:
            NotFound: Unknown case
            InvalidTransition: Case is terminal or the transition is not allowed
            PreconditionFailed: Managed or unknown field, or missing co-fields
            Conflict: Write-once field already holds another value
        """
        case = await self.require_case(case_id)
        self._ensure_mutable(case, fields.get("status"))

        rejected = sorted(set(fields) - EDITABLE_FIELDS)
        if rejected:
            raise PreconditionFailed(
                f"Fields cannot be set through update_case: {', '.join(rejected)}",
                case_id=case_id,
                fields=rejected,
            )

        changes = await self._parse_changes(case, fields)
        return await self._commit(case, changes, actor_id=actor_id, administrative=administrative)

    async def apply_workflow_update(
        self,
        case_id: str,
        changes: Mapping[str, Any],
        actor_id: str | None = None,
    ) -> Case:
        """Write already-validated values, including managed fields.

        Used by the request and hearing workflows. The status transition
        rules and the terminal freeze still apply.
        """
        case = await self.require_case(case_id)
        self._ensure_mutable(case, changes.get("status"))
        return await self._commit(case, dict(changes), actor_id=actor_id)

    def _ensure_mutable(self, case: Case, requested_status: Any = None) -> None:
        if not case.is_terminal:
            return
        target = None
        if requested_status is not None:
            target = getattr(requested_status, "value", str(requested_status))
        raise InvalidTransition(case.id, case.status, target, reason="case is terminal")

    async def _parse_changes(self, case: Case, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Turn caller-supplied values into model values, dropping no-ops."""
        changes: dict[str, Any] = {}

        for name, value in fields.items():
            if name in ("title", "description", "case_type", "court_room"):
                if value is not None and not isinstance(value, str):
                    raise PreconditionFailed(
                        f"{name} must be text", case_id=case.id, field=name
                    )
                if name == "title" and not (value or "").strip():
                    raise PreconditionFailed("Case title cannot be empty", case_id=case.id)
                changes[name] = value

            elif name in ("plaintiff", "defendant"):
                try:
                    party = PartyIdentity.model_validate(
                        value.model_dump() if isinstance(value, BaseModel) else value
                    )
                except ValidationError as e:
                    raise PreconditionFailed(
                        f"Invalid {name} identity: {e.errors()[0]['msg']}",
                        case_id=case.id,
                        party=name,
                    ) from e
                check_party_identity(party, name)
                changes[name] = party

            elif name in ("plaintiff_lawyer", "defendant_lawyer"):
                changes[name] = await self._parse_lawyer(case, name, value)

            elif name in DATE_FIELDS:
                if value is None:
                    if name == "filed_date" and case.filed_date is not None:
                        raise Conflict("filed_date cannot be cleared", case_id=case.id)
                    changes[name] = None
                    continue
                parsed = coerce_datetime(value)
                if parsed is None:
                    log_date_dropped(CASES, case.id, name, value)
                    continue
                if name == "filed_date" and case.filed_date is not None:
                    if parsed != case.filed_date:
                        raise Conflict(
                            f"Case {case.id} was already filed on {case.filed_date.isoformat()}",
                            case_id=case.id,
                            field="filed_date",
                        )
                    continue
                changes[name] = parsed

            elif name == "case_number":
                if value == case.case_number:
                    continue
                if case.case_number is not None:
                    raise Conflict(
                        f"Case {case.id} already has number {case.case_number}",
                        case_id=case.id,
                        field="case_number",
                    )
                if not value:
                    raise PreconditionFailed("Case number cannot be empty", case_id=case.id)
                changes[name] = str(value)

            elif name == "status":
                try:
                    target = transitions.status_value(value)
                except ValueError:
                    raise InvalidTransition(
                        case.id, case.status, str(value), reason="unknown status"
                    ) from None
                if target != case.status:
                    changes[name] = target

        return changes

    async def _parse_lawyer(self, case: Case, name: str, value: Any) -> LawyerRef | None:
        current: LawyerRef | None = getattr(case, name)
        if value is None:
            if current is not None and case.status != CaseStatus.PENDING.value:
                raise PreconditionFailed(
                    f"{name} cannot be removed once the case is {case.status}",
                    case_id=case.id,
                    field=name,
                )
            return None

        if isinstance(value, str):
            lawyer_id = value
        elif isinstance(value, BaseModel):
            lawyer_id = getattr(value, "id", None)
        elif isinstance(value, Mapping):
            lawyer_id = value.get("id")
        else:
            lawyer_id = None
        if not lawyer_id:
            raise PreconditionFailed(f"{name} requires a lawyer id", case_id=case.id, field=name)

        if current is not None and current.id == lawyer_id:
            return current
        return await self.lawyer_ref(lawyer_id)

    async def lawyer_ref(self, lawyer_id: str) -> LawyerRef:
        """Snapshot of a lawyer account for assignment to a case side."""
        lawyer = await self._users.require_user(lawyer_id, UserRole.LAWYER)
        return LawyerRef(id=lawyer.id, name=lawyer.name, assigned_at=self._clock())

    async def _commit(
        self,
        case: Case,
        changes: dict[str, Any],
        actor_id: str | None = None,
        administrative: bool = False,
    ) -> Case:
        """Validate the merged state and any status change, then write once."""
        if "status" in changes:
            changes["status"] = transitions.status_value(changes["status"])
            if changes["status"] == case.status:
                del changes["status"]

        values = {
            k: v.model_dump() if isinstance(v, BaseModel) else v for k, v in changes.items()
        }
        target = values.get("status")
        expected: dict[str, Any] | None = None
        reserved: list[str] = []

        if target is not None:
            transitions.check_transition(case.id, case.status, target)
        if values:
            merged = self._merge(case, values)

        if target is not None:
            hearing_count = 0
            if target == transitions.SCHEDULED:
                hearing_count = await self.count_hearings(case.id)
            transitions.check_preconditions(
                merged, target, hearing_count=hearing_count, administrative=administrative
            )

            if target == transitions.FILED:
                if merged.filed_date is None:
                    values["filed_date"] = SERVER_TIMESTAMP
                if merged.case_number is None:
                    values["case_number"] = await self._allocate_case_number(case.id)
                    reserved.append(values["case_number"])

            if self._store.supports_conditional_writes:
                expected = {"status": case.status}

        if "case_number" in changes:
            await self._reserve_case_number(values["case_number"], case.id)
            reserved.append(values["case_number"])

        if not values:
            return case

        values["updated_at"] = SERVER_TIMESTAMP
        try:
            record = await self._write_case(case, values, expected, target)
        except (CaseflowError, StoreError):
            await self._release_case_numbers(case.id, reserved)
            raise

        if target is not None:
            log_status_transition(case.id, case.status, target, actor_id=actor_id)
        else:
            logger.info(f"Updated case {case.id}: {sorted(changes)}")
        return Case.model_validate(record)

    @staticmethod
    def _merge(case: Case, values: Mapping[str, Any]) -> Case:
        """Case state after values are applied; raises before anything is written."""
        try:
            return Case.model_validate({**case.model_dump(), **values})
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise PreconditionFailed(
                f"Invalid value for {field}: {error['msg']}", case_id=case.id, field=field
            ) from e

    async def _write_case(
        self,
        case: Case,
        values: dict[str, Any],
        expected: dict[str, Any] | None,
        target: str | None,
    ) -> dict[str, Any]:
        try:
            return await self._store.update(CASES, case.id, values, expected=expected)
        except DocumentNotFound as e:
            raise NotFound(CASES, case.id) from e
        except PreconditionMismatch as e:
            raise InvalidTransition(
                case.id, e.actual, target, reason="status changed concurrently"
            ) from e

    # =========================
    # Case numbers
    # =========================

    async def _release_case_numbers(self, case_id: str, numbers: list[str]) -> None:
        """Drop reservations made for a case write that did not land."""
        for number in numbers:
            try:
                await self._store.delete(CASE_NUMBERS, number)
            except (CaseflowError, StoreError) as e:
                logger.warning(f"Could not release case number {number} for {case_id}: {e}")
            else:
                logger.info(f"Released case number {number} for {case_id}")

    async def _reserve_case_number(self, number: str, case_id: str) -> None:
        try:
            await self._store.create(
                CASE_NUMBERS,
                {"case_id": case_id, "reserved_at": SERVER_TIMESTAMP},
                document_id=number,
            )
        except DocumentExists as e:
            raise Conflict(
                f"Case number {number} is already in use", case_id=case_id, case_number=number
            ) from e

    async def _allocate_case_number(self, case_id: str, attempts: int = 5) -> str:
        year = self._clock().year
        for _ in range(attempts):
            number = f"{self._prefix}-{year}-{uuid4().hex[:8].upper()}"
            try:
                await self._reserve_case_number(number, case_id)
            except Conflict:
                logger.warning(f"Case number collision on {number}, retrying")
                continue
            return number
        raise Conflict(f"Could not allocate a case number for {case_id}", case_id=case_id)

    # =========================
    # Evidence and witnesses
    # =========================

    async def add_evidence(
        self, case_id: str, actor_id: str, item: EvidenceItem | Mapping[str, Any]
    ) -> EvidenceItem:
        """Append an exhibit on behalf of the actor's side."""
        if not isinstance(item, EvidenceItem):
            item = EvidenceItem.model_validate(item)
        entry = await self._append_party_item(case_id, actor_id, "evidence", item)
        return EvidenceItem.model_validate(entry)

    async def add_witness(
        self, case_id: str, actor_id: str, witness: Witness | Mapping[str, Any]
    ) -> Witness:
        """Append a witness on behalf of the actor's side."""
        if not isinstance(witness, Witness):
            witness = Witness.model_validate(witness)
        entry = await self._append_party_item(case_id, actor_id, "witnesses", witness)
        return Witness.model_validate(entry)

    async def _append_party_item(
        self, case_id: str, actor_id: str, field: str, item: EvidenceItem | Witness
    ) -> dict[str, Any]:
        case = await self.require_case(case_id)
        if case.is_terminal:
            raise InvalidTransition(case.id, case.status, reason=f"{field} are read-only")

        side = case.side_of(actor_id)
        if side is None:
            raise Forbidden(
                f"Account {actor_id} is not a party to case {case_id}",
                case_id=case_id,
                actor_id=actor_id,
            )

        entry = item.model_dump()
        entry.update(party=side.value, added_by=actor_id, added_at=SERVER_TIMESTAMP)
        try:
            record = await self._store.update(
                CASES,
                case_id,
                {field: ArrayAppend(entry), "updated_at": SERVER_TIMESTAMP},
            )
        except DocumentNotFound as e:
            raise NotFound(CASES, case_id) from e

        logger.info(f"Added {field} item {item.id} to case {case_id} for the {side.value}")
        return next(e for e in reversed(record[field]) if e["id"] == item.id)

    # =========================
    # Snapshots and deletion
    # =========================

    async def refresh_snapshots(self, case_id: str) -> Case:
        """Re-read lawyer and judge names from the user directory.

        Names on a case are snapshots taken at assignment; this is the only
        operation that updates them afterwards.
        """
        case = await self.require_case(case_id)
        values: dict[str, Any] = {}
        for field, role in (
            ("plaintiff_lawyer", UserRole.LAWYER),
            ("defendant_lawyer", UserRole.LAWYER),
            ("judge", UserRole.JUDGE),
        ):
            ref = getattr(case, field)
            if ref is None:
                continue
            name = await self._users.display_name(ref.id, role, fallback=ref.name)
            if name != ref.name:
                values[f"{field}.name"] = name

        if not values:
            return case

        values["updated_at"] = SERVER_TIMESTAMP
        record = await self._store.update(CASES, case_id, values)
        logger.info(f"Refreshed snapshots on case {case_id}: {sorted(values)}")
        return Case.model_validate(record)

    async def delete_case(self, case_id: str) -> None:
        """Delete a case that has not been filed yet."""
        case = await self.require_case(case_id)
        if case.status != CaseStatus.PENDING.value:
            raise InvalidTransition(
                case_id, case.status, reason="only pending cases can be deleted"
            )
        await self._store.delete(CASES, case_id)
        if case.case_number:
            await self._store.delete(CASE_NUMBERS, case.case_number)
        logger.info(f"Deleted case {case_id}")


# Singleton instance
_case_manager: CaseManager | None = None


def get_case_manager() -> CaseManager:
    """Get the case manager singleton."""
    global _case_manager
    if _case_manager is None:
        _case_manager = CaseManager(users=get_user_directory())
    return _case_manager
