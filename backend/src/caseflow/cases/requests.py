"""Representation request workflow.

A client asks a lawyer to take them on, either for a fresh matter
(``new_case``) or as defense on an existing case (``defense``). The target
lawyer resolves the request once. Acceptance fans out into up to three
single-document writes with no shared transaction:

    1. request_status  the request record moves to accepted/rejected
    2. case_update     defense only: lawyer, defendant account, status
    3. roster          the client joins the lawyer's roster (set union)

Every validation happens before step 1. A failure after step 1 raises
PartiallyApplied naming the steps that committed; replaying from step 1
would then fail with AlreadyResolved.
"""

import logging
from typing import Any

from ..errors import (
    AlreadyResolved,
    CaseflowError,
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    PartiallyApplied,
    PreconditionFailed,
)
from ..logging import get_context_logger, log_partial_failure, log_workflow_step
from ..store import (
    SERVER_TIMESTAMP,
    DocumentNotFound,
    FieldFilter,
    PreconditionMismatch,
    StoreError,
)
from .manager import CaseManager, get_case_manager
from .models import (
    REQUESTS,
    Case,
    CaseStatus,
    RepresentationRequest,
    RequestKind,
    RequestStatus,
    UserRole,
)

logger = logging.getLogger(__name__)

WORKFLOW = "resolve_request"
STEP_REQUEST_STATUS = "request_status"
STEP_CASE_UPDATE = "case_update"
STEP_ROSTER = "roster"


class RepresentationWorkflow:
    """Creates and resolves representation requests."""

    def __init__(self, cases: CaseManager | None = None):
        self._cases = cases or get_case_manager()
        self._store = self._cases.store
        self._users = self._cases.users

    # =========================
    # Creation and readers
    # =========================

    async def create_request(
        self,
        kind: RequestKind | str,
        client_id: str,
        lawyer_id: str,
        description: str = "",
        case_id: str | None = None,
    ) -> RepresentationRequest:
        """Persist a pending request from a client to a lawyer.

        Raises:
            PreconditionFailed: Unknown kind, or a defense request without a case
            NotFound: Unknown client, lawyer or case
            InvalidTransition: Target case is terminal
            Forbidden: Plaintiff asking for defense on their own case
            Conflict: Same request already pending
        """
        try:
            kind = RequestKind(kind).value
        except ValueError:
            raise PreconditionFailed(f"Unknown request kind: {kind}", kind=str(kind)) from None

        if kind == RequestKind.DEFENSE.value and not case_id:
            raise PreconditionFailed("Defense requests require a case id", client_id=client_id)
        if kind == RequestKind.NEW_CASE.value:
            case_id = None

        await self._users.require_user(client_id, UserRole.CLIENT)
        await self._users.require_user(lawyer_id, UserRole.LAWYER)

        case_title = None
        if case_id:
            case = await self._cases.require_case(case_id)
            if case.is_terminal:
                raise InvalidTransition(case.id, case.status, reason="case is terminal")
            if case.plaintiff_client_id == client_id:
                raise Forbidden(
                    "The plaintiff cannot request defense on their own case",
                    case_id=case_id,
                    client_id=client_id,
                )
            case_title = case.title

        duplicates = await self._store.query(
            REQUESTS,
            filters=[
                FieldFilter("client_id", client_id),
                FieldFilter("lawyer_id", lawyer_id),
                FieldFilter("kind", kind),
                FieldFilter("case_id", case_id),
                FieldFilter("status", RequestStatus.PENDING.value),
            ],
        )
        if duplicates:
            raise Conflict(
                "An identical request is already pending",
                request_id=duplicates[0]["id"],
                client_id=client_id,
                lawyer_id=lawyer_id,
            )

        request = RepresentationRequest(
            kind=kind,
            client_id=client_id,
            lawyer_id=lawyer_id,
            description=description,
            case_id=case_id,
            case_title=case_title,
        )
        document = request.to_document()
        document["created_at"] = SERVER_TIMESTAMP
        document["updated_at"] = SERVER_TIMESTAMP
        await self._store.create(REQUESTS, document, document_id=request.id)

        logger.info(f"Created {kind} request {request.id} from {client_id} to {lawyer_id}")
        return await self.require_request(request.id)

    async def get_request(self, request_id: str) -> RepresentationRequest | None:
        record = await self._store.get_by_id(REQUESTS, request_id)
        return RepresentationRequest.model_validate(record) if record is not None else None

    async def require_request(self, request_id: str) -> RepresentationRequest:
        request = await self.get_request(request_id)
        if request is None:
            raise NotFound(REQUESTS, request_id)
        return request

    async def get_requests_by_lawyer_id(
        self, lawyer_id: str, status: RequestStatus | str | None = None
    ) -> list[RepresentationRequest]:
        return await self._query("lawyer_id", lawyer_id, status)

    async def get_requests_by_client_id(
        self, client_id: str, status: RequestStatus | str | None = None
    ) -> list[RepresentationRequest]:
        return await self._query("client_id", client_id, status)

    async def _query(
        self, field: str, value: str, status: RequestStatus | str | None
    ) -> list[RepresentationRequest]:
        filters = [FieldFilter(field, value)]
        if status is not None:
            filters.append(FieldFilter("status", RequestStatus(status).value))
        records = await self._store.query(REQUESTS, filters=filters)
        return [RepresentationRequest.model_validate(r) for r in records]

    # =========================
    # Resolution
    # =========================

    async def resolve_request(
        self,
        request_id: str,
        decision: RequestStatus | str,
        actor_id: str | None = None,
    ) -> RepresentationRequest:
        """Accept or reject a pending request and apply the side effects.

        Args:
            request_id: Request to resolve
            decision: ``accepted`` or ``rejected``
            actor_id: Resolving account; must be the target lawyer when given

        Returns:
            The resolved request

        Raises:
            NotFound: Unknown request, or unknown case for a defense request
            AlreadyResolved: Request is no longer pending
            Forbidden: Actor is not the target lawyer
            Conflict: Case already has a different defendant lawyer
            InvalidTransition: Case is terminal
            PartiallyApplied: A write after the request status failed
        """
        try:
            decision = RequestStatus(decision).value
        except ValueError:
            raise PreconditionFailed(f"Unknown decision: {decision}", request_id=request_id) from None
        if decision == RequestStatus.PENDING.value:
            raise PreconditionFailed("A request cannot be resolved to pending", request_id=request_id)

        request = await self.require_request(request_id)
        if not request.is_pending:
            raise AlreadyResolved(request_id, request.status)
        if actor_id is not None and actor_id != request.lawyer_id:
            raise Forbidden(
                f"Only lawyer {request.lawyer_id} can resolve request {request_id}",
                request_id=request_id,
                actor_id=actor_id,
            )

        accepted = decision == RequestStatus.ACCEPTED.value
        is_defense = request.kind == RequestKind.DEFENSE.value
        case = None
        if accepted and is_defense:
            case = await self._check_defense_case(request)

        record = await self._write_status(request, decision, actor_id or request.lawyer_id)
        completed = [STEP_REQUEST_STATUS]
        context: dict[str, Any] = {"request_id": request_id, "case_id": request.case_id}
        request_log = get_context_logger(__name__, workflow=WORKFLOW, **context)
        log_workflow_step(WORKFLOW, STEP_REQUEST_STATUS, **context)

        if not accepted:
            request_log.info(f"Request {request_id} rejected by {request.lawyer_id}")
            return RepresentationRequest.model_validate(record)

        step = STEP_CASE_UPDATE if is_defense else STEP_ROSTER
        try:
            if case is not None:
                await self._apply_defense(request, case)
                completed.append(STEP_CASE_UPDATE)
                log_workflow_step(WORKFLOW, STEP_CASE_UPDATE, **context)

            step = STEP_ROSTER
            await self._users.add_client_to_roster(request.lawyer_id, request.client_id)
            completed.append(STEP_ROSTER)
            log_workflow_step(WORKFLOW, STEP_ROSTER, **context)
        except (CaseflowError, StoreError) as e:
            log_partial_failure(WORKFLOW, completed, step, str(e), **context)
            raise PartiallyApplied(WORKFLOW, completed, step, e, **context) from e

        request_log.info(f"Request {request_id} accepted by {request.lawyer_id}")
        return RepresentationRequest.model_validate(record)

    async def _check_defense_case(self, request: RepresentationRequest) -> Case:
        case = await self._cases.require_case(request.case_id)
        if case.is_terminal:
            raise InvalidTransition(case.id, case.status, reason="case is terminal")
        if case.defendant_lawyer is not None and case.defendant_lawyer.id != request.lawyer_id:
            raise Conflict(
                f"Case {case.id} is already defended by {case.defendant_lawyer.id}",
                case_id=case.id,
                request_id=request.id,
            )
        return case

    async def _write_status(
        self, request: RepresentationRequest, decision: str, resolved_by: str
    ) -> dict[str, Any]:
        expected = None
        if self._store.supports_conditional_writes:
            expected = {"status": RequestStatus.PENDING.value}
        try:
            return await self._store.update(
                REQUESTS,
                request.id,
                {
                    "status": decision,
                    "resolved_by": resolved_by,
                    "resolved_at": SERVER_TIMESTAMP,
                    "updated_at": SERVER_TIMESTAMP,
                },
                expected=expected,
            )
        except DocumentNotFound as e:
            raise NotFound(REQUESTS, request.id) from e
        except PreconditionMismatch as e:
            raise AlreadyResolved(request.id, str(e.actual)) from e

    async def _apply_defense(self, request: RepresentationRequest, case: Case) -> Case:
        """Attach the lawyer and the client's canonical identity to the defendant side."""
        if case.defendant_lawyer is not None:
            lawyer = case.defendant_lawyer
        else:
            lawyer = await self._cases.lawyer_ref(request.lawyer_id)

        changes: dict[str, Any] = {
            "defendant_lawyer": lawyer,
            "defendant_client_id": request.client_id,
        }

        client = await self._users.get_user(request.client_id, UserRole.CLIENT)
        if client is not None:
            changes["defendant"] = case.defendant.model_copy(
                update={
                    "name": client.name or case.defendant.name,
                    "phone_number": client.phone or case.defendant.phone_number,
                }
            )

        if case.status == CaseStatus.PENDING.value and case.plaintiff_lawyer is not None:
            changes["status"] = CaseStatus.FILED.value

        return await self._cases.apply_workflow_update(
            case.id, changes, actor_id=request.lawyer_id
        )


# Singleton instance
_workflow: RepresentationWorkflow | None = None


def get_representation_workflow() -> RepresentationWorkflow:
    """Get the representation workflow singleton."""
    global _workflow
    if _workflow is None:
        _workflow = RepresentationWorkflow()
    return _workflow
