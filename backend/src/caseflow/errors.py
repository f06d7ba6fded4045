"""Error taxonomy for the case workflow core.

Every error carries a machine-readable ``kind`` and a ``context`` dict
(ids involved, attempted transition). Turning these into human-readable
text is the calling layer's job.
"""

from typing import Any


class CaseflowError(Exception):
    """Base class for all workflow errors."""

    kind: str = "error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        """Machine-readable representation."""
        return {"kind": self.kind, "message": self.message, "context": self.context}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"


class NotFound(CaseflowError):
    """Referenced record is absent."""

    kind = "not_found"

    def __init__(self, collection: str, record_id: str, **context: Any):
        super().__init__(
            f"{collection} record not found: {record_id}",
            collection=collection,
            record_id=record_id,
            **context,
        )


class InvalidTransition(CaseflowError):
    """Status change (or mutation) not permitted from the current state."""

    kind = "invalid_transition"

    def __init__(
        self,
        case_id: str,
        from_status: str,
        to_status: str | None = None,
        reason: str | None = None,
    ):
        if to_status is not None:
            message = f"Case {case_id} cannot move from {from_status} to {to_status}"
        else:
            message = f"Case {case_id} cannot be modified while {from_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            case_id=case_id,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
        )


class PreconditionFailed(CaseflowError):
    """Required co-fields are missing or invalid for the requested change."""

    kind = "precondition_failed"


class Forbidden(CaseflowError):
    """Actor lacks the required role or confirmation."""

    kind = "forbidden"


class Conflict(CaseflowError):
    """Write-once field already set, or a claim slot is already occupied."""

    kind = "conflict"


class AlreadyResolved(Conflict):
    """Representation request already left the pending state."""

    kind = "already_resolved"

    def __init__(self, request_id: str, status: str):
        super().__init__(
            f"Request {request_id} is already {status}",
            request_id=request_id,
            status=status,
        )


class StoreUnavailable(CaseflowError):
    """The underlying document store call failed.

    The write may or may not have happened; nothing inside the core
    retries it.
    """

    kind = "store_unavailable"


class PartiallyApplied(CaseflowError):
    """A multi-step workflow committed some, but not all, of its writes.

    Callers must not replay the workflow from its first step.
    """

    kind = "partially_applied"

    def __init__(
        self,
        workflow: str,
        completed_steps: list[str],
        failed_step: str,
        cause: BaseException,
        **context: Any,
    ):
        super().__init__(
            f"{workflow} stopped at '{failed_step}' after committing {completed_steps}",
            workflow=workflow,
            completed_steps=list(completed_steps),
            failed_step=failed_step,
            cause_kind=getattr(cause, "kind", type(cause).__name__),
            **context,
        )
        self.workflow = workflow
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        self.cause = cause
