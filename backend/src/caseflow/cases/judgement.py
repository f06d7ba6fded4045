"""Judgement issuance.

The judge's "physically present in courtroom N" confirmation is a boolean
supplied by the caller. Nothing here can verify it; it is recorded next to
the judgement so the assertion itself is on file. Closing the case after a
judgement is a separate update_case call made by the caller.
"""

import logging

from ..errors import Conflict, Forbidden, NotFound, PreconditionFailed
from ..store import SERVER_TIMESTAMP, DocumentNotFound, PreconditionMismatch
from .manager import CaseManager, get_case_manager
from .models import CASES, Case, Judgement, JudgementDecision, PresenceAttestation, UserRole
from .transitions import POST_FILING_STATUSES, describe

logger = logging.getLogger(__name__)


class JudgementIssuer:
    """Records the write-once judgement on a case."""

    def __init__(self, cases: CaseManager | None = None):
        self._cases = cases or get_case_manager()
        self._store = self._cases.store
        self._users = self._cases.users

    async def issue_judgement(
        self,
        case_id: str,
        judge_id: str,
        decision: JudgementDecision | str,
        ruling: str,
        court_room_number: str,
        physical_presence_confirmed: bool,
    ) -> Case:
        """Attach a judgement to a case.

        Args:
            case_id: Case being decided
            judge_id: Issuing account; must be registered as a judge
            decision: approved, denied or partial
            ruling: Ruling text
            court_room_number: Courtroom the judge attests to sitting in
            physical_presence_confirmed: The judge's presence attestation

        Returns:
            The case with its judgement

        Raises:
            NotFound: Unknown case
            Forbidden: Not a judge, presence not confirmed, or the case is
                not in a post-filing status
            PreconditionFailed: Empty ruling or courtroom, or unknown decision
            Conflict: The case already has a judgement
        """
        case = await self._cases.require_case(case_id)
        judge = await self._users.require_role(judge_id, UserRole.JUDGE)

        if physical_presence_confirmed is not True:
            raise Forbidden(
                "Judgement requires confirmation of physical presence in the courtroom",
                case_id=case_id,
                judge_id=judge_id,
            )

        try:
            decision = JudgementDecision(decision).value
        except ValueError:
            raise PreconditionFailed(f"Unknown decision: {decision}", case_id=case_id) from None
        ruling = (ruling or "").strip()
        court_room_number = (court_room_number or "").strip()
        if not ruling:
            raise PreconditionFailed("Ruling text is required", case_id=case_id)
        if not court_room_number:
            raise PreconditionFailed("Courtroom number is required", case_id=case_id)

        if case.judgement is not None:
            raise Conflict(f"Case {case_id} already has a judgement", case_id=case_id)

        if case.status not in POST_FILING_STATUSES:
            raise Forbidden(
                f"Judgement can only be issued while the case is {describe(POST_FILING_STATUSES)}",
                case_id=case_id,
                status=case.status,
            )

        judgement = Judgement(
            decision=decision,
            ruling=ruling,
            issued_by=judge.id,
            judge_name=judge.name,
            court_room_number=court_room_number,
            presence=PresenceAttestation(confirmed=True, court_room_number=court_room_number),
        ).model_dump()
        judgement["issued_at"] = SERVER_TIMESTAMP
        judgement["presence"]["attested_at"] = SERVER_TIMESTAMP

        expected = None
        if self._store.supports_conditional_writes:
            expected = {"judgement": None}
        try:
            record = await self._store.update(
                CASES,
                case_id,
                {"judgement": judgement, "updated_at": SERVER_TIMESTAMP},
                expected=expected,
            )
        except DocumentNotFound as e:
            raise NotFound(CASES, case_id) from e
        except PreconditionMismatch as e:
            raise Conflict(f"Case {case_id} already has a judgement", case_id=case_id) from e

        logger.info(
            f"Judgement ({decision}) issued on case {case_id} by judge {judge_id}",
            extra={"case_id": case_id, "judge_id": judge_id, "event": "judgement_issued"},
        )
        return Case.model_validate(record)


# Singleton instance
_issuer: JudgementIssuer | None = None


def get_judgement_issuer() -> JudgementIssuer:
    """Get the judgement issuer singleton."""
    global _issuer
    if _issuer is None:
        _issuer = JudgementIssuer()
    return _issuer
