"""Defendant self-identification.

A client who has been named as a defendant finds the case by the government
ID the plaintiff entered, then claims the defendant slot. The claim is only
written while the slot is empty.
"""

import logging

from ..errors import Conflict, Forbidden, InvalidTransition, NotFound
from ..store import SERVER_TIMESTAMP, DocumentNotFound, FieldFilter, PreconditionMismatch
from .manager import CaseManager, get_case_manager
from .models import CASES, Case, GovernmentIdType, PartyIdentity, UserRole
from .validation import validate_government_id

logger = logging.getLogger(__name__)

__all__ = ["IdentityMatcher", "get_identity_matcher", "validate_government_id"]


class IdentityMatcher:
    """Matches natural-person identities against case defendants."""

    def __init__(self, cases: CaseManager | None = None):
        self._cases = cases or get_case_manager()
        self._store = self._cases.store

    async def find_cases_against_identity(
        self,
        id_type: GovernmentIdType | str,
        id_number: str,
        phone: str | None = None,
    ) -> list[Case]:
        """Cases whose defendant carries exactly this government ID.

        Claimed cases are included; callers read ``defendant_claimed`` to
        show that a slot is taken. Supplying ``phone`` can only narrow the
        result.
        """
        id_type = GovernmentIdType(id_type).value
        filters = [
            FieldFilter("defendant.government_id_type", id_type),
            FieldFilter("defendant.government_id_number", id_number),
        ]
        if phone:
            filters.append(FieldFilter("defendant.phone_number", phone))

        records = await self._store.query(CASES, filters=filters)
        logger.debug(f"Identity lookup ({id_type}) matched {len(records)} cases")
        return [Case.model_validate(r) for r in records]

    async def claim_defendant_identity(
        self,
        case_id: str,
        client_account_id: str,
        identity: PartyIdentity | None = None,
    ) -> Case:
        """Link a client account to the defendant slot of a case.

        Args:
            case_id: Case being claimed
            client_account_id: Claiming client
            identity: Government ID the client asserts; must equal the
                defendant identity on the case when given

        Raises:
            NotFound: Unknown case or client
            InvalidTransition: Case is terminal
            Forbidden: Asserted identity differs, or the client is the plaintiff
            Conflict: Defendant slot already claimed
        """
        case = await self._cases.require_case(case_id)
        if case.is_terminal:
            raise InvalidTransition(case.id, case.status, reason="case is terminal")

        if case.defendant_client_id is not None:
            raise Conflict(
                f"Defendant on case {case_id} is already claimed",
                case_id=case_id,
                claimed_by=case.defendant_client_id,
            )

        await self._cases.users.require_user(client_account_id, UserRole.CLIENT)

        if client_account_id == case.plaintiff_client_id:
            raise Forbidden(
                "The plaintiff cannot claim the defendant slot",
                case_id=case_id,
                client_id=client_account_id,
            )

        if identity is not None and not _same_identity(identity, case.defendant):
            raise Forbidden(
                f"Identity does not match the defendant on case {case_id}",
                case_id=case_id,
                client_id=client_account_id,
            )

        expected = None
        if self._store.supports_conditional_writes:
            expected = {"defendant_client_id": None}
        try:
            record = await self._store.update(
                CASES,
                case_id,
                {"defendant_client_id": client_account_id, "updated_at": SERVER_TIMESTAMP},
                expected=expected,
            )
        except DocumentNotFound as e:
            raise NotFound(CASES, case_id) from e
        except PreconditionMismatch as e:
            raise Conflict(
                f"Defendant on case {case_id} is already claimed",
                case_id=case_id,
                claimed_by=e.actual,
            ) from e

        logger.info(f"Client {client_account_id} claimed the defendant slot on case {case_id}")
        return Case.model_validate(record)


def _same_identity(asserted: PartyIdentity, recorded: PartyIdentity) -> bool:
    return (
        asserted.government_id_type == recorded.government_id_type
        and asserted.government_id_number == recorded.government_id_number
    )


# Singleton instance
_matcher: IdentityMatcher | None = None


def get_identity_matcher() -> IdentityMatcher:
    """Get the identity matcher singleton."""
    global _matcher
    if _matcher is None:
        _matcher = IdentityMatcher()
    return _matcher
