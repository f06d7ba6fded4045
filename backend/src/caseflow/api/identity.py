"""API endpoints for defendant self-identification."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..cases.identity import IdentityMatcher, get_identity_matcher
from ..cases.models import Case, GovernmentIdType, PartyIdentity
from . import ListResponse

router = APIRouter(prefix="/identity", tags=["identity"])


class ClaimBody(BaseModel):
    """Body of a defendant claim."""

    client_id: str
    identity: PartyIdentity | None = None


@router.get("/cases", response_model=ListResponse[Case])
async def find_cases_against_identity(
    id_type: GovernmentIdType,
    id_number: str,
    phone: str | None = None,
    matcher: IdentityMatcher = Depends(get_identity_matcher),
) -> ListResponse[Case]:
    """Cases naming this government ID as the defendant."""
    items = await matcher.find_cases_against_identity(id_type, id_number, phone)
    return ListResponse[Case](items=items, total=len(items))


@router.post("/cases/{case_id}/claim", response_model=Case)
async def claim_defendant_identity(
    case_id: str,
    body: ClaimBody,
    matcher: IdentityMatcher = Depends(get_identity_matcher),
) -> Case:
    """Link the client account to the defendant slot."""
    return await matcher.claim_defendant_identity(case_id, body.client_id, body.identity)
