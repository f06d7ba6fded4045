"""API endpoint for issuing judgements."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..cases.judgement import JudgementIssuer, get_judgement_issuer
from ..cases.models import Case, JudgementDecision

router = APIRouter(tags=["judgements"])


class JudgementBody(BaseModel):
    """Body of a judgement; the presence flag is the judge's own attestation."""

    judge_id: str
    decision: JudgementDecision
    ruling: str
    court_room_number: str
    physical_presence_confirmed: bool = Field(
        ..., description="Judge confirms being physically present in the courtroom"
    )


@router.post("/cases/{case_id}/judgement", response_model=Case, status_code=201)
async def issue_judgement(
    case_id: str,
    body: JudgementBody,
    issuer: JudgementIssuer = Depends(get_judgement_issuer),
) -> Case:
    """Record the write-once judgement of a case."""
    return await issuer.issue_judgement(
        case_id,
        body.judge_id,
        body.decision,
        body.ruling,
        body.court_room_number,
        body.physical_presence_confirmed,
    )
