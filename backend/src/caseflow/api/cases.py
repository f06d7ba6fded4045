"""API endpoints for cases.

Creation, reads, field updates with status transitions, evidence and
witness lists, and snapshot refresh.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..cases.manager import CaseManager, get_case_manager
from ..cases.models import Case, CaseStatus, CreateCaseRequest, EvidenceItem, Witness
from . import ListResponse

router = APIRouter(prefix="/cases", tags=["cases"])


class UpdateCaseBody(BaseModel):
    """Body of a case update."""

    fields: dict[str, Any] = Field(..., description="Editable fields; include status to transition")
    actor_id: str | None = None
    administrative: bool = False


class EvidenceBody(BaseModel):
    actor_id: str
    item: EvidenceItem


class WitnessBody(BaseModel):
    actor_id: str
    witness: Witness


@router.get("", response_model=ListResponse[Case])
async def list_cases(
    status: CaseStatus | None = None,
    user_id: str | None = Query(default=None, description="Cases involving this account"),
    manager: CaseManager = Depends(get_case_manager),
) -> ListResponse[Case]:
    """List cases, by status or by involved account."""
    if user_id is not None:
        items = await manager.get_cases_by_user_id(user_id)
        if status is not None:
            items = [c for c in items if c.status == status.value]
    else:
        items = await manager.list_cases(status=status)
    return ListResponse[Case](items=items, total=len(items))


@router.get("/defense", response_model=ListResponse[Case])
async def list_defense_cases(
    client_id: str | None = None,
    lawyer_id: str | None = None,
    manager: CaseManager = Depends(get_case_manager),
) -> ListResponse[Case]:
    """Cases defended by a client account or a lawyer."""
    items: list[Case] = []
    if client_id is not None:
        items = await manager.get_defense_cases_by_client_id(client_id)
    elif lawyer_id is not None:
        items = await manager.get_defense_cases_by_lawyer_id(lawyer_id)
    return ListResponse[Case](items=items, total=len(items))


@router.post("", response_model=Case, status_code=201)
async def create_case(
    request: CreateCaseRequest,
    created_by: str | None = None,
    manager: CaseManager = Depends(get_case_manager),
) -> Case:
    """File a new case in pending status."""
    return await manager.create_case(request, created_by=created_by)


@router.get("/{case_id}", response_model=Case)
async def get_case(
    case_id: str,
    manager: CaseManager = Depends(get_case_manager),
) -> Case:
    """Get case details."""
    return await manager.require_case(case_id)


@router.patch("/{case_id}", response_model=Case)
async def update_case(
    case_id: str,
    body: UpdateCaseBody,
    manager: CaseManager = Depends(get_case_manager),
) -> Case:
    """Update fields and optionally transition status."""
    return await manager.update_case(
        case_id, body.fields, actor_id=body.actor_id, administrative=body.administrative
    )


@router.delete("/{case_id}", status_code=204)
async def delete_case(
    case_id: str,
    manager: CaseManager = Depends(get_case_manager),
) -> None:
    """Delete a pending case."""
    await manager.delete_case(case_id)


@router.post("/{case_id}/evidence", response_model=EvidenceItem, status_code=201)
async def add_evidence(
    case_id: str,
    body: EvidenceBody,
    manager: CaseManager = Depends(get_case_manager),
) -> EvidenceItem:
    """Add an exhibit for the actor's side."""
    return await manager.add_evidence(case_id, body.actor_id, body.item)


@router.post("/{case_id}/witnesses", response_model=Witness, status_code=201)
async def add_witness(
    case_id: str,
    body: WitnessBody,
    manager: CaseManager = Depends(get_case_manager),
) -> Witness:
    """Add a witness for the actor's side."""
    return await manager.add_witness(case_id, body.actor_id, body.witness)


@router.post("/{case_id}/refresh-snapshots", response_model=Case)
async def refresh_snapshots(
    case_id: str,
    manager: CaseManager = Depends(get_case_manager),
) -> Case:
    """Re-read lawyer and judge names from their accounts."""
    return await manager.refresh_snapshots(case_id)
