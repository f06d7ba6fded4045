"""API endpoints for representation requests."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..cases.models import RepresentationRequest, RequestKind, RequestStatus
from ..cases.requests import RepresentationWorkflow, get_representation_workflow
from . import ListResponse

router = APIRouter(prefix="/requests", tags=["requests"])


class CreateRequestBody(BaseModel):
    kind: RequestKind
    client_id: str
    lawyer_id: str
    description: str = ""
    case_id: str | None = None


class ResolveBody(BaseModel):
    decision: RequestStatus
    actor_id: str | None = None


@router.post("", response_model=RepresentationRequest, status_code=201)
async def create_request(
    body: CreateRequestBody,
    workflow: RepresentationWorkflow = Depends(get_representation_workflow),
) -> RepresentationRequest:
    """Ask a lawyer for representation."""
    return await workflow.create_request(
        body.kind, body.client_id, body.lawyer_id, body.description, body.case_id
    )


@router.get("", response_model=ListResponse[RepresentationRequest])
async def list_requests(
    lawyer_id: str | None = None,
    client_id: str | None = None,
    status: RequestStatus | None = None,
    workflow: RepresentationWorkflow = Depends(get_representation_workflow),
) -> ListResponse[RepresentationRequest]:
    """Requests addressed to a lawyer or sent by a client."""
    if lawyer_id is not None:
        items = await workflow.get_requests_by_lawyer_id(lawyer_id, status)
    elif client_id is not None:
        items = await workflow.get_requests_by_client_id(client_id, status)
    else:
        raise HTTPException(status_code=400, detail="lawyer_id or client_id is required")
    return ListResponse[RepresentationRequest](items=items, total=len(items))


@router.get("/{request_id}", response_model=RepresentationRequest)
async def get_request(
    request_id: str,
    workflow: RepresentationWorkflow = Depends(get_representation_workflow),
) -> RepresentationRequest:
    return await workflow.require_request(request_id)


@router.post("/{request_id}/resolve", response_model=RepresentationRequest)
async def resolve_request(
    request_id: str,
    body: ResolveBody,
    workflow: RepresentationWorkflow = Depends(get_representation_workflow),
) -> RepresentationRequest:
    """Accept or reject a pending request."""
    return await workflow.resolve_request(request_id, body.decision, actor_id=body.actor_id)
