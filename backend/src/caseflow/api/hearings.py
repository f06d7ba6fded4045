"""API endpoints for hearings."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..cases.models import Case, Hearing, HearingStatus
from ..hearings.predicates import group_hearings_by_time
from ..hearings.scheduler import HearingScheduler, get_hearing_scheduler
from . import ListResponse

router = APIRouter(tags=["hearings"])


class ScheduleBody(BaseModel):
    """Body of a new hearing."""

    case_id: str
    date: datetime
    location: str
    description: str = ""
    judge_id: str
    court_room: str | None = None
    notes: str | None = None
    actor_id: str | None = None


class RescheduleBody(BaseModel):
    new_date: datetime
    reason: str = ""
    actor_id: str


class StatusBody(BaseModel):
    status: HearingStatus
    actor_id: str | None = None


class ScheduleView(BaseModel):
    """Hearings of an account grouped by proximity."""

    past: list[Hearing]
    today: list[Hearing]
    tomorrow: list[Hearing]
    this_week: list[Hearing]
    future: list[Hearing]


@router.post("/hearings", response_model=Hearing, status_code=201)
async def schedule_hearing(
    body: ScheduleBody,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> Hearing:
    """Schedule a hearing and move the case to scheduled."""
    return await scheduler.schedule_hearing(
        body.case_id,
        body.date,
        body.location,
        body.description,
        body.judge_id,
        court_room=body.court_room,
        notes=body.notes,
        actor_id=body.actor_id,
    )


@router.get("/hearings", response_model=ListResponse[Hearing])
async def list_hearings(
    participant_id: str | None = None,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> ListResponse[Hearing]:
    """All hearings, or those an account takes part in."""
    if participant_id is not None:
        items = await scheduler.get_hearings_for_participant(participant_id)
    else:
        items = await scheduler.list_hearings()
    return ListResponse[Hearing](items=items, total=len(items))


@router.get("/hearings/schedule", response_model=ScheduleView)
async def hearing_schedule(
    participant_id: str,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> ScheduleView:
    """An account's hearings grouped into past, today, tomorrow, this week and later."""
    hearings = await scheduler.get_hearings_for_participant(participant_id)
    return ScheduleView(**group_hearings_by_time(hearings))


@router.get("/hearings/{hearing_id}", response_model=Hearing)
async def get_hearing(
    hearing_id: str,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> Hearing:
    return await scheduler.require_hearing(hearing_id)


@router.post("/hearings/{hearing_id}/reschedule", response_model=Hearing)
async def reschedule_hearing(
    hearing_id: str,
    body: RescheduleBody,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> Hearing:
    """Move a hearing; the case's next hearing date is refreshed separately."""
    return await scheduler.reschedule_hearing(
        hearing_id, body.new_date, body.reason, body.actor_id
    )


@router.post("/hearings/{hearing_id}/status", response_model=Hearing)
async def update_hearing_status(
    hearing_id: str,
    body: StatusBody,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> Hearing:
    if body.status == HearingStatus.SCHEDULED:
        raise HTTPException(status_code=400, detail="status must be completed or cancelled")
    return await scheduler.update_hearing_status(hearing_id, body.status, body.actor_id)


@router.get("/cases/{case_id}/hearings", response_model=ListResponse[Hearing])
async def get_hearings_by_case_id(
    case_id: str,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> ListResponse[Hearing]:
    items = await scheduler.get_hearings_by_case_id(case_id)
    return ListResponse[Hearing](items=items, total=len(items))


@router.post("/cases/{case_id}/next-hearing/refresh", response_model=Case)
async def refresh_next_hearing_date(
    case_id: str,
    scheduler: HearingScheduler = Depends(get_hearing_scheduler),
) -> Case:
    """Recompute the case's next hearing date from its hearings."""
    return await scheduler.refresh_next_hearing_date(case_id)
