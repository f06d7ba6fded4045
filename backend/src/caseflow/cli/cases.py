"""CLI commands for cases, identity claims, requests and hearings.

Every command runs one core operation against the configured document
store. Workflow errors are printed as ``<kind>: <message>`` and exit with
status 1.
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click

from ..cases.identity import IdentityMatcher
from ..cases.manager import CaseManager, get_case_manager
from ..cases.models import Case, CaseStatus, GovernmentIdType, RequestStatus
from ..cases.requests import RepresentationWorkflow
from ..errors import CaseflowError
from ..hearings.predicates import group_hearings_by_time
from ..hearings.scheduler import HearingScheduler


def _run(operation: Callable[[], Awaitable[Any]]) -> Any:
    """Run an async operation, turning workflow errors into exit status 1."""
    try:
        return asyncio.run(operation())
    except CaseflowError as e:
        click.echo(f"{e.kind}: {e.message}", err=True)
        if e.context:
            click.echo(json.dumps(e.context, default=str), err=True)
        sys.exit(1)


def _echo_case(case: Case, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(case.model_dump(mode="json"), indent=2))
        return
    click.echo(f"Case: {case.id}")
    click.echo(f"  Number: {case.case_number or '-'}")
    click.echo(f"  Title: {case.title}")
    click.echo(f"  Status: {case.status}")
    click.echo(f"  Plaintiff: {case.plaintiff.name or '-'} ({case.plaintiff_client_id})")
    click.echo(f"  Defendant: {case.defendant.name or '-'} ({case.defendant_client_id or 'unclaimed'})")
    if case.plaintiff_lawyer:
        click.echo(f"  Plaintiff lawyer: {case.plaintiff_lawyer.name} ({case.plaintiff_lawyer.id})")
    if case.defendant_lawyer:
        click.echo(f"  Defendant lawyer: {case.defendant_lawyer.name} ({case.defendant_lawyer.id})")
    if case.judge:
        click.echo(f"  Judge: {case.judge.name} ({case.judge.id})")
    if case.next_hearing_date:
        click.echo(f"  Next hearing: {case.next_hearing_date.isoformat()}")
    if case.judgement:
        click.echo(f"  Judgement: {case.judgement.decision} by {case.judgement.issued_by}")


# =========================
# case
# =========================


@click.group("case")
def case_group() -> None:
    """Inspect and transition cases."""
    pass


@case_group.command("show")
@click.argument("case_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show_case(case_id: str, as_json: bool) -> None:
    """Show one case."""

    async def _show() -> Case:
        return await get_case_manager().require_case(case_id)

    _echo_case(_run(_show), as_json)


@case_group.command("list")
@click.option("--status", "-s", type=click.Choice([s.value for s in CaseStatus]), help="Filter by status")
@click.option("--user", "-u", "user_id", help="Only cases involving this account")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cases(status: str | None, user_id: str | None, as_json: bool) -> None:
    """List cases."""

    async def _list() -> list[Case]:
        manager = get_case_manager()
        if user_id:
            cases = await manager.get_cases_by_user_id(user_id)
            return [c for c in cases if status is None or c.status == status]
        return await manager.list_cases(status=status)

    cases = _run(_list)
    if as_json:
        data = {"items": [c.model_dump(mode="json") for c in cases], "total": len(cases)}
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"Cases ({len(cases)} total):")
    for case in cases:
        click.echo(f"  {case.id}  {case.status:<12} {case.case_number or '-':<22} {case.title}")


@case_group.command("transition")
@click.argument("case_id")
@click.argument("status", type=click.Choice([s.value for s in CaseStatus]))
@click.option("--actor", "actor_id", help="Account making the change")
@click.option("--administrative", is_flag=True, help="Clerk closure without a judgement")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def transition_case(
    case_id: str, status: str, actor_id: str | None, administrative: bool, as_json: bool
) -> None:
    """Move a case to another status."""

    async def _transition() -> Case:
        manager: CaseManager = get_case_manager()
        return await manager.update_case(
            case_id, {"status": status}, actor_id=actor_id, administrative=administrative
        )

    _echo_case(_run(_transition), as_json)


# =========================
# identity
# =========================


@click.group("identity")
def identity_group() -> None:
    """Defendant identity lookups."""
    pass


@identity_group.command("find")
@click.option(
    "--type",
    "-t",
    "id_type",
    required=True,
    type=click.Choice([t.value for t in GovernmentIdType]),
    help="Government ID type",
)
@click.option("--number", "-n", "id_number", required=True, help="Government ID number")
@click.option("--phone", "-p", help="Defendant phone number")
def find_cases(id_type: str, id_number: str, phone: str | None) -> None:
    """Find cases naming a government ID as the defendant."""

    async def _find() -> list[Case]:
        return await IdentityMatcher().find_cases_against_identity(id_type, id_number, phone)

    cases = _run(_find)
    click.echo(f"Matching cases ({len(cases)}):")
    for case in cases:
        claimed = "claimed" if case.defendant_claimed else "unclaimed"
        click.echo(f"  {case.id}  {case.status:<12} {claimed:<10} {case.title}")


# =========================
# request
# =========================


@click.group("request")
def request_group() -> None:
    """Representation requests."""
    pass


@request_group.command("resolve")
@click.argument("request_id")
@click.argument(
    "decision",
    type=click.Choice([RequestStatus.ACCEPTED.value, RequestStatus.REJECTED.value]),
)
@click.option("--actor", "actor_id", help="Resolving lawyer")
def resolve_request(request_id: str, decision: str, actor_id: str | None) -> None:
    """Accept or reject a pending request."""

    async def _resolve():
        return await RepresentationWorkflow().resolve_request(
            request_id, decision, actor_id=actor_id
        )

    request = _run(_resolve)
    click.echo(f"Request {request.id}: {request.status}")
    if request.case_id:
        click.echo(f"  Case: {request.case_id}")


# =========================
# hearing
# =========================


@click.group("hearing")
def hearing_group() -> None:
    """Hearings."""
    pass


@hearing_group.command("list")
@click.option("--case", "case_id", help="Hearings of one case")
@click.option("--participant", "participant_id", help="Hearings of one account, grouped by time")
def list_hearings(case_id: str | None, participant_id: str | None) -> None:
    """List hearings."""

    async def _list():
        scheduler = HearingScheduler()
        if case_id:
            return await scheduler.get_hearings_by_case_id(case_id)
        if participant_id:
            return await scheduler.get_hearings_for_participant(participant_id)
        return await scheduler.list_hearings()

    hearings = _run(_list)
    if participant_id and not case_id:
        for group, items in group_hearings_by_time(hearings).items():
            if items:
                click.echo(f"{group.replace('_', ' ').title()} ({len(items)}):")
                for hearing in items:
                    click.echo(f"  {hearing.current_date.isoformat()}  {hearing.location}  {hearing.id}")
        return

    click.echo(f"Hearings ({len(hearings)}):")
    for hearing in hearings:
        flag = " (rescheduled)" if hearing.rescheduled else ""
        click.echo(
            f"  {hearing.current_date.isoformat()}  {hearing.status:<10} "
            f"{hearing.location}  {hearing.id}{flag}"
        )
