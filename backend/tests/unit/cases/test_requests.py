"""Unit tests for the representation request workflow.

Run with: pytest backend/tests/unit/cases/test_requests.py -v
"""

import pytest

from caseflow.errors import (
    AlreadyResolved,
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    PartiallyApplied,
    PreconditionFailed,
    StoreUnavailable,
)

from fixtures.sample_data import make_case_request


async def roster(users, lawyer_id: str) -> list[str]:
    lawyer = await users.require_user(lawyer_id, "lawyer")
    return lawyer.clients


class TestCreateRequest:
    """Tests for create_request."""

    @pytest.mark.asyncio
    async def test_defense_request_snapshots_case_title(self, pending_case, request_workflow):
        request = await request_workflow.create_request(
            "defense", "client-1", "lawyer-9", "need defense", pending_case.id
        )

        assert request.status == "pending"
        assert request.kind == "defense"
        assert request.case_id == pending_case.id
        assert request.case_title == "Rao v. Mehta"

    @pytest.mark.asyncio
    async def test_defense_request_does_not_claim_defendant(
        self, pending_case, request_workflow, case_manager
    ):
        """Test that the defendant account is only linked on acceptance."""
        await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)

        case = await case_manager.require_case(pending_case.id)
        assert case.defendant_client_id is None

    @pytest.mark.asyncio
    async def test_new_case_request_ignores_case_id(self, pending_case, request_workflow):
        request = await request_workflow.create_request(
            "new_case", "client-2", "lawyer-9", "tenancy dispute", case_id=pending_case.id
        )
        assert request.case_id is None

    @pytest.mark.asyncio
    async def test_defense_request_needs_case(self, seeded_users, request_workflow):
        with pytest.raises(PreconditionFailed):
            await request_workflow.create_request("defense", "client-1", "lawyer-9")

    @pytest.mark.asyncio
    async def test_unknown_kind(self, seeded_users, request_workflow):
        with pytest.raises(PreconditionFailed):
            await request_workflow.create_request("appeal", "client-1", "lawyer-9")

    @pytest.mark.asyncio
    async def test_unknown_accounts(self, seeded_users, request_workflow):
        with pytest.raises(NotFound):
            await request_workflow.create_request("new_case", "client-404", "lawyer-9")
        with pytest.raises(NotFound):
            await request_workflow.create_request("new_case", "client-1", "lawyer-404")
        with pytest.raises(NotFound):
            await request_workflow.create_request("defense", "client-1", "lawyer-9", case_id="case-404")

    @pytest.mark.asyncio
    async def test_plaintiff_cannot_request_defense(self, pending_case, request_workflow):
        with pytest.raises(Forbidden):
            await request_workflow.create_request("defense", "client-0", "lawyer-9", "", pending_case.id)

    @pytest.mark.asyncio
    async def test_duplicate_pending_request(self, pending_case, request_workflow):
        await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)

        with pytest.raises(Conflict):
            await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)

    @pytest.mark.asyncio
    async def test_terminal_case(self, scheduled_case, case_manager, request_workflow):
        await case_manager.update_case(scheduled_case.id, {"status": "dismissed"})

        with pytest.raises(InvalidTransition):
            await request_workflow.create_request(
                "defense", "client-1", "lawyer-9", "", scheduled_case.id
            )

    @pytest.mark.asyncio
    async def test_readers(self, pending_case, request_workflow):
        request = await request_workflow.create_request(
            "defense", "client-1", "lawyer-9", "", pending_case.id
        )
        await request_workflow.create_request("new_case", "client-2", "lawyer-9", "lease")

        by_lawyer = await request_workflow.get_requests_by_lawyer_id("lawyer-9", status="pending")
        by_client = await request_workflow.get_requests_by_client_id("client-1")

        assert len(by_lawyer) == 2
        assert [r.id for r in by_client] == [request.id]
        assert await request_workflow.get_request("request-404") is None


class TestResolveDefenseRequest:
    """Tests for accepting and rejecting defense requests."""

    @pytest.mark.asyncio
    async def test_accept_defense_request(self, pending_case, request_workflow, case_manager, users):
        """Test that acceptance links lawyer, client, roster and files the case."""
        request = await request_workflow.create_request(
            "defense", "client-1", "lawyer-9", "need defense", pending_case.id
        )

        resolved = await request_workflow.resolve_request(request.id, "accepted")

        assert resolved.status == "accepted"
        assert resolved.resolved_by == "lawyer-9"

        case = await case_manager.require_case(pending_case.id)
        assert case.defendant_lawyer.id == "lawyer-9"
        assert case.defendant_lawyer.name == "Arjun Menon"
        assert case.defendant_client_id == "client-1"
        assert case.defendant.name == "Vikram Mehta"
        assert case.defendant.government_id_number == pending_case.defendant.government_id_number
        assert case.status == "filed"
        assert case.case_number is not None

        assert "client-1" in await roster(users, "lawyer-9")

    @pytest.mark.asyncio
    async def test_accept_without_plaintiff_lawyer_stays_pending(
        self, seeded_users, case_manager, request_workflow
    ):
        pending = await case_manager.create_case(make_case_request(plaintiff_lawyer_id=None))
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending.id)

        await request_workflow.resolve_request(request.id, "accepted")

        case = await case_manager.require_case(pending.id)
        assert case.status == "pending"
        assert case.defendant_lawyer.id == "lawyer-9"

    @pytest.mark.asyncio
    async def test_reject_defense_request(self, pending_case, request_workflow, case_manager, users):
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)

        resolved = await request_workflow.resolve_request(request.id, "rejected", actor_id="lawyer-9")

        assert resolved.status == "rejected"
        case = await case_manager.require_case(pending_case.id)
        assert case.defendant_lawyer is None
        assert case.defendant_client_id is None
        assert await roster(users, "lawyer-9") == []

    @pytest.mark.asyncio
    async def test_resolve_twice(self, pending_case, request_workflow):
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)
        await request_workflow.resolve_request(request.id, "rejected")

        with pytest.raises(AlreadyResolved) as exc:
            await request_workflow.resolve_request(request.id, "accepted")

        assert exc.value.context["status"] == "rejected"

    @pytest.mark.asyncio
    async def test_only_target_lawyer_resolves(self, pending_case, request_workflow):
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)

        with pytest.raises(Forbidden):
            await request_workflow.resolve_request(request.id, "accepted", actor_id="lawyer-1")

        assert (await request_workflow.require_request(request.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_case_defended_by_another_lawyer(self, filed_case, request_workflow):
        """Test that acceptance is refused before any write when the slot is taken."""
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", filed_case.id)

        with pytest.raises(Conflict):
            await request_workflow.resolve_request(request.id, "accepted")

        assert (await request_workflow.require_request(request.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_current_defense_lawyer_keeps_snapshot(self, filed_case, request_workflow, case_manager):
        request = await request_workflow.create_request("defense", "client-1", "lawyer-5", "", filed_case.id)

        await request_workflow.resolve_request(request.id, "accepted")

        case = await case_manager.require_case(filed_case.id)
        assert case.defendant_lawyer == filed_case.defendant_lawyer
        assert case.defendant_client_id == "client-1"
        assert case.status == "filed"

    @pytest.mark.asyncio
    async def test_bad_decision(self, pending_case, request_workflow):
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)

        with pytest.raises(PreconditionFailed):
            await request_workflow.resolve_request(request.id, "pending")
        with pytest.raises(PreconditionFailed):
            await request_workflow.resolve_request(request.id, "maybe")

    @pytest.mark.asyncio
    async def test_unknown_request(self, seeded_users, request_workflow):
        with pytest.raises(NotFound):
            await request_workflow.resolve_request("request-404", "accepted")


class TestResolveNewCaseRequest:
    """Tests for new_case requests, which only touch the roster."""

    @pytest.mark.asyncio
    async def test_accept_adds_client_to_roster(self, seeded_users, request_workflow, users):
        request = await request_workflow.create_request("new_case", "client-2", "lawyer-9", "lease")

        await request_workflow.resolve_request(request.id, "accepted")

        assert await roster(users, "lawyer-9") == ["client-2"]
        clients = await users.get_clients_for_lawyer("lawyer-9")
        assert [c.name for c in clients] == ["Ravi Kumar"]

    @pytest.mark.asyncio
    async def test_roster_is_a_set(self, seeded_users, request_workflow, users):
        """Test that accepting a second request from the same client adds nothing."""
        first = await request_workflow.create_request("new_case", "client-2", "lawyer-9", "lease")
        await request_workflow.resolve_request(first.id, "accepted")
        second = await request_workflow.create_request("new_case", "client-2", "lawyer-9", "deposit")
        await request_workflow.resolve_request(second.id, "accepted")

        assert await roster(users, "lawyer-9") == ["client-2"]


class TestPartialFailure:
    """Tests for failures after the request status has been written."""

    @pytest.mark.asyncio
    async def test_roster_write_fails(self, pending_case, request_workflow, case_manager, store):
        """Test that a failed roster write reports the committed steps."""
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)
        store.fail_updates = {"users_lawyers"}

        with pytest.raises(PartiallyApplied) as exc:
            await request_workflow.resolve_request(request.id, "accepted")

        assert exc.value.completed_steps == ["request_status", "case_update"]
        assert exc.value.failed_step == "roster"
        assert isinstance(exc.value.cause, StoreUnavailable)
        assert exc.value.context["request_id"] == request.id

        case = await case_manager.require_case(pending_case.id)
        assert case.defendant_lawyer.id == "lawyer-9"
        assert (await request_workflow.require_request(request.id)).status == "accepted"

    @pytest.mark.asyncio
    async def test_case_write_fails(self, pending_case, request_workflow, case_manager, store, users):
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)
        store.fail_updates = {"cases"}

        with pytest.raises(PartiallyApplied) as exc:
            await request_workflow.resolve_request(request.id, "accepted")

        assert exc.value.completed_steps == ["request_status"]
        assert exc.value.failed_step == "case_update"
        assert exc.value.context["cause_kind"] == "store_unavailable"

        case = await case_manager.require_case(pending_case.id)
        assert case.defendant_lawyer is None
        assert await roster(users, "lawyer-9") == []

    @pytest.mark.asyncio
    async def test_replay_after_partial_failure(self, pending_case, request_workflow, store):
        """Test that replaying from the first step is refused."""
        request = await request_workflow.create_request("defense", "client-1", "lawyer-9", "", pending_case.id)
        store.fail_updates = {"users_lawyers"}
        with pytest.raises(PartiallyApplied):
            await request_workflow.resolve_request(request.id, "accepted")

        store.fail_updates = set()
        with pytest.raises(AlreadyResolved):
            await request_workflow.resolve_request(request.id, "accepted")
