"""Unit tests for JudgementIssuer.

Run with: pytest backend/tests/unit/cases/test_judgement.py -v
"""

import pytest

from caseflow.errors import Conflict, Forbidden, NotFound, PreconditionFailed

from fixtures.sample_data import FROZEN_NOW

RULING = "Suit decreed. Defendant to repay Rs. 4,00,000 with 9% interest."


class TestIssueJudgement:
    """Tests for issue_judgement."""

    @pytest.mark.asyncio
    async def test_issue_on_scheduled_case(self, scheduled_case, judgement_issuer):
        """Test that the judgement and presence attestation are recorded."""
        case = await judgement_issuer.issue_judgement(
            scheduled_case.id, "judge-2", "approved", RULING, "4", True
        )

        judgement = case.judgement
        assert judgement.decision == "approved"
        assert judgement.ruling == RULING
        assert judgement.issued_by == "judge-2"
        assert judgement.judge_name == "Justice S. Banerjee"
        assert judgement.court_room_number == "4"
        assert judgement.issued_at == FROZEN_NOW
        assert judgement.presence.confirmed is True
        assert judgement.presence.court_room_number == "4"
        assert judgement.presence.attested_at == FROZEN_NOW
        assert case.status == "scheduled"

    @pytest.mark.asyncio
    async def test_judgement_allows_closing(self, scheduled_case, judgement_issuer, case_manager):
        await judgement_issuer.issue_judgement(scheduled_case.id, "judge-2", "partial", RULING, "4", True)

        case = await case_manager.update_case(scheduled_case.id, {"status": "closed"})

        assert case.status == "closed"

    @pytest.mark.asyncio
    async def test_judgement_is_write_once(self, scheduled_case, judgement_issuer, case_manager):
        await judgement_issuer.issue_judgement(scheduled_case.id, "judge-2", "approved", RULING, "4", True)

        with pytest.raises(Conflict):
            await judgement_issuer.issue_judgement(
                scheduled_case.id, "judge-2", "denied", "Reversed.", "4", True
            )

        case = await case_manager.require_case(scheduled_case.id)
        assert case.judgement.decision == "approved"

    @pytest.mark.asyncio
    async def test_any_registered_judge_may_issue(self, scheduled_case, judgement_issuer):
        """Test that the issuing judge need not be the one assigned to the case."""
        case = await judgement_issuer.issue_judgement(
            scheduled_case.id, "judge-3", "denied", "Suit dismissed for want of evidence.", "7", True
        )
        assert case.judgement.issued_by == "judge-3"
        assert case.judge.id == "judge-2"

    @pytest.mark.asyncio
    async def test_ruling_is_trimmed(self, scheduled_case, judgement_issuer):
        case = await judgement_issuer.issue_judgement(
            scheduled_case.id, "judge-2", "approved", f"  {RULING}\n", " 4 ", True
        )
        assert case.judgement.ruling == RULING
        assert case.judgement.court_room_number == "4"


class TestJudgementGuards:
    """Tests for the role, presence, input and status guards."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("confirmed", [False, None, "yes", 1])
    async def test_presence_must_be_confirmed(self, scheduled_case, judgement_issuer, case_manager, confirmed):
        with pytest.raises(Forbidden):
            await judgement_issuer.issue_judgement(
                scheduled_case.id, "judge-2", "approved", RULING, "4", confirmed
            )

        case = await case_manager.require_case(scheduled_case.id)
        assert case.judgement is None

    @pytest.mark.asyncio
    async def test_non_judge_is_forbidden(self, scheduled_case, judgement_issuer):
        with pytest.raises(Forbidden) as exc:
            await judgement_issuer.issue_judgement(scheduled_case.id, "lawyer-1", "approved", RULING, "4", True)
        assert exc.value.context["required_role"] == "judge"

    @pytest.mark.asyncio
    async def test_filed_case_is_forbidden(self, filed_case, judgement_issuer):
        """Test that a case without hearings cannot be decided."""
        with pytest.raises(Forbidden) as exc:
            await judgement_issuer.issue_judgement(filed_case.id, "judge-2", "approved", RULING, "4", True)
        assert exc.value.context["status"] == "filed"

    @pytest.mark.asyncio
    async def test_administratively_closed_case(self, scheduled_case, case_manager, judgement_issuer):
        await case_manager.update_case(scheduled_case.id, {"status": "closed"}, administrative=True)

        with pytest.raises(Forbidden):
            await judgement_issuer.issue_judgement(scheduled_case.id, "judge-2", "approved", RULING, "4", True)

    @pytest.mark.asyncio
    async def test_on_hold_case_can_be_decided(self, scheduled_case, case_manager, judgement_issuer):
        await case_manager.update_case(scheduled_case.id, {"status": "on_hold"})

        case = await judgement_issuer.issue_judgement(
            scheduled_case.id, "judge-2", "approved", RULING, "4", True
        )
        assert case.judgement is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "decision,ruling,room",
        [("upheld", RULING, "4"), ("approved", "   ", "4"), ("approved", RULING, "")],
    )
    async def test_invalid_input(
        self, scheduled_case, case_manager, judgement_issuer, decision, ruling, room
    ):
        """Test that malformed judgement content is a precondition failure with no write."""
        with pytest.raises(PreconditionFailed):
            await judgement_issuer.issue_judgement(scheduled_case.id, "judge-2", decision, ruling, room, True)

        assert (await case_manager.require_case(scheduled_case.id)).judgement is None

    @pytest.mark.asyncio
    async def test_unknown_case(self, seeded_users, judgement_issuer):
        with pytest.raises(NotFound):
            await judgement_issuer.issue_judgement("case-404", "judge-2", "approved", RULING, "4", True)
