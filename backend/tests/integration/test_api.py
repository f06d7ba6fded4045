"""Integration tests for the REST API.

Routes run against services wired on an in-memory store through
dependency overrides; accounts are registered through the API itself.

Run with: pytest backend/tests/integration/test_api.py -v
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from caseflow.cases.identity import get_identity_matcher
from caseflow.cases.judgement import get_judgement_issuer
from caseflow.cases.manager import get_case_manager
from caseflow.cases.requests import get_representation_workflow
from caseflow.hearings.scheduler import get_hearing_scheduler
from caseflow.main import app
from caseflow.users import get_user_directory

from fixtures.sample_data import (
    DEFENDANT_AADHAR,
    FROZEN_NOW,
    SAMPLE_CLERKS,
    SAMPLE_CLIENTS,
    SAMPLE_DEFENDANT,
    SAMPLE_JUDGES,
    SAMPLE_LAWYERS,
    SAMPLE_PLAINTIFF,
)

pytestmark = pytest.mark.integration

API = "/api/v1"


@pytest.fixture
def client(
    users, case_manager, identity_matcher, request_workflow, hearing_scheduler, judgement_issuer
):
    """TestClient with every service dependency pointed at the test store."""
    app.dependency_overrides[get_user_directory] = lambda: users
    app.dependency_overrides[get_case_manager] = lambda: case_manager
    app.dependency_overrides[get_identity_matcher] = lambda: identity_matcher
    app.dependency_overrides[get_representation_workflow] = lambda: request_workflow
    app.dependency_overrides[get_hearing_scheduler] = lambda: hearing_scheduler
    app.dependency_overrides[get_judgement_issuer] = lambda: judgement_issuer

    test_client = TestClient(app)
    for role, accounts in (
        ("client", SAMPLE_CLIENTS),
        ("lawyer", SAMPLE_LAWYERS),
        ("judge", SAMPLE_JUDGES),
        ("clerk", SAMPLE_CLERKS),
    ):
        for data in accounts:
            response = test_client.post(f"{API}/users", json={"role": role, **data})
            assert response.status_code == 201

    yield test_client
    app.dependency_overrides.clear()


def create_case(client: TestClient, **overrides) -> dict:
    body = {
        "title": "Rao v. Mehta",
        "description": "Recovery of a hand loan",
        "case_type": "civil",
        "plaintiff": SAMPLE_PLAINTIFF,
        "defendant": SAMPLE_DEFENDANT,
        "plaintiff_client_id": "client-0",
        "plaintiff_lawyer_id": "lawyer-1",
    }
    body.update(overrides)
    response = client.post(f"{API}/cases", json=body, params={"created_by": "client-0"})
    assert response.status_code == 201
    return response.json()


def file_case(client: TestClient, case_id: str) -> dict:
    response = client.patch(
        f"{API}/cases/{case_id}",
        json={
            "fields": {"defendant_lawyer": {"id": "lawyer-5"}, "status": "filed"},
            "actor_id": "clerk-1",
        },
    )
    assert response.status_code == 200
    return response.json()


def schedule(client: TestClient, case_id: str, judge_id: str = "judge-2") -> dict:
    response = client.post(
        f"{API}/hearings",
        json={
            "case_id": case_id,
            "date": (FROZEN_NOW + timedelta(days=7)).isoformat(),
            "location": "Room 4",
            "description": "Initial hearing",
            "judge_id": judge_id,
            "actor_id": "clerk-1",
        },
    )
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """Tests for the health and root endpoints."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "caseflow-api"}

    def test_root(self, client):
        assert client.get("/").json()["name"] == "caseflow API"


class TestUsersApi:
    """Tests for /users."""

    def test_list_by_role(self, client):
        response = client.get(f"{API}/users", params={"role": "judge"})

        assert response.status_code == 200
        assert {u["id"] for u in response.json()["items"]} == {"judge-2", "judge-3"}

    def test_unknown_user(self, client):
        response = client.get(f"{API}/users/nobody")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestCasesApi:
    """Tests for /cases."""

    def test_create_case(self, client):
        case = create_case(client)

        assert case["status"] == "pending"
        assert case["case_number"] is None
        assert case["plaintiff_lawyer"]["id"] == "lawyer-1"

    def test_invalid_government_id_rejected(self, client):
        """Test that a malformed defendant ID is refused."""
        response = client.post(
            f"{API}/cases",
            json={
                "title": "Rao v. Mehta",
                "plaintiff_client_id": "client-0",
                "defendant": {**SAMPLE_DEFENDANT, "government_id_number": "12AB"},
            },
        )

        assert response.status_code == 412
        assert response.json()["error_code"] == "PRECONDITION_FAILED"

    def test_filing_assigns_case_number(self, client):
        case = create_case(client)

        filed = file_case(client, case["id"])

        assert filed["status"] == "filed"
        assert filed["case_number"].startswith("CASE-2026-")
        assert filed["filed_date"] is not None

    def test_invalid_transition_maps_to_409(self, client):
        case = create_case(client)

        response = client.patch(
            f"{API}/cases/{case['id']}",
            json={"fields": {"status": "closed"}, "actor_id": "clerk-1"},
        )

        assert response.status_code == 409
        assert response.headers["X-Error-Code"] == "INVALID_TRANSITION"
        body = response.json()
        assert body["success"] is False
        assert body["details"][0]["details"]["from_status"] == "pending"
        assert body["details"][0]["details"]["to_status"] == "closed"

    def test_missing_case(self, client):
        response = client.get(f"{API}/cases/case-404")

        assert response.status_code == 404
        assert response.headers["X-Error-Code"] == "NOT_FOUND"

    def test_list_by_status_and_user(self, client):
        first = create_case(client)
        create_case(client, title="Rao v. Kumar")
        file_case(client, first["id"])

        filed = client.get(f"{API}/cases", params={"status": "filed"}).json()
        mine = client.get(f"{API}/cases", params={"user_id": "lawyer-5"}).json()
        defended = client.get(f"{API}/cases/defense", params={"lawyer_id": "lawyer-5"}).json()

        assert [c["id"] for c in filed["items"]] == [first["id"]]
        assert mine["total"] == 1
        assert defended["total"] == 1

    def test_evidence_and_witnesses(self, client):
        case = create_case(client)

        evidence = client.post(
            f"{API}/cases/{case['id']}/evidence",
            json={"actor_id": "lawyer-1", "item": {"title": "Promissory note"}},
        )
        witness = client.post(
            f"{API}/cases/{case['id']}/witnesses",
            json={"actor_id": "lawyer-1", "witness": {"name": "Suresh Rao"}},
        )

        assert evidence.status_code == 201
        assert witness.status_code == 201
        current = client.get(f"{API}/cases/{case['id']}").json()
        assert [e["title"] for e in current["evidence"]] == ["Promissory note"]
        assert [w["name"] for w in current["witnesses"]] == ["Suresh Rao"]

    def test_delete(self, client):
        case = create_case(client)

        assert client.delete(f"{API}/cases/{case['id']}").status_code == 204
        assert client.get(f"{API}/cases/{case['id']}").status_code == 404


class TestIdentityApi:
    """Tests for /identity."""

    def test_find_and_claim(self, client):
        case = create_case(client)

        found = client.get(
            f"{API}/identity/cases", params={"id_type": "Aadhar", "id_number": DEFENDANT_AADHAR}
        ).json()
        claimed = client.post(
            f"{API}/identity/cases/{case['id']}/claim", json={"client_id": "client-1"}
        )
        again = client.post(
            f"{API}/identity/cases/{case['id']}/claim", json={"client_id": "client-2"}
        )

        assert [c["id"] for c in found["items"]] == [case["id"]]
        assert claimed.status_code == 200
        assert claimed.json()["defendant_client_id"] == "client-1"
        assert again.status_code == 409
        assert again.json()["error_code"] == "CONFLICT"

    def test_plaintiff_cannot_claim(self, client):
        case = create_case(client)

        response = client.post(
            f"{API}/identity/cases/{case['id']}/claim", json={"client_id": "client-0"}
        )

        assert response.status_code == 403


class TestRequestsApi:
    """Tests for /requests."""

    def test_defense_request_accepted(self, client):
        case = create_case(client)
        created = client.post(
            f"{API}/requests",
            json={
                "kind": "defense",
                "client_id": "client-1",
                "lawyer_id": "lawyer-5",
                "case_id": case["id"],
            },
        )
        request_id = created.json()["id"]

        pending = client.get(f"{API}/requests", params={"lawyer_id": "lawyer-5"}).json()
        accepted = client.post(
            f"{API}/requests/{request_id}/resolve",
            json={"decision": "accepted", "actor_id": "lawyer-5"},
        )
        replay = client.post(
            f"{API}/requests/{request_id}/resolve",
            json={"decision": "rejected", "actor_id": "lawyer-5"},
        )

        assert created.status_code == 201
        assert pending["total"] == 1
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"
        assert client.get(f"{API}/cases/{case['id']}").json()["status"] == "filed"
        assert replay.status_code == 409
        assert replay.headers["X-Error-Code"] == "ALREADY_RESOLVED"

    def test_list_requires_a_party(self, client):
        response = client.get(f"{API}/requests")

        assert response.status_code == 400
        assert response.json()["error_code"] == "HTTP_ERROR"


class TestHearingsApi:
    """Tests for hearing routes."""

    def test_schedule_and_list(self, client):
        case = create_case(client)
        file_case(client, case["id"])

        hearing = schedule(client, case["id"])

        current = client.get(f"{API}/cases/{case['id']}").json()
        assert current["status"] == "scheduled"
        assert current["judge"]["id"] == "judge-2"
        by_case = client.get(f"{API}/cases/{case['id']}/hearings").json()
        assert [h["id"] for h in by_case["items"]] == [hearing["id"]]
        mine = client.get(f"{API}/hearings", params={"participant_id": "client-0"}).json()
        assert mine["total"] == 1

    def test_schedule_pending_case_rejected(self, client):
        case = create_case(client)

        response = client.post(
            f"{API}/hearings",
            json={
                "case_id": case["id"],
                "date": (FROZEN_NOW + timedelta(days=7)).isoformat(),
                "location": "Room 4",
                "judge_id": "judge-2",
            },
        )

        assert response.status_code == 409

    def test_reschedule_and_refresh(self, client):
        case = create_case(client)
        file_case(client, case["id"])
        hearing = schedule(client, case["id"])
        new_date = FROZEN_NOW + timedelta(days=14)

        moved = client.post(
            f"{API}/hearings/{hearing['id']}/reschedule",
            json={"new_date": new_date.isoformat(), "reason": "Counsel unwell", "actor_id": "clerk-1"},
        ).json()
        refreshed = client.post(f"{API}/cases/{case['id']}/next-hearing/refresh").json()

        assert moved["rescheduled"] is True
        assert len(moved["rescheduling_history"]) == 1
        assert refreshed["next_hearing_date"].startswith("2026-03-16")

    def test_schedule_view(self, client):
        case = create_case(client)
        file_case(client, case["id"])
        schedule(client, case["id"])

        view = client.get(f"{API}/hearings/schedule", params={"participant_id": "judge-2"}).json()

        assert set(view) == {"past", "today", "tomorrow", "this_week", "future"}
        assert sum(len(v) for v in view.values()) == 1

    def test_status_cannot_be_reset_to_scheduled(self, client):
        case = create_case(client)
        file_case(client, case["id"])
        hearing = schedule(client, case["id"])

        response = client.post(
            f"{API}/hearings/{hearing['id']}/status", json={"status": "scheduled"}
        )

        assert response.status_code == 400


class TestJudgementsApi:
    """Tests for judgement issuance."""

    def test_issue_then_close(self, client):
        case = create_case(client)
        file_case(client, case["id"])
        schedule(client, case["id"])

        issued = client.post(
            f"{API}/cases/{case['id']}/judgement",
            json={
                "judge_id": "judge-2",
                "decision": "approved",
                "ruling": "Suit decreed with costs",
                "court_room_number": "4",
                "physical_presence_confirmed": True,
            },
        )
        closed = client.patch(
            f"{API}/cases/{case['id']}",
            json={"fields": {"status": "closed"}, "actor_id": "judge-2"},
        )

        assert issued.status_code == 201
        assert issued.json()["judgement"]["issued_by"] == "judge-2"
        assert closed.json()["status"] == "closed"

    def test_presence_required(self, client):
        case = create_case(client)
        file_case(client, case["id"])
        schedule(client, case["id"])

        response = client.post(
            f"{API}/cases/{case['id']}/judgement",
            json={
                "judge_id": "judge-2",
                "decision": "denied",
                "ruling": "Dismissed",
                "court_room_number": "4",
                "physical_presence_confirmed": False,
            },
        )

        assert response.status_code == 403
        assert response.headers["X-Error-Code"] == "FORBIDDEN"
