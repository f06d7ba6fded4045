"""Shared fixtures for caseflow tests.

Services are wired by hand around an InMemoryDocumentStore and a movable
clock, so every test starts from an empty store.
"""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from caseflow.cases.identity import IdentityMatcher
from caseflow.cases.judgement import JudgementIssuer
from caseflow.cases.manager import CaseManager
from caseflow.cases.models import UserRole
from caseflow.cases.requests import RepresentationWorkflow
from caseflow.errors import StoreUnavailable
from caseflow.hearings.scheduler import HearingScheduler
from caseflow.store import InMemoryDocumentStore
from caseflow.users import UserAccount, UserDirectory

from fixtures.database import sql_engine, sql_store  # noqa: F401
from fixtures.sample_data import (
    FROZEN_NOW,
    SAMPLE_CLERKS,
    SAMPLE_CLIENTS,
    SAMPLE_JUDGES,
    SAMPLE_LAWYERS,
    make_case_request,
)


class MovableClock:
    """Clock whose time only changes when a test says so."""

    def __init__(self, now: datetime = FROZEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FlakyDocumentStore(InMemoryDocumentStore):
    """In-memory store that fails chosen updates with StoreUnavailable.

    ``fail_updates`` holds collection names; an update to one of them
    raises after ``fail_after`` successful updates to that collection.
    """

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.fail_updates: set[str] = set()
        self.fail_after = 0
        self._seen: dict[str, int] = {}

    async def update(self, collection, document_id, fields, expected=None):
        if collection in self.fail_updates:
            seen = self._seen.get(collection, 0)
            self._seen[collection] = seen + 1
            if seen >= self.fail_after:
                raise StoreUnavailable(f"update {collection}/{document_id} timed out")
        return await super().update(collection, document_id, fields, expected=expected)


@pytest.fixture
def clock() -> MovableClock:
    return MovableClock()


@pytest.fixture
def store(clock) -> FlakyDocumentStore:
    """In-memory store; behaves normally until a test sets fail_updates."""
    return FlakyDocumentStore(clock=clock)


@pytest.fixture
def users(store) -> UserDirectory:
    return UserDirectory(store)


@pytest.fixture
def case_manager(store, users, clock) -> CaseManager:
    return CaseManager(store=store, users=users, clock=clock, case_number_prefix="CASE")


@pytest.fixture
def identity_matcher(case_manager) -> IdentityMatcher:
    return IdentityMatcher(case_manager)


@pytest.fixture
def request_workflow(case_manager) -> RepresentationWorkflow:
    return RepresentationWorkflow(case_manager)


@pytest.fixture
def hearing_scheduler(case_manager, clock) -> HearingScheduler:
    return HearingScheduler(case_manager, clock=clock)


@pytest.fixture
def judgement_issuer(case_manager) -> JudgementIssuer:
    return JudgementIssuer(case_manager)


@pytest_asyncio.fixture
async def seeded_users(users) -> UserDirectory:
    """Register the sample clients, lawyers, judges and clerks."""
    for role, accounts in (
        (UserRole.CLIENT, SAMPLE_CLIENTS),
        (UserRole.LAWYER, SAMPLE_LAWYERS),
        (UserRole.JUDGE, SAMPLE_JUDGES),
        (UserRole.CLERK, SAMPLE_CLERKS),
    ):
        for data in accounts:
            await users.create_user(UserAccount(role=role, **data))
    return users


@pytest_asyncio.fixture
async def pending_case(seeded_users, case_manager):
    """Pending case with only the plaintiff lawyer assigned."""
    return await case_manager.create_case(make_case_request(), created_by="client-0")


@pytest_asyncio.fixture
async def filed_case(pending_case, case_manager):
    """Filed case with both lawyers assigned; defendant slot unclaimed."""
    return await case_manager.update_case(
        pending_case.id,
        {"defendant_lawyer": {"id": "lawyer-5"}, "status": "filed"},
        actor_id="clerk-1",
    )


@pytest_asyncio.fixture
async def scheduled_case(filed_case, hearing_scheduler, case_manager, clock):
    """Scheduled case with one hearing a week out, judge-2 presiding."""
    await hearing_scheduler.schedule_hearing(
        filed_case.id,
        clock() + timedelta(days=7),
        "Room 4",
        "Initial hearing",
        "judge-2",
        actor_id="clerk-1",
    )
    return await case_manager.require_case(filed_case.id)
