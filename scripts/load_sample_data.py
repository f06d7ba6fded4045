#!/usr/bin/env python3
"""
Load sample data for caseflow development and testing.

Creates a small dataset in the configured document store with:
- Client, lawyer, judge and clerk accounts
- A pending case waiting for a defense lawyer
- A filed case with an open defense request
- A scheduled case with its first hearing

Set STORE_BACKEND=sql (and the POSTGRES_* or DATABASE_URL_OVERRIDE
variables) to load into a database; the memory backend only lives for the
duration of the script.
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone

# Sample accounts, keyed by role
SAMPLE_USERS = {
    "client": [
        {
            "id": "client-asha",
            "name": "Asha Rao",
            "email": "asha.rao@example.in",
            "phone": "9845000000",
            "government_id_type": "PAN",
            "government_id_number": "ABCDE1234F",
        },
        {
            "id": "client-vikram",
            "name": "Vikram Mehta",
            "email": "vikram.mehta@example.in",
            "phone": "9845011111",
            "government_id_type": "Aadhar",
            "government_id_number": "123456789012",
        },
        {
            "id": "client-meera",
            "name": "Meera Joshi",
            "email": "meera.joshi@example.in",
            "phone": "9845033333",
            "government_id_type": "Voter ID",
            "government_id_number": "KAR1234567",
        },
    ],
    "lawyer": [
        {"id": "lawyer-neha", "name": "Neha Iyer", "bar_id": "KAR/1021/2015"},
        {"id": "lawyer-kavya", "name": "Kavya Nair", "bar_id": "KAR/2210/2018"},
        {"id": "lawyer-arjun", "name": "Arjun Menon", "bar_id": "KAR/3307/2012"},
    ],
    "judge": [
        {
            "id": "judge-banerjee",
            "name": "Justice S. Banerjee",
            "chamber_number": "4",
            "court_district": "Bengaluru Urban",
        },
    ],
    "clerk": [
        {"id": "clerk-prakash", "name": "Prakash Das"},
    ],
}

PLAINTIFF = {
    "name": "Asha Rao",
    "government_id_type": "PAN",
    "government_id_number": "ABCDE1234F",
    "phone_number": "9845000000",
}


async def load_users(users) -> int:
    """Register every sample account, skipping ones that already exist."""
    from caseflow.store import DocumentExists
    from caseflow.users import UserAccount

    created = 0
    for role, accounts in SAMPLE_USERS.items():
        for data in accounts:
            try:
                await users.create_user(UserAccount(role=role, **data))
                created += 1
            except DocumentExists:
                print(f"  - {role} {data['id']} already exists")
    return created


async def load_cases(cases, requests, hearings) -> dict[str, str]:
    """Create one case per interesting stage of the lifecycle."""
    from caseflow.cases.models import CreateCaseRequest, PartyIdentity

    ids: dict[str, str] = {}

    pending = await cases.create_case(
        CreateCaseRequest(
            title="Rao v. Mehta",
            description="Recovery of a hand loan of Rs. 4,00,000",
            case_type="civil",
            plaintiff=PartyIdentity(**PLAINTIFF),
            defendant=PartyIdentity(
                name="V. Mehta",
                government_id_type="Aadhar",
                government_id_number="123456789012",
            ),
            plaintiff_client_id="client-asha",
            plaintiff_lawyer_id="lawyer-neha",
        ),
        created_by="client-asha",
    )
    ids["pending"] = pending.id

    requested = await cases.create_case(
        CreateCaseRequest(
            title="Rao v. Joshi",
            description="Boundary dispute over survey no. 114/2",
            case_type="civil",
            plaintiff=PartyIdentity(**PLAINTIFF),
            defendant=PartyIdentity(
                name="Meera Joshi",
                government_id_type="Voter ID",
                government_id_number="KAR1234567",
            ),
            plaintiff_client_id="client-asha",
            plaintiff_lawyer_id="lawyer-neha",
        ),
        created_by="client-asha",
    )
    request = await requests.create_request(
        "defense", "client-meera", "lawyer-arjun", "Please take up my defense", requested.id
    )
    ids["requested"] = requested.id
    ids["request"] = request.id

    scheduled = await cases.create_case(
        CreateCaseRequest(
            title="Rao v. Nair Traders",
            description="Unpaid invoices for supplied goods",
            case_type="commercial",
            plaintiff=PartyIdentity(**PLAINTIFF),
            defendant=PartyIdentity(name="Nair Traders"),
            plaintiff_client_id="client-asha",
            plaintiff_lawyer_id="lawyer-neha",
        ),
        created_by="client-asha",
    )
    await cases.update_case(
        scheduled.id,
        {"defendant_lawyer": {"id": "lawyer-kavya"}, "status": "filed"},
        actor_id="clerk-prakash",
    )
    hearing = await hearings.schedule_hearing(
        scheduled.id,
        datetime.now(timezone.utc).replace(hour=5, minute=0, second=0, microsecond=0)
        + timedelta(days=2),
        "City Civil Court, Hall 4",
        "Framing of issues",
        "judge-banerjee",
        court_room="4",
        actor_id="clerk-prakash",
    )
    ids["scheduled"] = scheduled.id
    ids["hearing"] = hearing.id

    return ids


async def main() -> int:
    """Load all sample data."""
    from caseflow.cases.manager import get_case_manager
    from caseflow.cases.requests import RepresentationWorkflow
    from caseflow.config import get_settings
    from caseflow.db import close_all_connections, init_schema
    from caseflow.errors import CaseflowError
    from caseflow.hearings.scheduler import HearingScheduler

    settings = get_settings()

    print("\n" + "=" * 60)
    print("caseflow Sample Data Loader")
    print("=" * 60 + "\n")
    print(f"Store backend: {settings.store_backend}\n")

    try:
        if settings.store_backend == "sql":
            await init_schema()

        cases = get_case_manager()
        print("Loading accounts...")
        created = await load_users(cases.users)
        print(f"  - Accounts created: {created}")

        print("Loading cases...")
        ids = await load_cases(cases, RepresentationWorkflow(cases), HearingScheduler(cases))
        for label, record_id in ids.items():
            print(f"  - {label}: {record_id}")
        print("  \033[92m[OK] Sample data loaded\033[0m\n")
    except CaseflowError as e:
        print(f"  \033[91m[FAIL] {e.kind}: {e.message}\033[0m\n")
        return 1
    finally:
        await close_all_connections()

    print("=" * 60)
    print("\nYou can now:")
    print(f"  - Show the scheduled case: caseflow case show {ids['scheduled']}")
    print("  - Find cases against an ID: caseflow identity find -t Aadhar -n 123456789012")
    print(f"  - Accept the open request: caseflow request resolve {ids['request']} accepted")
    print("  - Browse the API docs at http://localhost:8000/docs")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
