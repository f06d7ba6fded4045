"""Pydantic models for the case workflow.

One model per entity: cases (with embedded parties, representation,
evidence and judgement), representation requests, and hearings with their
rescheduling history. Lawyer and judge names held on a case are snapshots
taken at assignment time, not live joins.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


# Store collections
CASES = "cases"
REQUESTS = "caseRequests"
HEARINGS = "hearings"
CASE_NUMBERS = "case_numbers"


# =============================================================================
# Enumerations
# =============================================================================


class UserRole(str, Enum):
    """Account roles; each role has its own user collection."""

    CLIENT = "client"
    LAWYER = "lawyer"
    CLERK = "clerk"
    JUDGE = "judge"


class CaseStatus(str, Enum):
    """Lifecycle status of a case."""

    PENDING = "pending"
    FILED = "filed"
    ACTIVE = "active"  # legacy records only; no transitions lead here
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    DISMISSED = "dismissed"
    CLOSED = "closed"


class GovernmentIdType(str, Enum):
    """Government identity documents accepted for parties."""

    AADHAR = "Aadhar"
    PASSPORT = "Passport"
    DRIVING_LICENSE = "Driving License"
    VOTER_ID = "Voter ID"
    PAN = "PAN"
    OTHER = "Other"


class PartySide(str, Enum):
    """Which side of the case an actor or item belongs to."""

    PLAINTIFF = "plaintiff"
    DEFENDANT = "defendant"


class RequestKind(str, Enum):
    """Kinds of representation request."""

    NEW_CASE = "new_case"  # client seeking a lawyer for a fresh matter
    DEFENSE = "defense"  # client seeking defense on an existing case


class RequestStatus(str, Enum):
    """Status of a representation request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class HearingStatus(str, Enum):
    """Status of a single hearing."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JudgementDecision(str, Enum):
    """Outcome recorded by a judgement."""

    APPROVED = "approved"
    DENIED = "denied"
    PARTIAL = "partial"


# =============================================================================
# Case building blocks
# =============================================================================


class PartyIdentity(BaseModel):
    """A natural person named on a case, identified by government ID."""

    name: str = ""
    government_id_type: GovernmentIdType | None = None
    government_id_number: str = ""
    phone_number: str = ""

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("government_id_number", "phone_number", "name", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class LawyerRef(BaseModel):
    """Lawyer assigned to one side. ``name`` is a snapshot."""

    id: str = Field(..., min_length=1)
    name: str = ""
    assigned_at: datetime | None = None


class JudgeRef(BaseModel):
    """Judge assigned when the first hearing is scheduled. ``name`` is a snapshot."""

    id: str = Field(..., min_length=1)
    name: str = ""
    assigned_at: datetime | None = None


class EvidenceItem(BaseModel):
    """An exhibit added by one side. File storage lives elsewhere."""

    id: str = Field(default_factory=new_id)
    title: str = Field(..., min_length=1)
    description: str = ""
    type: str = "document"
    file_url: str | None = None
    party: PartySide | None = None
    added_by: str | None = None
    added_at: datetime | None = None

    model_config = ConfigDict(use_enum_values=True)


class Witness(BaseModel):
    """A witness listed by one side."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    contact_number: str = ""
    relation: str = ""
    statement: str | None = None
    party: PartySide | None = None
    added_by: str | None = None
    added_at: datetime | None = None

    model_config = ConfigDict(use_enum_values=True)


class PresenceAttestation(BaseModel):
    """The judge's own statement of being in the courtroom.

    Nothing verifies this independently; it is a recorded policy control.
    """

    confirmed: bool
    court_room_number: str
    attested_at: datetime | None = None


class Judgement(BaseModel):
    """Write-once outcome embedded in a case."""

    decision: JudgementDecision
    ruling: str = Field(..., min_length=1)
    issued_by: str
    judge_name: str = ""
    court_room_number: str
    issued_at: datetime | None = None
    presence: PresenceAttestation

    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# Case
# =============================================================================

TERMINAL_STATUSES = frozenset({CaseStatus.DISMISSED.value, CaseStatus.CLOSED.value})


class Case(BaseModel):
    """The central aggregate for one legal matter."""

    id: str = Field(default_factory=new_id)
    case_number: str | None = None
    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    case_type: str | None = None
    status: CaseStatus = CaseStatus.PENDING

    plaintiff: PartyIdentity = Field(default_factory=PartyIdentity)
    defendant: PartyIdentity = Field(default_factory=PartyIdentity)

    plaintiff_client_id: str
    defendant_client_id: str | None = None
    plaintiff_lawyer: LawyerRef | None = None
    defendant_lawyer: LawyerRef | None = None
    judge: JudgeRef | None = None
    court_room: str | None = None

    evidence: list[EvidenceItem] = Field(default_factory=list)
    witnesses: list[Witness] = Field(default_factory=list)
    judgement: Judgement | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    filed_date: datetime | None = None
    next_hearing_date: datetime | None = None
    created_by: str | None = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def defendant_claimed(self) -> bool:
        """Whether a client account has been linked to the defendant slot."""
        return self.defendant_client_id is not None

    @property
    def plaintiff_lawyer_id(self) -> str | None:
        return self.plaintiff_lawyer.id if self.plaintiff_lawyer else None

    @property
    def defendant_lawyer_id(self) -> str | None:
        return self.defendant_lawyer.id if self.defendant_lawyer else None

    @property
    def judge_id(self) -> str | None:
        return self.judge.id if self.judge else None

    def side_of(self, user_id: str) -> PartySide | None:
        """Which side an account acts for on this case, if any."""
        if user_id in (self.plaintiff_client_id, self.plaintiff_lawyer_id):
            return PartySide.PLAINTIFF
        if user_id in (self.defendant_client_id, self.defendant_lawyer_id):
            return PartySide.DEFENDANT
        return None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"})


class CreateCaseRequest(BaseModel):
    """Input for filing a new case."""

    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    case_type: str | None = None
    plaintiff: PartyIdentity = Field(default_factory=PartyIdentity)
    defendant: PartyIdentity = Field(default_factory=PartyIdentity)
    plaintiff_client_id: str = Field(..., min_length=1)
    plaintiff_lawyer_id: str | None = None
    case_number: str | None = None


# =============================================================================
# Representation requests
# =============================================================================


class RepresentationRequest(BaseModel):
    """A client's request for a lawyer to take them on.

    Mutated exactly once, by the target lawyer, from pending to a
    terminal status.
    """

    id: str = Field(default_factory=new_id)
    kind: RequestKind
    client_id: str = Field(..., min_length=1)
    lawyer_id: str = Field(..., min_length=1)
    description: str = ""
    status: RequestStatus = RequestStatus.PENDING
    case_id: str | None = None
    case_title: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"})


# =============================================================================
# Hearings
# =============================================================================


class ReschedulingRecord(BaseModel):
    """One entry in a hearing's append-only rescheduling history."""

    previous_date: datetime
    new_date: datetime
    reason: str = ""
    actor_id: str
    rescheduled_at: datetime | None = None


class Hearing(BaseModel):
    """A scheduled court appearance for one case.

    ``participants`` is a snapshot of the case's parties, lawyers and judge
    at creation time.
    """

    id: str = Field(default_factory=new_id)
    case_id: str
    date: datetime
    original_date: datetime | None = None
    location: str = ""
    description: str = ""
    status: HearingStatus = HearingStatus.SCHEDULED
    judge_id: str | None = None
    court_room: str | None = None
    participants: list[str] = Field(default_factory=list)
    notes: str | None = None
    rescheduled: bool = False
    rescheduling_history: list[ReschedulingRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(use_enum_values=True)

    @property
    def current_date(self) -> datetime:
        """Latest rescheduled date, or the original date."""
        if self.rescheduling_history:
            return self.rescheduling_history[-1].new_date
        return self.date

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"})
