"""Case workflow core.

Provides the case aggregate and the services that move it through its
lifecycle: the CaseManager (status transitions), the IdentityMatcher
(defendant self-identification), the RepresentationWorkflow (lawyer
requests) and the JudgementIssuer.
"""

from .models import (
    Case,
    CaseStatus,
    CreateCaseRequest,
    EvidenceItem,
    GovernmentIdType,
    Hearing,
    HearingStatus,
    Judgement,
    JudgementDecision,
    LawyerRef,
    JudgeRef,
    PartyIdentity,
    PartySide,
    RepresentationRequest,
    RequestKind,
    RequestStatus,
    ReschedulingRecord,
    UserRole,
    Witness,
)

__all__ = [
    "Case",
    "CaseStatus",
    "CreateCaseRequest",
    "EvidenceItem",
    "GovernmentIdType",
    "Hearing",
    "HearingStatus",
    "Judgement",
    "JudgementDecision",
    "JudgeRef",
    "LawyerRef",
    "PartyIdentity",
    "PartySide",
    "RepresentationRequest",
    "RequestKind",
    "RequestStatus",
    "ReschedulingRecord",
    "UserRole",
    "Witness",
]
