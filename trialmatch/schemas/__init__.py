"""
Pydantic schemas for patients, trials and trial matches.
"""
from .patient import (
    Severity,
    UserRole,
    ConsultationStatus,
    Condition,
    PatientMedicalData,
    PatientDemographics,
    UserRecord,
    Consultation,
)
from .trials import (
    TrialStatus,
    AgeRange,
    TrialRecord,
    ScoreComponent,
    ScoredTrial,
    ScoreTrialsRequest,
    ScoreTrialsResponse,
)
from .matches import (
    MatchStatus,
    NotificationStatus,
    ChangedBy,
    ALLOWED_TRANSITIONS,
    can_transition,
    StatusHistoryEntry,
    TrialMatch,
    MatchingResult,
    PatientSummary,
    MatchDetails,
    PatientNotification,
    ConsentHistoryEntry,
    SendResult,
    SendNotificationsResult,
)

__all__ = [
    "Severity",
    "UserRole",
    "ConsultationStatus",
    "Condition",
    "PatientMedicalData",
    "PatientDemographics",
    "UserRecord",
    "Consultation",
    "TrialStatus",
    "AgeRange",
    "TrialRecord",
    "ScoreComponent",
    "ScoredTrial",
    "ScoreTrialsRequest",
    "ScoreTrialsResponse",
    "MatchStatus",
    "NotificationStatus",
    "ChangedBy",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "StatusHistoryEntry",
    "TrialMatch",
    "MatchingResult",
    "PatientSummary",
    "MatchDetails",
    "PatientNotification",
    "ConsentHistoryEntry",
    "SendResult",
    "SendNotificationsResult",
]
