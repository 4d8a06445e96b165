"""
Trial Match Schemas

Persisted match records plus the consent/notification lifecycle.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum

from trialmatch.schemas.patient import Condition
from trialmatch.schemas.trials import ScoredTrial, TrialRecord, AgeRange


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MatchStatus(str, Enum):
    """Consent lifecycle: pending -> approved|declined -> enrolled."""
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    ENROLLED = "enrolled"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    VIEWED = "viewed"


class ChangedBy(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"
    SYSTEM = "system"


# Terminal states map to an empty set
ALLOWED_TRANSITIONS: Dict[MatchStatus, frozenset] = {
    MatchStatus.PENDING: frozenset({MatchStatus.APPROVED, MatchStatus.DECLINED}),
    MatchStatus.APPROVED: frozenset({MatchStatus.ENROLLED, MatchStatus.DECLINED}),
    MatchStatus.DECLINED: frozenset(),
    MatchStatus.ENROLLED: frozenset(),
}


def can_transition(current: MatchStatus, target: MatchStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class StatusHistoryEntry(BaseModel):
    """One append-only consent status transition."""
    status: MatchStatus
    timestamp: datetime = Field(default_factory=utc_now)
    changed_by: ChangedBy
    user_id: Optional[str] = None
    note: Optional[str] = None


class TrialMatch(BaseModel):
    """A persisted (patient, trial, consultation) match."""
    id: str
    patient_id: str
    trial_id: str
    consultation_id: str
    relevance_score: int = Field(..., ge=0, le=100)
    match_reason: str = ""
    status: MatchStatus = MatchStatus.PENDING
    notification_status: NotificationStatus = NotificationStatus.PENDING
    consent_status: MatchStatus = MatchStatus.PENDING
    consent_status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    doctor_notes: Optional[str] = None
    patient_response: Optional[str] = None
    match_date: datetime = Field(default_factory=utc_now)
    response_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None


class MatchingResult(BaseModel):
    """Result of running the matching workflow for one consultation."""
    consultation_id: str
    matched_trials: List[ScoredTrial]
    match_count: int
    total_screened: int = 0
    created_match_ids: List[str] = Field(default_factory=list)
    skipped_existing: List[str] = Field(default_factory=list, description="Trial ids already matched")


class PatientSummary(BaseModel):
    id: str
    name: str = "Unknown"
    age: Optional[int] = None
    gender: Optional[str] = None
    conditions: List[Condition] = Field(default_factory=list)


class MatchDetails(BaseModel):
    match: TrialMatch
    trial: TrialRecord
    patient: PatientSummary


class PatientNotification(BaseModel):
    """Notification view of a trial match, joined with its trial."""
    id: str
    trial_id: str
    trial_title: str
    trial_description: str
    trial_phase: str
    trial_sponsor: str
    trial_status: str
    nct_id: Optional[str] = None
    match_date: Optional[datetime] = None
    relevance_score: int
    notification_status: NotificationStatus
    consent_status: MatchStatus
    match_reason: Optional[str] = None
    doctor_notes: Optional[str] = None
    response_date: Optional[datetime] = None
    eligibility_criteria: List[str] = Field(default_factory=list)
    inclusion_criteria: Optional[List[str]] = None
    age_range: Optional[AgeRange] = None
    location: Optional[str] = None
    locations: Optional[List[str]] = None
    contact_info: Optional[str] = None


class ConsentHistoryEntry(StatusHistoryEntry):
    user_name: Optional[str] = None
    user_role: Optional[str] = None


class SendResult(BaseModel):
    id: str
    success: bool
    error: Optional[str] = None


class SendNotificationsResult(BaseModel):
    success: bool
    success_count: int
    failed_count: int
    results: List[SendResult]


# --- Request bodies ---

class UpdateMatchStatusRequest(BaseModel):
    status: MatchStatus
    doctor_notes: Optional[str] = None


class UpdateConsentRequest(BaseModel):
    consent_status: MatchStatus
    patient_response: Optional[str] = None


class SendNotificationsRequest(BaseModel):
    match_ids: List[str] = Field(..., min_length=1)
    doctor_notes: Optional[str] = None


class MatchDetailsRequest(BaseModel):
    match_ids: List[str]


def model_to_row(model: BaseModel) -> Dict[str, Any]:
    """JSON-safe dict for persistence."""
    return model.model_dump(mode="json")
