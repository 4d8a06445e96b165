"""
Trial Schemas

Pydantic models for the trial catalog and scored trial results.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum

from trialmatch.schemas.patient import PatientMedicalData, PatientDemographics


class TrialStatus(str, Enum):
    """Trial recruitment status."""
    RECRUITING = "recruiting"
    ACTIVE = "active"
    COMPLETED = "completed"


class AgeRange(BaseModel):
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)


class TrialRecord(BaseModel):
    """A clinical trial from the catalog."""
    id: str
    title: str = ""
    description: str = ""
    sponsor: str = ""
    phase: str = ""
    status: TrialStatus = TrialStatus.RECRUITING
    nct_id: Optional[str] = None

    target_conditions: List[str] = Field(
        default_factory=list,
        description="Conditions the trial targets (condition score denominator)"
    )
    exclusion_criteria: List[str] = Field(
        default_factory=list,
        description="Free-text exclusion clauses scanned for medication/comorbidity/allergy conflicts"
    )
    eligibility_criteria: List[str] = Field(default_factory=list)
    inclusion_criteria: Optional[List[str]] = None
    age_range: Optional[AgeRange] = None
    gender_restriction: Optional[str] = Field(
        None,
        description="any/all/male/female (or m/f)"
    )

    location: Optional[str] = None
    locations: Optional[List[str]] = None
    contact_info: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ScoreComponent(BaseModel):
    """One criterion's contribution to the relevance score."""
    score: float
    reason: str

    model_config = {"frozen": True}


class ScoredTrial(BaseModel):
    """Scored trial with explainability. Never mutated after construction."""
    trial: TrialRecord
    relevance_score: int = Field(..., ge=0, le=100)
    score_components: Dict[str, ScoreComponent]
    matching_factors: List[str]

    model_config = {"frozen": True}


class ScoreTrialsRequest(BaseModel):
    """Ad-hoc scoring request (no persistence)."""
    patient: PatientMedicalData
    demographics: PatientDemographics = Field(default_factory=PatientDemographics)
    trials: List[TrialRecord]
    min_relevance_score: Optional[int] = Field(None, ge=0, le=100)


class ScoreTrialsResponse(BaseModel):
    matches: List[ScoredTrial]
    total_screened: int
    match_count: int
