"""
Patient Schemas - Structured medical data and patient/consultation records.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


class Severity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class UserRole(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"


class ConsultationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Condition(BaseModel):
    """Single diagnosed condition."""
    name: str = Field(..., description="Free-text condition name")
    severity: Severity = Field(Severity.MODERATE, description="Condition severity")


class PatientMedicalData(BaseModel):
    """
    Structured medical entities extracted from a consultation.

    Read-only input to the relevance scorer. Every list defaults to empty so
    the scorer never has to guard against missing collections.
    """
    conditions: List[Condition] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    comorbidities: Optional[List[str]] = Field(None, description="Optional comorbid conditions")
    lab_results: Optional[Dict[str, str]] = None
    vitals: Optional[Dict[str, str]] = None
    symptoms: Optional[List[str]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "conditions": [{"name": "Type 2 Diabetes", "severity": "moderate"}],
                "medications": ["Metformin"],
                "allergies": ["Penicillin"],
                "comorbidities": ["Hypertension"],
            }
        }
    }


class PatientDemographics(BaseModel):
    """Demographic fields consumed alongside the medical data."""
    age: Optional[int] = Field(None, ge=0, le=130)
    gender: Optional[str] = None


class UserRecord(BaseModel):
    """Doctor or patient account as stored."""
    id: str
    role: UserRole = UserRole.PATIENT
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=130)
    gender: Optional[str] = None
    location: Optional[str] = None
    conditions: List[Condition] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    comorbidities: List[str] = Field(default_factory=list)

    def demographics(self) -> PatientDemographics:
        return PatientDemographics(age=self.age, gender=self.gender)


class Consultation(BaseModel):
    """Doctor/patient consultation carrying the extracted medical data."""
    id: str
    doctor_id: str
    patient_id: str
    status: ConsultationStatus = ConsultationStatus.ACTIVE
    transcription: Optional[str] = None
    structured_data: Optional[PatientMedicalData] = None
    matched_trial_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
