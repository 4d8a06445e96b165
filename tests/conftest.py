"""
Shared pytest fixtures for trial matching tests.
"""
import pytest
from typing import List

from trialmatch.schemas.patient import (
    Condition,
    Consultation,
    PatientDemographics,
    PatientMedicalData,
    UserRecord,
    UserRole,
)
from trialmatch.schemas.trials import AgeRange, TrialRecord, TrialStatus
from trialmatch.services.events import EventDispatcher
from trialmatch.services.store import InMemoryMatchStore


@pytest.fixture
def diabetic_patient() -> PatientMedicalData:
    """Single moderate diabetes diagnosis, nothing else recorded."""
    return PatientMedicalData(
        conditions=[Condition(name="Diabetes", severity="moderate")],
        medications=[],
        allergies=[],
        comorbidities=[],
    )


@pytest.fixture
def female_45() -> PatientDemographics:
    return PatientDemographics(age=45, gender="female")


@pytest.fixture
def diabetes_trial() -> TrialRecord:
    return TrialRecord(
        id="trial-diabetes",
        title="Glucose Control Study",
        description="Novel GLP-1 agonist in adults",
        sponsor="Acme Pharma",
        phase="Phase 2",
        status=TrialStatus.RECRUITING,
        nct_id="NCT00000001",
        target_conditions=["diabetes"],
        exclusion_criteria=[],
        age_range=AgeRange(min=18, max=65),
        gender_restriction="female",
    )


@pytest.fixture
def trial_catalog() -> List[TrialRecord]:
    """Mixed catalog: two strong matches, one weak, one completed."""
    return [
        TrialRecord(
            id="trial-a",
            title="Diabetes A",
            target_conditions=["diabetes"],
            age_range=AgeRange(min=18, max=65),
            status=TrialStatus.RECRUITING,
        ),
        TrialRecord(
            id="trial-b",
            title="Oncology B",
            target_conditions=["breast cancer"],
            status=TrialStatus.RECRUITING,
        ),
        TrialRecord(
            id="trial-c",
            title="Diabetes C",
            target_conditions=["type 2 diabetes", "diabetes"],
            age_range=AgeRange(min=40, max=80),
            status=TrialStatus.ACTIVE,
        ),
        TrialRecord(
            id="trial-d",
            title="Closed Diabetes D",
            target_conditions=["diabetes"],
            status=TrialStatus.COMPLETED,
        ),
    ]


@pytest.fixture
def dispatcher() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
async def seeded_store(diabetic_patient, trial_catalog) -> InMemoryMatchStore:
    """Store with a doctor, a patient, a consultation and the trial catalog."""
    store = InMemoryMatchStore()
    await store.put_user(UserRecord(id="doc-1", role=UserRole.DOCTOR, name="Dr. Rivera"))
    await store.put_user(UserRecord(
        id="patient-1",
        role=UserRole.PATIENT,
        name="Jordan Lee",
        age=45,
        gender="female",
        conditions=diabetic_patient.conditions,
    ))
    await store.put_consultation(Consultation(
        id="consult-1",
        doctor_id="doc-1",
        patient_id="patient-1",
        structured_data=diabetic_patient,
    ))
    for trial in trial_catalog:
        await store.put_trial(trial)
    return store
