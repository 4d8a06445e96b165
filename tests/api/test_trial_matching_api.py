"""
API integration tests for trial matching and notification endpoints.

Tests:
- /health
- /api/trial-matching/*
- /api/notifications/*
"""

import pytest
import httpx
from fastapi.testclient import TestClient

from trialmatch.main import create_app
from trialmatch.schemas.patient import Condition, Consultation, PatientMedicalData, UserRecord, UserRole
from trialmatch.schemas.trials import AgeRange, TrialRecord, TrialStatus
from trialmatch.services.events import EventDispatcher, EventType
from trialmatch.services.store import InMemoryMatchStore, SupabaseMatchStore


SCORE_PAYLOAD = {
    "patient": {
        "conditions": [{"name": "Diabetes", "severity": "moderate"}],
        "medications": [],
        "allergies": [],
        "comorbidities": [],
    },
    "demographics": {"age": 45, "gender": "female"},
    "trials": [
        {
            "id": "t-female",
            "title": "Female-only diabetes study",
            "target_conditions": ["diabetes"],
            "age_range": {"min": 18, "max": 65},
            "gender_restriction": "female",
        },
        {
            "id": "t-male",
            "title": "Male-only diabetes study",
            "target_conditions": ["diabetes"],
            "age_range": {"min": 18, "max": 65},
            "gender_restriction": "male",
        },
        {
            "id": "t-none",
            "title": "Unrelated study",
            "target_conditions": [],
        },
    ],
}


@pytest.fixture
def store():
    """In-memory store seeded directly (no event loop needed)."""
    store = InMemoryMatchStore()
    store.users["doc-1"] = UserRecord(id="doc-1", role=UserRole.DOCTOR, name="Dr. Rivera")
    store.users["patient-1"] = UserRecord(id="patient-1", name="Jordan Lee", age=45, gender="female")
    store.consultations["consult-1"] = Consultation(
        id="consult-1",
        doctor_id="doc-1",
        patient_id="patient-1",
        structured_data=PatientMedicalData(conditions=[Condition(name="Diabetes")]),
    )
    store.consultations["consult-empty"] = Consultation(id="consult-empty", doctor_id="doc-1", patient_id="patient-1")
    store.trials["trial-a"] = TrialRecord(
        id="trial-a",
        title="Diabetes A",
        target_conditions=["diabetes"],
        age_range=AgeRange(min=18, max=65),
        status=TrialStatus.RECRUITING,
    )
    store.trials["trial-b"] = TrialRecord(id="trial-b", title="Oncology B", target_conditions=["lymphoma"])
    return store


@pytest.fixture
def dispatcher():
    return EventDispatcher()


@pytest.fixture
def client(store, dispatcher):
    return TestClient(create_app(store=store, dispatcher=dispatcher))


@pytest.fixture
def match_id(client):
    response = client.post("/api/trial-matching/consultations/consult-1/run")
    assert response.status_code == 200
    return response.json()["created_match_ids"][0]


class TestHealthAPI:

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["matching"]["total_possible_score"] == 95
        assert data["matching"]["weights"]["condition_match"] == 40


class TestStoreFailureAPI:

    def test_gateway_page_maps_to_bad_gateway(self, dispatcher):
        store = SupabaseMatchStore(
            url="https://example.supabase.co",
            key="service-key",
            transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"<html>gateway</html>")),
        )
        client = TestClient(create_app(store=store, dispatcher=dispatcher))

        response = client.get("/api/trial-matching/trials/active")

        assert response.status_code == 502


class TestScoreAPI:

    def test_score_ranks_and_filters(self, client):
        response = client.post("/api/trial-matching/score", json=SCORE_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["total_screened"] == 3
        assert [m["trial"]["id"] for m in data["matches"]] == ["t-female", "t-male"]
        assert [m["relevance_score"] for m in data["matches"]] == [92, 82]
        assert data["matches"][1]["score_components"]["gender_match"]["score"] == 0

    def test_score_with_custom_threshold(self, client):
        response = client.post("/api/trial-matching/score", json={**SCORE_PAYLOAD, "min_relevance_score": 90})
        assert response.json()["match_count"] == 1

    def test_score_rejects_malformed_trials(self, client):
        response = client.post("/api/trial-matching/score", json={"patient": {}, "trials": [{"title": "no id"}]})
        assert response.status_code == 422


class TestMatchingWorkflowAPI:

    def test_run_matching(self, client, dispatcher):
        events = []
        dispatcher.subscribe(EventType.TRIAL_MATCHES_FOUND, "recorder", events.append)

        response = client.post("/api/trial-matching/consultations/consult-1/run")

        assert response.status_code == 200
        data = response.json()
        assert data["match_count"] == 1
        assert data["matched_trials"][0]["trial"]["id"] == "trial-a"
        assert len(events) == 1

    def test_run_matching_twice_skips_existing(self, client, match_id):
        response = client.post("/api/trial-matching/consultations/consult-1/run")
        assert response.json()["skipped_existing"] == ["trial-a"]

        matches = client.get("/api/trial-matching/consultations/consult-1/matches").json()
        assert [m["id"] for m in matches] == [match_id]

    def test_run_matching_unknown_consultation(self, client):
        response = client.post("/api/trial-matching/consultations/nope/run")
        assert response.status_code == 404

    def test_run_matching_without_structured_data(self, client):
        response = client.post("/api/trial-matching/consultations/consult-empty/run")
        assert response.status_code == 422

    def test_active_trials(self, client):
        response = client.get("/api/trial-matching/trials/active")
        assert [t["id"] for t in response.json()] == ["trial-a", "trial-b"]

    def test_patient_matches_and_details(self, client, match_id):
        matches = client.get("/api/trial-matching/patients/patient-1/matches").json()
        assert matches[0]["id"] == match_id

        details = client.post("/api/trial-matching/matches/details", json={"match_ids": [match_id, "ghost"]}).json()
        assert len(details) == 1
        assert details[0]["patient"]["name"] == "Jordan Lee"

    def test_doctor_status_update(self, client, match_id):
        response = client.patch(
            f"/api/trial-matching/matches/{match_id}/status",
            json={"status": "approved", "doctor_notes": "Eligible"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "approved"
        assert data["consent_status_history"][0]["changed_by"] == "doctor"

    def test_doctor_invalid_transition_conflicts(self, client, match_id):
        response = client.patch(f"/api/trial-matching/matches/{match_id}/status", json={"status": "enrolled"})
        assert response.status_code == 409

    def test_status_update_unknown_match(self, client):
        response = client.patch("/api/trial-matching/matches/ghost/status", json={"status": "approved"})
        assert response.status_code == 404


class TestNotificationsAPI:

    def test_send_view_and_counts(self, client, match_id):
        sent = client.post("/api/notifications/send", json={"match_ids": [match_id], "doctor_notes": "Take a look"})
        assert sent.status_code == 200
        assert sent.json()["success_count"] == 1

        unread = client.get("/api/notifications/patients/patient-1/unread-count").json()
        assert unread["count"] == 1

        viewed = client.post(f"/api/notifications/{match_id}/viewed").json()
        assert viewed["notification_status"] == "viewed"
        assert client.get("/api/notifications/patients/patient-1/unread-count").json()["count"] == 0

        notifications = client.get("/api/notifications/patients/patient-1").json()
        assert notifications[0]["doctor_notes"] == "Take a look"
        assert notifications[0]["trial_title"] == "Diabetes A"

    def test_send_requires_match_ids(self, client):
        response = client.post("/api/notifications/send", json={"match_ids": []})
        assert response.status_code == 422

    def test_patient_consent_flow(self, client, match_id):
        assert client.get("/api/notifications/patients/patient-1/action-required-count").json()["count"] == 1

        approved = client.post(f"/api/notifications/{match_id}/consent", json={"consent_status": "approved"})
        enrolled = client.post(
            f"/api/notifications/{match_id}/consent",
            json={"consent_status": "enrolled", "patient_response": "Signed"},
        )

        assert approved.status_code == 200
        assert enrolled.json()["consent_status"] == "enrolled"
        assert client.get("/api/notifications/patients/patient-1/action-required-count").json()["count"] == 0

        history = client.get(f"/api/notifications/{match_id}/consent-history").json()
        assert [h["status"] for h in history] == ["approved", "enrolled"]
        assert history[1]["user_name"] == "Jordan Lee"
        assert history[1]["note"] == "Signed"

    def test_terminal_consent_conflicts(self, client, match_id):
        client.post(f"/api/notifications/{match_id}/consent", json={"consent_status": "declined"})

        response = client.post(f"/api/notifications/{match_id}/consent", json={"consent_status": "approved"})

        assert response.status_code == 409

    def test_consent_rejects_unknown_status(self, client, match_id):
        response = client.post(f"/api/notifications/{match_id}/consent", json={"consent_status": "maybe"})
        assert response.status_code == 422

    def test_trials_by_consent_status(self, client, match_id):
        pending = client.get("/api/notifications/consent", params={"consent_status": "pending"}).json()
        declined = client.get("/api/notifications/consent", params={"consent_status": "declined"}).json()

        assert [d["match"]["id"] for d in pending] == [match_id]
        assert declined == []

    def test_consent_history_unknown_match(self, client):
        assert client.get("/api/notifications/ghost/consent-history").status_code == 404
