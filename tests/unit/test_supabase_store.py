"""
Unit tests for SupabaseMatchStore against a mocked PostgREST transport.
"""
import json

import httpx
import pytest

from trialmatch.schemas.matches import MatchStatus, TrialMatch
from trialmatch.schemas.trials import TrialStatus
from trialmatch.services.errors import StoreError
from trialmatch.services.store import SupabaseMatchStore, create_store, InMemoryMatchStore


class RecordingTransport:
    """Collects requests and answers from a canned response function."""

    def __init__(self, responder):
        self.requests = []
        self.responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _store(recorder: RecordingTransport) -> SupabaseMatchStore:
    return SupabaseMatchStore(
        url="https://example.supabase.co/",
        key="service-key",
        timeout_s=1.0,
        transport=recorder.transport(),
    )


MATCH_ROW = {
    "id": "m1",
    "patient_id": "patient-1",
    "trial_id": "trial-a",
    "consultation_id": "consult-1",
    "relevance_score": 92,
    "match_reason": "Primary condition match",
    "status": "pending",
    "notification_status": "pending",
    "consent_status": "pending",
    "consent_status_history": [],
    "match_date": "2024-03-01T00:00:00+00:00",
    "created_at": "2024-03-01T00:00:00+00:00",
}

TRIAL_ROW = {"id": "t1", "title": "Diabetes A", "status": "recruiting", "target_conditions": ["diabetes"]}


def test_requires_credentials():
    with pytest.raises(StoreError):
        SupabaseMatchStore(url=None, key=None)


def test_create_store_memory_backend():
    assert isinstance(create_store("memory"), InMemoryMatchStore)


def test_create_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_store("redis")


@pytest.mark.asyncio
async def test_get_match_selects_by_id():
    recorder = RecordingTransport(lambda r: httpx.Response(200, json=[MATCH_ROW]))

    match = await _store(recorder).get_match("m1")

    assert match.id == "m1"
    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/trial_matches"
    assert request.url.params["id"] == "eq.m1"
    assert request.url.params["limit"] == "1"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["authorization"] == "Bearer service-key"


@pytest.mark.asyncio
async def test_get_missing_returns_none():
    recorder = RecordingTransport(lambda r: httpx.Response(200, json=[]))
    assert await _store(recorder).get_user("nobody") is None


@pytest.mark.asyncio
async def test_enum_filters_use_values():
    def respond(request):
        if request.url.path == "/rest/v1/clinical_trials":
            return httpx.Response(200, json=[TRIAL_ROW])
        return httpx.Response(200, json=[MATCH_ROW])

    recorder = RecordingTransport(respond)
    store = _store(recorder)

    await store.list_matches(patient_id="patient-1", consent_status=MatchStatus.PENDING)
    await store.list_trials_by_status(TrialStatus.RECRUITING)

    assert recorder.requests[0].url.params["consent_status"] == "eq.pending"
    assert recorder.requests[0].url.params["patient_id"] == "eq.patient-1"
    assert recorder.requests[1].url.path == "/rest/v1/clinical_trials"
    assert recorder.requests[1].url.params["status"] == "eq.recruiting"


@pytest.mark.asyncio
async def test_update_match_sends_json_safe_patch():
    recorder = RecordingTransport(lambda r: httpx.Response(200, json=[{**MATCH_ROW, "consent_status": "approved"}]))

    updated = await _store(recorder).update_match("m1", {"consent_status": MatchStatus.APPROVED})

    assert updated.consent_status == MatchStatus.APPROVED
    request = recorder.requests[0]
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.m1"
    assert json.loads(request.content) == {"consent_status": "approved"}
    assert request.headers["prefer"] == "return=representation"


@pytest.mark.asyncio
async def test_insert_match_posts_row():
    recorder = RecordingTransport(lambda r: httpx.Response(201, json=[MATCH_ROW]))

    stored = await _store(recorder).insert_match(TrialMatch.model_validate(MATCH_ROW))

    assert stored.id == "m1"
    body = json.loads(recorder.requests[0].content)
    assert body[0]["trial_id"] == "trial-a"
    assert body[0]["status"] == "pending"


@pytest.mark.asyncio
async def test_http_error_raises_store_error():
    recorder = RecordingTransport(lambda r: httpx.Response(500, json={"message": "down"}))
    with pytest.raises(StoreError):
        await _store(recorder).get_consultation("consult-1")


@pytest.mark.asyncio
async def test_transport_error_raises_store_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreError):
        await _store(RecordingTransport(refuse)).get_trial("trial-a")


class PagedTrialsTable:
    """Minimal PostgREST table that honors limit/offset like the real server."""

    def __init__(self, rows):
        self.rows = rows

    def __call__(self, request: httpx.Request) -> httpx.Response:
        status = request.url.params.get("status", "").replace("eq.", "")
        matching = [r for r in self.rows if r["status"] == status]
        offset = int(request.url.params.get("offset", "0"))
        limit = int(request.url.params["limit"])
        return httpx.Response(200, json=matching[offset:offset + limit])


@pytest.mark.asyncio
async def test_active_trials_pages_past_server_limit():
    rows = [{"id": f"t{i:04d}", "status": "recruiting"} for i in range(1200)]
    rows.append({"id": "t-active", "status": "active"})
    recorder = RecordingTransport(PagedTrialsTable(rows))

    trials = await _store(recorder).list_active_trials()

    assert len(trials) == 1201
    assert trials[0].id == "t0000"
    assert trials[1199].id == "t1199"
    assert trials[-1].id == "t-active"
    offsets = [r.url.params.get("offset", "0") for r in recorder.requests]
    assert offsets == ["0", "1000", "0"]


@pytest.mark.asyncio
async def test_matches_page_for_dedup_reads():
    rows = [{**MATCH_ROW, "id": f"m{i}"} for i in range(2000)]

    def respond(request):
        offset = int(request.url.params.get("offset", "0"))
        limit = int(request.url.params["limit"])
        return httpx.Response(200, json=rows[offset:offset + limit])

    recorder = RecordingTransport(respond)

    matches = await _store(recorder).list_matches(consultation_id="consult-1")

    assert len(matches) == 2000
    # An exact multiple of the page size needs one extra empty page
    assert len(recorder.requests) == 3


@pytest.mark.asyncio
async def test_non_json_body_raises_store_error():
    recorder = RecordingTransport(lambda r: httpx.Response(200, content=b"<html>gateway</html>"))
    with pytest.raises(StoreError):
        await _store(recorder).get_match("m1")


@pytest.mark.asyncio
async def test_unexpected_row_shape_raises_store_error():
    recorder = RecordingTransport(lambda r: httpx.Response(200, json=[{"id": "t1", "status": "paused"}]))
    with pytest.raises(StoreError):
        await _store(recorder).list_trials_by_status(TrialStatus.RECRUITING)
