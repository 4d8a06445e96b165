"""
Supabase store for trial matching data.

Talks to the PostgREST endpoint (/rest/v1/<table>) with httpx. Unlike
analytics logging, workflow reads and writes must not be dropped silently,
so transport, HTTP, decode and row-shape failures raise StoreError.
"""
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from httpx import Timeout
from pydantic import BaseModel, ValidationError

from trialmatch.config import SUPABASE_URL, SUPABASE_KEY, SUPABASE_TIMEOUT_S
from trialmatch.schemas.patient import UserRecord, Consultation
from trialmatch.schemas.trials import TrialRecord, TrialStatus
from trialmatch.schemas.matches import TrialMatch, MatchStatus, model_to_row
from trialmatch.services.errors import StoreError
from trialmatch.services.store.base import MatchStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

USERS_TABLE = "users"
CONSULTATIONS_TABLE = "consultations"
TRIALS_TABLE = "clinical_trials"
MATCHES_TABLE = "trial_matches"

# PostgREST caps responses server-side; list reads page until a short page
PAGE_SIZE = 1000
# Tie-break on id so offset paging is deterministic
STABLE_ORDER = "created_at.asc,id.asc"


def _jsonable(value: Any) -> Any:
    """Convert enums/models/datetimes inside partial updates to JSON-safe values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SupabaseMatchStore(MatchStore):
    """Store backed by Supabase tables."""

    def __init__(
        self,
        url: Optional[str] = SUPABASE_URL,
        key: Optional[str] = SUPABASE_KEY,
        timeout_s: float = SUPABASE_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url or not key:
            raise StoreError("SUPABASE_URL and SUPABASE_KEY must be set for the Supabase store")
        self.url = url.rstrip("/")
        self.key = key
        self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self, write: bool = False, merge_duplicates: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }
        if write:
            headers["Content-Type"] = "application/json"
            prefer = "return=representation"
            if merge_duplicates:
                prefer += ",resolution=merge-duplicates"
            headers["Prefer"] = prefer
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=Timeout(self.timeout_s), transport=self._transport)

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Any] = None,
        merge_duplicates: bool = False,
    ) -> List[Dict[str, Any]]:
        url = f"{self.url}/rest/v1/{table}"
        write = body is not None
        async with self._client() as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers=self._headers(write=write, merge_duplicates=merge_duplicates),
                    params=params,
                    content=json.dumps(body) if write else None,
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"Supabase {method} {table} failed: {e}")
                raise StoreError(f"Supabase {method} {table} failed: {e}") from e

        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Supabase {method} {table} returned a non-JSON body: {e}")
            raise StoreError(f"Supabase {method} {table} returned a non-JSON body") from e
        return data if isinstance(data, list) else [data]

    async def _select(
        self,
        table: str,
        eq: Dict[str, Any],
        order: str = "",
        limit: int = PAGE_SIZE,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        params = {"select": "*", "limit": str(limit)}
        if offset:
            params["offset"] = str(offset)
        for k, v in (eq or {}).items():
            params[k] = f"eq.{_jsonable(v)}"
        if order:
            params["order"] = order
        return await self._request("GET", table, params=params)

    async def _select_all(self, table: str, eq: Dict[str, Any], order: str) -> List[Dict[str, Any]]:
        """Page through a filtered table until a short page comes back."""
        rows: List[Dict[str, Any]] = []
        while True:
            page = await self._select(table, eq, order=order, limit=PAGE_SIZE, offset=len(rows))
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows

    def _validate(self, model: Type[ModelT], row: Dict[str, Any], table: str) -> ModelT:
        try:
            return model.model_validate(row)
        except ValidationError as e:
            logger.error(f"Unexpected {table} row shape (id={row.get('id')}): {e}")
            raise StoreError(f"Unexpected {table} row shape (id={row.get('id')})") from e

    async def _get_one(self, table: str, model: Type[ModelT], row_id: str) -> Optional[ModelT]:
        rows = await self._select(table, {"id": row_id}, limit=1)
        return self._validate(model, rows[0], table) if rows else None

    async def _upsert(self, table: str, model: ModelT) -> ModelT:
        params = {"on_conflict": "id"}
        rows = await self._request(
            "POST", table, params=params, body=[model_to_row(model)], merge_duplicates=True
        )
        return self._validate(type(model), rows[0], table) if rows else model

    async def _update(self, table: str, model: Type[ModelT], row_id: str, fields: Dict[str, Any]) -> Optional[ModelT]:
        data = {k: _jsonable(v) for k, v in fields.items()}
        rows = await self._request("PATCH", table, params={"id": f"eq.{row_id}"}, body=data)
        return self._validate(model, rows[0], table) if rows else None

    # Users
    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return await self._get_one(USERS_TABLE, UserRecord, user_id)

    async def put_user(self, user: UserRecord) -> UserRecord:
        return await self._upsert(USERS_TABLE, user)

    # Consultations
    async def get_consultation(self, consultation_id: str) -> Optional[Consultation]:
        return await self._get_one(CONSULTATIONS_TABLE, Consultation, consultation_id)

    async def put_consultation(self, consultation: Consultation) -> Consultation:
        return await self._upsert(CONSULTATIONS_TABLE, consultation)

    async def update_consultation(self, consultation_id: str, fields: Dict[str, Any]) -> Optional[Consultation]:
        return await self._update(CONSULTATIONS_TABLE, Consultation, consultation_id, fields)

    # Trials
    async def get_trial(self, trial_id: str) -> Optional[TrialRecord]:
        return await self._get_one(TRIALS_TABLE, TrialRecord, trial_id)

    async def put_trial(self, trial: TrialRecord) -> TrialRecord:
        return await self._upsert(TRIALS_TABLE, trial)

    async def list_trials_by_status(self, status: TrialStatus) -> List[TrialRecord]:
        rows = await self._select_all(TRIALS_TABLE, {"status": status}, order=STABLE_ORDER)
        return [self._validate(TrialRecord, r, TRIALS_TABLE) for r in rows]

    # Matches
    async def list_matches(
        self,
        consultation_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        consent_status: Optional[MatchStatus] = None,
    ) -> List[TrialMatch]:
        eq: Dict[str, Any] = {}
        if consultation_id is not None:
            eq["consultation_id"] = consultation_id
        if patient_id is not None:
            eq["patient_id"] = patient_id
        if consent_status is not None:
            eq["consent_status"] = consent_status
        rows = await self._select_all(MATCHES_TABLE, eq, order=STABLE_ORDER)
        return [self._validate(TrialMatch, r, MATCHES_TABLE) for r in rows]

    async def get_match(self, match_id: str) -> Optional[TrialMatch]:
        return await self._get_one(MATCHES_TABLE, TrialMatch, match_id)

    async def insert_match(self, match: TrialMatch) -> TrialMatch:
        rows = await self._request("POST", MATCHES_TABLE, body=[model_to_row(match)])
        return self._validate(TrialMatch, rows[0], MATCHES_TABLE) if rows else match

    async def update_match(self, match_id: str, fields: Dict[str, Any]) -> Optional[TrialMatch]:
        return await self._update(MATCHES_TABLE, TrialMatch, match_id, fields)
