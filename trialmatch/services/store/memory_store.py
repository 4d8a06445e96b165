"""
In-memory store for local development and tests.
"""
import logging
from typing import Any, Dict, List, Optional, TypeVar

from pydantic import BaseModel

from trialmatch.schemas.patient import UserRecord, Consultation
from trialmatch.schemas.trials import TrialRecord, TrialStatus
from trialmatch.schemas.matches import TrialMatch, MatchStatus
from trialmatch.services.errors import StoreError
from trialmatch.services.store.base import MatchStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _merge(model: ModelT, fields: Dict[str, Any]) -> ModelT:
    """Apply a partial update and re-validate."""
    data = model.model_dump()
    data.update(fields)
    return type(model).model_validate(data)


class InMemoryMatchStore(MatchStore):
    """Dict-backed store; iteration follows insertion order."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.consultations: Dict[str, Consultation] = {}
        self.trials: Dict[str, TrialRecord] = {}
        self.matches: Dict[str, TrialMatch] = {}

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    async def put_user(self, user: UserRecord) -> UserRecord:
        self.users[user.id] = user
        return user

    async def get_consultation(self, consultation_id: str) -> Optional[Consultation]:
        return self.consultations.get(consultation_id)

    async def put_consultation(self, consultation: Consultation) -> Consultation:
        self.consultations[consultation.id] = consultation
        return consultation

    async def update_consultation(self, consultation_id: str, fields: Dict[str, Any]) -> Optional[Consultation]:
        existing = self.consultations.get(consultation_id)
        if existing is None:
            return None
        updated = _merge(existing, fields)
        self.consultations[consultation_id] = updated
        return updated

    async def get_trial(self, trial_id: str) -> Optional[TrialRecord]:
        return self.trials.get(trial_id)

    async def put_trial(self, trial: TrialRecord) -> TrialRecord:
        self.trials[trial.id] = trial
        return trial

    async def list_trials_by_status(self, status: TrialStatus) -> List[TrialRecord]:
        return [t for t in self.trials.values() if t.status == status]

    async def list_matches(
        self,
        consultation_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        consent_status: Optional[MatchStatus] = None,
    ) -> List[TrialMatch]:
        matches = list(self.matches.values())
        if consultation_id is not None:
            matches = [m for m in matches if m.consultation_id == consultation_id]
        if patient_id is not None:
            matches = [m for m in matches if m.patient_id == patient_id]
        if consent_status is not None:
            matches = [m for m in matches if m.consent_status == consent_status]
        return matches

    async def get_match(self, match_id: str) -> Optional[TrialMatch]:
        return self.matches.get(match_id)

    async def insert_match(self, match: TrialMatch) -> TrialMatch:
        if match.id in self.matches:
            raise StoreError(f"Duplicate trial match id: {match.id}")
        self.matches[match.id] = match
        logger.debug(f"Inserted match {match.id} (trial={match.trial_id}, consultation={match.consultation_id})")
        return match

    async def update_match(self, match_id: str, fields: Dict[str, Any]) -> Optional[TrialMatch]:
        existing = self.matches.get(match_id)
        if existing is None:
            return None
        updated = _merge(existing, fields)
        self.matches[match_id] = updated
        return updated
