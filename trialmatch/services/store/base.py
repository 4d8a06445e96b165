"""
Data-access handle for the matching workflow.

Concrete stores are injected into services; nothing holds a process-wide client.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from trialmatch.schemas.patient import UserRecord, Consultation
from trialmatch.schemas.trials import TrialRecord, TrialStatus
from trialmatch.schemas.matches import TrialMatch, MatchStatus

# Statuses the trial catalog supplier returns, in query order
ACTIVE_TRIAL_STATUSES = (TrialStatus.RECRUITING, TrialStatus.ACTIVE)


class MatchStore(ABC):
    """Async persistence interface for users, consultations, trials and matches."""

    # Users
    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    async def put_user(self, user: UserRecord) -> UserRecord: ...

    # Consultations
    @abstractmethod
    async def get_consultation(self, consultation_id: str) -> Optional[Consultation]: ...

    @abstractmethod
    async def put_consultation(self, consultation: Consultation) -> Consultation: ...

    @abstractmethod
    async def update_consultation(self, consultation_id: str, fields: Dict[str, Any]) -> Optional[Consultation]: ...

    # Trials
    @abstractmethod
    async def get_trial(self, trial_id: str) -> Optional[TrialRecord]: ...

    @abstractmethod
    async def put_trial(self, trial: TrialRecord) -> TrialRecord: ...

    @abstractmethod
    async def list_trials_by_status(self, status: TrialStatus) -> List[TrialRecord]: ...

    async def list_active_trials(self) -> List[TrialRecord]:
        """Recruiting trials first, then active ones."""
        trials: List[TrialRecord] = []
        for status in ACTIVE_TRIAL_STATUSES:
            trials.extend(await self.list_trials_by_status(status))
        return trials

    # Matches
    @abstractmethod
    async def list_matches(
        self,
        consultation_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        consent_status: Optional[MatchStatus] = None,
    ) -> List[TrialMatch]: ...

    @abstractmethod
    async def get_match(self, match_id: str) -> Optional[TrialMatch]: ...

    @abstractmethod
    async def insert_match(self, match: TrialMatch) -> TrialMatch: ...

    @abstractmethod
    async def update_match(self, match_id: str, fields: Dict[str, Any]) -> Optional[TrialMatch]: ...
