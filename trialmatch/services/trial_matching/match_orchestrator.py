"""
Match Orchestrator Module

Coordinate the complete matching workflow for a consultation.

Orchestrates:
1. Consultation + patient lookup
2. Active trial catalog (recruiting, active)
3. Scoring engine (weighted relevance)
4. Threshold filter and stable ranking
5. Deduplicated persistence of trial matches
6. Consultation update and event publication
"""
import logging
import uuid
from typing import List, Optional

from trialmatch.config import MIN_RELEVANCE_SCORE
from trialmatch.schemas.trials import TrialRecord
from trialmatch.schemas.matches import (
    TrialMatch,
    MatchStatus,
    ChangedBy,
    MatchingResult,
    MatchDetails,
    PatientSummary,
    utc_now,
)
from trialmatch.services.errors import (
    ConsultationNotFoundError,
    PatientNotFoundError,
    MissingStructuredDataError,
)
from trialmatch.services.events import EventDispatcher, EventType
from trialmatch.services.store.base import MatchStore
from trialmatch.services.consent_lifecycle import transition_match
from trialmatch.services.trial_matching.scoring_engine import ScoringEngine, rank_trials

logger = logging.getLogger(__name__)


class MatchOrchestrator:
    """Orchestrate the trial matching workflow over an injected store."""

    def __init__(
        self,
        store: MatchStore,
        dispatcher: Optional[EventDispatcher] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        min_relevance_score: int = MIN_RELEVANCE_SCORE,
    ):
        self.store = store
        self.dispatcher = dispatcher or EventDispatcher()
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.min_relevance_score = min_relevance_score

    async def find_matching_trials(self, consultation_id: str) -> MatchingResult:
        """
        Score the active trial catalog against a consultation's medical data.

        Persists one match per new (patient, trial, consultation) triple and
        records the ranked trial ids on the consultation.

        Raises:
            ConsultationNotFoundError, MissingStructuredDataError, PatientNotFoundError
        """
        consultation = await self.store.get_consultation(consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(consultation_id)
        if consultation.structured_data is None:
            raise MissingStructuredDataError(consultation_id)

        patient = await self.store.get_user(consultation.patient_id)
        if patient is None:
            raise PatientNotFoundError(consultation.patient_id)

        trials = await self.store.list_active_trials()
        if not trials:
            logger.warning("⚠️ No active trials found in the catalog")
            return MatchingResult(consultation_id=consultation_id, matched_trials=[], match_count=0)

        logger.info(f"🎯 Scoring {len(trials)} trials for consultation {consultation_id}")
        scored = self.scoring_engine.score_trials(
            consultation.structured_data, patient.demographics(), trials
        )
        matched = rank_trials(scored, self.min_relevance_score)

        created_ids, skipped = await self._store_trial_matches(
            consultation_id, patient.id, matched
        )

        matched_trial_ids = [s.trial.id for s in matched]
        await self.store.update_consultation(
            consultation_id,
            {"matched_trial_ids": matched_trial_ids, "updated_at": utc_now()},
        )

        self.dispatcher.publish(EventType.TRIAL_MATCHES_FOUND, {
            "consultation_id": consultation_id,
            "patient_id": patient.id,
            "match_ids": created_ids,
            "trial_ids": matched_trial_ids,
        })

        logger.info(
            f"✅ Trial matching complete: {len(matched)}/{len(trials)} trials >= {self.min_relevance_score} "
            f"({len(created_ids)} new, {len(skipped)} existing)"
        )
        return MatchingResult(
            consultation_id=consultation_id,
            matched_trials=matched,
            match_count=len(matched),
            total_screened=len(trials),
            created_match_ids=created_ids,
            skipped_existing=skipped,
        )

    async def run_matching_after_extraction(self, consultation_id: str) -> MatchingResult:
        """Entry point called once entity extraction has filled structured data."""
        return await self.find_matching_trials(consultation_id)

    async def _store_trial_matches(self, consultation_id: str, patient_id: str, matched):
        """Insert matches not already stored for this consultation."""
        existing = await self.store.list_matches(consultation_id=consultation_id)
        existing_trial_ids = {m.trial_id for m in existing}

        created_ids: List[str] = []
        skipped: List[str] = []
        for scored in matched:
            trial_id = scored.trial.id
            if trial_id in existing_trial_ids:
                skipped.append(trial_id)
                continue

            match = TrialMatch(
                id=uuid.uuid4().hex,
                patient_id=patient_id,
                trial_id=trial_id,
                consultation_id=consultation_id,
                relevance_score=scored.relevance_score,
                match_reason=", ".join(scored.matching_factors),
            )
            stored = await self.store.insert_match(match)
            existing_trial_ids.add(trial_id)
            created_ids.append(stored.id)

        if skipped:
            logger.debug(f"Skipped {len(skipped)} already-stored matches for consultation {consultation_id}")
        return created_ids, skipped

    async def list_active_trials(self) -> List[TrialRecord]:
        return await self.store.list_active_trials()

    async def list_matches_for_consultation(self, consultation_id: str) -> List[TrialMatch]:
        return await self.store.list_matches(consultation_id=consultation_id)

    async def list_matches_for_patient(self, patient_id: str) -> List[TrialMatch]:
        return await self.store.list_matches(patient_id=patient_id)

    async def get_trial_details_for_matches(self, match_ids: List[str]) -> List[MatchDetails]:
        """Join each match with its trial and patient; unknown ids are dropped."""
        details = []
        for match_id in match_ids:
            match = await self.store.get_match(match_id)
            if match is None:
                continue
            trial = await self.store.get_trial(match.trial_id)
            patient = await self.store.get_user(match.patient_id)
            if trial is None or patient is None:
                continue
            details.append(MatchDetails(
                match=match,
                trial=trial,
                patient=PatientSummary(
                    id=patient.id,
                    name=patient.name or "Unknown",
                    age=patient.age,
                    gender=patient.gender,
                    conditions=patient.conditions,
                ),
            ))
        return details

    async def update_match_status(
        self,
        match_id: str,
        status: MatchStatus,
        doctor_notes: Optional[str] = None,
    ) -> TrialMatch:
        """Doctor-driven consent status change."""
        updated = await transition_match(
            self.store,
            match_id,
            status,
            changed_by=ChangedBy.DOCTOR,
            note=doctor_notes,
            extra_fields={"doctor_notes": doctor_notes},
        )
        self.dispatcher.publish(EventType.MATCH_STATUS_UPDATED, {
            "match_id": match_id,
            "status": status.value,
            "changed_by": ChangedBy.DOCTOR.value,
        })
        return updated
