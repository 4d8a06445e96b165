"""
Trial matching endpoints.

- /api/trial-matching/score - Score a posted patient against posted trials (no persistence)
- /api/trial-matching/consultations/{id}/run - Run the matching workflow for a consultation
- match listing, detail and doctor status updates
"""
import logging
from typing import List

from fastapi import APIRouter, Depends

from trialmatch.config import MIN_RELEVANCE_SCORE
from trialmatch.schemas.trials import TrialRecord, ScoreTrialsRequest, ScoreTrialsResponse
from trialmatch.schemas.matches import (
    TrialMatch,
    MatchingResult,
    MatchDetails,
    MatchDetailsRequest,
    UpdateMatchStatusRequest,
)
from trialmatch.services.errors import TrialMatchingError
from trialmatch.services.trial_matching import MatchOrchestrator, ScoringEngine, rank_trials
from trialmatch.routers.dependencies import get_orchestrator, to_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trial-matching", tags=["trial-matching"])


@router.post("/score", response_model=ScoreTrialsResponse)
async def score_trials(request: ScoreTrialsRequest):
    """
    Score and rank trials for a patient without touching the store.

    Returns trials at or above the threshold, highest relevance first.
    """
    threshold = request.min_relevance_score if request.min_relevance_score is not None else MIN_RELEVANCE_SCORE
    scored = ScoringEngine().score_trials(request.patient, request.demographics, request.trials)
    ranked = rank_trials(scored, threshold)
    return ScoreTrialsResponse(matches=ranked, total_screened=len(scored), match_count=len(ranked))


@router.post("/consultations/{consultation_id}/run", response_model=MatchingResult)
async def run_matching(consultation_id: str, orchestrator: MatchOrchestrator = Depends(get_orchestrator)):
    """Run matching for a consultation and persist new matches."""
    try:
        return await orchestrator.find_matching_trials(consultation_id)
    except TrialMatchingError as e:
        logger.error(f"❌ Matching failed for consultation {consultation_id}: {e}")
        raise to_http_error(e)


@router.get("/consultations/{consultation_id}/matches", response_model=List[TrialMatch])
async def list_consultation_matches(consultation_id: str, orchestrator: MatchOrchestrator = Depends(get_orchestrator)):
    try:
        return await orchestrator.list_matches_for_consultation(consultation_id)
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.get("/patients/{patient_id}/matches", response_model=List[TrialMatch])
async def list_patient_matches(patient_id: str, orchestrator: MatchOrchestrator = Depends(get_orchestrator)):
    try:
        return await orchestrator.list_matches_for_patient(patient_id)
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.get("/trials/active", response_model=List[TrialRecord])
async def list_active_trials(orchestrator: MatchOrchestrator = Depends(get_orchestrator)):
    try:
        return await orchestrator.list_active_trials()
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.post("/matches/details", response_model=List[MatchDetails])
async def match_details(request: MatchDetailsRequest, orchestrator: MatchOrchestrator = Depends(get_orchestrator)):
    """Matches joined with trial and patient summary; unknown ids are omitted."""
    try:
        return await orchestrator.get_trial_details_for_matches(request.match_ids)
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.patch("/matches/{match_id}/status", response_model=TrialMatch)
async def update_match_status(
    match_id: str,
    request: UpdateMatchStatusRequest,
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    """Doctor approves, declines or enrolls a match."""
    try:
        return await orchestrator.update_match_status(match_id, request.status, request.doctor_notes)
    except TrialMatchingError as e:
        raise to_http_error(e)
