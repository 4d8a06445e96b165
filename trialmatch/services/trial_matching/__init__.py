"""
Trial Matching Service

Provides weighted relevance matching of patients to clinical trials:
- ScoringEngine: per-criterion sub-scores and aggregation
- rank_trials: threshold filter + stable descending sort
- MatchOrchestrator: consultation workflow with deduplicated persistence
"""

from .scoring_engine import (
    ScoringEngine,
    WEIGHTS,
    DEFAULT_MIN_RELEVANCE_SCORE,
    total_possible_score,
    score_trials,
    rank_trials,
    match_trials,
)
from .match_orchestrator import MatchOrchestrator

__all__ = [
    'ScoringEngine',
    'WEIGHTS',
    'DEFAULT_MIN_RELEVANCE_SCORE',
    'total_possible_score',
    'score_trials',
    'rank_trials',
    'match_trials',
    'MatchOrchestrator',
]
