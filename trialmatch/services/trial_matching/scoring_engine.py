"""
Scoring Engine Module

Trial relevance scoring against a patient's structured medical data.

Weighted criteria:
- Condition match (40)
- Age match (15)
- Gender match (10)
- Medication compatibility (15)
- Comorbidity compatibility (10)
- Allergy compatibility (5)

The relevance score is the weighted sum as a percentage of the summed
weights (95), rounded half up and capped at 100.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence

from trialmatch.schemas.patient import PatientMedicalData, PatientDemographics
from trialmatch.schemas.trials import TrialRecord, ScoreComponent, ScoredTrial

logger = logging.getLogger(__name__)

CONDITION_MATCH = "condition_match"
AGE_MATCH = "age_match"
GENDER_MATCH = "gender_match"
MEDICATION_MATCH = "medication_match"
COMORBIDITY_MATCH = "comorbidity_match"
ALLERGY_MATCH = "allergy_match"

WEIGHTS: Dict[str, float] = {
    CONDITION_MATCH: 40,
    AGE_MATCH: 15,
    GENDER_MATCH: 10,
    MEDICATION_MATCH: 15,
    COMORBIDITY_MATCH: 10,
    ALLERGY_MATCH: 5,
}

DEFAULT_MIN_RELEVANCE_SCORE = 50

# Years past either age bound at which the age score reaches zero
AGE_DECAY_YEARS = 5
# Exclusion hits at which a conflict criterion reaches zero
CONFLICT_SATURATION = 2
# Fraction of a criterion's weight needed to list it as a matching factor
FACTOR_THRESHOLD = 0.8

FACTOR_LABELS = {
    CONDITION_MATCH: "Primary condition match",
    AGE_MATCH: "Age criteria match",
    GENDER_MATCH: "Gender criteria match",
    MEDICATION_MATCH: "Medication compatibility",
    COMORBIDITY_MATCH: "No conflicting comorbidities",
    ALLERGY_MATCH: "No conflicting allergies",
}


def total_possible_score(weights: Dict[str, float] = WEIGHTS) -> float:
    return sum(weights.values())


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ScoringEngine:
    """Weighted relevance scoring for trial matching."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = dict(weights or WEIGHTS)
        self.total_possible = total_possible_score(self.weights)

    def score_trial(
        self,
        patient: PatientMedicalData,
        demographics: PatientDemographics,
        trial: TrialRecord,
    ) -> ScoredTrial:
        """Score a single trial. Never raises for missing optional data."""
        components = {
            CONDITION_MATCH: self._score_condition_match(patient, trial),
            AGE_MATCH: self._score_age_match(demographics, trial),
            GENDER_MATCH: self._score_gender_match(demographics, trial),
            MEDICATION_MATCH: self._score_conflicts(
                patient.medications, trial, MEDICATION_MATCH,
                empty_score=self.weights[MEDICATION_MATCH] / 2,
                empty_reason="No medication data available",
                conflict_reason="Some medications may conflict with trial requirements",
                clear_reason="No medication conflicts identified",
            ),
            COMORBIDITY_MATCH: self._score_conflicts(
                patient.comorbidities or [], trial, COMORBIDITY_MATCH,
                empty_score=self.weights[COMORBIDITY_MATCH],
                empty_reason="No comorbidities to evaluate",
                conflict_reason="Some comorbidities may conflict with trial eligibility",
                clear_reason="No comorbidity conflicts identified",
            ),
            ALLERGY_MATCH: self._score_conflicts(
                patient.allergies, trial, ALLERGY_MATCH,
                empty_score=self.weights[ALLERGY_MATCH],
                empty_reason="No allergies to evaluate",
                conflict_reason="Some allergies may conflict with trial eligibility",
                clear_reason="No allergy conflicts identified",
            ),
        }

        return ScoredTrial(
            trial=trial,
            relevance_score=self.calculate_relevance_score(components),
            score_components=components,
            matching_factors=self.generate_matching_factors(components),
        )

    def score_trials(
        self,
        patient: PatientMedicalData,
        demographics: PatientDemographics,
        trials: Sequence[TrialRecord],
    ) -> List[ScoredTrial]:
        """Score every trial in catalog order."""
        return [self.score_trial(patient, demographics, trial) for trial in trials]

    def calculate_relevance_score(self, components: Dict[str, ScoreComponent]) -> int:
        """Weighted sum as a 0-100 integer percentage of the summed weights."""
        if self.total_possible <= 0:
            return 0
        total_weighted = sum(component.score for component in components.values())
        percentage = min(100.0, total_weighted / self.total_possible * 100)
        return max(0, _round_half_up(percentage))

    def generate_matching_factors(self, components: Dict[str, ScoreComponent]) -> List[str]:
        """Human-readable factors; presentation only."""
        factors = []
        for criterion, label in FACTOR_LABELS.items():
            component = components.get(criterion)
            if component is None:
                continue
            if criterion in (CONDITION_MATCH, GENDER_MATCH):
                threshold = 0.0
            else:
                threshold = self.weights[criterion] * FACTOR_THRESHOLD
            if component.score > threshold:
                factors.append(label)
        return factors

    def _score_condition_match(self, patient: PatientMedicalData, trial: TrialRecord) -> ScoreComponent:
        """Bidirectional case-insensitive substring match over target conditions."""
        if not trial.target_conditions:
            return ScoreComponent(score=0.0, reason="No matching conditions")

        patient_conditions = [c.name.lower() for c in patient.conditions if c.name]

        matched = [
            target for target in trial.target_conditions
            if target and any(
                target.lower() in name or name in target.lower()
                for name in patient_conditions
            )
        ]

        if not matched:
            return ScoreComponent(score=0.0, reason="No matching conditions")

        ratio = len(matched) / len(trial.target_conditions)
        return ScoreComponent(
            score=self.weights[CONDITION_MATCH] * ratio,
            reason=f"Matched {len(matched)} condition(s): {', '.join(matched)}",
        )

    def _score_age_match(self, demographics: PatientDemographics, trial: TrialRecord) -> ScoreComponent:
        weight = self.weights[AGE_MATCH]
        age_range = trial.age_range
        age = demographics.age

        if age_range is None or age is None:
            return ScoreComponent(score=weight / 2, reason="Age criteria not applicable")

        if age_range.min <= age <= age_range.max:
            return ScoreComponent(
                score=weight,
                reason=f"Patient age ({age}) within trial range ({age_range.min}-{age_range.max})",
            )

        closest_diff = min(abs(age - age_range.min), abs(age - age_range.max))
        diff_penalty = min(closest_diff / AGE_DECAY_YEARS, 1)
        return ScoreComponent(
            score=max(0.0, weight * (1 - diff_penalty)),
            reason=f"Patient age ({age}) outside trial range ({age_range.min}-{age_range.max})",
        )

    def _score_gender_match(self, demographics: PatientDemographics, trial: TrialRecord) -> ScoreComponent:
        weight = self.weights[GENDER_MATCH]

        if not trial.gender_restriction or not demographics.gender:
            return ScoreComponent(score=weight, reason="No gender restrictions")

        patient_gender = demographics.gender.lower()
        trial_gender = trial.gender_restriction.lower()

        accepted = (
            trial_gender in ("any", "all")
            or patient_gender == trial_gender
            or (trial_gender == "female" and patient_gender == "f")
            or (trial_gender == "male" and patient_gender == "m")
        )
        if accepted:
            return ScoreComponent(score=weight, reason=f"Gender criteria met ({demographics.gender})")

        # Hard exclusion
        return ScoreComponent(
            score=0.0,
            reason=f"Gender criteria not met ({trial.gender_restriction} required)",
        )

    def _score_conflicts(
        self,
        patient_terms: Sequence[str],
        trial: TrialRecord,
        criterion: str,
        empty_score: float,
        empty_reason: str,
        conflict_reason: str,
        clear_reason: str,
    ) -> ScoreComponent:
        """
        Shared pattern for medication, comorbidity and allergy scoring.

        Counts exclusion criteria that mention any of the patient's terms
        (case-insensitive substring). Each hit halves the criterion's weight.
        """
        weight = self.weights[criterion]
        terms = [t.lower() for t in patient_terms if t]

        if not terms:
            return ScoreComponent(score=empty_score, reason=empty_reason)

        conflicts = [
            clause for clause in trial.exclusion_criteria
            if any(term in clause.lower() for term in terms)
        ]

        if conflicts:
            penalty_factor = min(len(conflicts) / CONFLICT_SATURATION, 1)
            return ScoreComponent(score=weight * (1 - penalty_factor), reason=conflict_reason)

        return ScoreComponent(score=weight, reason=clear_reason)


def rank_trials(
    scored_trials: Sequence[ScoredTrial],
    min_relevance_score: int = DEFAULT_MIN_RELEVANCE_SCORE,
) -> List[ScoredTrial]:
    """
    Keep trials at or above the threshold, highest score first.

    ``sorted`` is stable, so equal scores keep catalog order.
    """
    retained = [s for s in scored_trials if s.relevance_score >= min_relevance_score]
    return sorted(retained, key=lambda s: s.relevance_score, reverse=True)


_default_engine = ScoringEngine()


def score_trials(
    patient: PatientMedicalData,
    demographics: PatientDemographics,
    trials: Sequence[TrialRecord],
) -> List[ScoredTrial]:
    """Score all trials with the default weights (unfiltered, catalog order)."""
    return _default_engine.score_trials(patient, demographics, trials)


def match_trials(
    patient: PatientMedicalData,
    demographics: PatientDemographics,
    trials: Sequence[TrialRecord],
    min_relevance_score: int = DEFAULT_MIN_RELEVANCE_SCORE,
) -> List[ScoredTrial]:
    """Score, filter and rank in one call."""
    return rank_trials(score_trials(patient, demographics, trials), min_relevance_score)
