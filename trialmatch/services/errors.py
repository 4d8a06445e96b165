"""
Domain exceptions for the trial matching workflow.
"""


class TrialMatchingError(Exception):
    """Base class for workflow errors."""


class NotFoundError(TrialMatchingError):
    resource = "Resource"

    def __init__(self, resource_id: str):
        self.resource_id = resource_id
        super().__init__(f"{self.resource} not found: {resource_id}")


class ConsultationNotFoundError(NotFoundError):
    resource = "Consultation"


class PatientNotFoundError(NotFoundError):
    resource = "Patient"


class MatchNotFoundError(NotFoundError):
    resource = "Trial match"


class MissingStructuredDataError(TrialMatchingError):
    def __init__(self, consultation_id: str):
        self.consultation_id = consultation_id
        super().__init__(f"No structured medical data found for consultation {consultation_id}")


class InvalidStatusTransitionError(TrialMatchingError):
    def __init__(self, match_id: str, current, target):
        self.match_id = match_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move match {match_id} from '{getattr(current, 'value', current)}' "
            f"to '{getattr(target, 'value', target)}'"
        )


class StoreError(TrialMatchingError):
    """Data store transport or response failure."""
