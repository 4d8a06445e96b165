"""
FastAPI dependencies: services built from the app-scoped store and dispatcher.
"""
from fastapi import Depends, HTTPException, Request

from trialmatch.config import MIN_RELEVANCE_SCORE
from trialmatch.services.errors import (
    TrialMatchingError,
    NotFoundError,
    MissingStructuredDataError,
    InvalidStatusTransitionError,
    StoreError,
)
from trialmatch.services.events import EventDispatcher
from trialmatch.services.notification_service import NotificationService
from trialmatch.services.store.base import MatchStore
from trialmatch.services.trial_matching import MatchOrchestrator


def get_store(request: Request) -> MatchStore:
    return request.app.state.store


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


def get_orchestrator(
    store: MatchStore = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> MatchOrchestrator:
    return MatchOrchestrator(store, dispatcher, min_relevance_score=MIN_RELEVANCE_SCORE)


def get_notification_service(
    store: MatchStore = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> NotificationService:
    return NotificationService(store, dispatcher)


def to_http_error(error: TrialMatchingError) -> HTTPException:
    """Map domain errors onto HTTP status codes."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, MissingStructuredDataError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, InvalidStatusTransitionError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, StoreError):
        return HTTPException(status_code=502, detail=f"Data store error: {error}")
    return HTTPException(status_code=500, detail=str(error))
