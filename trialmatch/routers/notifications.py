"""
Notification and consent endpoints.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from trialmatch.schemas.matches import (
    TrialMatch,
    MatchStatus,
    MatchDetails,
    PatientNotification,
    ConsentHistoryEntry,
    SendNotificationsResult,
    SendNotificationsRequest,
    UpdateConsentRequest,
)
from trialmatch.services.errors import TrialMatchingError
from trialmatch.services.notification_service import NotificationService
from trialmatch.routers.dependencies import get_notification_service, to_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/patients/{patient_id}", response_model=List[PatientNotification])
async def patient_notifications(patient_id: str, service: NotificationService = Depends(get_notification_service)):
    try:
        return await service.get_patient_notifications(patient_id)
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.get("/patients/{patient_id}/unread-count")
async def unread_count(patient_id: str, service: NotificationService = Depends(get_notification_service)):
    try:
        return {"patient_id": patient_id, "count": await service.get_unread_notification_count(patient_id)}
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.get("/patients/{patient_id}/action-required-count")
async def action_required_count(patient_id: str, service: NotificationService = Depends(get_notification_service)):
    try:
        return {"patient_id": patient_id, "count": await service.get_action_required_count(patient_id)}
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.post("/send", response_model=SendNotificationsResult)
async def send_notifications(
    request: SendNotificationsRequest,
    service: NotificationService = Depends(get_notification_service),
):
    """Doctor sends matched trials to the patient."""
    try:
        return await service.send_trial_notifications(request.match_ids, request.doctor_notes)
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.get("/consent", response_model=List[MatchDetails])
async def trials_by_consent_status(
    consent_status: Optional[MatchStatus] = None,
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return await service.get_trials_by_consent_status(consent_status)
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.post("/{match_id}/viewed", response_model=TrialMatch)
async def mark_viewed(match_id: str, service: NotificationService = Depends(get_notification_service)):
    try:
        return await service.mark_notification_viewed(match_id)
    except TrialMatchingError as e:
        raise to_http_error(e)


@router.post("/{match_id}/consent", response_model=TrialMatch)
async def update_consent(
    match_id: str,
    request: UpdateConsentRequest,
    service: NotificationService = Depends(get_notification_service),
):
    """Patient approves, declines or confirms enrollment."""
    try:
        return await service.update_patient_consent(match_id, request.consent_status, request.patient_response)
    except TrialMatchingError as e:
        logger.warning(f"⚠️ Consent update rejected for {match_id}: {e}")
        raise to_http_error(e)


@router.get("/{match_id}/consent-history", response_model=List[ConsentHistoryEntry])
async def consent_history(match_id: str, service: NotificationService = Depends(get_notification_service)):
    try:
        return await service.get_consent_history(match_id)
    except TrialMatchingError as e:
        raise to_http_error(e)
