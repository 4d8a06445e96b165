"""
Notification and consent service.

Doctors send matched trials to patients; patients view them and respond
with consent. All state lives on the persisted TrialMatch rows.
"""
import logging
from typing import List, Optional

from trialmatch.schemas.matches import (
    TrialMatch,
    MatchStatus,
    NotificationStatus,
    ChangedBy,
    MatchDetails,
    PatientSummary,
    PatientNotification,
    ConsentHistoryEntry,
    SendResult,
    SendNotificationsResult,
    utc_now,
)
from trialmatch.services.errors import MatchNotFoundError
from trialmatch.services.events import EventDispatcher, EventType
from trialmatch.services.store.base import MatchStore
from trialmatch.services.consent_lifecycle import transition_match

logger = logging.getLogger(__name__)


def _sort_key_timestamp(value) -> float:
    return value.timestamp() if value else 0.0


class NotificationService:
    """Patient notifications and consent responses for trial matches."""

    def __init__(self, store: MatchStore, dispatcher: Optional[EventDispatcher] = None):
        self.store = store
        self.dispatcher = dispatcher or EventDispatcher()

    async def get_patient_notifications(self, patient_id: str) -> List[PatientNotification]:
        """All of a patient's matches joined with trial details, newest first."""
        matches = await self.store.list_matches(patient_id=patient_id)

        notifications = []
        for match in matches:
            trial = await self.store.get_trial(match.trial_id)
            if trial is None:
                logger.warning(f"⚠️ Trial {match.trial_id} missing for match {match.id}")
                continue
            notifications.append(PatientNotification(
                id=match.id,
                trial_id=trial.id,
                trial_title=trial.title,
                trial_description=trial.description,
                trial_phase=trial.phase,
                trial_sponsor=trial.sponsor,
                trial_status=trial.status.value,
                nct_id=trial.nct_id,
                match_date=match.match_date,
                relevance_score=match.relevance_score,
                notification_status=match.notification_status,
                consent_status=match.consent_status,
                match_reason=match.match_reason,
                doctor_notes=match.doctor_notes,
                response_date=match.response_date,
                eligibility_criteria=trial.eligibility_criteria,
                inclusion_criteria=trial.inclusion_criteria,
                age_range=trial.age_range,
                location=trial.location,
                locations=trial.locations,
                contact_info=trial.contact_info,
            ))

        notifications.sort(key=lambda n: _sort_key_timestamp(n.match_date), reverse=True)
        return notifications

    async def get_unread_notification_count(self, patient_id: str) -> int:
        matches = await self.store.list_matches(patient_id=patient_id)
        return sum(1 for m in matches if m.notification_status == NotificationStatus.SENT)

    async def get_action_required_count(self, patient_id: str) -> int:
        """Matches still awaiting the patient's consent decision."""
        matches = await self.store.list_matches(patient_id=patient_id)
        return sum(1 for m in matches if m.consent_status == MatchStatus.PENDING)

    async def send_trial_notifications(
        self,
        match_ids: List[str],
        doctor_notes: Optional[str] = None,
    ) -> SendNotificationsResult:
        """Mark each match as sent; unknown ids are reported, not raised."""
        results = []
        for match_id in match_ids:
            match = await self.store.get_match(match_id)
            if match is None:
                results.append(SendResult(id=match_id, success=False, error="Match not found"))
                continue
            await self.store.update_match(match_id, {
                "notification_status": NotificationStatus.SENT,
                "doctor_notes": doctor_notes,
                "updated_at": utc_now(),
            })
            results.append(SendResult(id=match_id, success=True))

        success_count = sum(1 for r in results if r.success)
        failed_count = len(results) - success_count

        sent_ids = [r.id for r in results if r.success]
        if sent_ids:
            self.dispatcher.publish(EventType.NOTIFICATIONS_SENT, {"match_ids": sent_ids})

        logger.info(f"📨 Sent {success_count} trial notifications ({failed_count} failed)")
        return SendNotificationsResult(
            success=failed_count == 0,
            success_count=success_count,
            failed_count=failed_count,
            results=results,
        )

    async def mark_notification_viewed(self, match_id: str) -> TrialMatch:
        """sent -> viewed; any other notification state is left untouched."""
        match = await self.store.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(match_id)

        if match.notification_status != NotificationStatus.SENT:
            return match

        updated = await self.store.update_match(match_id, {
            "notification_status": NotificationStatus.VIEWED,
            "updated_at": utc_now(),
        })
        self.dispatcher.publish(EventType.NOTIFICATION_VIEWED, {
            "match_id": match_id,
            "patient_id": match.patient_id,
        })
        return updated or match

    async def update_patient_consent(
        self,
        match_id: str,
        consent_status: MatchStatus,
        patient_response: Optional[str] = None,
    ) -> TrialMatch:
        """Patient-driven consent status change."""
        match = await self.store.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(match_id)

        updated = await transition_match(
            self.store,
            match_id,
            consent_status,
            changed_by=ChangedBy.PATIENT,
            user_id=match.patient_id,
            note=patient_response,
            extra_fields={"patient_response": patient_response},
        )
        self.dispatcher.publish(EventType.CONSENT_UPDATED, {
            "match_id": match_id,
            "patient_id": match.patient_id,
            "consent_status": consent_status.value,
        })
        return updated

    async def get_trials_by_consent_status(
        self,
        consent_status: Optional[MatchStatus] = None,
    ) -> List[MatchDetails]:
        """Doctor view of matches, optionally by consent status, most recently updated first."""
        matches = await self.store.list_matches(consent_status=consent_status)

        enriched = []
        for match in matches:
            trial = await self.store.get_trial(match.trial_id)
            patient = await self.store.get_user(match.patient_id)
            if trial is None or patient is None:
                continue
            enriched.append(MatchDetails(
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

        enriched.sort(key=lambda d: _sort_key_timestamp(d.match.updated_at), reverse=True)
        return enriched

    async def get_consent_history(self, match_id: str) -> List[ConsentHistoryEntry]:
        match = await self.store.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(match_id)

        history = []
        for entry in match.consent_status_history:
            item = ConsentHistoryEntry(**entry.model_dump())
            if entry.user_id:
                user = await self.store.get_user(entry.user_id)
                item.user_name = (user.name if user else None) or "Unknown"
                item.user_role = user.role.value if user else "unknown"
            history.append(item)
        return history
