"""
Consent lifecycle transitions on persisted trial matches.

pending -> approved | declined, approved -> enrolled | declined.
Every accepted transition appends one history entry and keeps
``status`` and ``consent_status`` in sync.
"""
import logging
from typing import Any, Dict, Optional

from trialmatch.schemas.matches import (
    TrialMatch,
    MatchStatus,
    ChangedBy,
    StatusHistoryEntry,
    can_transition,
    utc_now,
)
from trialmatch.services.errors import MatchNotFoundError, InvalidStatusTransitionError, StoreError
from trialmatch.services.store.base import MatchStore

logger = logging.getLogger(__name__)


async def transition_match(
    store: MatchStore,
    match_id: str,
    target: MatchStatus,
    changed_by: ChangedBy,
    user_id: Optional[str] = None,
    note: Optional[str] = None,
    extra_fields: Optional[Dict[str, Any]] = None,
) -> TrialMatch:
    """Validate and apply a consent status change."""
    match = await store.get_match(match_id)
    if match is None:
        raise MatchNotFoundError(match_id)

    current = match.consent_status
    if not can_transition(current, target):
        logger.warning(f"Rejected transition for match {match_id}: {current.value} -> {target.value}")
        raise InvalidStatusTransitionError(match_id, current, target)

    now = utc_now()
    entry = StatusHistoryEntry(
        status=target,
        timestamp=now,
        changed_by=changed_by,
        user_id=user_id,
        note=note,
    )
    fields: Dict[str, Any] = {
        "status": target,
        "consent_status": target,
        "response_date": now,
        "updated_at": now,
        "consent_status_history": [*match.consent_status_history, entry],
    }
    fields.update(extra_fields or {})

    updated = await store.update_match(match_id, fields)
    if updated is None:
        raise StoreError(f"Trial match {match_id} disappeared during update")

    logger.info(f"Match {match_id}: {current.value} -> {target.value} (by {changed_by.value})")
    return updated
