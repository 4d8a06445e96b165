"""
Store Package: data-access handles for the matching workflow.
"""
from typing import Optional

from trialmatch.config import get_store_backend
from .base import MatchStore, ACTIVE_TRIAL_STATUSES
from .memory_store import InMemoryMatchStore
from .supabase_store import SupabaseMatchStore


def create_store(backend: Optional[str] = None) -> MatchStore:
    """Build the configured store. Callers own the instance."""
    backend = backend or get_store_backend()
    if backend == "supabase":
        return SupabaseMatchStore()
    if backend == "memory":
        return InMemoryMatchStore()
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = [
    "MatchStore",
    "ACTIVE_TRIAL_STATUSES",
    "InMemoryMatchStore",
    "SupabaseMatchStore",
    "create_store",
]
