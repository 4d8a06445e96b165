"""
Health and basic status endpoints.
"""
from fastapi import APIRouter

from trialmatch.config import get_matching_settings
from trialmatch.services.trial_matching import WEIGHTS, total_possible_score

router = APIRouter(prefix="", tags=["health"])


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Trial Matching Backend - Live!",
        "status": "operational",
        "version": "1.0.0"
    }


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "matching": {
            **get_matching_settings(),
            "weights": WEIGHTS,
            "total_possible_score": total_possible_score(),
        },
    }
