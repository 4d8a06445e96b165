"""
FastAPI application for the clinical trial matching backend.
"""
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trialmatch.config import ALLOWED_ORIGINS, ENVIRONMENT
from trialmatch.utils.logging import setup_logging
from trialmatch.services.events import EventDispatcher
from trialmatch.services.store import MatchStore, create_store
from trialmatch.routers import health, trial_matching, notifications

logger = logging.getLogger(__name__)


def create_app(store: Optional[MatchStore] = None, dispatcher: Optional[EventDispatcher] = None) -> FastAPI:
    """Build the app with an explicit store and dispatcher (defaults from configuration)."""
    setup_logging()

    app = FastAPI(
        title="Trial Matching API",
        description="Clinical trial matching, patient notification and consent tracking",
        version="1.0.0"
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store if store is not None else create_store()
    app.state.dispatcher = dispatcher if dispatcher is not None else EventDispatcher()

    # Include routers
    app.include_router(health.router)
    app.include_router(trial_matching.router)
    app.include_router(notifications.router)

    logger.info(f"🚀 Trial matching API ready ({ENVIRONMENT}, store={type(app.state.store).__name__})")
    return app


app = create_app()
