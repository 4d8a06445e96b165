"""
Configuration module for the trial matching backend.
"""
import os
from dotenv import load_dotenv
from loguru import logger

# Load environment variables from .env file
load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON", "false").lower() == "true"

# Database configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_TIMEOUT_S = float(os.getenv("SUPABASE_TIMEOUT_S", "5.0"))

# "memory" or "supabase"; unset means supabase when credentials are present
STORE_BACKEND = os.getenv("STORE_BACKEND", "").strip().lower()

# Matching thresholds
MIN_RELEVANCE_SCORE = int(os.getenv("MIN_RELEVANCE_SCORE", "50"))


def get_store_backend() -> str:
    """Resolve which data store backend to use."""
    if STORE_BACKEND in ("memory", "supabase"):
        backend = STORE_BACKEND
    elif SUPABASE_URL and SUPABASE_KEY:
        backend = "supabase"
    else:
        backend = "memory"
    logger.info(f"Store backend resolved to: {backend}")
    return backend


def get_matching_settings():
    """Get current matching configuration."""
    return {
        "min_relevance_score": MIN_RELEVANCE_SCORE,
        "store_backend": STORE_BACKEND or "auto",
        "environment": ENVIRONMENT,
    }
