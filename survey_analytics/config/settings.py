"""
Configuration settings for the survey analytics engine.
"""

import os
from typing import Optional
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

# Environment variables
ENV = os.environ.get("ENV", "development")
DEBUG = os.environ.get("DEBUG", "1") == "1"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Service URLs
API_BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000")
API_KEY = os.environ.get("API_KEY", "")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# Fetcher settings
API_TIMEOUT_SECONDS = float(os.environ.get("API_TIMEOUT_SECONDS", 30))
API_MAX_ATTEMPTS = int(os.environ.get("API_MAX_ATTEMPTS", 3))
DEFAULT_BATCH_SIZE = int(os.environ.get("DEFAULT_BATCH_SIZE", 100))

# Cache settings
CACHE_DIR = os.environ.get("CACHE_DIR", "cache")
PREFIX = os.environ.get("PREFIX", "survey_analytics")

CACHE_TTL = {
    "insights": 60 * 60,  # 1 hour
    "overview": 60 * 15,  # 15 minutes
    "forecast": 60 * 60,  # 1 hour
    "attention": 60 * 15,  # 15 minutes
}

# Analysis windows
FORECAST_HISTORY_DAYS = 30
FORECAST_DEFAULT_DAYS_AHEAD = int(os.environ.get("FORECAST_DEFAULT_DAYS_AHEAD", 7))
FORECAST_MAX_DAYS_AHEAD = 90
OVERVIEW_SPARKLINE_DAYS = 30
ATTENTION_RECENT_DAYS = 7
ATTENTION_DEFAULT_THRESHOLD = int(os.environ.get("ATTENTION_DEFAULT_THRESHOLD", 30))

# Celery queues
TASK_QUEUES = {
    "insights": "default",
    "attention": "low",
}


@lru_cache()
def get_cache_key(analysis_type: str, survey_id: str, signature: Optional[str] = None) -> str:
    """
    Get the cache key for an analysis result.

    Args:
        analysis_type: The analysis type (insights, overview, etc.)
        survey_id: Survey ID the result belongs to
        signature: Optional query signature (filters, horizon)

    Returns:
        The cache key
    """
    key = f"{PREFIX}_{analysis_type}_{survey_id}"

    if signature:
        return f"{key}_{signature}"

    return key
