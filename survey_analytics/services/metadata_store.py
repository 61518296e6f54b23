"""
Metadata storage service for caching computed analytics with a TTL.
"""

import json
import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from ..config import settings

logger = logging.getLogger(__name__)


class MetadataStore:
    """Service for storing and retrieving cached analytics results."""

    def __init__(self, cache_dir: str = settings.CACHE_DIR):
        """
        Initialize the metadata store.

        Args:
            cache_dir: Directory to store cache files
        """
        self.cache_dir = cache_dir
        self.analysis_dir = os.path.join(cache_dir, "analysis")

    def _file_path(self, analysis_type: str, survey_id: str, signature: Optional[str]) -> str:
        cache_key = settings.get_cache_key(analysis_type, str(survey_id), signature)
        safe_key = "".join(c if c.isalnum() or c in "-_." else "_" for c in cache_key)
        return os.path.join(self.analysis_dir, f"{safe_key}.json")

    async def store_analysis_result(
        self,
        analysis_type: str,
        survey_id: str,
        result: Dict[str, Any],
        signature: Optional[str] = None,
        ttl: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Store an analysis result in the cache.

        Args:
            analysis_type: Type of analysis (e.g. 'insights', 'overview')
            survey_id: The survey ID
            result: JSON-serializable result to store
            signature: Optional query signature the result was computed for
            ttl: Time to live in seconds, defaults to the type's configured TTL
            now: Reference time, defaults to the current UTC time

        Returns:
            True if successfully stored, False otherwise
        """
        now = now or datetime.now(timezone.utc)
        ttl = ttl if ttl is not None else settings.CACHE_TTL.get(analysis_type, 3600)
        entry = {
            "stored_at": now.isoformat(),
            "expires_at": (now + timedelta(seconds=ttl)).isoformat(),
            "result": result
        }

        try:
            payload = json.dumps(entry, indent=2)
            os.makedirs(self.analysis_dir, exist_ok=True)
            file_path = self._file_path(analysis_type, survey_id, signature)
            with open(file_path, "w") as f:
                f.write(payload)

            logger.info(f"Stored {analysis_type} result for survey {survey_id}")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error storing {analysis_type} result for survey {survey_id}: {str(e)}")
            return False

    async def get_analysis_result(
        self,
        analysis_type: str,
        survey_id: str,
        signature: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Get an analysis result from the cache.

        Args:
            analysis_type: Type of analysis (e.g. 'insights', 'overview')
            survey_id: The survey ID
            signature: Optional query signature
            now: Reference time for expiry, defaults to the current UTC time

        Returns:
            The cached result or None if not found or expired
        """
        file_path = self._file_path(analysis_type, survey_id, signature)
        if not os.path.exists(file_path):
            return None

        try:
            with open(file_path, "r") as f:
                entry = json.load(f)
            expires_at = datetime.fromisoformat(entry["expires_at"])
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Error reading cached {analysis_type} result for survey {survey_id}: {str(e)}")
            return None

        now = now or datetime.now(timezone.utc)
        if now >= expires_at:
            logger.debug(f"Cached {analysis_type} result for survey {survey_id} has expired")
            return None

        logger.info(f"Retrieved cached {analysis_type} result for survey {survey_id}")
        return entry.get("result")

    async def invalidate(
        self,
        analysis_type: str,
        survey_id: str,
        signature: Optional[str] = None
    ) -> bool:
        """Remove a cached result. Returns True if an entry was removed."""
        file_path = self._file_path(analysis_type, survey_id, signature)
        try:
            os.remove(file_path)
        except FileNotFoundError:
            return False

        logger.info(f"Invalidated {analysis_type} result for survey {survey_id}")
        return True


# Create a singleton instance
metadata_store = MetadataStore()
