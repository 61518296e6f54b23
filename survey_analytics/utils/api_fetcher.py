"""
Utilities for fetching survey definitions and responses from API endpoints.
"""

import asyncio
import logging
from typing import Dict, Any, Optional

import aiohttp
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from ..errors import DataSourceError, SurveyNotFoundError

logger = logging.getLogger(__name__)


class APIFetcher:
    """Fetch survey data from API endpoints."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = settings.API_TIMEOUT_SECONDS):
        """
        Initialize the API fetcher.

        Args:
            base_url: Base URL of the API
            api_key: Optional API key for authentication
            timeout: Total request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = {}

        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    @retry(
        retry=retry_if_exception_type((aiohttp.ClientConnectionError, asyncio.TimeoutError)),
        stop=stop_after_attempt(settings.API_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True
    )
    async def _get_json(self, survey_id: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.info(f"Fetching {url}")

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(url, headers=self.headers, params=params) as response:
                if response.status == 404:
                    raise SurveyNotFoundError(survey_id)
                if response.status != 200:
                    body = await response.text()
                    logger.error(f"Error fetching {url}: {response.status} {body}")
                    raise DataSourceError(f"GET {url} returned {response.status}")

                return await response.json()

    async def fetch_survey(self, survey_id: str) -> Dict[str, Any]:
        """
        Fetch a survey definition.

        Args:
            survey_id: ID of the survey

        Returns:
            Survey data as returned by the API
        """
        payload = await self._get_json(survey_id, f"/api/surveys/{survey_id}")
        return payload.get("data", payload)

    async def fetch_responses(self, survey_id: str, skip: int = 0, limit: int = settings.DEFAULT_BATCH_SIZE) -> Dict[str, Any]:
        """
        Fetch one page of survey responses.

        Args:
            survey_id: ID of the survey
            skip: Number of responses to skip
            limit: Maximum number of responses to fetch

        Returns:
            Response page with data.responses and data.total
        """
        return await self._get_json(survey_id, f"/api/surveys/{survey_id}/responses", {"skip": skip, "limit": limit})

    async def fetch_all_responses(self, survey_id: str, batch_size: int = settings.DEFAULT_BATCH_SIZE) -> Dict[str, Any]:
        """
        Fetch all responses for a survey, handling pagination.

        Args:
            survey_id: ID of the survey
            batch_size: Number of responses to fetch per request

        Returns:
            All survey responses under data.responses
        """
        first_batch = await self.fetch_responses(survey_id, 0, batch_size)
        if "data" not in first_batch:
            raise DataSourceError(f"Malformed responses payload for survey {survey_id}")

        total_responses = first_batch["data"].get("total", 0)
        all_responses = list(first_batch["data"].get("responses", []))
        logger.info(f"Found {total_responses} total responses for survey {survey_id}")

        skip = len(all_responses)
        while skip < total_responses:
            batch = await self.fetch_responses(survey_id, skip, batch_size)
            batch_responses = batch.get("data", {}).get("responses", [])
            if not batch_responses:
                logger.warning(f"Stopped paging survey {survey_id} at {skip}/{total_responses}")
                break
            all_responses.extend(batch_responses)
            skip += len(batch_responses)

        return {"data": {"total": len(all_responses), "responses": all_responses}}


# Create singleton instance of API fetcher with settings
api_fetcher = APIFetcher(base_url=settings.API_BASE_URL, api_key=settings.API_KEY)
