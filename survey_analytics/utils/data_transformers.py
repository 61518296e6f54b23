"""
Utilities for transforming data between API formats and analysis models.
"""

import re
from typing import Dict, List, Any, Optional
import logging

import pandas as pd

from ..models import DeviceInfo, QuestionDefinition, ResponseRecord, SurveyDefinition

logger = logging.getLogger(__name__)

# API question type names mapped to analysis question types
QUESTION_TYPE_ALIASES = {
    "text": "short_text",
    "short_text": "short_text",
    "textarea": "long_text",
    "long_text": "long_text",
    "radio": "single_choice",
    "single_choice": "single_choice",
    "checkbox": "multi_choice",
    "multiselect": "multi_choice",
    "multi_choice": "multi_choice",
    "multiple_choice": "single_choice",
    "select": "dropdown",
    "dropdown": "dropdown",
    "rating": "rating",
    "scale": "rating",
    "likert": "rating",
    "number": "numeric",
    "numeric": "numeric",
    "date": "date",
    "email": "email",
}

TABLET_PATTERN = re.compile(r"(tablet|ipad|playbook|silk)|(android(?!.*mobi))", re.IGNORECASE)
MOBILE_PATTERN = re.compile(
    r"Mobile|Android|iP(hone|od)|IEMobile|BlackBerry|Kindle|Silk-Accelerated|(hpw|web)OS|Opera M(obi|ini)"
)


class DataTransformer:
    """Transforms API data formats to analysis models."""

    @staticmethod
    def transform_survey_data(survey_data: Dict[str, Any]) -> SurveyDefinition:
        """
        Transform survey data from API format to a survey definition.

        Args:
            survey_data: Survey data from API (survey form endpoint)

        Returns:
            Survey definition with questions in API order
        """
        questions = []
        for question in survey_data.get("questions", []):
            question_id = question.get("id")
            if question_id is None:
                logger.warning("Skipping question without an id")
                continue

            options = [
                str(option.get("text", option.get("value"))) if isinstance(option, dict) else str(option)
                for option in question.get("options", []) or []
            ]
            questions.append(QuestionDefinition(
                id=str(question_id),
                text=question.get("question") or question.get("text") or "Untitled Question",
                type=DataTransformer.normalize_question_type(question.get("type", "")),
                required=bool(question.get("required", False)),
                options=options,
                rating_min=question.get("min", question.get("min_rating")),
                rating_max=question.get("max", question.get("max_rating"))
            ))

        return SurveyDefinition(
            id=str(survey_data.get("id", survey_data.get("_id", ""))),
            title=survey_data.get("title", "Untitled Survey"),
            owner_id=survey_data.get("owner_id", survey_data.get("user_id")),
            is_public=bool(survey_data.get("is_public", False)),
            questions=questions
        )

    @staticmethod
    def transform_responses(
        responses_data: Dict[str, Any],
        survey_id: Optional[str] = None
    ) -> List[ResponseRecord]:
        """
        Transform response data from API format to response records.

        Args:
            responses_data: Response data from API (responses endpoint)
            survey_id: Survey ID to use when a response does not carry one

        Returns:
            Response records; responses without a submission time are skipped
        """
        raw_responses = responses_data.get("data", {}).get("responses", [])
        records = []

        for response in raw_responses:
            submitted_at = response.get("submitted_at")
            if not submitted_at:
                logger.warning(f"Skipping response {response.get('_id', '')} without submission time")
                continue

            records.append(ResponseRecord(
                id=str(response.get("_id", response.get("id", ""))),
                survey_id=str(response.get("survey_id", survey_id or "")),
                respondent_id=response.get("respondent_id"),
                respondent_email=response.get("respondent_email"),
                answers=DataTransformer._extract_answers(response),
                submitted_at=pd.to_datetime(submitted_at, utc=True).to_pydatetime(),
                started_at=(
                    pd.to_datetime(response["started_at"], utc=True).to_pydatetime()
                    if response.get("started_at") else None
                ),
                completion_time=response.get("completion_time"),
                device_info=DataTransformer._extract_device_info(response),
                demographics=response.get("demographics") or {},
                question_timings=response.get("question_timings") or {},
                quality_status=response.get("quality_status")
            ))

        return records

    @staticmethod
    def normalize_question_type(question_type: str) -> str:
        """Map an API question type onto an analysis question type."""
        normalized = QUESTION_TYPE_ALIASES.get(str(question_type).lower())
        if normalized is None:
            logger.warning(f"Unknown question type '{question_type}', treating as short_text")
            return "short_text"
        return normalized

    @staticmethod
    def parse_user_agent(user_agent: str) -> DeviceInfo:
        """Derive device class, OS and browser from a user-agent string."""
        ua = user_agent.lower()

        if TABLET_PATTERN.search(user_agent):
            device_type = "tablet"
        elif MOBILE_PATTERN.search(user_agent):
            device_type = "mobile"
        else:
            device_type = "desktop"

        if "windows" in ua:
            os_name = "Windows"
        elif "iphone" in ua:
            os_name = "iOS"
        elif "ipad" in ua:
            os_name = "iPadOS"
        elif "mac os x" in ua or "mac" in ua:
            os_name = "macOS"
        elif "android" in ua:
            os_name = "Android"
        elif "cros" in ua:
            os_name = "Chrome OS"
        elif "linux" in ua:
            os_name = "Linux"
        else:
            os_name = "Unknown"

        if "edg/" in ua:
            browser = "Edge"
        elif "opr/" in ua or "opera/" in ua:
            browser = "Opera"
        elif "chrome/" in ua:
            browser = "Chrome"
        elif "safari/" in ua:
            browser = "Safari"
        elif "firefox/" in ua:
            browser = "Firefox"
        elif "msie" in ua or "trident/" in ua:
            browser = "Internet Explorer"
        else:
            browser = "Unknown"

        return DeviceInfo(type=device_type, browser=browser, os=os_name)

    @staticmethod
    def _extract_answers(response: Dict[str, Any]) -> Dict[str, Any]:
        answers = response.get("responses")
        if answers is None:
            response_data = response.get("response_data") or {}
            answers = response_data.get("responses", response_data)
        return {str(question_id): value for question_id, value in (answers or {}).items()}

    @staticmethod
    def _extract_device_info(response: Dict[str, Any]) -> Optional[DeviceInfo]:
        device_info = response.get("device_info")
        if device_info:
            return DeviceInfo(
                type=device_info.get("type") or "desktop",
                browser=device_info.get("browser") or "Unknown",
                os=device_info.get("os") or "Unknown"
            )

        user_agent = response.get("user_agent")
        if user_agent:
            return DataTransformer.parse_user_agent(user_agent)
        return None


# Create a singleton instance
data_transformer = DataTransformer()
