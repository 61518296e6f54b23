"""
Test configuration and fixtures.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from unittest.mock import MagicMock, AsyncMock

from survey_analytics.models import (
    DeviceInfo,
    QuestionDefinition,
    ResponseRecord,
    SurveyDefinition,
)
from survey_analytics.services.metadata_store import MetadataStore


# Saturday, 2024-06-15 12:00 UTC
FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time shared by every test."""
    return FIXED_NOW


@pytest.fixture
def sample_survey():
    """Survey with two rating questions and one free-text question."""
    return SurveyDefinition(
        id="survey1",
        title="Customer Satisfaction",
        owner_id="owner1",
        questions=[
            QuestionDefinition(id="q1", text="How satisfied are you?", type="rating", rating_min=1, rating_max=5),
            QuestionDefinition(id="q2", text="How likely are you to recommend us?", type="rating", rating_min=1, rating_max=5),
            QuestionDefinition(id="q3", text="Any additional feedback?", type="short_text"),
        ]
    )


@pytest.fixture
def make_response():
    """Factory for response records submitted relative to the fixed time."""
    counter = {"value": 0}

    def _make(
        answers: Optional[Dict[str, Any]] = None,
        age: timedelta = timedelta(hours=1),
        survey_id: str = "survey1",
        **kwargs
    ) -> ResponseRecord:
        counter["value"] += 1
        return ResponseRecord(
            id=f"response{counter['value']}",
            survey_id=survey_id,
            answers=answers or {},
            submitted_at=FIXED_NOW - age,
            **kwargs
        )

    return _make


@pytest.fixture
def sample_responses(make_response):
    """Twelve responses spread over the last twelve days."""
    responses = []
    for i in range(12):
        rating = i % 5 + 1
        responses.append(make_response(
            answers={"q1": rating, "q2": rating, "q3": "Great" if i % 2 else ""},
            age=timedelta(days=i, hours=1),
            device_info=DeviceInfo(type="mobile" if i % 3 == 0 else "desktop", browser="Chrome"),
            demographics={"age_group": "18-24" if i % 2 else "25-34"}
        ))
    return responses


@pytest.fixture
def metadata_store_instance(tmp_path):
    """MetadataStore writing into a temporary directory."""
    return MetadataStore(cache_dir=str(tmp_path / "cache"))


@pytest.fixture
def mock_metadata_store():
    """Metadata store mock that always misses."""
    store = MagicMock()
    store.get_analysis_result = AsyncMock(return_value=None)
    store.store_analysis_result = AsyncMock(return_value=True)
    return store


@pytest.fixture
def raw_survey_data():
    """Survey payload as returned by the survey API."""
    return {
        "id": 42,
        "title": "Product Feedback",
        "owner_id": 7,
        "questions": [
            {"id": 1, "question": "Rate the product", "type": "scale", "min": 1, "max": 10},
            {"id": 2, "question": "Which features do you use?", "type": "checkbox",
             "options": [{"text": "Search"}, {"text": "Export"}]},
            {"id": 3, "question": "Anything else?", "type": "textarea"},
        ]
    }


@pytest.fixture
def raw_responses_data():
    """Responses payload as returned by the survey API."""
    return {
        "data": {
            "total": 3,
            "responses": [
                {
                    "_id": "r1",
                    "responses": {"1": 8, "2": ["Search"], "3": "Nice"},
                    "submitted_at": "2024-06-14T09:30:00Z",
                    "device_info": {"type": "tablet", "browser": "Safari", "os": "iPadOS"}
                },
                {
                    "_id": "r2",
                    "response_data": {"responses": {"1": 6}},
                    "submitted_at": "2024-06-13T18:00:00+02:00",
                    "user_agent": (
                        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
                    )
                },
                {
                    "_id": "r3",
                    "responses": {"1": 9}
                }
            ]
        }
    }
