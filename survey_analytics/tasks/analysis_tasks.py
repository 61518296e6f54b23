"""
Analysis tasks for the analytics engine.
This module contains Celery tasks for running insight generation and attention
scans in the background.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..tasks.celery_app import app
from ..analysis.attention_score import AttentionScoreService
from ..analysis.insight_coordinator import InsightCoordinator
from ..config import settings
from ..models import AnalyticsFilters, ResponseRecord, SurveyDefinition, to_utc
from ..services.repository import InMemorySurveyRepository

logger = logging.getLogger(__name__)


def _parse_now(now: Optional[str]) -> datetime:
    if now:
        return to_utc(datetime.fromisoformat(now))
    return datetime.now(timezone.utc)


@app.task(bind=True, name="survey_analytics.tasks.analysis_tasks.run_insight_analysis", max_retries=0)
def run_insight_analysis(
    self,
    survey_data: str,
    responses: str,
    now: Optional[str] = None,
    filters: Optional[str] = None,
    days_ahead: int = settings.FORECAST_DEFAULT_DAYS_AHEAD,
    force_refresh: bool = False
) -> Dict[str, Any]:
    """
    Generate the insight bundle for a survey as a Celery task.

    Args:
        survey_data: Survey definition (JSON string)
        responses: List of response records (JSON string)
        now: Reference time in ISO format, defaults to the current time
        filters: Optional analytics filters (JSON string)
        days_ahead: Forecast horizon in days
        force_refresh: Whether to skip the cache and force a fresh analysis

    Returns:
        Dictionary with task status and the insight bundle
    """
    logger.info(f"[CELERY] Task ID: {self.request.id}")

    try:
        survey = SurveyDefinition.model_validate_json(survey_data)
        records = [ResponseRecord.model_validate(item) for item in json.loads(responses)]
        parsed_filters = AnalyticsFilters.model_validate_json(filters) if filters else None
        logger.info(f"[CELERY] Starting insight analysis for survey {survey.id} with {len(records)} responses")

        result = asyncio.run(InsightCoordinator().generate_insights(
            survey,
            records,
            _parse_now(now),
            filters=parsed_filters,
            days_ahead=days_ahead,
            force_refresh=force_refresh
        ))

        logger.info(f"[CELERY] Completed insight analysis for survey {survey.id}")
        return {
            "status": "success",
            "survey_id": survey.id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "result": result
        }
    except Exception as e:
        logger.exception(f"[CELERY] Error in insight analysis: {str(e)}")
        return {
            "status": "error",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": str(e)
        }


@app.task(bind=True, name="survey_analytics.tasks.analysis_tasks.run_attention_scan", max_retries=0)
def run_attention_scan(
    self,
    owner_id: str,
    surveys: str,
    responses: str,
    threshold: int = settings.ATTENTION_DEFAULT_THRESHOLD,
    now: Optional[str] = None
) -> Dict[str, Any]:
    """
    List an owner's surveys that need attention as a Celery task.

    Args:
        owner_id: Owner whose surveys are scanned
        surveys: List of survey definitions (JSON string)
        responses: List of response records for those surveys (JSON string)
        threshold: Minimum attention score to report
        now: Reference time in ISO format, defaults to the current time

    Returns:
        Dictionary with task status and the surveys needing attention
    """
    logger.info(f"[CELERY] Task ID: {self.request.id}")

    try:
        repository = InMemorySurveyRepository(
            surveys=[SurveyDefinition.model_validate(item) for item in json.loads(surveys)],
            responses=[ResponseRecord.model_validate(item) for item in json.loads(responses)]
        )
        items = AttentionScoreService(repository).get_surveys_needing_attention(
            owner_id, threshold, now=_parse_now(now)
        )

        logger.info(f"[CELERY] {len(items)} surveys need attention for owner {owner_id}")
        return {
            "status": "success",
            "owner_id": owner_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "surveys": [item.model_dump(mode="json") for item in items]
        }
    except Exception as e:
        logger.exception(f"[CELERY] Error in attention scan for owner {owner_id}: {str(e)}")
        return {
            "status": "error",
            "owner_id": owner_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": str(e)
        }
