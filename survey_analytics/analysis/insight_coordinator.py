"""
Insight coordination service that orchestrates the analytics services.
This module runs pattern detection, forecasting, aggregation and attention
scoring over one survey and assembles a serializable insight bundle. A failure
in one section degrades only that section to its empty result.
"""

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from .aggregation import AnalyticsAggregationService, analytics_aggregation_service
from .attention_score import AttentionScoreService, attention_score_service
from .forecast import ForecastService, forecast_service
from .pattern_detector import PatternDetector, pattern_detector
from ..config import settings
from ..models import AnalyticsFilters, ResponseRecord, SurveyDefinition, to_utc
from ..services.metadata_store import MetadataStore, metadata_store
from ..utils.response_filters import apply_filters

logger = logging.getLogger(__name__)

PATTERN_SECTIONS = ("correlations", "trends", "demographics", "anomalies")


class InsightCoordinator:
    """Coordinates the analytics services for a single survey."""

    def __init__(
        self,
        detector: Optional[PatternDetector] = None,
        forecaster: Optional[ForecastService] = None,
        aggregator: Optional[AnalyticsAggregationService] = None,
        attention: Optional[AttentionScoreService] = None,
        store: Optional[MetadataStore] = None
    ):
        """Initialize the insight coordinator."""
        self.detector = detector or pattern_detector
        self.forecaster = forecaster or forecast_service
        self.aggregator = aggregator or analytics_aggregation_service
        self.attention = attention or attention_score_service
        self.store = store or metadata_store

    async def generate_insights(
        self,
        survey: SurveyDefinition,
        responses: Sequence[ResponseRecord],
        now: datetime,
        filters: Optional[AnalyticsFilters] = None,
        days_ahead: int = settings.FORECAST_DEFAULT_DAYS_AHEAD,
        force_refresh: bool = False
    ) -> Dict[str, Any]:
        """
        Generate the insight bundle for a survey.

        Cached bundles are keyed by survey, filters and horizon only, so a bundle
        computed earlier is returned until its TTL expires even when more responses
        have arrived. Pass force_refresh=True after ingesting new responses.

        Args:
            survey: Survey definition
            responses: Every response the survey has received
            now: Reference time for recency rules and the forecast horizon
            filters: Filters applied before patterns and aggregations. Defaults to
                quality responses only, matching AnalyticsFilters defaults
            days_ahead: Forecast horizon in days
            force_refresh: Whether to skip the cache and recompute

        Returns:
            Dictionary with patterns, forecast, aggregations and attention
        """
        now = to_utc(now)
        if filters is None:
            filters = AnalyticsFilters()
        self.forecaster.validate_horizon(days_ahead)
        signature = self._signature(filters, days_ahead)

        if not force_refresh:
            cached = await self.store.get_analysis_result("insights", survey.id, signature, now=now)
            if cached:
                logger.info(f"Using cached insights for survey {survey.id}")
                return cached
        else:
            logger.info(f"Force refresh requested, skipping cache for survey {survey.id}")

        selected = apply_filters(list(responses), filters)
        questions = survey.questions
        errors: List[str] = []
        logger.info(f"Generating insights for survey {survey.id} from {len(selected)} of {len(responses)} responses")

        def run(section: str, func: Callable[[], Any], default: Any) -> Any:
            try:
                return func()
            except Exception as e:
                logger.error(f"Error in {section} for survey {survey.id}: {str(e)}")
                errors.append(section)
                return default

        detectors = {
            "correlations": self.detector.find_correlations,
            "trends": self.detector.analyze_trends,
            "demographics": self.detector.analyze_demographics,
            "anomalies": self.detector.detect_anomalies,
        }
        patterns = []
        for section in PATTERN_SECTIONS:
            detect = detectors[section]
            patterns.extend(run(section, lambda: detect(selected, questions), []))

        history_start = now - timedelta(days=settings.FORECAST_HISTORY_DAYS)
        result = {
            "survey_id": survey.id,
            "title": survey.title,
            "generated_at": now.isoformat(),
            "response_count": len(selected),
            "patterns": [self._serialize_pattern(pattern) for pattern in patterns],
            "forecast": run("forecast", lambda: [
                point.model_dump(mode="json")
                for point in self.forecaster.forecast_from_responses(selected, days_ahead, now)
            ], []),
            "trend": run("trend", lambda: self.forecaster.detect_trend(
                self.forecaster.daily_counts(selected, history_start, now)
            ), "stable"),
            "funnel": run("funnel", lambda: [
                stage.model_dump(mode="json")
                for stage in self.aggregator.calculate_funnel_data(survey, selected)
            ], []),
            "question_metrics": run("question_metrics", lambda: [
                row.model_dump(mode="json")
                for row in self.aggregator.calculate_question_metrics(survey, selected)
            ], []),
            "heatmap": run("heatmap", lambda: [
                [cell.model_dump(mode="json") for cell in row]
                for row in self.aggregator.generate_heatmap_data(selected)
            ], []),
            "devices": run("devices", lambda: self.aggregator.aggregate_device_data(selected).model_dump(mode="json"), {
                "devices": {"mobile": 0, "desktop": 0, "tablet": 0},
                "browsers": {}
            }),
            "attention": run("attention", lambda: self.attention.evaluate_survey(
                survey, responses, now
            ).model_dump(mode="json"), None),
            "data_snapshot": self._data_snapshot(selected, filters),
            "errors": errors
        }

        await self.store.store_analysis_result(
            "insights",
            survey.id,
            result,
            signature=signature,
            ttl=settings.CACHE_TTL["insights"],
            now=now
        )

        logger.info(f"Completed insights for survey {survey.id} with {len(patterns)} patterns and {len(errors)} failed sections")
        return result

    def build_overview(
        self,
        survey: SurveyDefinition,
        responses: Sequence[ResponseRecord],
        now: datetime
    ) -> Dict[str, Any]:
        """
        Build the dashboard overview: a daily sparkline and the attention summary.

        Args:
            survey: Survey definition
            responses: Every response the survey has received
            now: Reference time

        Returns:
            Dictionary with sparkline data and attention score
        """
        now = to_utc(now)
        sparkline = self.aggregator.aggregate_by_time_period(
            responses,
            "day",
            now - timedelta(days=settings.OVERVIEW_SPARKLINE_DAYS),
            now
        )
        item = self.attention.evaluate_survey(survey, responses, now)

        return {
            "survey_id": survey.id,
            "sparkline_data": [bucket.model_dump(mode="json") for bucket in sparkline],
            "attention_score": item.attention_score,
            "has_issues": bool(item.issues),
            "issue_count": len(item.issues)
        }

    @staticmethod
    def _serialize_pattern(pattern) -> Dict[str, Any]:
        data = pattern.model_dump(mode="json")
        data["confidence"] = round(pattern.confidence)
        data["statistical_significance"] = round(pattern.statistical_significance)
        return data

    @staticmethod
    def _data_snapshot(
        responses: List[ResponseRecord],
        filters: Optional[AnalyticsFilters]
    ) -> Dict[str, Any]:
        timestamps = sorted(response.submitted_at for response in responses)
        return {
            "response_count": len(responses),
            "date_range": {
                "start": timestamps[0].isoformat() if timestamps else None,
                "end": timestamps[-1].isoformat() if timestamps else None
            },
            "filters_applied": filters.model_dump(mode="json") if filters else None
        }

    @staticmethod
    def _signature(filters: Optional[AnalyticsFilters], days_ahead: int) -> str:
        raw = f"{filters.signature() if filters else ''}|days={days_ahead}"
        return hashlib.md5(raw.encode("utf-8")).hexdigest()


# Create a singleton instance
insight_coordinator = InsightCoordinator()
