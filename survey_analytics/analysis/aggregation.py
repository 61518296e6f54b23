"""
Aggregation service for dashboard analytics.
This module turns a response set into time-bucketed counts, a day/hour
heatmap, a completion funnel, per-question metrics and device breakdowns.
Every aggregation tolerates an empty response set and returns zero-filled
structures.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..errors import InsufficientSurveysError, InvalidParameterError
from ..models import (
    AnalyticsFilters,
    DeviceBreakdown,
    FunnelStage,
    HeatmapCell,
    QuestionMetrics,
    ResponseRecord,
    SurveyComparison,
    SurveyDefinition,
    TimeBucket,
    to_utc,
)
from ..utils.response_filters import apply_filters

logger = logging.getLogger(__name__)

TIME_PERIODS = ("hour", "day", "week", "month")
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
DEVICE_TYPES = ("mobile", "desktop", "tablet")
QUESTION_SORT_KEYS = ("completion_rate", "avg_time", "dropoff")


def _select(
    responses: Sequence[ResponseRecord],
    filters: Optional[AnalyticsFilters],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None
) -> List[ResponseRecord]:
    start_date = to_utc(start_date)
    end_date = to_utc(end_date)
    return [
        response for response in apply_filters(list(responses), filters)
        if (start_date is None or response.submitted_at >= start_date)
        and (end_date is None or response.submitted_at <= end_date)
    ]


class AnalyticsAggregationService:
    """Service for deterministic, read-only aggregation of survey responses."""

    def aggregate_by_time_period(
        self,
        responses: Sequence[ResponseRecord],
        period: str,
        start_date: datetime,
        end_date: datetime,
        filters: Optional[AnalyticsFilters] = None
    ) -> List[TimeBucket]:
        """
        Count responses per time bucket.

        Args:
            responses: Response records
            period: Bucket granularity: hour, day, week (ISO) or month
            start_date: Inclusive start of the range
            end_date: Inclusive end of the range
            filters: Optional additional filters

        Returns:
            Non-empty buckets in ascending time order
        """
        if period not in TIME_PERIODS:
            raise InvalidParameterError(f"Unsupported time period: {period}")

        selected = _select(responses, filters, start_date, end_date)
        if not selected:
            return []

        timestamps = pd.Series(pd.to_datetime([r.submitted_at for r in selected], utc=True))
        days = timestamps.dt.floor("D")

        if period == "hour":
            buckets = timestamps.dt.floor("h")
        elif period == "day":
            buckets = days
        elif period == "week":
            buckets = days - pd.to_timedelta(timestamps.dt.weekday, unit="D")
        else:
            buckets = days - pd.to_timedelta(timestamps.dt.day - 1, unit="D")

        counts = buckets.value_counts().sort_index()
        return [
            TimeBucket(label=self._bucket_label(start, period), date=start.to_pydatetime(), count=int(count))
            for start, count in counts.items()
        ]

    def generate_heatmap_data(
        self,
        responses: Sequence[ResponseRecord],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        filters: Optional[AnalyticsFilters] = None
    ) -> List[List[HeatmapCell]]:
        """
        Build a 7x24 grid of response counts.

        Rows are days of the week starting on Sunday (y), columns are UTC
        hours (x). Every cell is present.
        """
        selected = _select(responses, filters, start_date, end_date)
        counts = Counter(
            ((response.submitted_at.weekday() + 1) % 7, response.submitted_at.hour)
            for response in selected
        )

        return [
            [
                HeatmapCell(x=hour, y=day, value=counts.get((day, hour), 0), label=f"{DAY_NAMES[day]} {hour}:00")
                for hour in range(24)
            ]
            for day in range(7)
        ]

    def calculate_funnel_data(
        self,
        survey: SurveyDefinition,
        responses: Sequence[ResponseRecord],
        filters: Optional[AnalyticsFilters] = None
    ) -> List[FunnelStage]:
        """
        Calculate per-question completion in survey order.

        Drop-off for a stage is the previous stage's completion rate minus its
        own. It can be negative when respondents skip ahead.
        """
        selected = _select(responses, filters)
        total = len(selected)
        funnel: List[FunnelStage] = []

        for index, question in enumerate(survey.questions):
            completion_count = sum(1 for response in selected if response.has_answer(question.id))
            completion_rate = completion_count / total * 100 if total else 0.0
            dropoff_rate = funnel[index - 1].completion_rate - completion_rate if index > 0 else 0.0

            funnel.append(FunnelStage(
                question_id=question.id,
                question_text=question.text,
                completion_count=completion_count,
                completion_rate=completion_rate,
                dropoff_rate=dropoff_rate
            ))

        return funnel

    def calculate_question_metrics(
        self,
        survey: SurveyDefinition,
        responses: Sequence[ResponseRecord],
        filters: Optional[AnalyticsFilters] = None
    ) -> List[QuestionMetrics]:
        """
        Calculate completion, timing and drop-off for every question.

        Args:
            survey: Survey definition
            responses: Response records
            filters: Optional additional filters

        Returns:
            One metrics row per question, in survey order
        """
        selected = _select(responses, filters)
        total = len(selected)
        metrics = []

        for question in survey.questions:
            completion_count = sum(1 for response in selected if response.has_answer(question.id))
            durations = [
                response.question_timings[question.id].duration
                for response in selected
                if question.id in response.question_timings
            ]

            metrics.append(QuestionMetrics(
                question_id=question.id,
                question_text=question.text,
                question_type=question.type,
                completion_rate=completion_count / total * 100 if total else 0.0,
                avg_time_spent=sum(durations) / len(durations) if durations else 0.0,
                dropoff_count=total - completion_count,
                response_count=completion_count
            ))

        return metrics

    @staticmethod
    def sort_question_metrics(metrics: List[QuestionMetrics], sort_by: str = "completion_rate") -> List[QuestionMetrics]:
        """
        Order question metrics for display.

        completion_rate sorts ascending (worst first); avg_time and dropoff
        sort descending.
        """
        if sort_by == "completion_rate":
            return sorted(metrics, key=lambda m: m.completion_rate)
        if sort_by == "avg_time":
            return sorted(metrics, key=lambda m: m.avg_time_spent, reverse=True)
        if sort_by == "dropoff":
            return sorted(metrics, key=lambda m: m.dropoff_count, reverse=True)
        raise InvalidParameterError(f"Unsupported sort key: {sort_by}")

    def aggregate_device_data(
        self,
        responses: Sequence[ResponseRecord],
        filters: Optional[AnalyticsFilters] = None
    ) -> DeviceBreakdown:
        """
        Count responses per device class and browser.

        Responses without device metadata count as desktop / Unknown.
        """
        devices: Dict[str, int] = {device: 0 for device in DEVICE_TYPES}
        browsers: Dict[str, int] = {}

        for response in _select(responses, filters):
            if response.device_info is not None:
                device_type = response.device_info.type
                browser = response.device_info.browser or "Unknown"
            else:
                device_type = "desktop"
                browser = "Unknown"

            devices[device_type] += 1
            browsers[browser] = browsers.get(browser, 0) + 1

        return DeviceBreakdown(devices=devices, browsers=browsers)

    def compare_surveys(
        self,
        surveys: Sequence[Tuple[SurveyDefinition, Sequence[ResponseRecord]]]
    ) -> List[SurveyComparison]:
        """
        Compare headline numbers across surveys.

        Args:
            surveys: (survey, responses) pairs, at least two

        Returns:
            One comparison row per survey, in input order
        """
        if len(surveys) < 2:
            raise InsufficientSurveysError("At least 2 surveys are required for comparison")

        comparisons = []
        for survey, responses in surveys:
            metrics = self.calculate_question_metrics(survey, responses)
            completion_rate = sum(m.completion_rate for m in metrics) / len(metrics) if metrics else 0.0

            comparisons.append(SurveyComparison(
                survey_id=survey.id,
                title=survey.title,
                response_count=len(responses),
                completion_rate=completion_rate,
                question_count=len(survey.questions)
            ))

        return comparisons

    @staticmethod
    def _bucket_label(start: pd.Timestamp, period: str) -> str:
        if period == "hour":
            return start.strftime("%Y-%m-%d %H:00")
        if period == "day":
            return start.strftime("%Y-%m-%d")
        if period == "week":
            iso_year, iso_week, _ = start.isocalendar()
            return f"{iso_year}-W{iso_week:02d}"
        return start.strftime("%Y-%m")


# Create a singleton instance
analytics_aggregation_service = AnalyticsAggregationService()
