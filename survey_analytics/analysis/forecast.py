"""
Forecast service for projecting daily response volumes.
This module fits a linear trend to recent daily response counts and projects
it forward with a symmetric confidence band.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Union

import pandas as pd

from . import statistics_engine
from ..config import settings
from ..errors import DataSourceError, InvalidParameterError
from ..models import DailyCount, ForecastPoint, ResponseRecord, TrendDirection, to_utc
from ..services.repository import SurveyRepository

logger = logging.getLogger(__name__)

CONFIDENCE_Z_SCORE = 1.96
TREND_SLOPE_THRESHOLD = 0.1


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ForecastService:
    """Service for forecasting survey response volumes."""

    def __init__(self, repository: Optional[SurveyRepository] = None):
        """
        Initialize the forecast service.

        Args:
            repository: Source of response records for forecast_responses
        """
        self.repository = repository

    def forecast_responses(
        self,
        survey_id: str,
        days_ahead: int,
        now: datetime
    ) -> List[ForecastPoint]:
        """
        Forecast daily response counts for a survey.

        Args:
            survey_id: Survey ID
            days_ahead: Number of future days to project (1-90)
            now: Reference time; the history window ends here

        Returns:
            One forecast point per future day, empty when history is too short
        """
        self.validate_horizon(days_ahead)
        if self.repository is None:
            raise DataSourceError("ForecastService has no repository configured")

        now = to_utc(now)
        start_date = now - timedelta(days=settings.FORECAST_HISTORY_DAYS)
        responses = self.repository.get_responses(survey_id, start_date, now)
        logger.info(f"Forecasting {days_ahead} days for survey {survey_id} from {len(responses)} responses")

        return self.forecast_from_responses(responses, days_ahead, now)

    def forecast_from_responses(
        self,
        responses: List[ResponseRecord],
        days_ahead: int,
        now: datetime
    ) -> List[ForecastPoint]:
        """Forecast from an already loaded response set."""
        self.validate_horizon(days_ahead)

        now = to_utc(now)
        start_date = now - timedelta(days=settings.FORECAST_HISTORY_DAYS)
        history = self.daily_counts(responses, start_date, now)
        if len(history) < 2:
            return []

        counts = [day.count for day in history]
        regression = statistics_engine.linear_regression(range(len(counts)), counts)
        margin = CONFIDENCE_Z_SCORE * statistics_engine.standard_deviation(counts)

        forecast = []
        last_index = len(counts) - 1
        for offset in range(1, days_ahead + 1):
            projected = regression.slope * (last_index + offset) + regression.intercept
            count = max(0, _round_half_up(projected))
            forecast.append(ForecastPoint(
                date=now + timedelta(days=offset),
                count=count,
                confidence_lower=max(0, _round_half_up(count - margin)),
                confidence_upper=_round_half_up(count + margin)
            ))

        return forecast

    @staticmethod
    def daily_counts(
        responses: List[ResponseRecord],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[DailyCount]:
        """
        Count responses per UTC calendar day, skipping days with no responses.

        Args:
            responses: Response records
            start_date: Optional inclusive lower bound
            end_date: Optional inclusive upper bound

        Returns:
            Daily counts in ascending date order
        """
        start_date = to_utc(start_date)
        end_date = to_utc(end_date)
        timestamps = [
            response.submitted_at for response in responses
            if (start_date is None or response.submitted_at >= start_date)
            and (end_date is None or response.submitted_at <= end_date)
        ]
        if not timestamps:
            return []

        df = pd.DataFrame({"timestamp": pd.to_datetime(timestamps, utc=True)})
        daily = df.groupby(df["timestamp"].dt.floor("D")).size().sort_index()

        return [DailyCount(date=day.to_pydatetime(), count=int(count)) for day, count in daily.items()]

    @staticmethod
    def detect_trend(series: Sequence[Union[DailyCount, float]]) -> TrendDirection:
        """
        Classify the direction of a daily count series.

        Args:
            series: Daily counts (or plain numbers) in chronological order

        Returns:
            increasing, decreasing or stable
        """
        if len(series) < 2:
            return "stable"

        counts = [point.count if isinstance(point, DailyCount) else float(point) for point in series]
        slope = statistics_engine.linear_regression(range(len(counts)), counts).slope

        if slope > TREND_SLOPE_THRESHOLD:
            return "increasing"
        if slope < -TREND_SLOPE_THRESHOLD:
            return "decreasing"
        return "stable"

    @staticmethod
    def validate_horizon(days_ahead: int) -> None:
        if not 1 <= days_ahead <= settings.FORECAST_MAX_DAYS_AHEAD:
            raise InvalidParameterError(
                f"days_ahead must be between 1 and {settings.FORECAST_MAX_DAYS_AHEAD}, got {days_ahead}"
            )


# Create a singleton instance
forecast_service = ForecastService()
