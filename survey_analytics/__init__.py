"""
Survey Analytics Package
This package turns survey response records into time series, correlations,
demographic comparisons, anomaly flags, response forecasts and attention
scores for survey owners.
"""

__version__ = "0.1.0"

from survey_analytics.models import ResponseRecord, SurveyDefinition, QuestionDefinition
from survey_analytics.analysis.insight_coordinator import InsightCoordinator
