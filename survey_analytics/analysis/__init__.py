"""
Analysis module for survey response analytics.
This package contains the statistics primitives and the services built on them.
"""

from . import statistics_engine
from .pattern_detector import PatternDetector
from .forecast import ForecastService
from .aggregation import AnalyticsAggregationService
from .attention_score import AttentionScoreService
from .insight_coordinator import InsightCoordinator

__all__ = [
    'statistics_engine',
    'PatternDetector',
    'ForecastService',
    'AnalyticsAggregationService',
    'AttentionScoreService',
    'InsightCoordinator'
]
