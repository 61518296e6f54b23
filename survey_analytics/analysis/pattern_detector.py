"""
Pattern detection service for surfacing statistical patterns in survey responses.
This module finds cross-question correlations, temporal trends, demographic
divergence and anomalies, and describes each one with a templated sentence.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from . import statistics_engine
from .statistics_engine import TimeSeriesPoint
from ..models import (
    AnomalyPattern,
    AnomalySupport,
    CorrelationPattern,
    CorrelationSupport,
    DemographicGroup,
    DemographicPattern,
    DemographicSupport,
    Pattern,
    QuestionDefinition,
    ResponseRecord,
    TemporalPattern,
    TemporalSupport,
)

logger = logging.getLogger(__name__)

MIN_CORRELATION_SAMPLES = 10
CORRELATION_THRESHOLD = 0.3
MAX_CORRELATION_PATTERNS = 5

MIN_TREND_SAMPLES = 10
TREND_CONFIDENCE_THRESHOLD = 30
MAX_TEMPORAL_PATTERNS = 3

MIN_DEMOGRAPHIC_RESPONSES = 20
MIN_DEMOGRAPHIC_TAGGED = 10
DEMOGRAPHIC_DIVERGENCE_THRESHOLD = 0.2
MAX_DEMOGRAPHIC_PATTERNS = 3

MIN_ANOMALY_SAMPLES = 20
MAX_OUTLIER_SHARE = 0.1
MAX_ANOMALY_PATTERNS = 3
MAX_REPORTED_OUTLIERS = 10


def _top_by_confidence(patterns: List, limit: int) -> List:
    return sorted(patterns, key=lambda pattern: pattern.confidence, reverse=True)[:limit]


class PatternDetector:
    """Service for detecting statistical patterns in a response set."""

    def find_correlations(
        self,
        responses: List[ResponseRecord],
        questions: List[QuestionDefinition]
    ) -> List[CorrelationPattern]:
        """
        Find correlated pairs of numeric questions.

        Args:
            responses: Survey responses
            questions: Survey questions in definition order

        Returns:
            Up to five correlation patterns, most confident first
        """
        numeric_questions = [q for q in questions if q.is_numeric]
        if len(numeric_questions) < 2 or len(responses) < MIN_CORRELATION_SAMPLES:
            return []

        patterns = []
        for i, first in enumerate(numeric_questions):
            for second in numeric_questions[i + 1:]:
                data1, data2 = self._paired_values(responses, first.id, second.id)
                if len(data1) < MIN_CORRELATION_SAMPLES:
                    continue

                correlation = statistics_engine.calculate_correlation(data1, data2)
                if abs(correlation) <= CORRELATION_THRESHOLD:
                    continue

                sample_size = len(data1)
                confidence = min(100.0, abs(correlation) * 100 * math.log10(sample_size))
                patterns.append(CorrelationPattern(
                    question1=first.text,
                    question2=second.text,
                    correlation=correlation,
                    confidence=confidence,
                    statistical_significance=statistics_engine.calculate_significance(sample_size, correlation),
                    description=self._correlation_description(first.text, second.text, correlation),
                    supporting_data=CorrelationSupport(
                        sample_size=sample_size,
                        correlation_coefficient=correlation
                    )
                ))

        return _top_by_confidence(patterns, MAX_CORRELATION_PATTERNS)

    def analyze_trends(
        self,
        responses: List[ResponseRecord],
        questions: List[QuestionDefinition]
    ) -> List[TemporalPattern]:
        """
        Find numeric questions whose answers drift over time.

        Args:
            responses: Survey responses
            questions: Survey questions in definition order

        Returns:
            Up to three temporal patterns, most confident first
        """
        if len(responses) < MIN_TREND_SAMPLES:
            return []

        ordered = sorted(responses, key=lambda response: response.submitted_at)
        patterns = []

        for question in questions:
            if not question.is_numeric:
                continue

            series = []
            for response in ordered:
                value = response.numeric_answer(question.id)
                if value is not None:
                    series.append(TimeSeriesPoint(response.submitted_at, value))

            if len(series) < MIN_TREND_SAMPLES:
                continue

            analysis = statistics_engine.analyze_time_series(series)
            if analysis.confidence <= TREND_CONFIDENCE_THRESHOLD:
                continue

            patterns.append(TemporalPattern(
                question=question.text,
                trend=analysis.trend,
                confidence=analysis.confidence,
                statistical_significance=analysis.confidence,
                description=self._trend_description(question.text, analysis.trend),
                supporting_data=TemporalSupport(
                    sample_size=len(series),
                    slope=analysis.slope,
                    trend=analysis.trend
                )
            ))

        return _top_by_confidence(patterns, MAX_TEMPORAL_PATTERNS)

    def analyze_demographics(
        self,
        responses: List[ResponseRecord],
        questions: List[QuestionDefinition]
    ) -> List[DemographicPattern]:
        """
        Find numeric questions whose averages diverge across demographic groups.

        Args:
            responses: Survey responses
            questions: Survey questions in definition order

        Returns:
            Up to three demographic patterns, most confident first
        """
        if len(responses) < MIN_DEMOGRAPHIC_RESPONSES:
            return []

        tagged = [response for response in responses if response.demographics]
        if len(tagged) < MIN_DEMOGRAPHIC_TAGGED:
            return []

        # Preserve first-seen order so output is stable for a given input
        fields = list(dict.fromkeys(field for response in tagged for field in response.demographics))
        patterns = []

        for field in fields:
            for question in questions:
                if not question.is_numeric:
                    continue

                grouped = self._group_by_demographic(tagged, field, question.id)
                if len(grouped) < 2:
                    continue

                group_means = {group: statistics_engine.mean(values) for group, values in grouped.items()}
                overall_mean = statistics_engine.mean(list(group_means.values()))
                if overall_mean <= 0:
                    continue

                spread = max(group_means.values()) - min(group_means.values())
                ratio = spread / overall_mean
                if ratio <= DEMOGRAPHIC_DIVERGENCE_THRESHOLD:
                    continue

                total_samples = sum(len(values) for values in grouped.values())
                confidence = min(100.0, ratio * 100 * math.log10(total_samples))
                patterns.append(DemographicPattern(
                    demographic_field=field,
                    question=question.text,
                    confidence=confidence,
                    statistical_significance=confidence,
                    description=self._demographic_description(field, question.text, group_means),
                    supporting_data=DemographicSupport(
                        groups=[
                            DemographicGroup(group=group, mean=group_means[group], count=len(values))
                            for group, values in grouped.items()
                        ],
                        total_samples=total_samples,
                        divergence_ratio=ratio
                    )
                ))

        return _top_by_confidence(patterns, MAX_DEMOGRAPHIC_PATTERNS)

    def detect_anomalies(
        self,
        responses: List[ResponseRecord],
        questions: List[QuestionDefinition]
    ) -> List[AnomalyPattern]:
        """
        Find numeric questions with a small share of outlying answers.

        Args:
            responses: Survey responses
            questions: Survey questions in definition order

        Returns:
            Up to three anomaly patterns, most confident first
        """
        if len(responses) < MIN_ANOMALY_SAMPLES:
            return []

        patterns = []
        for question in questions:
            if not question.is_numeric:
                continue

            values = [
                value for value in (response.numeric_answer(question.id) for response in responses)
                if value is not None
            ]
            if len(values) < MIN_ANOMALY_SAMPLES:
                continue

            outliers = statistics_engine.detect_outliers(values)
            share = len(outliers) / len(values)
            if not outliers or share >= MAX_OUTLIER_SHARE:
                continue

            confidence = min(100.0, share * 500)
            patterns.append(AnomalyPattern(
                question=question.text,
                anomaly_count=len(outliers),
                confidence=confidence,
                statistical_significance=confidence,
                description=self._anomaly_description(question.text, len(outliers), len(values)),
                supporting_data=AnomalySupport(
                    outliers=outliers[:MAX_REPORTED_OUTLIERS],
                    total_responses=len(values),
                    mean=statistics_engine.mean(values),
                    std_dev=statistics_engine.standard_deviation(values)
                )
            ))

        return _top_by_confidence(patterns, MAX_ANOMALY_PATTERNS)

    def detect_patterns(
        self,
        responses: List[ResponseRecord],
        questions: List[QuestionDefinition]
    ) -> List[Pattern]:
        """Run every detector and merge the results in category order."""
        patterns: List[Pattern] = []
        patterns.extend(self.find_correlations(responses, questions))
        patterns.extend(self.analyze_trends(responses, questions))
        patterns.extend(self.analyze_demographics(responses, questions))
        patterns.extend(self.detect_anomalies(responses, questions))
        logger.debug(f"Detected {len(patterns)} patterns across {len(responses)} responses")
        return patterns

    @staticmethod
    def _paired_values(
        responses: List[ResponseRecord],
        first_id: str,
        second_id: str
    ) -> Tuple[List[float], List[float]]:
        data1, data2 = [], []
        for response in responses:
            value1 = response.numeric_answer(first_id)
            value2 = response.numeric_answer(second_id)
            if value1 is not None and value2 is not None:
                data1.append(value1)
                data2.append(value2)
        return data1, data2

    @staticmethod
    def _group_by_demographic(
        responses: List[ResponseRecord],
        field: str,
        question_id: str
    ) -> Dict[str, List[float]]:
        grouped: Dict[str, List[float]] = {}
        for response in responses:
            group = response.demographics.get(field)
            if group is None or group == "":
                continue
            value = response.numeric_answer(question_id)
            if value is None:
                continue
            grouped.setdefault(str(group), []).append(value)
        return grouped

    @staticmethod
    def _correlation_description(question1: str, question2: str, correlation: float) -> str:
        strength = abs(correlation)
        if strength > 0.7:
            label = "strong"
        elif strength > 0.5:
            label = "moderate"
        else:
            label = "weak"
        direction = "positive" if correlation > 0 else "negative"
        movement = "increase" if correlation > 0 else "decrease"
        return (
            f'Found a {label} {direction} correlation between "{question1}" and "{question2}". '
            f"Responses to these questions tend to {movement} together."
        )

    @staticmethod
    def _trend_description(question: str, trend: str) -> str:
        if trend == "increasing":
            return f'Responses to "{question}" show an increasing trend over time, suggesting growing values or sentiment.'
        if trend == "decreasing":
            return f'Responses to "{question}" show a decreasing trend over time, indicating declining values or sentiment.'
        return f'Responses to "{question}" remain relatively stable over time with no significant trend.'

    @staticmethod
    def _demographic_description(field: str, question: str, group_means: Dict[str, float]) -> str:
        # Ties resolve to the first-seen group
        top_group: Optional[str] = None
        for group, value in group_means.items():
            if top_group is None or value > group_means[top_group]:
                top_group = group
        return (
            f'Significant differences found in "{question}" across {field} groups. '
            f"{top_group} shows the highest average response."
        )

    @staticmethod
    def _anomaly_description(question: str, anomaly_count: int, total: int) -> str:
        percentage = anomaly_count / total * 100
        return (
            f'Detected {anomaly_count} outlier responses ({percentage:.1f}%) for "{question}" '
            "that significantly deviate from the typical pattern."
        )


# Create a singleton instance
pattern_detector = PatternDetector()
