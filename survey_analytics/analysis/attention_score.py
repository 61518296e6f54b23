"""
Attention score service for surfacing surveys that need their owner's attention.
This module applies a small set of rules over a survey's responses, weights the
detected issues by severity and maps them to recommended actions.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from ..config import settings
from ..errors import DataSourceError
from ..models import AttentionIssue, ResponseRecord, SurveyAttentionItem, SurveyDefinition, to_utc
from ..services.repository import SurveyRepository

logger = logging.getLogger(__name__)

SEVERITY_WEIGHTS = {"high": 40, "medium": 25, "low": 10}
MAX_SCORE = 100

LOW_COMPLETION_HIGH = 50
LOW_COMPLETION_MEDIUM = 70
SLOW_RESPONSE_RECENT_MAX = 5
SLOW_RESPONSE_TOTAL_MIN = 10
DROPOFF_MIN_RESPONSES = 5
DROPOFF_THRESHOLD = 30

RECOMMENDATIONS: Dict[str, List[str]] = {
    "low_completion": [
        "Consider shortening the survey or making questions optional",
        "Review question clarity and simplify complex questions",
    ],
    "no_responses": [
        "Increase survey promotion and distribution",
        "Check if the survey link is still accessible",
        "Consider offering incentives for participation",
    ],
    "high_dropoff": [
        "Review the question where users are dropping off",
        "Consider reordering questions to put easier ones first",
        "Make the problematic question optional or simplify it",
    ],
    "slow_response": [
        "Send reminder emails to potential respondents",
        "Refresh your distribution channels",
    ],
}


class AttentionScoreService:
    """Service for scoring how urgently a survey needs attention."""

    def __init__(self, repository: Optional[SurveyRepository] = None):
        """
        Initialize the attention score service.

        Args:
            repository: Source of surveys and responses for owner-wide scans
        """
        self.repository = repository

    def identify_issues(
        self,
        survey: SurveyDefinition,
        responses: Sequence[ResponseRecord],
        now: datetime
    ) -> List[AttentionIssue]:
        """
        Detect issues with a survey.

        Args:
            survey: Survey definition
            responses: Every response the survey has received
            now: Reference time for the recency window

        Returns:
            Detected issues in rule order
        """
        issues: List[AttentionIssue] = []
        total = len(responses)
        question_count = len(survey.questions)

        if total > 0 and question_count > 0:
            answered_slots = sum(
                1 for response in responses for question in survey.questions
                if response.has_answer(question.id)
            )
            completion_rate = answered_slots / (question_count * total) * 100

            if completion_rate < LOW_COMPLETION_HIGH:
                issues.append(AttentionIssue(
                    type="low_completion",
                    severity="high",
                    message=f"Survey has a low completion rate of {completion_rate:.1f}%"
                ))
            elif completion_rate < LOW_COMPLETION_MEDIUM:
                issues.append(AttentionIssue(
                    type="low_completion",
                    severity="medium",
                    message=f"Survey completion rate is {completion_rate:.1f}%, which could be improved"
                ))

        window_start = to_utc(now) - timedelta(days=settings.ATTENTION_RECENT_DAYS)
        recent = sum(1 for response in responses if response.submitted_at >= window_start)

        if total > 0 and recent == 0:
            issues.append(AttentionIssue(
                type="no_responses",
                severity="high",
                message=f"No responses received in the last {settings.ATTENTION_RECENT_DAYS} days"
            ))
        elif recent < SLOW_RESPONSE_RECENT_MAX and total > SLOW_RESPONSE_TOTAL_MIN:
            issues.append(AttentionIssue(
                type="slow_response",
                severity="medium",
                message="Response rate has slowed down significantly"
            ))

        dropoff = self._first_major_dropoff(survey, responses)
        if dropoff is not None:
            issues.append(dropoff)

        return issues

    @staticmethod
    def calculate_attention_score(issues: Sequence[AttentionIssue]) -> int:
        """Sum severity weights of the issues, capped at 100."""
        return min(MAX_SCORE, sum(SEVERITY_WEIGHTS[issue.severity] for issue in issues))

    @staticmethod
    def generate_recommendations(issues: Sequence[AttentionIssue]) -> List[str]:
        """Recommended actions for the issues, de-duplicated in first-seen order."""
        recommendations = [text for issue in issues for text in RECOMMENDATIONS[issue.type]]
        return list(dict.fromkeys(recommendations))

    def evaluate_survey(
        self,
        survey: SurveyDefinition,
        responses: Sequence[ResponseRecord],
        now: datetime
    ) -> SurveyAttentionItem:
        """Score a single survey and attach its issues and recommendations."""
        issues = self.identify_issues(survey, responses, now)
        return SurveyAttentionItem(
            survey_id=survey.id,
            title=survey.title,
            attention_score=self.calculate_attention_score(issues),
            issues=issues,
            recommendations=self.generate_recommendations(issues)
        )

    def get_surveys_needing_attention(
        self,
        owner_id: str,
        threshold: int = settings.ATTENTION_DEFAULT_THRESHOLD,
        *,
        now: datetime
    ) -> List[SurveyAttentionItem]:
        """
        Score every survey owned by a user.

        Args:
            owner_id: Owner whose surveys are scanned
            threshold: Minimum score to include a survey
            now: Reference time for the recency window

        Returns:
            Surveys scoring at or above the threshold, highest score first
        """
        if self.repository is None:
            raise DataSourceError("AttentionScoreService has no repository configured")

        surveys = self.repository.list_surveys(owner_id)
        logger.info(f"Scanning {len(surveys)} surveys for owner {owner_id}")

        items = []
        for survey in surveys:
            item = self.evaluate_survey(survey, self.repository.get_responses(survey.id), now)
            if item.attention_score >= threshold:
                items.append(item)

        return sorted(items, key=lambda item: item.attention_score, reverse=True)

    @staticmethod
    def _first_major_dropoff(
        survey: SurveyDefinition,
        responses: Sequence[ResponseRecord]
    ) -> Optional[AttentionIssue]:
        if len(responses) <= DROPOFF_MIN_RESPONSES or len(survey.questions) < 2:
            return None

        counts = [
            sum(1 for response in responses if response.has_answer(question.id))
            for question in survey.questions
        ]

        for index in range(len(counts) - 1):
            current, following = counts[index], counts[index + 1]
            if current == 0:
                continue

            dropoff_rate = (current - following) / current * 100
            if dropoff_rate > DROPOFF_THRESHOLD:
                return AttentionIssue(
                    type="high_dropoff",
                    severity="high",
                    message=f"High drop-off rate ({dropoff_rate:.1f}%) at question {index + 2}"
                )

        return None


# Create a singleton instance
attention_score_service = AttentionScoreService()
