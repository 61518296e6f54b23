"""
Unit tests for the attention score service.
"""

import pytest
from datetime import timedelta

from survey_analytics.analysis.attention_score import AttentionScoreService, RECOMMENDATIONS
from survey_analytics.errors import DataSourceError
from survey_analytics.models import AttentionIssue, QuestionDefinition, SurveyDefinition
from survey_analytics.services.repository import InMemorySurveyRepository


@pytest.fixture
def attention_service():
    return AttentionScoreService()


def _survey(question_count, survey_id="survey1", owner_id="owner1"):
    return SurveyDefinition(
        id=survey_id,
        title=f"Survey {survey_id}",
        owner_id=owner_id,
        questions=[
            QuestionDefinition(id=f"q{i}", text=f"Question {i}", type="rating")
            for i in range(question_count)
        ]
    )


def test_stale_survey_with_good_completion(attention_service, make_response, now):
    """Twenty responses, none in the last week, ninety percent completion."""
    survey = _survey(10)
    responses = []
    for i in range(20):
        answers = {f"q{q}": 3 for q in range(10) if q != i % 10}
        responses.append(make_response(answers=answers, age=timedelta(days=10 + i % 5)))

    item = attention_service.evaluate_survey(survey, responses, now)

    assert item.attention_score >= 40
    assert [issue.type for issue in item.issues] == ["no_responses"]
    assert item.issues[0].severity == "high"
    assert item.recommendations == RECOMMENDATIONS["no_responses"]


def test_survey_without_responses_has_no_issues(attention_service, now):
    item = attention_service.evaluate_survey(_survey(3), [], now)
    assert item.issues == []
    assert item.attention_score == 0
    assert item.recommendations == []


def test_low_completion_severity(attention_service, make_response, now):
    survey = _survey(3)

    low = [make_response(answers={"q0": 1}) for _ in range(3)]
    issues = attention_service.identify_issues(survey, low, now)
    assert issues[0].type == "low_completion"
    assert issues[0].severity == "high"
    assert "33.3%" in issues[0].message

    medium = [make_response(answers={"q0": 1, "q1": 2}) for _ in range(3)]
    issues = attention_service.identify_issues(survey, medium, now)
    assert issues[0].type == "low_completion"
    assert issues[0].severity == "medium"

    complete = [make_response(answers={"q0": 1, "q1": 2, "q2": 3}) for _ in range(3)]
    assert attention_service.identify_issues(survey, complete, now) == []


def test_low_completion_skipped_without_questions(attention_service, make_response, now):
    issues = attention_service.identify_issues(_survey(0), [make_response()], now)
    assert all(issue.type != "low_completion" for issue in issues)


def test_slow_response(attention_service, make_response, now):
    survey = _survey(1)
    responses = [make_response(answers={"q0": 1}, age=timedelta(days=20)) for _ in range(13)]
    responses += [make_response(answers={"q0": 1}, age=timedelta(days=2)) for _ in range(2)]

    item = attention_service.evaluate_survey(survey, responses, now)

    assert [issue.type for issue in item.issues] == ["slow_response"]
    assert item.attention_score == 25


def test_high_dropoff(attention_service, make_response, now):
    survey = _survey(3)
    responses = [
        make_response(answers={"q0": 1, "q1": 1, "q2": 1} if i < 3 else {"q0": 1, "q1": 1})
        for i in range(10)
    ]

    issues = attention_service.identify_issues(survey, responses, now)
    dropoff = [issue for issue in issues if issue.type == "high_dropoff"]

    assert len(dropoff) == 1
    assert dropoff[0].severity == "high"
    assert dropoff[0].message == "High drop-off rate (70.0%) at question 3"


def test_dropoff_needs_more_than_five_responses(attention_service, make_response, now):
    survey = _survey(2)
    responses = [make_response(answers={"q0": 1}) for _ in range(5)]

    issues = attention_service.identify_issues(survey, responses, now)

    assert all(issue.type != "high_dropoff" for issue in issues)


def test_score_is_capped(attention_service):
    issues = [
        AttentionIssue(type="low_completion", severity="high", message="a"),
        AttentionIssue(type="no_responses", severity="high", message="b"),
        AttentionIssue(type="high_dropoff", severity="high", message="c"),
    ]
    assert attention_service.calculate_attention_score(issues) == 100
    assert attention_service.calculate_attention_score(issues[:1]) == 40
    assert attention_service.calculate_attention_score(
        [AttentionIssue(type="slow_response", severity="low", message="d")]
    ) == 10


def test_recommendations_are_deduplicated(attention_service):
    issues = [
        AttentionIssue(type="high_dropoff", severity="high", message="a"),
        AttentionIssue(type="high_dropoff", severity="high", message="b"),
        AttentionIssue(type="slow_response", severity="medium", message="c"),
    ]

    recommendations = attention_service.generate_recommendations(issues)

    assert recommendations == RECOMMENDATIONS["high_dropoff"] + RECOMMENDATIONS["slow_response"]


def test_surveys_needing_attention(make_response, now):
    stale = _survey(1, "stale")
    healthy = _survey(1, "healthy")
    someone_else = _survey(1, "other", owner_id="owner2")
    dropping = _survey(2, "dropping")

    responses = [make_response(answers={"q0": 1}, age=timedelta(days=15), survey_id="stale") for _ in range(3)]
    responses += [make_response(answers={"q0": 1}, survey_id="healthy") for _ in range(3)]
    responses += [make_response(answers={"q0": 1}, age=timedelta(days=15), survey_id="other") for _ in range(3)]
    responses += [make_response(answers={"q0": 1}, age=timedelta(days=15), survey_id="dropping") for _ in range(8)]

    service = AttentionScoreService(InMemorySurveyRepository(
        surveys=[stale, healthy, someone_else, dropping],
        responses=responses
    ))

    items = service.get_surveys_needing_attention("owner1", 30, now=now)

    assert [item.survey_id for item in items] == ["dropping", "stale"]
    assert items[0].attention_score == 100
    assert items[1].attention_score == 40
    scores = [item.attention_score for item in items]
    assert scores == sorted(scores, reverse=True)


def test_scan_requires_repository(attention_service, now):
    with pytest.raises(DataSourceError):
        attention_service.get_surveys_needing_attention("owner1", now=now)
