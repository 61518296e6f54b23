"""
Unit tests for the pattern detector.
"""

import pytest
from datetime import timedelta

import numpy as np

from survey_analytics.analysis.pattern_detector import PatternDetector
from survey_analytics.models import QuestionDefinition


@pytest.fixture
def detector():
    return PatternDetector()


@pytest.fixture
def rating_questions():
    return [
        QuestionDefinition(id="q1", text="Satisfaction", type="rating"),
        QuestionDefinition(id="q2", text="Recommendation", type="rating"),
    ]


def _responses(make_response, answers_list, demographics_list=None):
    responses = []
    for i, answers in enumerate(answers_list):
        demographics = demographics_list[i] if demographics_list else {}
        responses.append(make_response(
            answers=answers,
            age=timedelta(hours=len(answers_list) - i),
            demographics=demographics
        ))
    return responses


def test_identical_ratings_produce_one_perfect_correlation(detector, rating_questions, make_response):
    """Twelve responses answering both rating questions identically."""
    answers = [{"q1": i % 5 + 1, "q2": i % 5 + 1} for i in range(12)]
    responses = _responses(make_response, answers)

    patterns = detector.find_correlations(responses, rating_questions)

    assert len(patterns) == 1
    pattern = patterns[0]
    assert pattern.type == "correlation"
    assert pattern.correlation == pytest.approx(1.0)
    assert pattern.confidence == 100.0
    assert pattern.statistical_significance == pytest.approx(100.0)
    assert pattern.supporting_data.sample_size == 12
    assert "strong positive correlation" in pattern.description

    all_patterns = detector.detect_patterns(responses, rating_questions)
    assert [p.type for p in all_patterns].count("correlation") == 1


@pytest.mark.parametrize("count,expected", [(9, 0), (10, 1)])
def test_correlation_sample_gate(detector, rating_questions, make_response, count, expected):
    answers = [{"q1": i, "q2": 2 * i} for i in range(count)]
    responses = _responses(make_response, answers)
    assert len(detector.find_correlations(responses, rating_questions)) == expected


def test_weak_correlation_is_ignored(detector, rating_questions, make_response):
    answers = [{"q1": i + 1, "q2": 1 if i % 2 == 0 else 2} for i in range(10)]
    responses = _responses(make_response, answers)
    assert detector.find_correlations(responses, rating_questions) == []


def test_negative_correlation_description(detector, rating_questions, make_response):
    answers = [{"q1": i, "q2": 20 - i} for i in range(15)]
    patterns = detector.find_correlations(_responses(make_response, answers), rating_questions)

    assert len(patterns) == 1
    assert patterns[0].correlation == pytest.approx(-1.0)
    assert "tend to decrease together" in patterns[0].description


def test_text_questions_are_ignored(detector, make_response):
    questions = [
        QuestionDefinition(id="q1", text="Name", type="short_text"),
        QuestionDefinition(id="q2", text="Comment", type="long_text"),
    ]
    answers = [{"q1": str(i), "q2": str(i)} for i in range(20)]
    assert detector.detect_patterns(_responses(make_response, answers), questions) == []


@pytest.mark.parametrize("count,expected", [(9, 0), (10, 1)])
def test_trend_sample_gate(detector, make_response, count, expected):
    questions = [QuestionDefinition(id="q1", text="Satisfaction", type="rating")]
    answers = [{"q1": i + 1} for i in range(count)]
    patterns = detector.analyze_trends(_responses(make_response, answers), questions)

    assert len(patterns) == expected
    if expected:
        assert patterns[0].trend == "increasing"
        assert "increasing trend" in patterns[0].description


def _demographic_split(make_response, count):
    answers = [{"q1": 2 if i % 2 == 0 else 4} for i in range(count)]
    demographics = [{"age_group": "young" if i % 2 == 0 else "old"} for i in range(count)]
    return _responses(make_response, answers, demographics)


@pytest.mark.parametrize("count,expected", [(19, 0), (20, 1)])
def test_demographic_response_gate(detector, make_response, count, expected):
    questions = [QuestionDefinition(id="q1", text="Satisfaction", type="rating")]
    patterns = detector.analyze_demographics(_demographic_split(make_response, count), questions)
    assert len(patterns) == expected


def test_demographic_divergence(detector, make_response):
    questions = [QuestionDefinition(id="q1", text="Satisfaction", type="rating")]
    patterns = detector.analyze_demographics(_demographic_split(make_response, 20), questions)

    pattern = patterns[0]
    assert pattern.demographic_field == "age_group"
    assert pattern.supporting_data.divergence_ratio == pytest.approx(2 / 3)
    assert pattern.supporting_data.total_samples == 20
    assert [group.group for group in pattern.supporting_data.groups] == ["young", "old"]
    assert "old shows the highest average response" in pattern.description


def test_demographics_need_enough_tagged_responses(detector, make_response):
    questions = [QuestionDefinition(id="q1", text="Satisfaction", type="rating")]
    responses = _demographic_split(make_response, 9) + _responses(
        make_response, [{"q1": 3} for _ in range(15)]
    )
    assert detector.analyze_demographics(responses, questions) == []


def test_small_divergence_is_ignored(detector, make_response):
    questions = [QuestionDefinition(id="q1", text="Satisfaction", type="rating")]
    answers = [{"q1": 10 if i % 2 == 0 else 11} for i in range(20)]
    demographics = [{"region": "north" if i % 2 == 0 else "south"} for i in range(20)]
    responses = _responses(make_response, answers, demographics)
    assert detector.analyze_demographics(responses, questions) == []


@pytest.mark.parametrize("count,expected", [(19, 0), (20, 1)])
def test_anomaly_sample_gate(detector, make_response, count, expected):
    questions = [QuestionDefinition(id="q1", text="Satisfaction", type="rating")]
    answers = [{"q1": 5} for _ in range(count - 1)] + [{"q1": 100}]
    patterns = detector.detect_anomalies(_responses(make_response, answers), questions)

    assert len(patterns) == expected
    if expected:
        assert patterns[0].anomaly_count == 1
        assert patterns[0].supporting_data.outliers == [100.0]
        assert patterns[0].confidence == pytest.approx(25.0)


def test_anomalies_ignored_when_outliers_are_common(detector, make_response):
    questions = [QuestionDefinition(id="q1", text="Satisfaction", type="rating")]
    answers = [{"q1": 5} for _ in range(18)] + [{"q1": 100}, {"q1": 120}]
    assert detector.detect_anomalies(_responses(make_response, answers), questions) == []


def _random_responses(make_response, seed, count=60):
    rng = np.random.default_rng(seed)
    answers = []
    demographics = []
    for _ in range(count):
        base = int(rng.integers(1, 6))
        answers.append({
            "q1": base,
            "q2": int(np.clip(base + rng.integers(-1, 2), 1, 5)),
            "q3": float(rng.normal(50, 10)),
            "q4": int(rng.integers(1, 11)),
        })
        demographics.append({"segment": str(rng.choice(["a", "b", "c"]))})
    return _responses(make_response, answers, demographics)


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_pattern_scores_are_bounded(detector, make_response, seed):
    questions = [
        QuestionDefinition(id=f"q{i}", text=f"Question {i}", type="rating" if i != 3 else "numeric")
        for i in range(1, 5)
    ]
    patterns = detector.detect_patterns(_random_responses(make_response, seed), questions)

    for pattern in patterns:
        assert 0.0 <= pattern.confidence <= 100.0
        assert 0.0 <= pattern.statistical_significance <= 100.0

    types = [pattern.type for pattern in patterns]
    assert types.count("correlation") <= 5
    assert types.count("temporal") <= 3
    assert types.count("demographic") <= 3
    assert types.count("anomaly") <= 3


def test_detection_is_deterministic(detector, make_response):
    questions = [
        QuestionDefinition(id=f"q{i}", text=f"Question {i}", type="rating")
        for i in range(1, 5)
    ]
    responses = _random_responses(make_response, 11)

    first = [pattern.model_dump() for pattern in detector.detect_patterns(responses, questions)]
    second = [pattern.model_dump() for pattern in detector.detect_patterns(responses, questions)]
    assert first == second
