"""
Data models for survey definitions, response records and analytics outputs.
"""

import math
from datetime import datetime, timezone
from typing import Annotated, Dict, List, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QuestionType:
    """Question type identifiers."""

    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    DROPDOWN = "dropdown"
    RATING = "rating"
    DATE = "date"
    EMAIL = "email"
    NUMERIC = "numeric"


QuestionTypeName = Literal[
    "short_text", "long_text", "single_choice", "multi_choice",
    "dropdown", "rating", "date", "email", "numeric"
]
NUMERIC_QUESTION_TYPES = frozenset({QuestionType.RATING, QuestionType.NUMERIC})

DeviceType = Literal["mobile", "desktop", "tablet"]
QualityStatus = Literal["quality", "low_quality", "manually_overridden"]
TrendDirection = Literal["increasing", "decreasing", "stable"]
IssueType = Literal["low_completion", "no_responses", "high_dropoff", "slow_response"]
Severity = Literal["high", "medium", "low"]


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to UTC. Naive timestamps are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clamp_score(value: float) -> float:
    """Clamp a confidence-like score to [0, 100]."""
    if value is None or math.isnan(value):
        return 0.0
    return float(min(100.0, max(0.0, value)))


def _coerce_identifier(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


# Survey definition

class QuestionDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = "Untitled Question"
    type: QuestionTypeName = QuestionType.SHORT_TEXT
    required: bool = False
    options: List[str] = Field(default_factory=list)
    rating_min: Optional[float] = None
    rating_max: Optional[float] = None

    coerce_id = field_validator("id", mode="before")(_coerce_identifier)

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_QUESTION_TYPES


class SurveyDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = "Untitled Survey"
    owner_id: Optional[str] = None
    is_public: bool = False
    questions: List[QuestionDefinition] = Field(default_factory=list)

    coerce_ids = field_validator("id", "owner_id", mode="before")(_coerce_identifier)

    @property
    def numeric_questions(self) -> List[QuestionDefinition]:
        return [q for q in self.questions if q.is_numeric]


# Response records

class QuestionTiming(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    duration: float = 0.0


class DeviceInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: DeviceType = "desktop"
    browser: str = "Unknown"
    os: str = "Unknown"


class ResponseRecord(BaseModel):
    """One respondent's submission to one survey."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    survey_id: str
    respondent_id: Optional[str] = None
    respondent_email: Optional[str] = None
    answers: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: datetime
    started_at: Optional[datetime] = None
    completion_time: Optional[float] = None
    device_info: Optional[DeviceInfo] = None
    demographics: Dict[str, Any] = Field(default_factory=dict)
    question_timings: Dict[str, QuestionTiming] = Field(default_factory=dict)
    quality_status: Optional[QualityStatus] = None

    coerce_ids = field_validator("id", "survey_id", "respondent_id", mode="before")(_coerce_identifier)

    @field_validator("submitted_at", "started_at")
    @classmethod
    def normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)

    def has_answer(self, question_id: str) -> bool:
        """Whether the response holds a non-empty answer for a question."""
        value = self.answers.get(question_id)
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, (list, tuple, dict, set)):
            return len(value) > 0
        return True

    def numeric_answer(self, question_id: str) -> Optional[float]:
        """Get the answer for a question as a finite number, if it is one."""
        value = self.answers.get(question_id)
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                return None
        else:
            return None
        return number if math.isfinite(number) else None


# Patterns

class PatternBase(BaseModel):
    description: str
    confidence: float
    statistical_significance: float

    @field_validator("confidence", "statistical_significance")
    @classmethod
    def clamp_scores(cls, value: float) -> float:
        return clamp_score(value)


class CorrelationSupport(BaseModel):
    sample_size: int
    correlation_coefficient: float


class CorrelationPattern(PatternBase):
    type: Literal["correlation"] = "correlation"
    question1: str
    question2: str
    correlation: float
    supporting_data: CorrelationSupport


class TemporalSupport(BaseModel):
    sample_size: int
    slope: float
    trend: TrendDirection


class TemporalPattern(PatternBase):
    type: Literal["temporal"] = "temporal"
    question: str
    trend: TrendDirection
    supporting_data: TemporalSupport


class DemographicGroup(BaseModel):
    group: str
    mean: float
    count: int


class DemographicSupport(BaseModel):
    groups: List[DemographicGroup]
    total_samples: int
    divergence_ratio: float


class DemographicPattern(PatternBase):
    type: Literal["demographic"] = "demographic"
    demographic_field: str
    question: str
    supporting_data: DemographicSupport


class AnomalySupport(BaseModel):
    outliers: List[float]
    total_responses: int
    mean: float
    std_dev: float


class AnomalyPattern(PatternBase):
    type: Literal["anomaly"] = "anomaly"
    question: str
    anomaly_count: int
    supporting_data: AnomalySupport


Pattern = Annotated[
    Union[CorrelationPattern, TemporalPattern, DemographicPattern, AnomalyPattern],
    Field(discriminator="type"),
]


# Forecasting

class DailyCount(BaseModel):
    date: datetime
    count: int


class ForecastPoint(BaseModel):
    date: datetime
    count: int
    confidence_lower: int
    confidence_upper: int
    is_forecast: bool = True


# Attention

class AttentionIssue(BaseModel):
    type: IssueType
    severity: Severity
    message: str


class SurveyAttentionItem(BaseModel):
    survey_id: str
    title: str
    attention_score: int
    issues: List[AttentionIssue]
    recommendations: List[str]


# Aggregations

class TimeBucket(BaseModel):
    label: str
    date: datetime
    count: int


class HeatmapCell(BaseModel):
    x: int
    y: int
    value: int
    label: str


class FunnelStage(BaseModel):
    question_id: str
    question_text: str
    completion_count: int
    completion_rate: float
    dropoff_rate: float


class QuestionMetrics(BaseModel):
    question_id: str
    question_text: str
    question_type: str
    completion_rate: float
    avg_time_spent: float
    dropoff_count: int
    response_count: int


class DeviceBreakdown(BaseModel):
    devices: Dict[str, int]
    browsers: Dict[str, int]


class SurveyComparison(BaseModel):
    survey_id: str
    title: str
    response_count: int
    completion_rate: float
    question_count: int


class AnalyticsFilters(BaseModel):
    """Caller-supplied filters applied before aggregation."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    device_type: Optional[DeviceType] = None
    browser: Optional[str] = None
    demographics: Dict[str, Any] = Field(default_factory=dict)
    include_quality: bool = True
    include_low_quality: bool = False

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)

    def signature(self) -> str:
        """Stable string describing the filters, for cache keys."""
        parts = [
            f"from={self.start_date.isoformat() if self.start_date else ''}",
            f"to={self.end_date.isoformat() if self.end_date else ''}",
            f"device={self.device_type or ''}",
            f"browser={self.browser or ''}",
            f"quality={int(self.include_quality)}{int(self.include_low_quality)}",
        ]
        for field in sorted(self.demographics):
            parts.append(f"{field}={self.demographics[field]}")
        return "&".join(parts)
