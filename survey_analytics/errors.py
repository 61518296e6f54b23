"""
Exceptions raised by the analytics engine.

Insufficient data is never an error: it resolves to empty results. These
exceptions cover malformed input and data-source failures only.
"""


class AnalyticsError(Exception):
    """Base class for analytics failures."""


class InvalidParameterError(AnalyticsError, ValueError):
    """A caller-supplied parameter is outside its accepted range."""


class SurveyNotFoundError(AnalyticsError, LookupError):
    """The requested survey does not exist in the data source."""

    def __init__(self, survey_id: str):
        super().__init__(f"Survey {survey_id} not found")
        self.survey_id = survey_id


class DataSourceError(AnalyticsError):
    """The persistence collaborator failed to return data."""


class InsufficientSurveysError(InvalidParameterError):
    """A comparison was requested with fewer than two surveys."""
