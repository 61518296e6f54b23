"""
Read-only access to survey definitions and response records.

The analytics services only ever read from a repository. Production
deployments load survey and response snapshots through the API fetcher and
wrap them in an in-memory repository for the duration of a request.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol

from ..errors import SurveyNotFoundError
from ..models import ResponseRecord, SurveyDefinition, to_utc

logger = logging.getLogger(__name__)


class SurveyRepository(Protocol):
    """Persistence collaborator consumed by the analytics services."""

    def get_survey(self, survey_id: str) -> SurveyDefinition:
        ...

    def get_responses(
        self,
        survey_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[ResponseRecord]:
        ...

    def list_surveys(self, owner_id: str) -> List[SurveyDefinition]:
        ...


class InMemorySurveyRepository:
    """Repository over a fixed snapshot of surveys and responses."""

    def __init__(
        self,
        surveys: Iterable[SurveyDefinition] = (),
        responses: Iterable[ResponseRecord] = ()
    ):
        self._surveys: Dict[str, SurveyDefinition] = {}
        self._responses: Dict[str, List[ResponseRecord]] = {}

        for survey in surveys:
            self.add_survey(survey)
        for response in responses:
            self.add_response(response)

    def add_survey(self, survey: SurveyDefinition) -> None:
        self._surveys[survey.id] = survey
        self._responses.setdefault(survey.id, [])

    def add_response(self, response: ResponseRecord) -> None:
        self._responses.setdefault(response.survey_id, []).append(response)

    def get_survey(self, survey_id: str) -> SurveyDefinition:
        try:
            return self._surveys[survey_id]
        except KeyError:
            raise SurveyNotFoundError(survey_id) from None

    def get_responses(
        self,
        survey_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[ResponseRecord]:
        """
        Get responses for a survey, oldest first.

        Args:
            survey_id: Survey ID
            start_date: Optional inclusive lower bound on submission time
            end_date: Optional inclusive upper bound on submission time

        Returns:
            Matching response records
        """
        start_date = to_utc(start_date)
        end_date = to_utc(end_date)

        responses = [
            response for response in self._responses.get(survey_id, [])
            if (start_date is None or response.submitted_at >= start_date)
            and (end_date is None or response.submitted_at <= end_date)
        ]
        return sorted(responses, key=lambda response: response.submitted_at)

    def list_surveys(self, owner_id: str) -> List[SurveyDefinition]:
        return [survey for survey in self._surveys.values() if survey.owner_id == owner_id]
