"""
In-memory snapshot of every survey and its responses.

The store is the single shared mutable resource of a review session. It is
replaced wholesale by ``load()`` and otherwise only touched by
``apply_approval_update()``, which changes the approval status of one response
and nothing else. ``version`` increases on every change so views can tell
when to recompute.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional, Tuple

from surveyreview.core.schema import ApprovalStatus, Response, Survey, parse_surveys
from surveyreview.errors import ResponseNotFoundError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Owned, versioned survey/response tree."""

    def __init__(self):
        self._surveys: List[Survey] = []
        self.version = 0
        self.loaded_at: Optional[str] = None

    @property
    def loaded(self) -> bool:
        return self.loaded_at is not None

    def load(self, payload: Any) -> int:
        """Replace the snapshot with a bulk-fetch payload.

        Args:
            payload: ``{"surveys": [...]}`` wire dict, or a list of Survey objects

        Returns:
            Number of surveys loaded
        """
        if isinstance(payload, list) and all(isinstance(s, Survey) for s in payload):
            surveys = list(payload)
        else:
            surveys = parse_surveys(payload)

        self._surveys = surveys
        self.version += 1
        self.loaded_at = datetime.now(timezone.utc).isoformat()

        response_count = sum(len(s.responses) for s in surveys)
        logger.info(
            f"Loaded snapshot v{self.version}: {len(surveys)} surveys, {response_count} responses"
        )
        return len(surveys)

    def snapshot(self) -> Tuple[Survey, ...]:
        """Current surveys in fetch order."""
        return tuple(self._surveys)

    def get_survey(self, survey_id: str) -> Optional[Survey]:
        survey_id = str(survey_id)
        for survey in self._surveys:
            if survey.survey_id == survey_id:
                return survey
        return None

    def iter_responses(self) -> Iterator[Response]:
        for survey in self._surveys:
            yield from survey.responses

    def find_response(self, response_id: str) -> Optional[Tuple[Survey, Response]]:
        """Locate a response and its owning survey by scanning every survey."""
        response_id = str(response_id)
        for survey in self._surveys:
            response = survey.get_response(response_id)
            if response is not None:
                return survey, response
        return None

    def get_response(self, response_id: str) -> Optional[Response]:
        found = self.find_response(response_id)
        return found[1] if found else None

    def apply_approval_update(self, response_id: str, status: ApprovalStatus) -> Response:
        """Set the approval status of one response in place.

        Raises:
            ResponseNotFoundError: No response with this id in the snapshot
            InvalidApprovalStatusError: ``status`` is not an allowed value
        """
        status = ApprovalStatus.parse(status)
        found = self.find_response(response_id)
        if found is None:
            raise ResponseNotFoundError(str(response_id))

        survey, response = found
        old_status = response.approval_status
        response.set_approval_status(status)
        self.version += 1

        logger.info(
            f"Applied approval update: {response.response_id} in survey {survey.survey_id} "
            f"({old_status.value} -> {status.value})"
        )
        return response

    def to_dict(self) -> dict:
        return {"surveys": [s.to_dict() for s in self._surveys]}
