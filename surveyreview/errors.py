"""Exception types raised by the review engine."""

from typing import Optional


class SurveyReviewError(Exception):
    """Base class for review engine errors."""


class DataSourceError(SurveyReviewError):
    """An external data call (bulk fetch or approval mutation) failed.

    ``message`` is safe to show to a reviewer.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ResponseNotFoundError(SurveyReviewError, KeyError):
    """No response with the given id exists in the snapshot."""

    def __init__(self, response_id: str):
        super().__init__(f"Response not found: {response_id}")
        self.response_id = response_id

    def __str__(self) -> str:
        return self.args[0]


class SurveyNotFoundError(SurveyReviewError, KeyError):
    """No survey with the given id exists in the snapshot."""

    def __init__(self, survey_id: str):
        super().__init__(f"Survey not found: {survey_id}")
        self.survey_id = survey_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidApprovalStatusError(SurveyReviewError, ValueError):
    """Approval status is not one of the six allowed values."""


class ApprovalInProgressError(SurveyReviewError):
    """An approval mutation for this response is already in flight."""

    def __init__(self, response_id: str):
        super().__init__(f"Approval update already in progress for response {response_id}")
        self.response_id = response_id


class InvalidTransitionError(SurveyReviewError):
    """Navigation action is not valid from the current drill-down level."""


def describe_error(exc: BaseException, default: str) -> str:
    """Pick the human-readable message for a failed external call."""
    message = getattr(exc, "message", None)
    if message:
        return str(message)
    text = str(exc).strip()
    return text or default
