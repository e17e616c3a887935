"""
Protocol interfaces for the external survey data service.

The review engine talks to the outside world through exactly two calls. Any
object implementing them can back a review session: the HTTP client in
``surveyreview.api_client``, the file-backed ``StaticSurveySource``, or a test
double.

### SurveyDataSource Protocol

Required methods (both coroutines):
- `fetch_all_survey_responses() -> {"surveys": [...]}` - full snapshot, no paging
- `set_approval_status(response_id, approval_status) -> {"message", "response"}`

Implementation notes:
- Failures should raise ``DataSourceError`` with a message fit for a reviewer
- ``approval_status`` is always one of the six ``ApprovalStatus`` values
"""

from typing import Any, Dict, Protocol, runtime_checkable


@runtime_checkable
class SurveyDataSource(Protocol):
    """Protocol for the survey/response backend."""

    async def fetch_all_survey_responses(self) -> Dict[str, Any]:
        """Fetch every survey with all of its responses."""
        ...

    async def set_approval_status(self, response_id: str, approval_status: str) -> Dict[str, Any]:
        """Record a reviewer verdict for one response.

        Returns:
            {"message": str, "response": dict}
        """
        ...


__all__ = ["SurveyDataSource"]
