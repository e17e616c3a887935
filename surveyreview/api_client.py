"""Survey backend client for the two calls the review engine depends on.

``GET /survey/public/responses/all`` returns every survey with its responses;
``PATCH /survey/public/responses/{id}/approval`` records a verdict. Both
failures surface as :class:`~surveyreview.errors.DataSourceError` carrying the
backend's ``message`` when it sends one.

The bulk fetch is retried with exponential backoff on transport errors and
5xx/429 replies. The approval call is issued exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from .config import Config
from .errors import DataSourceError

ALL_RESPONSES_PATH = "/survey/public/responses/all"
APPROVAL_PATH = "/survey/public/responses/{response_id}/approval"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_BACKOFF_FACTOR = 0.5

LOAD_FAILED_MESSAGE = "Failed to load survey responses."
UPDATE_FAILED_MESSAGE = "Failed to update response status."

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _error_message(exc: Exception, default: str) -> str:
    """Backend ``message`` field, else the exception text, else ``default``."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Survey API error: {exc.response.status_code}"
    text = str(exc).strip()
    return text or default


@dataclass
class SurveyApiClient:
    """Async client for the survey backend."""

    base_url: str
    token: Optional[str] = None
    timeout: float | None = DEFAULT_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    transport: Optional[httpx.AsyncBaseTransport] = None
    _logger: Optional[logging.Logger] = None

    def __post_init__(self):
        if self._logger is None:
            self._logger = logging.getLogger(__name__)
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_config(cls, config=Config) -> "SurveyApiClient":
        """Create a client from :class:`~surveyreview.config.Config` settings."""
        if not config.SURVEY_API_BASE_URL:
            raise ValueError("SURVEY_API_BASE_URL is not configured")
        return cls(
            base_url=config.SURVEY_API_BASE_URL,
            token=config.SURVEY_API_TOKEN,
            timeout=config.SURVEY_API_TIMEOUT,
            retry_attempts=config.SURVEY_API_RETRY_ATTEMPTS,
            backoff_factor=config.SURVEY_API_BACKOFF,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
        )

    @staticmethod
    def _json_object(response: httpx.Response, default: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            raise DataSourceError(default, status_code=response.status_code) from None
        if not isinstance(data, dict):
            raise DataSourceError(default, status_code=response.status_code)
        return data

    # ------------------------------------------------------------------
    # SurveyDataSource
    # ------------------------------------------------------------------
    async def fetch_all_survey_responses(self) -> Dict[str, Any]:
        """Fetch every survey with all responses, retrying transient failures.

        Raises:
            DataSourceError: All attempts failed or the reply was not a JSON object
        """
        last_error: Optional[Exception] = None

        async with self._client() as client:
            for attempt in range(self.retry_attempts):
                try:
                    response = await client.get(ALL_RESPONSES_PATH)
                    response.raise_for_status()
                    data = self._json_object(response, LOAD_FAILED_MESSAGE)
                    self._logger.debug(f"Survey API fetch succeeded (attempt {attempt + 1})")
                    return data
                except httpx.HTTPStatusError as e:
                    last_error = e
                    if e.response.status_code not in RETRYABLE_STATUS_CODES:
                        break
                    self._logger.warning(
                        f"Survey API returned {e.response.status_code} on attempt {attempt + 1}"
                    )
                except httpx.TransportError as e:
                    last_error = e
                    self._logger.warning(f"Survey API error on attempt {attempt + 1}: {e!r}")

                if attempt < self.retry_attempts - 1:
                    await asyncio.sleep(self.backoff_factor * (2**attempt))

        message = _error_message(last_error, LOAD_FAILED_MESSAGE) if last_error else LOAD_FAILED_MESSAGE
        status_code = (
            last_error.response.status_code
            if isinstance(last_error, httpx.HTTPStatusError)
            else None
        )
        self._logger.error(f"Survey API fetch failed: {message}")
        raise DataSourceError(message, status_code=status_code)

    async def set_approval_status(self, response_id: str, approval_status: str) -> Dict[str, Any]:
        """Record a verdict for one response.

        Returns:
            ``{"message": str, "response": dict}`` as sent by the backend

        Raises:
            DataSourceError: The call failed; nothing was changed locally
        """
        path = APPROVAL_PATH.format(response_id=quote(str(response_id), safe=""))

        async with self._client() as client:
            try:
                response = await client.patch(path, json={"approvalStatus": approval_status})
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                message = _error_message(e, UPDATE_FAILED_MESSAGE)
                raise DataSourceError(message, status_code=e.response.status_code) from e
            except httpx.HTTPError as e:
                raise DataSourceError(_error_message(e, UPDATE_FAILED_MESSAGE)) from e

        # The update was accepted even if the reply body is unusable
        try:
            data = response.json()
        except ValueError:
            data = None
        return data if isinstance(data, dict) else {}
