"""
File-backed survey data source.

Serves a JSON snapshot in the bulk-fetch wire format (``{"surveys": [...]}``)
through the ``SurveyDataSource`` protocol. Approval verdicts are applied to
the in-memory copy only; the file on disk is never rewritten.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from surveyreview.core.schema import ApprovalStatus, Response
from surveyreview.errors import DataSourceError

logger = logging.getLogger(__name__)


class StaticSurveySource:
    """SurveyDataSource over a fixed payload."""

    def __init__(self, payload: Any, source_path: Optional[Path] = None):
        self._payload = payload
        self.source_path = source_path

    @classmethod
    def from_file(cls, path: Path) -> "StaticSurveySource":
        """Read a snapshot file.

        Raises:
            DataSourceError: File missing or not valid JSON
        """
        path = Path(path)
        try:
            with open(path) as f:
                payload = json.load(f)
        except FileNotFoundError:
            raise DataSourceError(f"Survey data file not found: {path}") from None
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Survey data file is not valid JSON: {path} ({e})") from e

        logger.info(f"Loaded survey data file {path}")
        return cls(payload, source_path=path)

    def _find(self, response_id: str) -> Optional[dict]:
        # Same shapes and identifier fallback as parse_surveys
        if isinstance(self._payload, dict):
            surveys = self._payload.get("surveys") or []
        elif isinstance(self._payload, list):
            surveys = self._payload
        else:
            surveys = []
        for survey in surveys:
            if not isinstance(survey, dict):
                continue
            for response in survey.get("responses") or []:
                if not isinstance(response, dict):
                    continue
                if Response.from_dict(response).response_id == str(response_id):
                    return response
        return None

    async def fetch_all_survey_responses(self) -> Dict[str, Any]:
        return copy.deepcopy(self._payload)

    async def set_approval_status(self, response_id: str, approval_status: str) -> Dict[str, Any]:
        try:
            status = ApprovalStatus.parse(approval_status)
        except ValueError as e:
            raise DataSourceError(str(e), status_code=400) from e

        response = self._find(response_id)
        if response is None:
            raise DataSourceError("Response not found", status_code=404)

        response["approvalStatus"] = status.value
        response["isApproved"] = status is ApprovalStatus.CORRECTLY_DONE
        return {
            "message": "Response status updated successfully",
            "response": copy.deepcopy(response),
        }
