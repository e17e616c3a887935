"""
Tests for the survey backend HTTP client.

Uses httpx.MockTransport in place of the network.
"""

import json

import httpx
import pytest

from surveyreview.api_client import (
    LOAD_FAILED_MESSAGE,
    SurveyApiClient,
)
from surveyreview.errors import DataSourceError


def _client(handler, **kwargs):
    kwargs.setdefault("backoff_factor", 0)
    return SurveyApiClient(
        base_url="https://survey.example.org/api/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestFetchAllSurveyResponses:
    """Tests for the bulk fetch."""

    def test_success(self, sample_payload, run):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=sample_payload)

        payload = run(_client(handler, token="secret").fetch_all_survey_responses())

        assert len(payload["surveys"]) == 3
        assert str(seen[0].url) == "https://survey.example.org/api/survey/public/responses/all"
        assert seen[0].headers["Authorization"] == "Bearer secret"

    def test_no_token_no_auth_header(self, run):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"surveys": []})

        run(_client(handler).fetch_all_survey_responses())

        assert "Authorization" not in seen[0].headers

    def test_retries_server_errors(self, run):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503, json={"message": "busy"})
            return httpx.Response(200, json={"surveys": []})

        payload = run(_client(handler, retry_attempts=3).fetch_all_survey_responses())

        assert payload == {"surveys": []}
        assert len(calls) == 3

    def test_retries_exhausted(self, run):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"message": "Database offline"})

        with pytest.raises(DataSourceError) as excinfo:
            run(_client(handler, retry_attempts=2).fetch_all_survey_responses())

        assert len(calls) == 2
        assert excinfo.value.message == "Database offline"
        assert excinfo.value.status_code == 500

    def test_client_error_not_retried(self, run):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, text="nope")

        with pytest.raises(DataSourceError) as excinfo:
            run(_client(handler).fetch_all_survey_responses())

        assert len(calls) == 1
        assert excinfo.value.message == "Survey API error: 401"

    def test_transport_error(self, run):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DataSourceError) as excinfo:
            run(_client(handler, retry_attempts=2).fetch_all_survey_responses())

        assert excinfo.value.message == "connection refused"
        assert excinfo.value.status_code is None

    def test_non_object_body(self, run):
        def handler(request):
            return httpx.Response(200, json=[1, 2, 3])

        with pytest.raises(DataSourceError) as excinfo:
            run(_client(handler).fetch_all_survey_responses())

        assert excinfo.value.message == LOAD_FAILED_MESSAGE


class TestSetApprovalStatus:
    """Tests for the approval mutation."""

    def test_success(self, run):
        seen = []

        def handler(request):
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "message": "Response status updated successfully",
                    "response": {"responseId": "r1", "approvalStatus": body["approvalStatus"]},
                },
            )

        result = run(_client(handler).set_approval_status("r1", "CORRECTLY_DONE"))

        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/api/survey/public/responses/r1/approval"
        assert json.loads(seen[0].content) == {"approvalStatus": "CORRECTLY_DONE"}
        assert result["response"]["approvalStatus"] == "CORRECTLY_DONE"

    def test_backend_message_on_failure(self, run):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"message": "Response is locked"})

        with pytest.raises(DataSourceError) as excinfo:
            run(_client(handler).set_approval_status("r1", "PENDING"))

        assert excinfo.value.message == "Response is locked"
        assert len(calls) == 1

    def test_empty_success_body(self, run):
        def handler(request):
            return httpx.Response(204)

        assert run(_client(handler).set_approval_status("r1", "PENDING")) == {}

    def test_transport_error(self, run):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(DataSourceError, match="timed out"):
            run(_client(handler).set_approval_status("r1", "PENDING"))


class TestFromConfig:
    """Tests for configuration wiring."""

    def test_requires_base_url(self):
        class Settings:
            SURVEY_API_BASE_URL = ""

        with pytest.raises(ValueError):
            SurveyApiClient.from_config(Settings)

    def test_reads_settings(self):
        class Settings:
            SURVEY_API_BASE_URL = "https://survey.example.org"
            SURVEY_API_TOKEN = "t"
            SURVEY_API_TIMEOUT = 5.0
            SURVEY_API_RETRY_ATTEMPTS = 4
            SURVEY_API_BACKOFF = 0.1

        client = SurveyApiClient.from_config(Settings)

        assert client.base_url == "https://survey.example.org"
        assert client.retry_attempts == 4
        assert client.token == "t"
