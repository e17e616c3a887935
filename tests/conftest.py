"""
Shared fixtures: a small bulk-fetch payload and in-memory data sources.

Payload layout:
- s1 "Community Health Baseline" (ACTIVE): respondent 9990001 with three
  submissions, respondent FW-17 (code only) and one with neither mobile nor code
- s2 "Water Access Audit" (CLOSED): one submission
- s3 "Health Worker Feedback" (DRAFT): no submissions
"""

import asyncio
import copy

import pytest

from surveyreview.core.storage import SnapshotStore
from surveyreview.errors import DataSourceError

SAMPLE_PAYLOAD = {
    "surveys": [
        {
            "surveyId": "s1",
            "surveyCode": "CHB-01",
            "name": "Community Health Baseline",
            "status": "ACTIVE",
            "category": "Health",
            "projectName": "Rural Outreach",
            "responses": [
                {
                    "responseId": "r1",
                    "userName": "Asha",
                    "userCode": "FW-01",
                    "userMobile": "9990001",
                    "userRole": "FIELD_WORKER",
                    "createdAt": "2024-03-01T10:00:00Z",
                    "isCompleted": True,
                    "audioUrl": "https://cdn.example.org/audio/r1.mp3",
                    "latitude": 10,
                    "longitude": 20,
                    "answers": [
                        {
                            "questionId": "q1",
                            "questionText": "Household size?",
                            "questionType": "OPEN_ENDED",
                            "answerText": "Five",
                        },
                        {
                            "questionId": "q2",
                            "questionText": "Clinic access",
                            "questionType": "RATING",
                            "rating": 4,
                        },
                        {
                            "questionId": "q3",
                            "questionText": "Water sources",
                            "questionType": "MULTIPLE_CHOICE",
                            "selectedOptions": ["Well", "Tap"],
                        },
                    ],
                },
                {
                    "responseId": "r2",
                    "userName": "Asha",
                    "userCode": "FW-01",
                    "userMobile": "9990001",
                    "userRole": "FIELD_WORKER",
                    "createdAt": "2024-03-03T09:00:00Z",
                    "isCompleted": True,
                    "audioUrl": None,
                    "latitude": "20",
                    "longitude": "30",
                    "approvalStatus": "CORRECTLY_DONE",
                    "isApproved": True,
                    "answers": [],
                },
                {
                    "responseId": "r3",
                    "userName": "Asha",
                    "userCode": "FW-01",
                    "userMobile": "9990001",
                    "userRole": "FIELD_WORKER",
                    "createdAt": "2024-03-02T08:00:00Z",
                    "isCompleted": False,
                    "latitude": "",
                    "longitude": "",
                    "approvalStatus": "NOT_DOING_IT_PROPERLY",
                    "isApproved": False,
                    "answers": [],
                },
                {
                    "responseId": "r4",
                    "userName": "Ravi",
                    "userCode": "FW-17",
                    "userMobile": None,
                    "userRole": "SUPERVISOR",
                    "createdAt": "2024-03-04T12:30:00Z",
                    "isCompleted": True,
                    "audioUrl": "https://cdn.example.org/audio/r4.mp3",
                    "latitude": "abc",
                    "longitude": "77.1",
                    "approvalStatus": "FAKE_OR_EMPTY_AUDIO",
                    "answers": [],
                },
                {
                    "responseId": "r5",
                    "userName": "Meena",
                    "approvalStatus": "SOMETHING_ELSE",
                    "answers": [],
                },
            ],
        },
        {
            "surveyId": "s2",
            "surveyCode": "WAA-02",
            "name": "Water Access Audit",
            "status": "CLOSED",
            "category": "Infrastructure",
            "projectName": "Rural Outreach",
            "responses": [
                {
                    "responseId": "r6",
                    "userName": "Kiran",
                    "userMobile": "8880002",
                    "createdAt": "2024-02-10T07:15:00Z",
                    "isCompleted": True,
                    "latitude": 12.5,
                    "longitude": 76.25,
                    "approvalStatus": "PENDING",
                    "answers": [],
                },
            ],
        },
        {
            "surveyId": "s3",
            "surveyCode": "HWF-03",
            "name": "Health Worker Feedback",
            "status": "DRAFT",
            "category": "Health",
            "projectName": "Staff Welfare",
            "responses": [],
        },
    ]
}


class FakeSurveySource:
    """In-memory SurveyDataSource recording every call.

    ``fail_fetch`` / ``fail_update`` make the matching call raise
    DataSourceError. ``gate``, when set, is awaited before an update
    resolves so tests can observe the in-flight state.
    """

    def __init__(self, payload=None):
        self.payload = copy.deepcopy(payload if payload is not None else SAMPLE_PAYLOAD)
        self.fetch_calls = 0
        self.update_calls = []
        self.fail_fetch = None
        self.fail_update = None
        self.gate = None

    async def fetch_all_survey_responses(self):
        self.fetch_calls += 1
        if self.fail_fetch:
            raise DataSourceError(self.fail_fetch, status_code=500)
        return copy.deepcopy(self.payload)

    async def set_approval_status(self, response_id, approval_status):
        self.update_calls.append((response_id, approval_status))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_update:
            raise DataSourceError(self.fail_update, status_code=500)
        return {
            "message": "Response status updated successfully",
            "response": {"responseId": response_id, "approvalStatus": approval_status},
        }


@pytest.fixture
def sample_payload():
    """Fresh copy of the sample bulk-fetch payload."""
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def fake_source():
    return FakeSurveySource()


@pytest.fixture
def store(sample_payload):
    """SnapshotStore loaded with the sample payload."""
    snapshot_store = SnapshotStore()
    snapshot_store.load(sample_payload)
    return snapshot_store


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return asyncio.run
