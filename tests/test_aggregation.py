"""
Tests for respondent identity and the aggregation engine.

Tests cover:
- Grouping key precedence (mobile, code, synthesized from name)
- Survey summaries (totals, respondents, last activity)
- Respondent groups partition a survey exhaustively
- Approval counts and location centroid
- Review statistics
"""

import pytest

from surveyreview.core.schema import ApprovalStatus, GeoPoint, Response, Survey
from surveyreview.review.aggregation import (
    approval_counts,
    group_by_survey_user,
    location_centroid,
    responses_for_key,
    review_statistics,
    summarize_surveys,
)
from surveyreview.review.identity import display_name, resolve_key


def _response(**fields):
    data = {"responseId": fields.pop("responseId", "r")}
    data.update(fields)
    return Response.from_dict(data)


@pytest.fixture
def health_survey(store):
    return store.get_survey("s1")


class TestIdentity:
    """Tests for resolve_key and display_name."""

    def test_mobile_wins(self):
        response = _response(userMobile="9990001", userCode="FW-01", userName="Asha")
        assert resolve_key(response) == "9990001"

    def test_code_when_no_mobile(self):
        response = _response(userMobile="", userCode="FW-17", userName="Ravi")
        assert resolve_key(response) == "FW-17"

    def test_synthesized_from_name(self):
        assert resolve_key(_response(userName="Meena")) == "unknown-Meena"

    def test_synthesized_without_name(self):
        assert resolve_key(_response()) == "unknown-"

    def test_display_name_fallbacks(self):
        assert display_name(_response(userName="Asha", userCode="FW-01")) == "Asha"
        assert display_name(_response(userCode="FW-01")) == "FW-01"
        assert display_name(_response()) == "Unknown"


class TestSummarizeSurveys:
    """Tests for survey list rows."""

    def test_totals(self, store):
        summaries = summarize_surveys(store.snapshot())

        assert [s.total_responses for s in summaries] == [5, 1, 0]

    def test_distinct_respondents(self, store):
        summary = summarize_surveys(store.snapshot())[0]
        keys = [r.key for r in summary.respondents]

        assert keys == ["9990001", "FW-17", "unknown-Meena"]

    def test_last_response_at(self, store):
        summaries = summarize_surveys(store.snapshot())

        assert summaries[0].last_response_at == "2024-03-04T12:30:00Z"
        assert summaries[2].last_response_at is None

    def test_to_dict(self, store):
        data = summarize_surveys(store.snapshot())[1].to_dict()

        assert data["surveyId"] == "s2"
        assert data["totalResponses"] == 1
        assert data["users"][0]["userMobile"] == "8880002"


class TestGroupBySurveyUser:
    """Tests for respondent groups."""

    def test_partition_is_exhaustive_and_disjoint(self, health_survey):
        groups = group_by_survey_user(health_survey)

        ids = [r.response_id for g in groups for r in g.responses]
        assert sorted(ids) == sorted(r.response_id for r in health_survey.responses)
        assert len(ids) == len(set(ids))
        assert sum(g.entries for g in groups) == len(health_survey.responses)

    def test_group_display_fields(self, health_survey):
        groups = {g.key: g for g in group_by_survey_user(health_survey)}

        assert groups["9990001"].entries == 3
        assert groups["9990001"].user_name == "Asha"
        assert groups["FW-17"].user_mobile is None
        assert groups["unknown-Meena"].entries == 1

    def test_empty_survey(self, store):
        assert group_by_survey_user(store.get_survey("s3")) == []

    def test_responses_for_key(self, health_survey):
        ids = [r.response_id for r in responses_for_key(health_survey, "9990001")]
        assert ids == ["r1", "r2", "r3"]


class TestApprovalCounts:
    """Tests for approval status tallies."""

    def test_every_status_present(self):
        counts = approval_counts([])
        assert set(counts) == set(ApprovalStatus)
        assert all(n == 0 for n in counts.values())

    def test_respondent_scenario(self, health_survey):
        """Three submissions from one mobile: one each of three statuses."""
        counts = approval_counts(responses_for_key(health_survey, "9990001"))

        assert counts[ApprovalStatus.PENDING] == 1
        assert counts[ApprovalStatus.CORRECTLY_DONE] == 1
        assert counts[ApprovalStatus.NOT_DOING_IT_PROPERLY] == 1
        assert sum(counts.values()) == 3

    def test_missing_and_explicit_pending_counted_together(self):
        responses = [
            _response(responseId="a"),
            _response(responseId="b", approvalStatus="PENDING"),
        ]
        assert approval_counts(responses)[ApprovalStatus.PENDING] == 2


class TestLocationCentroid:
    """Tests for the geolocation centroid."""

    def test_mean_of_valid_points(self):
        responses = [
            _response(latitude=10, longitude=20),
            _response(latitude="20", longitude="30"),
        ]
        assert location_centroid(responses) == GeoPoint(15.0, 25.0)

    def test_invalid_points_skipped(self):
        responses = [
            _response(latitude=10, longitude=20),
            _response(latitude="", longitude=""),
            _response(latitude="abc", longitude=5),
        ]
        assert location_centroid(responses) == GeoPoint(10.0, 20.0)

    def test_empty_is_none(self):
        assert location_centroid([]) is None

    def test_all_invalid_is_none(self):
        responses = [_response(latitude=None, longitude=None), _response(latitude="x", longitude="y")]
        assert location_centroid(responses) is None


class TestReviewStatistics:
    """Tests for headline statistics."""

    def test_statistics(self, store):
        stats = review_statistics(store.iter_responses())

        assert stats["total_responses"] == 6
        assert stats["approved_count"] == 1
        # r1, r5 (unknown status) and r6
        assert stats["pending_count"] == 3
        assert stats["incomplete_count"] == 1
        assert stats["completed_count"] == 4
        # r5 carries no isCompleted flag
        assert stats["unknown_completion_count"] == 1
        assert stats["with_audio_count"] == 2
        assert stats["with_location_count"] == 3
        assert stats["status_counts"]["FAKE_OR_EMPTY_AUDIO"] == 1

    def test_statistics_empty(self):
        stats = review_statistics([])
        assert stats["total_responses"] == 0
        assert sum(stats["status_counts"].values()) == 0

    def test_survey_without_responses(self):
        assert review_statistics(Survey(survey_id="x").responses)["total_responses"] == 0

    def test_absent_completion_flag_in_neither_bucket(self):
        stats = review_statistics([_response(), _response(isCompleted="yes")])

        assert stats["completed_count"] == 0
        assert stats["incomplete_count"] == 0
        assert stats["unknown_completion_count"] == 2
