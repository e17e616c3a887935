"""
Tests for the drill-down navigation state machine.
"""

import pytest

from surveyreview.errors import InvalidTransitionError
from surveyreview.review.navigation import (
    NavigationLevel,
    ReviewNavigator,
    SubmissionDetail,
    SubmissionList,
    SurveyDetail,
    SurveyList,
    UserList,
    back,
    open_submission,
    select_user,
)


class TestTransitionFunctions:
    """Tests for the pure transition functions."""

    def test_back_chain(self):
        state = SubmissionDetail("s1", "9990001", "r1")

        state = back(state)
        assert state == SubmissionList("s1", "9990001")
        state = back(state)
        assert state == UserList("s1")
        state = back(state)
        assert state == SurveyList()

    def test_back_from_survey_list(self):
        with pytest.raises(InvalidTransitionError):
            back(SurveyList())

    def test_flat_detail_returns_to_survey_detail(self):
        assert back(SubmissionDetail("s1", None, "r1")) == SurveyDetail("s1")
        assert back(SurveyDetail("s1")) == SurveyList()

    def test_select_user_requires_user_list(self):
        with pytest.raises(InvalidTransitionError):
            select_user(SurveyList(), "9990001")

    def test_open_submission_from_flat_view(self):
        assert open_submission(SurveyDetail("s1"), "r4") == SubmissionDetail("s1", None, "r4")

    def test_open_submission_requires_list(self):
        with pytest.raises(InvalidTransitionError):
            open_submission(UserList("s1"), "r1")


class TestReviewNavigator:
    """Tests for the stateful navigator."""

    def test_starts_at_survey_list(self):
        navigator = ReviewNavigator()

        assert navigator.level is NavigationLevel.SURVEY_LIST
        assert navigator.survey_id is None

    def test_grouped_drill_down(self):
        navigator = ReviewNavigator()
        navigator.select_survey("s1")
        navigator.select_user("9990001")
        navigator.open_submission("r2")

        assert navigator.level is NavigationLevel.SUBMISSION_DETAIL
        assert navigator.survey_id == "s1"
        assert navigator.user_key == "9990001"
        assert navigator.response_id == "r2"

    def test_select_survey_from_any_level_clears_deeper(self):
        navigator = ReviewNavigator()
        navigator.select_survey("s1")
        navigator.select_user("9990001")
        navigator.open_submission("r2")

        navigator.select_survey("s2")

        assert navigator.state == UserList("s2")
        assert navigator.user_key is None
        assert navigator.response_id is None

    def test_flat_mode(self):
        navigator = ReviewNavigator(flat=True)
        navigator.select_survey("s1")

        assert navigator.level is NavigationLevel.SURVEY_DETAIL
        navigator.open_submission("r1")
        assert navigator.user_key is None
        assert navigator.back() == SurveyDetail("s1")

    def test_toggle_audio(self):
        navigator = ReviewNavigator()
        navigator.select_survey("s1", flat=True)

        assert navigator.toggle_audio("r1").expanded_response_id == "r1"
        assert navigator.toggle_audio("r4").expanded_response_id == "r4"
        assert navigator.toggle_audio("r4").expanded_response_id is None

    def test_toggle_audio_only_in_flat_view(self):
        navigator = ReviewNavigator()
        navigator.select_survey("s1")

        with pytest.raises(InvalidTransitionError):
            navigator.toggle_audio("r1")

    def test_invalid_transition_keeps_state(self):
        navigator = ReviewNavigator()
        navigator.select_survey("s1")

        with pytest.raises(InvalidTransitionError):
            navigator.open_submission("r1")
        assert navigator.state == UserList("s1")

    def test_reset(self):
        navigator = ReviewNavigator()
        navigator.select_survey("s1")

        assert navigator.reset() == SurveyList()
