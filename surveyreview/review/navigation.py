"""
Drill-down navigation for the review session.

Levels, outermost first::

    SurveyList -> UserList(survey) -> SubmissionList(survey, user)
               -> SubmissionDetail(survey, user, response)

An alternate flat drill-down skips the respondent level::

    SurveyList -> SurveyDetail(survey) -> SubmissionDetail(survey, None, response)

Selecting a survey from any level resets straight to that survey's first
level. ``back()`` clears exactly one selection.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from surveyreview.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class NavigationLevel(Enum):
    SURVEY_LIST = "survey_list"
    USER_LIST = "user_list"
    SUBMISSION_LIST = "submission_list"
    SUBMISSION_DETAIL = "submission_detail"
    SURVEY_DETAIL = "survey_detail"


@dataclass(frozen=True)
class SurveyList:
    level = NavigationLevel.SURVEY_LIST


@dataclass(frozen=True)
class UserList:
    survey_id: str

    level = NavigationLevel.USER_LIST


@dataclass(frozen=True)
class SubmissionList:
    survey_id: str
    user_key: str

    level = NavigationLevel.SUBMISSION_LIST


@dataclass(frozen=True)
class SubmissionDetail:
    survey_id: str
    user_key: Optional[str]  # None when opened from the flat SurveyDetail view
    response_id: str

    level = NavigationLevel.SUBMISSION_DETAIL


@dataclass(frozen=True)
class SurveyDetail:
    """Flat view of all of a survey's responses with inline audio toggles."""

    survey_id: str
    expanded_response_id: Optional[str] = None

    level = NavigationLevel.SURVEY_DETAIL


NavigationState = Union[SurveyList, UserList, SubmissionList, SubmissionDetail, SurveyDetail]


def back(state: NavigationState) -> NavigationState:
    """Return the state one level up."""
    if isinstance(state, SubmissionDetail):
        if state.user_key is None:
            return SurveyDetail(state.survey_id)
        return SubmissionList(state.survey_id, state.user_key)
    if isinstance(state, SubmissionList):
        return UserList(state.survey_id)
    if isinstance(state, (UserList, SurveyDetail)):
        return SurveyList()
    raise InvalidTransitionError("Already at the survey list")


def select_user(state: NavigationState, user_key: str) -> NavigationState:
    if not isinstance(state, UserList):
        raise InvalidTransitionError(f"Cannot select a respondent from {state.level.value}")
    return SubmissionList(state.survey_id, str(user_key))


def open_submission(state: NavigationState, response_id: str) -> NavigationState:
    if isinstance(state, SubmissionList):
        return SubmissionDetail(state.survey_id, state.user_key, str(response_id))
    if isinstance(state, SurveyDetail):
        return SubmissionDetail(state.survey_id, None, str(response_id))
    raise InvalidTransitionError(f"Cannot open a submission from {state.level.value}")


class ReviewNavigator:
    """Holds the current drill-down state for one review session."""

    def __init__(self, flat: bool = False):
        """
        Args:
            flat: Use the flat survey-detail drill-down instead of grouping by respondent
        """
        self.flat = flat
        self.state: NavigationState = SurveyList()

    @property
    def level(self) -> NavigationLevel:
        return self.state.level

    @property
    def survey_id(self) -> Optional[str]:
        return getattr(self.state, "survey_id", None)

    @property
    def user_key(self) -> Optional[str]:
        return getattr(self.state, "user_key", None)

    @property
    def response_id(self) -> Optional[str]:
        return getattr(self.state, "response_id", None)

    def _move(self, state: NavigationState) -> NavigationState:
        logger.debug(f"Navigation: {self.state.level.value} -> {state.level.value}")
        self.state = state
        return state

    def select_survey(self, survey_id: str, flat: Optional[bool] = None) -> NavigationState:
        """Select a survey; valid from any level and clears deeper selections."""
        use_flat = self.flat if flat is None else flat
        survey_id = str(survey_id)
        if use_flat:
            return self._move(SurveyDetail(survey_id))
        return self._move(UserList(survey_id))

    def select_user(self, user_key: str) -> NavigationState:
        return self._move(select_user(self.state, user_key))

    def open_submission(self, response_id: str) -> NavigationState:
        return self._move(open_submission(self.state, response_id))

    def back(self) -> NavigationState:
        return self._move(back(self.state))

    def reset(self) -> NavigationState:
        return self._move(SurveyList())

    def toggle_audio(self, response_id: str) -> NavigationState:
        """Expand or collapse the inline audio control of a row in the flat view."""
        if not isinstance(self.state, SurveyDetail):
            raise InvalidTransitionError(f"No inline audio rows at {self.state.level.value}")
        response_id = str(response_id)
        expanded = None if self.state.expanded_response_id == response_id else response_id
        return self._move(replace(self.state, expanded_response_id=expanded))
