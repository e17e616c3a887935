"""
Review Workspace

One reviewer's drill-down session: the snapshot store, the navigator, the
filter state of each level and the approval controller, wired together.
Every view is recomputed from the snapshot on request, so an approval
applied by the controller shows up in the next call without any cache
invalidation.

Level-local filters (respondent search, response bucket and search) reset
whenever their level is entered; survey list filters persist for the session.
"""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Dict, List, Optional

from surveyreview.core.events import EventStore, SnapshotLoaded, SnapshotLoadFailed
from surveyreview.core.protocols import SurveyDataSource
from surveyreview.core.schema import ApprovalStatus, GeoPoint, Response, Survey
from surveyreview.core.storage import SnapshotStore
from surveyreview.errors import (
    InvalidTransitionError,
    ResponseNotFoundError,
    SurveyNotFoundError,
    describe_error,
)

from .aggregation import (
    RespondentGroup,
    SurveySummary,
    approval_counts,
    group_by_survey_user,
    location_centroid,
    responses_for_key,
    summarize_surveys,
)
from .approval import ApprovalResult, ApprovalWorkflowController
from .filters import (
    ALL_SURVEY_STATUSES,
    ApprovalBucket,
    filter_respondent_groups,
    filter_responses,
    filter_surveys,
    parse_bucket,
)
from .identity import display_name, resolve_key
from .navigation import NavigationLevel, NavigationState, ReviewNavigator

logger = logging.getLogger(__name__)

DEFAULT_LOAD_ERROR = "Failed to load survey responses."


@dataclass
class ViewFilters:
    """Filter inputs of each drill-down level."""

    survey_status: str = ALL_SURVEY_STATUSES
    survey_query: str = ""
    user_query: str = ""
    response_bucket: str = ApprovalBucket.ALL.value
    response_query: str = ""

    def reset_users(self):
        self.user_query = ""

    def reset_responses(self):
        self.response_bucket = ApprovalBucket.ALL.value
        self.response_query = ""


@dataclass
class SubmissionPanel:
    """Submission list for one respondent with the filtered set's aggregates."""

    survey: Survey
    user_key: str
    user_name: str
    user_mobile: Optional[str]
    total_responses: int
    rows: List[Response] = dataclass_field(default_factory=list)
    status_counts: Dict[ApprovalStatus, int] = dataclass_field(default_factory=dict)
    centroid: Optional[GeoPoint] = None
    located_count: int = 0


class ReviewWorkspace:
    """Drill-down review session over one data source."""

    def __init__(
        self,
        source: SurveyDataSource,
        store: Optional[SnapshotStore] = None,
        event_store: Optional[EventStore] = None,
        flat: bool = False,
        actor: str = "reviewer",
    ):
        """
        Args:
            source: External data source for bulk fetch and approval mutations
            store: Snapshot store (a fresh one when None)
            event_store: Optional audit log shared with the approval controller
            flat: Use the flat survey-detail drill-down by default
            actor: Reviewer name recorded on audit events
        """
        self.source = source
        self.store = store or SnapshotStore()
        self.event_store = event_store
        self.navigator = ReviewNavigator(flat=flat)
        self.filters = ViewFilters()
        self.controller = ApprovalWorkflowController(
            self.store, source, event_store=event_store, actor=actor
        )
        self.loading = False
        self.error: Optional[str] = None

    # ========================================================================
    # Loading
    # ========================================================================

    async def load(self) -> bool:
        """Fetch the full snapshot and replace the store.

        On failure the previous snapshot is kept and ``error`` holds a
        human-readable message. Returns True on success.
        """
        self.loading = True
        self.error = None
        try:
            payload = await self.source.fetch_all_survey_responses()
            self.store.load(payload)
        except Exception as e:
            self.error = describe_error(e, DEFAULT_LOAD_ERROR)
            logger.error(f"Failed to load survey responses: {self.error}")
            if self.event_store is not None:
                self.event_store.append(SnapshotLoadFailed(message=self.error))
            return False
        finally:
            self.loading = False

        if self.event_store is not None:
            surveys = self.store.snapshot()
            self.event_store.append(
                SnapshotLoaded(
                    survey_count=len(surveys),
                    response_count=sum(len(s.responses) for s in surveys),
                    version=self.store.version,
                )
            )
        self._revalidate_selection()
        return True

    def _revalidate_selection(self):
        """Drop back to the survey list if a reload removed the selected survey."""
        survey_id = self.navigator.survey_id
        if survey_id is not None and self.store.get_survey(survey_id) is None:
            logger.info(f"Selected survey {survey_id} no longer in snapshot")
            self._enter(self.navigator.reset())

    # ========================================================================
    # Navigation
    # ========================================================================

    @property
    def state(self) -> NavigationState:
        return self.navigator.state

    @property
    def level(self) -> NavigationLevel:
        return self.navigator.level

    def _enter(self, state: NavigationState) -> NavigationState:
        if state.level is NavigationLevel.USER_LIST:
            self.filters.reset_users()
        elif state.level in (NavigationLevel.SUBMISSION_LIST, NavigationLevel.SURVEY_DETAIL):
            self.filters.reset_responses()
        return state

    def select_survey(self, survey_id: str, flat: Optional[bool] = None) -> NavigationState:
        if self.store.get_survey(survey_id) is None:
            raise SurveyNotFoundError(str(survey_id))
        return self._enter(self.navigator.select_survey(survey_id, flat=flat))

    def select_user(self, user_key: str) -> NavigationState:
        return self._enter(self.navigator.select_user(user_key))

    def open_submission(self, response_id: str) -> NavigationState:
        survey = self.selected_survey
        if survey is None:
            raise InvalidTransitionError("No survey selected")
        response = survey.get_response(response_id)
        if response is None:
            raise ResponseNotFoundError(str(response_id))
        # Grouped drill-down: only the selected respondent's submissions
        user_key = self.navigator.user_key
        if user_key is not None and resolve_key(response) != user_key:
            raise ResponseNotFoundError(str(response_id))
        return self._enter(self.navigator.open_submission(response_id))

    def back(self) -> NavigationState:
        return self._enter(self.navigator.back())

    def toggle_audio(self, response_id: str) -> NavigationState:
        return self.navigator.toggle_audio(response_id)

    # ========================================================================
    # Filter inputs
    # ========================================================================

    def set_survey_filter(self, status: Optional[str] = None, query: Optional[str] = None):
        if status is not None:
            self.filters.survey_status = status
        if query is not None:
            self.filters.survey_query = query

    def set_user_query(self, query: str):
        self.filters.user_query = query or ""

    def set_response_filter(self, bucket=None, query: Optional[str] = None):
        if bucket is not None:
            self.filters.response_bucket = parse_bucket(bucket)
        if query is not None:
            self.filters.response_query = query

    # ========================================================================
    # Views
    # ========================================================================

    @property
    def selected_survey(self) -> Optional[Survey]:
        survey_id = self.navigator.survey_id
        return self.store.get_survey(survey_id) if survey_id is not None else None

    @property
    def selected_response(self) -> Optional[Response]:
        survey = self.selected_survey
        response_id = self.navigator.response_id
        if survey is None or response_id is None:
            return None
        return survey.get_response(response_id)

    def survey_rows(self) -> List[SurveySummary]:
        """Survey list with the survey status and search filters applied."""
        return filter_surveys(
            summarize_surveys(self.store.snapshot()),
            status=self.filters.survey_status,
            query=self.filters.survey_query,
        )

    def respondent_rows(self) -> List[RespondentGroup]:
        survey = self.selected_survey
        if survey is None:
            return []
        return filter_respondent_groups(group_by_survey_user(survey), self.filters.user_query)

    def submission_panel(self) -> Optional[SubmissionPanel]:
        """Selected respondent's submissions, filtered and newest first."""
        survey = self.selected_survey
        user_key = self.navigator.user_key
        if survey is None or user_key is None:
            return None

        user_responses = responses_for_key(survey, user_key)
        rows = filter_responses(
            user_responses,
            bucket=self.filters.response_bucket,
            query=self.filters.response_query,
        )
        first = user_responses[0] if user_responses else None
        return SubmissionPanel(
            survey=survey,
            user_key=user_key,
            user_name=display_name(first, "Unknown User") if first else "Unknown User",
            user_mobile=first.user_mobile if first else None,
            total_responses=len(user_responses),
            rows=rows,
            status_counts=approval_counts(rows),
            centroid=location_centroid(rows),
            located_count=sum(1 for r in rows if r.location is not None),
        )

    def submission_rows(self) -> List[Response]:
        panel = self.submission_panel()
        return panel.rows if panel else []

    def survey_detail_rows(self) -> List[Response]:
        """Flat variant: every response of the selected survey, filtered."""
        survey = self.selected_survey
        if survey is None:
            return []
        return filter_responses(
            survey.responses,
            bucket=self.filters.response_bucket,
            query=self.filters.response_query,
        )

    def detail(self) -> Optional[Response]:
        return self.selected_response

    # ========================================================================
    # Approval
    # ========================================================================

    def is_updating(self, response_id: str) -> bool:
        return self.controller.is_updating(response_id)

    async def set_approval(self, response_id: str, status) -> ApprovalResult:
        return await self.controller.set_approval(response_id, status)
