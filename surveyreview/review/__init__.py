"""
Review Module - Survey Response Review Engine and API

Provides the aggregation, filtering, navigation and approval workflow that
drive the survey -> respondent -> submission drill-down, plus an HTTP API
serving the derived views.
"""

from .aggregation import (
    RespondentGroup,
    SurveySummary,
    approval_counts,
    group_by_survey_user,
    location_centroid,
    review_statistics,
    summarize_surveys,
)
from .approval import ApprovalResult, ApprovalWorkflowController
from .filters import ApprovalBucket, filter_respondent_groups, filter_responses, filter_surveys
from .identity import resolve_key
from .navigation import ReviewNavigator
from .workspace import ReviewWorkspace

__all__ = [
    "RespondentGroup",
    "SurveySummary",
    "approval_counts",
    "group_by_survey_user",
    "location_centroid",
    "review_statistics",
    "summarize_surveys",
    "ApprovalResult",
    "ApprovalWorkflowController",
    "ApprovalBucket",
    "filter_respondent_groups",
    "filter_responses",
    "filter_surveys",
    "resolve_key",
    "ReviewNavigator",
    "ReviewWorkspace",
]
