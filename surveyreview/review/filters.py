"""
Filter Engine for surveys, respondent groups and responses.

Each pipeline narrows left-to-right: a status predicate first, then a
case-insensitive substring search. Filter values come from a closed,
client-controlled set; an unrecognised value degrades to "no filter" rather
than raising or emptying the view.
"""

from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, TypeVar

from surveyreview.core.schema import ApprovalStatus, Response

from .aggregation import RespondentGroup

T = TypeVar("T")

ALL_SURVEY_STATUSES = "All"


class ApprovalBucket(str, Enum):
    """Aggregate approval buckets. Exact status values are accepted as well."""

    ALL = "ALL"
    APPROVED = "APPROVED"
    NOT_APPROVED = "NOT_APPROVED"
    PENDING = "PENDING"


BUCKET_VALUES = [b.value for b in ApprovalBucket] + [
    s.value for s in ApprovalStatus if s is not ApprovalStatus.PENDING
]


def normalize_query(query: Optional[str]) -> str:
    return (query or "").strip().lower()


def _matches(query: str, values: Iterable[Any]) -> bool:
    return any(query in str(v).lower() for v in values if v)


def parse_bucket(value: Any) -> str:
    """Normalise a bucket value; anything unrecognised becomes ``ALL``."""
    if isinstance(value, Enum):
        value = value.value
    text = str(value or "").strip().upper()
    return text if text in BUCKET_VALUES else ApprovalBucket.ALL.value


def in_bucket(response: Response, bucket: Any) -> bool:
    """Whether a response falls in the given approval bucket."""
    bucket = parse_bucket(bucket)
    if bucket == ApprovalBucket.ALL.value:
        return True
    if bucket == ApprovalBucket.APPROVED.value:
        return response.is_approved
    if bucket == ApprovalBucket.NOT_APPROVED.value:
        return not response.is_approved
    return ApprovalStatus.normalize(response.approval_status).value == bucket


# ============================================================================
# Surveys
# ============================================================================


def filter_surveys(
    surveys: Sequence[T],
    status: Optional[str] = ALL_SURVEY_STATUSES,
    query: Optional[str] = None,
) -> List[T]:
    """Filter surveys (or survey summaries) by lifecycle status and search text.

    Status must equal the survey status exactly. ``"All"`` (or an empty status)
    bypasses the status predicate. Search covers name, code, category and
    project name; an empty query bypasses search.
    """
    items = list(surveys)

    wanted = status or ""
    if wanted and wanted != ALL_SURVEY_STATUSES:
        items = [s for s in items if str(s.status) == wanted]

    q = normalize_query(query)
    if q:
        items = [
            s for s in items if _matches(q, [s.name, s.code, s.category, s.project_name])
        ]

    return items


# ============================================================================
# Respondent groups
# ============================================================================


def filter_respondent_groups(
    groups: Sequence[RespondentGroup], query: Optional[str] = None
) -> List[RespondentGroup]:
    """Search groups by mobile or name; busiest respondents first."""
    items = list(groups)

    q = normalize_query(query)
    if q:
        items = [g for g in items if _matches(q, [g.user_mobile, g.user_name])]

    items.sort(key=lambda g: g.entries, reverse=True)
    return items


# ============================================================================
# Responses
# ============================================================================


def sort_newest_first(responses: Iterable[Response]) -> List[Response]:
    """Order by submission time, newest first; missing timestamps sort last."""
    return sorted(responses, key=lambda r: r.sort_timestamp, reverse=True)


def filter_responses(
    responses: Iterable[Response],
    bucket: Any = ApprovalBucket.ALL,
    query: Optional[str] = None,
    sort: bool = True,
) -> List[Response]:
    """Apply the approval bucket, then search over name, code, mobile and role."""
    items = [r for r in responses if in_bucket(r, bucket)]

    q = normalize_query(query)
    if q:
        items = [
            r
            for r in items
            if _matches(q, [r.user_name, r.user_code, r.user_mobile, r.user_role])
        ]

    if sort:
        items = sort_newest_first(items)
    return items
