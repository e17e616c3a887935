"""
Aggregation Engine for Survey Responses

Derives the summary views used at each drill-down level from the canonical
response list. Every aggregate is recomputed on demand; nothing here holds
state between calls.

Features:
- Per-survey totals, distinct respondents and last activity
- Partition of a survey's responses into respondent groups
- Approval status tallies over the six-value enum
- Geolocation centroid of well-formed coordinates
"""

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from surveyreview.core.schema import ApprovalStatus, GeoPoint, Response, Survey

from .identity import display_name, resolve_key


@dataclass
class RespondentIdentity:
    """Display fields of the first submission seen for a respondent key."""

    key: str
    user_name: Optional[str] = None
    user_code: Optional[str] = None
    user_mobile: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "userName": self.user_name,
            "userCode": self.user_code,
            "userMobile": self.user_mobile,
        }


@dataclass
class SurveySummary:
    """Survey list row."""

    survey_id: str
    name: str
    code: Optional[str]
    status: str
    category: Optional[str]
    project_name: Optional[str]
    total_responses: int = 0
    respondents: List[RespondentIdentity] = dataclass_field(default_factory=list)
    last_response_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "surveyId": self.survey_id,
            "surveyCode": self.code,
            "name": self.name,
            "status": self.status,
            "category": self.category,
            "projectName": self.project_name,
            "totalResponses": self.total_responses,
            "users": [r.to_dict() for r in self.respondents],
            "lastResponseAt": self.last_response_at,
        }


@dataclass
class RespondentGroup:
    """Responses within one survey that share a respondent key."""

    key: str
    user_name: str
    user_mobile: Optional[str]
    responses: List[Response] = dataclass_field(default_factory=list)

    @property
    def entries(self) -> int:
        return len(self.responses)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "userName": self.user_name,
            "userMobile": self.user_mobile,
            "entries": self.entries,
        }


def summarize_surveys(surveys: Iterable[Survey]) -> List[SurveySummary]:
    """Build one summary row per survey, in snapshot order."""
    summaries = []
    for survey in surveys:
        respondents: Dict[str, RespondentIdentity] = {}
        last_response: Optional[Response] = None
        last_at: Optional[datetime] = None

        for response in survey.responses:
            key = resolve_key(response)
            if key not in respondents:
                respondents[key] = RespondentIdentity(
                    key=key,
                    user_name=response.user_name,
                    user_code=response.user_code,
                    user_mobile=response.user_mobile,
                )

            submitted = response.submitted_at
            if submitted is None:
                continue
            if last_at is None or submitted > last_at:
                last_at = submitted
                last_response = response

        summaries.append(
            SurveySummary(
                survey_id=survey.survey_id,
                name=survey.name,
                code=survey.code,
                status=survey.status,
                category=survey.category,
                project_name=survey.project_name,
                total_responses=len(survey.responses),
                respondents=list(respondents.values()),
                last_response_at=last_response.created_at if last_response else None,
            )
        )
    return summaries


def group_by_survey_user(survey: Survey) -> List[RespondentGroup]:
    """Partition a survey's responses by respondent key.

    Groups appear in order of first appearance. Display fields come from the
    first response encountered for each key.
    """
    groups: Dict[str, RespondentGroup] = {}
    for response in survey.responses:
        key = resolve_key(response)
        group = groups.get(key)
        if group is None:
            group = RespondentGroup(
                key=key,
                user_name=display_name(response),
                user_mobile=response.user_mobile,
            )
            groups[key] = group
        group.responses.append(response)
    return list(groups.values())


def responses_for_key(survey: Survey, key: str) -> List[Response]:
    """All of a survey's responses whose respondent key equals ``key``."""
    key = str(key)
    return [r for r in survey.responses if resolve_key(r) == key]


def approval_counts(responses: Iterable[Response]) -> Dict[ApprovalStatus, int]:
    """Tally responses per approval status; every status is present."""
    counts = {status: 0 for status in ApprovalStatus}
    for response in responses:
        counts[ApprovalStatus.normalize(response.approval_status)] += 1
    return counts


def location_centroid(responses: Iterable[Response]) -> Optional[GeoPoint]:
    """Arithmetic mean of all valid locations, or None when there are none."""
    points = [r.location for r in responses]
    points = [p for p in points if p is not None]
    if not points:
        return None
    return GeoPoint(
        lat=sum(p.lat for p in points) / len(points),
        lng=sum(p.lng for p in points) / len(points),
    )


def review_statistics(responses: Iterable[Response]) -> dict:
    """Headline numbers for a set of responses."""
    responses = list(responses)
    counts = approval_counts(responses)

    return {
        "total_responses": len(responses),
        "status_counts": {status.value: count for status, count in counts.items()},
        "approved_count": counts[ApprovalStatus.CORRECTLY_DONE],
        "pending_count": counts[ApprovalStatus.PENDING],
        "completed_count": sum(1 for r in responses if r.is_completed is True),
        "incomplete_count": sum(1 for r in responses if r.is_completed is False),
        # isCompleted absent or malformed
        "unknown_completion_count": sum(1 for r in responses if r.is_completed is None),
        "with_audio_count": sum(1 for r in responses if r.has_audio),
        "with_location_count": sum(1 for r in responses if r.location is not None),
    }
