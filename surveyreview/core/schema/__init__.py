"""
Survey, response and answer definitions for the review workflow.

Records arrive from the bulk fetch in the upstream camelCase wire format.
Parsing is total: absent or malformed fields degrade to well-defined
defaults (``None`` location, ``PENDING`` status, empty collections) so the
aggregation and filter layers never have to re-check for absence.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from surveyreview.errors import InvalidApprovalStatusError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ApprovalStatus(str, Enum):
    """Reviewer verdict on a single response (closed set of six values)."""

    PENDING = "PENDING"
    CORRECTLY_DONE = "CORRECTLY_DONE"
    NOT_ASKING_ALL_QUESTIONS = "NOT_ASKING_ALL_QUESTIONS"
    NOT_DOING_IT_PROPERLY = "NOT_DOING_IT_PROPERLY"
    TAKING_FROM_FRIENDS_OR_TEAMMATE = "TAKING_FROM_FRIENDS_OR_TEAMMATE"
    FAKE_OR_EMPTY_AUDIO = "FAKE_OR_EMPTY_AUDIO"

    @property
    def label(self) -> str:
        return APPROVAL_LABELS[self]

    @property
    def tone(self) -> str:
        """Presentation tone: success, danger or neutral."""
        if self is ApprovalStatus.CORRECTLY_DONE:
            return "success"
        if self is ApprovalStatus.PENDING:
            return "neutral"
        return "danger"

    @classmethod
    def normalize(cls, value: Any) -> "ApprovalStatus":
        """Map a raw wire value to a status; absent or unknown becomes PENDING."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.PENDING
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.PENDING

    @classmethod
    def parse(cls, value: Any) -> "ApprovalStatus":
        """Strict variant of :meth:`normalize` for reviewer input."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidApprovalStatusError(
                f"Invalid approval status: {value!r} (expected one of {allowed})"
            ) from None


APPROVAL_LABELS: Dict[ApprovalStatus, str] = {
    ApprovalStatus.PENDING: "Not Reviewed",
    ApprovalStatus.CORRECTLY_DONE: "Correctly Done",
    ApprovalStatus.NOT_ASKING_ALL_QUESTIONS: "Not asking all the questions",
    ApprovalStatus.NOT_DOING_IT_PROPERLY: "Not doing it properly",
    ApprovalStatus.TAKING_FROM_FRIENDS_OR_TEAMMATE: "Taking from Friends/Teammate",
    ApprovalStatus.FAKE_OR_EMPTY_AUDIO: "Fake Audio / Empty audio",
}


class SurveyStatus(str, Enum):
    """Known survey lifecycle values. Unknown values are kept verbatim on Survey."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class QuestionType(str, Enum):
    """Question types with a dedicated payload; anything else is choice-based."""

    OPEN_ENDED = "OPEN_ENDED"
    RATING = "RATING"


class GeoPoint(NamedTuple):
    lat: float
    lng: float


# ============================================================================
# Field parsing helpers
# ============================================================================


def parse_coordinate(value: Any) -> Optional[float]:
    """Parse a numeric or numeric-string coordinate; malformed becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _identifier(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        value = data.get("id")
    return "" if value is None else str(value)


def _known_keys(data: Dict[str, Any], keys: tuple) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in keys}


# ============================================================================
# Records
# ============================================================================


@dataclass(frozen=True)
class Answer:
    """One question's recorded value within a response."""

    question_id: Optional[str] = None
    question_text: str = ""
    question_type: str = ""
    answer_text: Optional[str] = None
    rating: Optional[float] = None
    selected_options: tuple = ()

    WIRE_KEYS = (
        "questionId",
        "questionText",
        "questionType",
        "answerText",
        "rating",
        "selectedOptions",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        rating = data.get("rating")
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            rating = None
        return cls(
            question_id=_optional_text(data.get("questionId")),
            question_text=str(data.get("questionText") or ""),
            question_type=str(data.get("questionType") or ""),
            answer_text=_optional_text(data.get("answerText")),
            rating=rating,
            selected_options=tuple(str(o) for o in (data.get("selectedOptions") or [])),
        )

    def display_value(self) -> str:
        """Render the populated payload for this question type."""
        if self.question_type == QuestionType.OPEN_ENDED.value:
            return self.answer_text or "-"
        if self.question_type == QuestionType.RATING.value:
            if self.rating is None:
                return "-"
            if float(self.rating).is_integer():
                return str(int(self.rating))
            return str(self.rating)
        return ", ".join(self.selected_options) if self.selected_options else "-"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "questionText": self.question_text,
            "questionType": self.question_type,
            "answerText": self.answer_text,
            "rating": self.rating,
            "selectedOptions": list(self.selected_options),
        }


@dataclass
class Response:
    """One respondent's submission to a survey.

    ``approval_status`` is the only field mutated after load, and only through
    :meth:`set_approval_status`. ``is_approved`` is derived from it.
    """

    response_id: str
    user_name: Optional[str] = None
    user_code: Optional[str] = None
    user_mobile: Optional[str] = None
    user_role: Optional[str] = None
    created_at: Optional[str] = None
    is_completed: Optional[bool] = None
    audio_url: Optional[str] = None
    latitude: Any = None
    longitude: Any = None
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    answers: List[Answer] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)  # unrecognised wire keys

    WIRE_KEYS = (
        "responseId",
        "userName",
        "userCode",
        "userMobile",
        "userRole",
        "createdAt",
        "isCompleted",
        "audioUrl",
        "latitude",
        "longitude",
        "approvalStatus",
        "isApproved",
        "answers",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Response":
        is_completed = data.get("isCompleted")
        return cls(
            response_id=_identifier(data, "responseId"),
            user_name=_optional_text(data.get("userName")),
            user_code=_optional_text(data.get("userCode")),
            user_mobile=_optional_text(data.get("userMobile")),
            user_role=_optional_text(data.get("userRole")),
            created_at=_optional_text(data.get("createdAt")),
            is_completed=is_completed if isinstance(is_completed, bool) else None,
            audio_url=data.get("audioUrl") or None,
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            approval_status=ApprovalStatus.normalize(data.get("approvalStatus")),
            answers=[Answer.from_dict(a) for a in (data.get("answers") or []) if isinstance(a, dict)],
            extra=_known_keys(data, cls.WIRE_KEYS),
        )

    @property
    def is_approved(self) -> bool:
        return self.approval_status is ApprovalStatus.CORRECTLY_DONE

    @property
    def submitted_at(self) -> Optional[datetime]:
        return parse_timestamp(self.created_at)

    @property
    def sort_timestamp(self) -> datetime:
        """Submission time for ordering; missing sorts as the epoch."""
        return self.submitted_at or EPOCH

    @property
    def location(self) -> Optional[GeoPoint]:
        """Well-formed (lat, lng) pair, or None when either half is unusable."""
        lat = parse_coordinate(self.latitude)
        lng = parse_coordinate(self.longitude)
        if lat is None or lng is None:
            return None
        return GeoPoint(lat, lng)

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_url)

    def set_approval_status(self, status: ApprovalStatus):
        self.approval_status = ApprovalStatus.parse(status)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "responseId": self.response_id,
                "userName": self.user_name,
                "userCode": self.user_code,
                "userMobile": self.user_mobile,
                "userRole": self.user_role,
                "createdAt": self.created_at,
                "isCompleted": self.is_completed,
                "audioUrl": self.audio_url,
                "latitude": self.latitude,
                "longitude": self.longitude,
                "approvalStatus": self.approval_status.value,
                "isApproved": self.is_approved,
                "answers": [a.to_dict() for a in self.answers],
            }
        )
        return data


@dataclass
class Survey:
    """A campaign definition owning zero or more responses."""

    survey_id: str
    name: str = ""
    code: Optional[str] = None
    status: str = ""
    category: Optional[str] = None
    project_name: Optional[str] = None
    responses: List[Response] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    WIRE_KEYS = (
        "surveyId",
        "surveyCode",
        "name",
        "status",
        "category",
        "projectName",
        "responses",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Survey":
        return cls(
            survey_id=_identifier(data, "surveyId"),
            name=str(data.get("name") or ""),
            code=_optional_text(data.get("surveyCode")),
            status=str(data.get("status") or ""),
            category=_optional_text(data.get("category")),
            project_name=_optional_text(data.get("projectName")),
            responses=[
                Response.from_dict(r) for r in (data.get("responses") or []) if isinstance(r, dict)
            ],
            extra=_known_keys(data, cls.WIRE_KEYS),
        )

    def get_response(self, response_id: str) -> Optional[Response]:
        response_id = str(response_id)
        for response in self.responses:
            if response.response_id == response_id:
                return response
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "surveyId": self.survey_id,
                "surveyCode": self.code,
                "name": self.name,
                "status": self.status,
                "category": self.category,
                "projectName": self.project_name,
                "responses": [r.to_dict() for r in self.responses],
            }
        )
        return data


def parse_surveys(payload: Any) -> List[Survey]:
    """Parse the bulk-fetch payload ``{"surveys": [...]}``."""
    if isinstance(payload, dict):
        items = payload.get("surveys") or []
    elif isinstance(payload, list):
        items = payload
    else:
        items = []
    return [Survey.from_dict(s) for s in items if isinstance(s, dict)]


__all__ = [
    "ApprovalStatus",
    "APPROVAL_LABELS",
    "SurveyStatus",
    "QuestionType",
    "GeoPoint",
    "Answer",
    "Response",
    "Survey",
    "EPOCH",
    "parse_coordinate",
    "parse_timestamp",
    "parse_surveys",
]
