"""
HTTP API for Survey Response Review

Serves the drill-down views (surveys -> respondents -> submissions -> detail)
as JSON for a review front end, and accepts approval verdicts.

Features:
- Survey list with status and search filters
- Respondent groups per survey, busiest first
- Per-respondent submission list with status counts and location centroid
- Flat per-survey submission list (alternate drill-down)
- Approval updates with per-response single-flight (409 while updating)
- Snapshot reload and statistics

Authentication is handled upstream; this API trusts its caller.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from surveyreview.config import Config
from surveyreview.core.events import EventStore
from surveyreview.core.protocols import SurveyDataSource
from surveyreview.core.schema import ApprovalStatus, Response, Survey
from surveyreview.errors import ApprovalInProgressError, ResponseNotFoundError
from surveyreview.middleware import RequestTrackingMiddleware, SecurityHeadersMiddleware

from .aggregation import (
    approval_counts,
    group_by_survey_user,
    location_centroid,
    responses_for_key,
    review_statistics,
    summarize_surveys,
)
from .filters import (
    ALL_SURVEY_STATUSES,
    ApprovalBucket,
    filter_respondent_groups,
    filter_responses,
    filter_surveys,
)
from .identity import display_name
from .workspace import ReviewWorkspace

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models for API
# ============================================================================


class ApprovalRequest(BaseModel):
    approvalStatus: ApprovalStatus


# ============================================================================
# Serialization helpers
# ============================================================================


def _point(point) -> Optional[dict]:
    return {"lat": point.lat, "lng": point.lng} if point else None


def _survey_header(survey: Survey) -> dict:
    return {
        "surveyId": survey.survey_id,
        "surveyCode": survey.code,
        "name": survey.name,
        "status": survey.status,
        "category": survey.category,
        "projectName": survey.project_name,
    }


def _counts(responses: List[Response]) -> dict:
    return {status.value: count for status, count in approval_counts(responses).items()}


def _response_row(response: Response, workspace: ReviewWorkspace) -> dict:
    """List row: identity, timing, verdict, media and location, no answers."""
    status = response.approval_status
    return {
        "responseId": response.response_id,
        "createdAt": response.created_at,
        "userName": response.user_name,
        "userCode": response.user_code,
        "userMobile": response.user_mobile,
        "userRole": response.user_role,
        "isCompleted": response.is_completed,
        "audioUrl": response.audio_url,
        "approvalStatus": status.value,
        "approvalLabel": status.label,
        "approvalTone": status.tone,
        "isApproved": response.is_approved,
        "location": _point(response.location),
        "updating": workspace.is_updating(response.response_id),
    }


def _response_detail(response: Response, workspace: ReviewWorkspace) -> dict:
    detail = _response_row(response, workspace)
    detail["collectedBy"] = display_name(response, "-")
    detail["answers"] = [
        {
            "questionId": a.question_id,
            "questionText": a.question_text,
            "questionType": a.question_type,
            "answer": a.display_value(),
        }
        for a in response.answers
    ]
    return detail


# ============================================================================
# Application Factory
# ============================================================================


def create_review_app(
    source: SurveyDataSource,
    event_store: Optional[EventStore] = None,
    allowed_origins: Optional[List[str]] = None,
    load_on_startup: bool = True,
) -> FastAPI:
    """
    Create the review FastAPI application.

    Args:
        source: External data source for bulk fetch and approval mutations
        event_store: Optional audit log
        allowed_origins: CORS origins (defaults to Config.ALLOWED_ORIGINS)
        load_on_startup: Fetch the snapshot when the app starts

    Returns:
        Configured FastAPI app
    """
    workspace = ReviewWorkspace(source, event_store=event_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if load_on_startup:
            if not await workspace.load():
                logger.warning(f"Starting without data: {workspace.error}")
        yield

    app = FastAPI(
        title="Survey Response Review API",
        description="Drill-down review and approval of field survey submissions",
        version="1.0.0",
        docs_url="/docs" if Config.ENVIRONMENT == "development" else None,
        redoc_url="/redoc" if Config.ENVIRONMENT == "development" else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins if allowed_origins is not None else Config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=600,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTrackingMiddleware)

    app.state.workspace = workspace
    store = workspace.store

    def get_survey_or_404(survey_id: str) -> Survey:
        survey = store.get_survey(survey_id)
        if survey is None:
            raise HTTPException(404, "Survey not found")
        return survey

    # ========================================================================
    # Survey and respondent views
    # ========================================================================

    @app.get("/api/v1/surveys")
    async def list_surveys(status: str = ALL_SURVEY_STATUSES, q: str = ""):
        """Survey list rows with totals, respondents and last activity."""
        rows = filter_surveys(summarize_surveys(store.snapshot()), status=status, query=q)
        return {
            "surveys": [row.to_dict() for row in rows],
            "count": len(rows),
            "version": store.version,
            "loadedAt": store.loaded_at,
            "error": workspace.error,
        }

    @app.get("/api/v1/surveys/{survey_id}/users")
    async def list_users(survey_id: str, q: str = ""):
        """Respondent groups of one survey."""
        survey = get_survey_or_404(survey_id)
        groups = filter_respondent_groups(group_by_survey_user(survey), q)
        return {
            "survey": _survey_header(survey),
            "users": [g.to_dict() for g in groups],
            "count": len(groups),
        }

    @app.get("/api/v1/surveys/{survey_id}/users/{user_key:path}/responses")
    async def list_user_responses(
        survey_id: str, user_key: str, status: str = ApprovalBucket.ALL.value, q: str = ""
    ):
        """One respondent's submissions, filtered, newest first."""
        survey = get_survey_or_404(survey_id)
        user_responses = responses_for_key(survey, user_key)
        if not user_responses:
            raise HTTPException(404, "Respondent not found")

        rows = filter_responses(user_responses, bucket=status, query=q)
        first = user_responses[0]
        return {
            "survey": _survey_header(survey),
            "user": {
                "key": user_key,
                "userName": display_name(first, "Unknown User"),
                "userMobile": first.user_mobile,
                "entries": len(user_responses),
            },
            "responses": [_response_row(r, workspace) for r in rows],
            "filteredCount": len(rows),
            "statusCounts": _counts(rows),
            "centroid": _point(location_centroid(rows)),
            "locatedCount": sum(1 for r in rows if r.location is not None),
        }

    @app.get("/api/v1/surveys/{survey_id}/responses")
    async def list_survey_responses(
        survey_id: str, status: str = ApprovalBucket.ALL.value, q: str = ""
    ):
        """Flat list of all of a survey's submissions."""
        survey = get_survey_or_404(survey_id)
        rows = filter_responses(survey.responses, bucket=status, query=q)
        return {
            "survey": _survey_header(survey),
            "responses": [_response_row(r, workspace) for r in rows],
            "filteredCount": len(rows),
            "statusCounts": _counts(rows),
        }

    # ========================================================================
    # Submission detail and approval
    # ========================================================================

    @app.get("/api/v1/responses/{response_id}")
    async def get_response(response_id: str):
        """Full submission including answers."""
        found = store.find_response(response_id)
        if found is None:
            raise HTTPException(404, "Response not found")
        survey, response = found
        return {
            "survey": _survey_header(survey),
            "response": _response_detail(response, workspace),
        }

    @app.patch("/api/v1/responses/{response_id}/approval")
    async def set_approval(response_id: str, request: ApprovalRequest):
        """Record a verdict. The snapshot changes only if the backend accepts it."""
        try:
            result = await workspace.set_approval(response_id, request.approvalStatus)
        except ResponseNotFoundError:
            raise HTTPException(404, "Response not found")
        except ApprovalInProgressError as e:
            raise HTTPException(409, str(e))

        if not result.ok:
            raise HTTPException(502, result.message)

        return {
            "message": result.message,
            "response": _response_detail(result.response, workspace) if result.response else None,
        }

    # ========================================================================
    # Snapshot and statistics
    # ========================================================================

    @app.post("/api/v1/reload")
    async def reload():
        """Re-fetch the full snapshot; the previous one is kept on failure."""
        if workspace.controller.updating:
            raise HTTPException(409, "Approval updates in progress, retry when they finish")
        if not await workspace.load():
            raise HTTPException(503, workspace.error)
        return {"status": "reloaded", "version": store.version, "loadedAt": store.loaded_at}

    @app.get("/api/v1/statistics")
    async def get_statistics(survey_id: Optional[str] = None):
        """Review statistics across all surveys, or one survey."""
        if survey_id is not None:
            responses = get_survey_or_404(survey_id).responses
        else:
            responses = list(store.iter_responses())
        stats = review_statistics(responses)
        stats["survey_count"] = 1 if survey_id is not None else len(store.snapshot())
        return stats

    @app.get("/api/v1/health")
    async def health_check():
        return {
            "status": "healthy" if store.loaded else "degraded",
            "loaded": store.loaded,
            "error": workspace.error,
            "total_responses": sum(1 for _ in store.iter_responses()),
            "timestamp": datetime.now().isoformat(),
        }

    return app


# ============================================================================
# CLI Entry Point
# ============================================================================


if __name__ == "__main__":
    import uvicorn

    from surveyreview.api_client import SurveyApiClient
    from surveyreview.config import get_config
    from surveyreview.core.storage import StaticSurveySource
    from surveyreview.logging_config import configure_logging

    config = get_config()
    configure_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)

    if config.SURVEY_DATA_FILE:
        data_source = StaticSurveySource.from_file(config.SURVEY_DATA_FILE)
    else:
        data_source = SurveyApiClient.from_config(config)

    app = create_review_app(data_source, event_store=EventStore(config.EVENT_LOG_PATH))

    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL)
