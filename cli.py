from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from surveyreview.api_client import SurveyApiClient
from surveyreview.config import Config
from surveyreview.core.events import EventStore
from surveyreview.core.protocols import SurveyDataSource
from surveyreview.core.schema import ApprovalStatus, SurveyStatus
from surveyreview.core.storage import StaticSurveySource
from surveyreview.errors import DataSourceError, SurveyReviewError
from surveyreview.logging_config import configure_logging
from surveyreview.review import ReviewWorkspace, review_statistics
from surveyreview.review.filters import ALL_SURVEY_STATUSES, ApprovalBucket

app = typer.Typer(help="Review and approve field survey submissions")

DATA_FILE_OPTION = typer.Option(
    None,
    "--data-file",
    "-f",
    exists=True,
    dir_okay=False,
    help="JSON snapshot ({\"surveys\": [...]}) to review instead of the survey API",
)


def _open_source(data_file: Optional[Path]) -> SurveyDataSource:
    """Snapshot file when given (or SURVEY_DATA_FILE), else the survey API."""
    data_file = data_file or Config.SURVEY_DATA_FILE
    try:
        if data_file:
            return StaticSurveySource.from_file(data_file)
        return SurveyApiClient.from_config(Config)
    except (DataSourceError, ValueError) as e:
        typer.echo(f"❌ {getattr(e, 'message', e)}", err=True)
        raise typer.Exit(1)


def _load_workspace(data_file: Optional[Path], event_store: Optional[EventStore] = None) -> ReviewWorkspace:
    workspace = ReviewWorkspace(_open_source(data_file), event_store=event_store)
    if not asyncio.run(workspace.load()):
        typer.echo(f"❌ {workspace.error}", err=True)
        raise typer.Exit(1)
    return workspace


def _fmt(value, default: str = "-") -> str:
    return default if value in (None, "") else str(value)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr"),
) -> None:
    # Leave logging alone when the host process already configured it
    if not logging.getLogger().handlers:
        configure_logging(
            level="INFO" if verbose else "WARNING",
            json_format=Config.LOG_JSON,
        )


@app.command()
def surveys(
    status: str = typer.Option(
        ALL_SURVEY_STATUSES,
        "--status",
        "-s",
        help="Survey status: " + ", ".join(s.value for s in SurveyStatus) + " or All",
    ),
    query: str = typer.Option("", "--query", "-q", help="Search name, code, category, project"),
    data_file: Optional[Path] = DATA_FILE_OPTION,
) -> None:
    """List surveys with response totals and last activity."""
    workspace = _load_workspace(data_file)
    workspace.set_survey_filter(status=status, query=query)
    rows = workspace.survey_rows()

    if not rows:
        typer.echo("No surveys found.")
        return

    for row in rows:
        typer.echo(
            f"{row.survey_id:<12} {_fmt(row.code):<10} {row.status:<8} "
            f"{row.total_responses:>5} responses  {len(row.respondents):>4} respondents  "
            f"last: {_fmt(row.last_response_at)}  {row.name}"
        )
    typer.echo(f"\n📊 {len(rows)} survey(s)")


@app.command()
def users(
    survey_id: str = typer.Argument(..., help="Survey id"),
    query: str = typer.Option("", "--query", "-q", help="Search mobile number or name"),
    data_file: Optional[Path] = DATA_FILE_OPTION,
) -> None:
    """List a survey's respondents, busiest first."""
    workspace = _load_workspace(data_file)
    try:
        workspace.select_survey(survey_id)
    except SurveyReviewError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    workspace.set_user_query(query)
    groups = workspace.respondent_rows()
    typer.echo(f"📋 {workspace.selected_survey.name}")
    for group in groups:
        typer.echo(
            f"{group.key:<20} {group.user_name:<24} {_fmt(group.user_mobile):<14} "
            f"{group.entries:>4} entries"
        )
    typer.echo(f"\n👥 {len(groups)} respondent(s)")


@app.command()
def submissions(
    survey_id: str = typer.Argument(..., help="Survey id"),
    user_key: str = typer.Argument(..., help="Respondent key (mobile, code or unknown-<name>)"),
    status: str = typer.Option(
        ApprovalBucket.ALL.value,
        "--status",
        "-s",
        help="ALL, APPROVED, NOT_APPROVED, PENDING or an exact approval status",
    ),
    query: str = typer.Option("", "--query", "-q", help="Search name, code, mobile, role"),
    data_file: Optional[Path] = DATA_FILE_OPTION,
) -> None:
    """List one respondent's submissions, newest first."""
    workspace = _load_workspace(data_file)
    try:
        workspace.select_survey(survey_id, flat=False)
        workspace.select_user(user_key)
    except SurveyReviewError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    workspace.set_response_filter(bucket=status, query=query)
    panel = workspace.submission_panel()
    if panel.total_responses == 0:
        typer.echo(f"❌ No submissions for respondent {user_key}", err=True)
        raise typer.Exit(1)

    typer.echo(f"👤 {panel.user_name} ({_fmt(panel.user_mobile)}) - {panel.total_responses} total")
    for response in panel.rows:
        audio = "🎧" if response.has_audio else "  "
        typer.echo(
            f"{response.response_id:<14} {_fmt(response.created_at):<26} {audio} "
            f"{response.approval_status.label}"
        )

    counts = ", ".join(
        f"{s.label}: {n}" for s, n in panel.status_counts.items() if n
    )
    typer.echo(f"\n📊 {len(panel.rows)} shown ({counts or 'none'})")
    if panel.centroid:
        typer.echo(
            f"📍 Centroid of {panel.located_count} located: "
            f"{panel.centroid.lat:.6f}, {panel.centroid.lng:.6f}"
        )


@app.command()
def show(
    response_id: str = typer.Argument(..., help="Response id"),
    data_file: Optional[Path] = DATA_FILE_OPTION,
) -> None:
    """Show one submission with all of its answers."""
    workspace = _load_workspace(data_file)
    found = workspace.store.find_response(response_id)
    if found is None:
        typer.echo(f"❌ Response not found: {response_id}", err=True)
        raise typer.Exit(1)

    survey, response = found
    location = response.location
    typer.echo("=" * 70)
    typer.echo(f"{survey.name} ({_fmt(survey.code)})")
    typer.echo("=" * 70)
    typer.echo(f"Response:    {response.response_id}")
    typer.echo(f"Collected:   {response.user_name or response.user_code or '-'} ({_fmt(response.user_mobile)})")
    typer.echo(f"Role:        {_fmt(response.user_role)}")
    typer.echo(f"Submitted:   {_fmt(response.created_at)}")
    typer.echo(f"Status:      {response.approval_status.label}")
    typer.echo(f"Audio:       {_fmt(response.audio_url)}")
    typer.echo(f"Location:    {f'{location.lat}, {location.lng}' if location else '-'}")
    typer.echo()
    for index, answer in enumerate(response.answers, start=1):
        typer.echo(f"{index}. {answer.question_text}")
        typer.echo(f"   {answer.display_value()}")


@app.command()
def approve(
    response_id: str = typer.Argument(..., help="Response id"),
    status: str = typer.Argument(..., help="One of: " + ", ".join(s.value for s in ApprovalStatus)),
    data_file: Optional[Path] = DATA_FILE_OPTION,
) -> None:
    """Record an approval verdict for one submission.

    With --data-file the verdict only lives for this run; the file is not rewritten.
    """
    try:
        new_status = ApprovalStatus.parse(status)
    except SurveyReviewError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    workspace = _load_workspace(data_file, event_store=EventStore(Config.EVENT_LOG_PATH))
    try:
        result = asyncio.run(workspace.set_approval(response_id, new_status))
    except SurveyReviewError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    if not result.ok:
        typer.echo(f"❌ {result.message}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✅ {result.message}")
    typer.echo(f"   {response_id}: {new_status.label}")
    if isinstance(workspace.source, StaticSurveySource):
        typer.echo(f"ℹ️  Data file mode: verdict not written back to {workspace.source.source_path}")


@app.command()
def stats(
    survey_id: Optional[str] = typer.Option(None, "--survey", help="Limit to one survey"),
    data_file: Optional[Path] = DATA_FILE_OPTION,
) -> None:
    """Show approval statistics."""
    workspace = _load_workspace(data_file)
    if survey_id is not None:
        survey = workspace.store.get_survey(survey_id)
        if survey is None:
            typer.echo(f"❌ Survey not found: {survey_id}", err=True)
            raise typer.Exit(1)
        responses = survey.responses
    else:
        responses = list(workspace.store.iter_responses())

    summary = review_statistics(responses)
    typer.echo(f"📊 Responses:     {summary['total_responses']}")
    typer.echo(f"✅ Approved:      {summary['approved_count']}")
    typer.echo(f"⏳ Not reviewed:  {summary['pending_count']}")
    typer.echo(f"🎧 With audio:    {summary['with_audio_count']}")
    typer.echo(f"📍 With location: {summary['with_location_count']}")
    typer.echo()
    for status in ApprovalStatus:
        typer.echo(f"   {status.label:<32} {summary['status_counts'][status.value]:>5}")


@app.command()
def serve(
    host: str = typer.Option(Config.HOST, "--host", help="Interface to bind"),
    port: int = typer.Option(Config.PORT, "--port", "-p", help="Port to run the review API on"),
    data_file: Optional[Path] = DATA_FILE_OPTION,
) -> None:
    """Run the review HTTP API."""
    import uvicorn

    from surveyreview.review.review_api import create_review_app

    source = _open_source(data_file)
    app_instance = create_review_app(source, event_store=EventStore(Config.EVENT_LOG_PATH))

    typer.echo("=" * 70)
    typer.echo("SURVEY RESPONSE REVIEW API")
    typer.echo("=" * 70)
    typer.echo(f"Source: {data_file or Config.SURVEY_DATA_FILE or Config.SURVEY_API_BASE_URL}")
    typer.echo(f"🌐 Open: http://{host}:{port}/api/v1/surveys")
    typer.echo()

    uvicorn.run(app_instance, host=host, port=port, log_level=Config.LOG_LEVEL)


if __name__ == "__main__":
    app()
