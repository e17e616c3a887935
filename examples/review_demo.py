#!/usr/bin/env python3
"""
Demonstration of a review session over the sample snapshot.

Walks the drill-down (survey -> respondent -> submission) and records one
verdict, printing what a reviewer would see at each level.
"""

import asyncio
from pathlib import Path

from surveyreview.core.events import EventStore
from surveyreview.core.storage import StaticSurveySource
from surveyreview.review import ReviewWorkspace

SAMPLE_FILE = Path(__file__).parent / "sample_data" / "surveys.json"


async def demo_review():
    """Drill into the first survey and approve its oldest pending submission."""

    print("=" * 80)
    print("Survey Response Review Demonstration")
    print("=" * 80)
    print()

    events = EventStore()
    workspace = ReviewWorkspace(StaticSurveySource.from_file(SAMPLE_FILE), event_store=events)
    if not await workspace.load():
        print(f"Load failed: {workspace.error}")
        return

    print("Step 1: Survey list")
    print("-" * 80)
    for row in workspace.survey_rows():
        print(f"  {row.name:<28} {row.status:<8} {row.total_responses} responses")
    print()

    first = workspace.survey_rows()[0]
    workspace.select_survey(first.survey_id)

    print(f"Step 2: Respondents of {first.name}")
    print("-" * 80)
    for group in workspace.respondent_rows():
        print(f"  {group.user_name:<20} {group.key:<12} {group.entries} entries")
    print()

    busiest = workspace.respondent_rows()[0]
    workspace.select_user(busiest.key)
    panel = workspace.submission_panel()

    print(f"Step 3: Submissions by {panel.user_name}")
    print("-" * 80)
    for response in panel.rows:
        print(f"  {response.response_id:<8} {response.created_at:<24} {response.approval_status.label}")
    if panel.centroid:
        print(f"  Centroid: {panel.centroid.lat:.4f}, {panel.centroid.lng:.4f}")
    print()

    pending = [r for r in panel.rows if not r.is_approved]
    if pending:
        target = pending[-1]
        result = await workspace.set_approval(target.response_id, "CORRECTLY_DONE")
        print("Step 4: Verdict")
        print("-" * 80)
        print(f"  {target.response_id}: {result.message}")
        print(f"  Audit trail: {[e.event_type for e in events.get_response_history(target.response_id)]}")


if __name__ == "__main__":
    asyncio.run(demo_review())
