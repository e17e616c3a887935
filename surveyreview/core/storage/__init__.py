"""
Storage for the review session.

- SnapshotStore: the process-local survey/response tree, replaced wholesale
  on load and updated in place by approval verdicts
- StaticSurveySource: a SurveyDataSource backed by a JSON snapshot file,
  for offline review and demos

Usage:
    from surveyreview.core.storage import SnapshotStore, StaticSurveySource

    store = SnapshotStore()
    store.load(await StaticSurveySource.from_file(path).fetch_all_survey_responses())
"""

from .snapshot_store import SnapshotStore
from .static_source import StaticSurveySource

__all__ = [
    "SnapshotStore",
    "StaticSurveySource",
]
