"""
Audit log for review sessions.

Append-only record of snapshot loads and approval activity:
- Trail of every verdict a reviewer issued, including failed attempts
- Replay by response, event type or time range
- Decoupled handlers for side effects (notifications, metrics)

Event Types:
- SnapshotLoaded: Bulk fetch replaced the snapshot
- SnapshotLoadFailed: Bulk fetch failed, prior snapshot kept
- ApprovalRequested: Mutation call issued for a response
- ApprovalChanged: Mutation succeeded and was applied locally
- ApprovalFailed: Mutation failed, snapshot untouched

Usage:
    from surveyreview.core.events import EventStore, ApprovalChanged

    store = EventStore(Path("./review_events.jsonl"))
    store.append(ApprovalChanged(
        response_id="r1",
        old_status="PENDING",
        new_status="CORRECTLY_DONE",
    ))

    for event in store.replay(response_id="r1"):
        print(f"{event.timestamp}: {event.event_type}")

Without a path the log is kept in memory for the lifetime of the process.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Type
import json
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events in the review workflow."""

    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_LOAD_FAILED = "snapshot_load_failed"
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_CHANGED = "approval_changed"
    APPROVAL_FAILED = "approval_failed"


@dataclass
class Event:
    """Base event class with common fields."""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    event_type: str = field(default="")
    response_id: Optional[str] = None
    actor: str = "reviewer"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Create event from dictionary."""
        event_type = data.get("event_type", "")

        event_class = EVENT_REGISTRY.get(event_type, Event)
        return event_class(**{k: v for k, v in data.items() if k in event_class.__dataclass_fields__})


@dataclass
class SnapshotLoaded(Event):
    """Event: Bulk fetch replaced the snapshot."""

    event_type: str = field(default=EventType.SNAPSHOT_LOADED.value)
    actor: str = "system"
    survey_count: int = 0
    response_count: int = 0
    version: int = 0


@dataclass
class SnapshotLoadFailed(Event):
    """Event: Bulk fetch failed."""

    event_type: str = field(default=EventType.SNAPSHOT_LOAD_FAILED.value)
    actor: str = "system"
    message: str = ""


@dataclass
class ApprovalRequested(Event):
    """Event: Approval mutation issued."""

    event_type: str = field(default=EventType.APPROVAL_REQUESTED.value)
    requested_status: str = ""


@dataclass
class ApprovalChanged(Event):
    """Event: Approval mutation succeeded and was applied to the snapshot."""

    event_type: str = field(default=EventType.APPROVAL_CHANGED.value)
    old_status: str = ""
    new_status: str = ""
    message: str = ""


@dataclass
class ApprovalFailed(Event):
    """Event: Approval mutation failed."""

    event_type: str = field(default=EventType.APPROVAL_FAILED.value)
    requested_status: str = ""
    message: str = ""


# Registry mapping event type strings to classes
EVENT_REGISTRY: Dict[str, Type[Event]] = {
    EventType.SNAPSHOT_LOADED.value: SnapshotLoaded,
    EventType.SNAPSHOT_LOAD_FAILED.value: SnapshotLoadFailed,
    EventType.APPROVAL_REQUESTED.value: ApprovalRequested,
    EventType.APPROVAL_CHANGED.value: ApprovalChanged,
    EventType.APPROVAL_FAILED.value: ApprovalFailed,
}


class EventStore:
    """
    Append-only event log, in memory or as JSON Lines on disk.

    Features:
    - Durable append-only storage when a path is given
    - Event replay by response, time range, or type
    - Pluggable event handlers for side effects
    """

    def __init__(self, log_path: Optional[Path] = None):
        """Initialize event store.

        Args:
            log_path: Path to JSONL event log file (in-memory log when None)
        """
        self.log_path = Path(log_path) if log_path else None
        if self.log_path:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._events: List[Event] = []
        self._handlers: Dict[str, List[Callable[[Event], None]]] = {}

    def append(self, event: Event) -> None:
        """Append event to log and notify handlers."""
        if self.log_path:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(event.to_dict()) + "\n")
        else:
            self._events.append(event)

        logger.debug(f"Event appended: {event.event_type} for {event.response_id}")

        self._notify_handlers(event)

    def _iter_all(self) -> Iterator[Event]:
        if not self.log_path:
            yield from list(self._events)
            return

        if not self.log_path.exists():
            return

        with open(self.log_path) as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    yield Event.from_dict(json.loads(line))
                except (json.JSONDecodeError, TypeError) as e:
                    logger.warning(f"Failed to parse event: {e}")

    def replay(
        self,
        response_id: Optional[str] = None,
        event_type: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Iterator[Event]:
        """Replay events with optional filters.

        Yields:
            Matching events in chronological order
        """
        for event in self._iter_all():
            if response_id and event.response_id != str(response_id):
                continue
            if event_type and event.event_type != event_type:
                continue
            if since or until:
                event_time = datetime.fromisoformat(event.timestamp)
                if since and event_time < since:
                    continue
                if until and event_time > until:
                    continue

            yield event

    def get_response_history(self, response_id: str) -> List[Event]:
        """Get complete event history for a response."""
        return list(self.replay(response_id=response_id))

    def get_latest_status(self, response_id: str) -> Optional[str]:
        """Last status successfully applied to a response, if any."""
        status = None
        for event in self.replay(
            response_id=response_id,
            event_type=EventType.APPROVAL_CHANGED.value,
        ):
            if isinstance(event, ApprovalChanged):
                status = event.new_status
        return status

    def count_events(
        self,
        event_type: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> int:
        return sum(1 for _ in self.replay(event_type=event_type, since=since))

    def register_handler(
        self,
        event_type: str,
        handler: Callable[[Event], None],
    ) -> None:
        """Register handler for event type."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def _notify_handlers(self, event: Event) -> None:
        """Notify registered handlers of event."""
        handlers = self._handlers.get(event.event_type, [])
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")


__all__ = [
    "Event",
    "EventType",
    "SnapshotLoaded",
    "SnapshotLoadFailed",
    "ApprovalRequested",
    "ApprovalChanged",
    "ApprovalFailed",
    "EventStore",
    "EVENT_REGISTRY",
]
