"""
Approval Workflow Controller

Issues approval-status mutations against the external data source and
reconciles the local snapshot once the call succeeds.

- No optimistic update: the snapshot changes only after the external call
  resolves, so a failure needs no rollback.
- At most one call per response id may be in flight. The controller exposes
  the in-flight set so callers can disable the control; issuing a second call
  for an id that is still updating raises ``ApprovalInProgressError``.
- Calls for different response ids may run concurrently.
- External failures are caught here and returned as a message; they never
  propagate to the caller.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional, Set

from surveyreview.core.events import (
    ApprovalChanged,
    ApprovalFailed,
    ApprovalRequested,
    EventStore,
)
from surveyreview.core.protocols import SurveyDataSource
from surveyreview.core.schema import ApprovalStatus, Response
from surveyreview.core.storage import SnapshotStore
from surveyreview.errors import (
    ApprovalInProgressError,
    ResponseNotFoundError,
    describe_error,
)

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_MESSAGE = "Response status updated successfully"
DEFAULT_FAILURE_MESSAGE = "Failed to update response status."


@dataclass
class ApprovalResult:
    """Outcome of one ``set_approval`` call."""

    response_id: str
    status: ApprovalStatus
    ok: bool
    message: str
    response: Optional[Response] = None

    def to_dict(self) -> dict:
        return {
            "responseId": self.response_id,
            "approvalStatus": self.status.value,
            "ok": self.ok,
            "message": self.message,
            "response": self.response.to_dict() if self.response else None,
        }


class ApprovalWorkflowController:
    """Per-response approval mutations with single-flight tracking."""

    def __init__(
        self,
        store: SnapshotStore,
        source: SurveyDataSource,
        event_store: Optional[EventStore] = None,
        actor: str = "reviewer",
    ):
        """
        Args:
            store: Snapshot to reconcile on success
            source: External data source providing ``set_approval_status``
            event_store: Optional audit log
            actor: Name recorded on audit events
        """
        self.store = store
        self.source = source
        self.event_store = event_store
        self.actor = actor
        self._updating: Set[str] = set()

    @property
    def updating(self) -> FrozenSet[str]:
        """Response ids with a mutation currently in flight."""
        return frozenset(self._updating)

    def is_updating(self, response_id: str) -> bool:
        return str(response_id) in self._updating

    def _record(self, event):
        if self.event_store is not None:
            self.event_store.append(event)

    async def set_approval(self, response_id: str, new_status) -> ApprovalResult:
        """Set the approval status of one response.

        Args:
            response_id: Id of an existing response in the snapshot
            new_status: One of the six ``ApprovalStatus`` values

        Returns:
            ApprovalResult; ``ok`` is False when the external call failed

        Raises:
            InvalidApprovalStatusError: ``new_status`` is not an allowed value
            ResponseNotFoundError: No such response in the snapshot
            ApprovalInProgressError: A call for this id is still in flight
        """
        status = ApprovalStatus.parse(new_status)
        response_id = str(response_id)

        response = self.store.get_response(response_id)
        if response is None:
            raise ResponseNotFoundError(response_id)
        if response_id in self._updating:
            raise ApprovalInProgressError(response_id)

        old_status = response.approval_status
        self._updating.add(response_id)
        self._record(
            ApprovalRequested(
                response_id=response_id, actor=self.actor, requested_status=status.value
            )
        )
        logger.info(f"Setting approval for {response_id}: {old_status.value} -> {status.value}")

        try:
            result = await self.source.set_approval_status(response_id, status.value)
        except Exception as e:
            message = describe_error(e, DEFAULT_FAILURE_MESSAGE)
            logger.warning(f"Approval update failed for {response_id}: {message}")
            self._record(
                ApprovalFailed(
                    response_id=response_id,
                    actor=self.actor,
                    requested_status=status.value,
                    message=message,
                )
            )
            return ApprovalResult(response_id, status, ok=False, message=message)
        finally:
            self._updating.discard(response_id)

        message = DEFAULT_SUCCESS_MESSAGE
        if isinstance(result, dict) and result.get("message"):
            message = str(result["message"])

        try:
            updated = self.store.apply_approval_update(response_id, status)
        except ResponseNotFoundError:
            # Snapshot was replaced while the call was in flight
            logger.warning(f"Response {response_id} vanished from snapshot before update applied")
            updated = None

        self._record(
            ApprovalChanged(
                response_id=response_id,
                actor=self.actor,
                old_status=old_status.value,
                new_status=status.value,
                message=message,
            )
        )
        return ApprovalResult(response_id, status, ok=True, message=message, response=updated)
