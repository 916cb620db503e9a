"""HistoryService: writes and reads the person audit trail.

The trail belongs to an external collaborator. A failed append never undoes
the pipeline change it describes; it is logged and handed back as a warning.
"""

import uuid

import structlog

from journeyboard.core.config import get_settings
from journeyboard.core.exceptions import RemoteError
from journeyboard.domain.context import OrgContext
from journeyboard.domain.records import HistoryAction, HistoryEvent
from journeyboard.services.remote import call_remote
from journeyboard.store.base import HistoryRecorder

logger = structlog.get_logger(__name__)


class HistoryService:
    def __init__(self, recorder: HistoryRecorder, timeout: float | None = None):
        self._recorder = recorder
        self._timeout = timeout if timeout is not None else get_settings().remote_timeout_seconds

    async def record(
        self,
        ctx: OrgContext,
        person_id: uuid.UUID,
        action: HistoryAction,
        description: str,
        metadata: dict,
    ) -> list[str]:
        """Append one event; returns warnings (empty when the append landed)."""
        event = HistoryEvent(
            person_id=person_id,
            organization_id=ctx.organization_id,
            action_type=action,
            description=description,
            metadata=metadata,
            created_by=ctx.actor_id,
        )
        try:
            await call_remote("append_history", self._recorder.append(event), self._timeout)
        except RemoteError as exc:
            logger.warning(
                "history_append_failed",
                person_id=str(person_id),
                action_type=action.value,
                error=exc.reason,
            )
            return [f"History not recorded: {exc.reason}"]
        return []

    async def timeline(self, ctx: OrgContext, person_id: uuid.UUID) -> list[HistoryEvent]:
        """Events for one person, newest first."""
        events = await call_remote(
            "list_history",
            self._recorder.list_for_person(ctx.organization_id, person_id),
            self._timeout,
        )
        return sorted(events, key=lambda e: e.created_at, reverse=True)
