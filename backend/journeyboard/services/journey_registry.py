"""JourneyRegistry: the organization's set of pipelines."""

import uuid

import structlog

from journeyboard.core.config import get_settings
from journeyboard.core.exceptions import NotFoundError
from journeyboard.domain.context import OrgContext
from journeyboard.domain.records import Journey
from journeyboard.domain.stages import clean_title
from journeyboard.services.remote import call_remote
from journeyboard.store.base import PipelineStore

logger = structlog.get_logger(__name__)


class JourneyRegistry:
    def __init__(
        self,
        store: PipelineStore,
        timeout: float | None = None,
        entry_stage_title: str | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._timeout = timeout if timeout is not None else settings.remote_timeout_seconds
        self._entry_stage_title = entry_stage_title or settings.default_entry_stage_title

    async def list_journeys(self, ctx: OrgContext) -> list[Journey]:
        """Journeys ordered by creation time; an empty list is a valid answer."""
        journeys = await call_remote(
            "list_journeys", self._store.list_journeys(ctx.organization_id), self._timeout
        )
        return sorted(journeys, key=lambda j: j.created_at)

    async def get_journey(self, ctx: OrgContext, journey_id: uuid.UUID) -> Journey:
        journey = await call_remote(
            "get_journey", self._store.get_journey(ctx.organization_id, journey_id), self._timeout
        )
        if journey is None:
            raise NotFoundError(f"Journey {journey_id} not found")
        return journey

    async def create_journey(self, ctx: OrgContext, title: str, description: str | None = None) -> Journey:
        """Create a journey together with its entry stage at position 0.

        Raises:
            ValidationError: Empty or whitespace title (nothing is written)
            RemoteError: The store rejected the write
        """
        title = clean_title(title, "Journey title")
        description = (description or "").strip() or None

        journey, entry = await call_remote(
            "insert_journey",
            self._store.insert_journey(ctx.organization_id, title, description, self._entry_stage_title),
            self._timeout,
        )
        logger.info(
            "journey_created",
            organization_id=str(ctx.organization_id),
            journey_id=str(journey.id),
            entry_stage_id=str(entry.id),
        )
        return journey
