"""Store protocols: the persistence collaborators the pipeline consumes.

PipelineStore covers journeys, stages and the pipeline fields of people;
HistoryRecorder is the append-only audit trail. Every call is scoped by
organization id. Implementations raise RemoteError for any failure.

Implementations:
- SqlPipelineStore / SqlHistoryRecorder: SQLAlchemy async, PostgreSQL
- PipelineStoreFake: in-memory double with failure injection for tests
"""

import uuid
from typing import Protocol, runtime_checkable

from journeyboard.domain.records import HistoryEvent, Journey, Person, Stage


@runtime_checkable
class PipelineStore(Protocol):
    """Persistence operations used by the Engagement Pipeline core."""

    async def list_journeys(self, organization_id: uuid.UUID) -> list[Journey]:
        """Journeys of the organization ordered by created_at ascending."""
        ...

    async def get_journey(self, organization_id: uuid.UUID, journey_id: uuid.UUID) -> Journey | None:
        ...

    async def insert_journey(
        self,
        organization_id: uuid.UUID,
        title: str,
        description: str | None,
        entry_stage_title: str,
    ) -> tuple[Journey, Stage]:
        """Create a journey and its position-0 entry stage in one write."""
        ...

    async def insert_stage(
        self,
        organization_id: uuid.UUID,
        journey_id: uuid.UUID,
        title: str,
        position: int,
    ) -> Stage:
        ...

    async def list_stages(self, organization_id: uuid.UUID, journey_id: uuid.UUID) -> list[Stage]:
        """Stages of one journey ordered by position."""
        ...

    async def update_stage_title(self, organization_id: uuid.UUID, stage_id: uuid.UUID, title: str) -> None:
        ...

    async def upsert_stage_positions(self, organization_id: uuid.UUID, stages: list[Stage]) -> None:
        """Persist id/position/title/journey for every given stage (full rewrite)."""
        ...

    async def delete_stage(self, organization_id: uuid.UUID, stage_id: uuid.UUID) -> None:
        """Delete a stage and renumber the journey's remaining stages to 0..N-1."""
        ...

    async def list_people(self, organization_id: uuid.UUID, journey_id: uuid.UUID) -> list[Person]:
        ...

    async def get_person(self, organization_id: uuid.UUID, person_id: uuid.UUID) -> Person | None:
        ...

    async def update_person_stage(
        self, organization_id: uuid.UUID, person_id: uuid.UUID, stage_id: uuid.UUID
    ) -> None:
        ...

    async def update_person_journey(
        self,
        organization_id: uuid.UUID,
        person_id: uuid.UUID,
        journey_id: uuid.UUID,
        stage_id: uuid.UUID,
    ) -> None:
        """Set journey_id and stage_id together in one write."""
        ...

    async def reassign_stage_members(
        self, organization_id: uuid.UUID, from_stage_id: uuid.UUID, to_stage_id: uuid.UUID
    ) -> int:
        """Move everyone in from_stage_id to to_stage_id; returns rows changed."""
        ...

    async def update_person_archived(
        self, organization_id: uuid.UUID, person_id: uuid.UUID, archived: bool
    ) -> None:
        ...


@runtime_checkable
class HistoryRecorder(Protocol):
    """Append-only audit trail owned outside the pipeline."""

    async def append(self, event: HistoryEvent) -> None:
        ...

    async def list_for_person(self, organization_id: uuid.UUID, person_id: uuid.UUID) -> list[HistoryEvent]:
        """Events for one person, newest first."""
        ...
