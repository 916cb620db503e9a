"""SQLAlchemy implementation of the store protocols (PostgreSQL).

Each call runs in its own session and commits before returning. Database
and transport failures are re-raised as RemoteError so the services never
see driver exceptions.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from journeyboard.core.exceptions import RemoteError
from journeyboard.db.models import JourneyModel, PersonHistoryModel, PersonModel, StageModel
from journeyboard.domain.records import HistoryAction, HistoryEvent, Journey, Person, Stage

logger = structlog.get_logger(__name__)


def _to_journey(row: JourneyModel) -> Journey:
    return Journey(
        id=row.id,
        organization_id=row.organization_id,
        title=row.title,
        description=row.description,
        is_default=row.is_default,
        created_at=row.created_at,
    )


def _to_stage(row: StageModel) -> Stage:
    return Stage(
        id=row.id,
        journey_id=row.journey_id,
        organization_id=row.organization_id,
        title=row.title,
        position=row.position,
    )


def _to_person(row: PersonModel) -> Person:
    return Person(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        journey_id=row.journey_id,
        stage_id=row.stage_id,
        is_archived=row.is_archived,
        phone=row.phone,
        email=row.email,
        created_at=row.created_at,
    )


def _to_event(row: PersonHistoryModel) -> HistoryEvent:
    return HistoryEvent(
        id=row.id,
        person_id=row.person_id,
        organization_id=row.organization_id,
        action_type=HistoryAction(row.action_type),
        description=row.description,
        metadata=row.event_metadata or {},
        created_by=row.created_by,
        created_at=row.created_at,
    )


class _SqlBase:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.warning("store_call_failed", operation=operation, error=str(exc), error_type=type(exc).__name__)
            raise RemoteError(operation, str(exc)) from exc
        except OSError as exc:
            logger.warning("store_transport_failed", operation=operation, error=str(exc))
            raise RemoteError(operation, str(exc)) from exc


class SqlPipelineStore(_SqlBase):
    """PipelineStore backed by the journeys / visitor_stages / people tables."""

    async def list_journeys(self, organization_id: uuid.UUID) -> list[Journey]:
        async with self._session("list_journeys") as session:
            result = await session.execute(
                select(JourneyModel)
                .where(JourneyModel.organization_id == organization_id)
                .order_by(JourneyModel.created_at)
            )
            return [_to_journey(row) for row in result.scalars().all()]

    async def get_journey(self, organization_id: uuid.UUID, journey_id: uuid.UUID) -> Journey | None:
        async with self._session("get_journey") as session:
            result = await session.execute(
                select(JourneyModel).where(
                    JourneyModel.id == journey_id,
                    JourneyModel.organization_id == organization_id,
                )
            )
            row = result.scalar_one_or_none()
            return _to_journey(row) if row else None

    async def insert_journey(
        self,
        organization_id: uuid.UUID,
        title: str,
        description: str | None,
        entry_stage_title: str,
    ) -> tuple[Journey, Stage]:
        async with self._session("insert_journey") as session:
            journey = JourneyModel(organization_id=organization_id, title=title, description=description)
            session.add(journey)
            await session.flush()

            entry = StageModel(
                organization_id=organization_id,
                journey_id=journey.id,
                title=entry_stage_title,
                position=0,
            )
            session.add(entry)
            await session.commit()
            await session.refresh(journey)
            await session.refresh(entry)
            return _to_journey(journey), _to_stage(entry)

    async def insert_stage(
        self,
        organization_id: uuid.UUID,
        journey_id: uuid.UUID,
        title: str,
        position: int,
    ) -> Stage:
        async with self._session("insert_stage") as session:
            stage = StageModel(
                organization_id=organization_id,
                journey_id=journey_id,
                title=title,
                position=position,
            )
            session.add(stage)
            await session.commit()
            await session.refresh(stage)
            return _to_stage(stage)

    async def list_stages(self, organization_id: uuid.UUID, journey_id: uuid.UUID) -> list[Stage]:
        async with self._session("list_stages") as session:
            result = await session.execute(
                select(StageModel)
                .where(
                    StageModel.organization_id == organization_id,
                    StageModel.journey_id == journey_id,
                )
                .order_by(StageModel.position)
            )
            return [_to_stage(row) for row in result.scalars().all()]

    async def update_stage_title(self, organization_id: uuid.UUID, stage_id: uuid.UUID, title: str) -> None:
        async with self._session("update_stage_title") as session:
            await session.execute(
                update(StageModel)
                .where(StageModel.id == stage_id, StageModel.organization_id == organization_id)
                .values(title=title)
            )
            await session.commit()

    async def upsert_stage_positions(self, organization_id: uuid.UUID, stages: list[Stage]) -> None:
        if not stages:
            return
        async with self._session("upsert_stage_positions") as session:
            stmt = pg_insert(StageModel).values([
                {
                    "id": stage.id,
                    "position": stage.position,
                    "title": stage.title,
                    "journey_id": stage.journey_id,
                    "organization_id": organization_id,
                }
                for stage in stages
            ])
            stmt = stmt.on_conflict_do_update(
                index_elements=[StageModel.id],
                set_={"position": stmt.excluded.position, "title": stmt.excluded.title},
                where=StageModel.organization_id == organization_id,
            )
            await session.execute(stmt)
            await session.commit()

    async def delete_stage(self, organization_id: uuid.UUID, stage_id: uuid.UUID) -> None:
        async with self._session("delete_stage") as session:
            result = await session.execute(
                select(StageModel).where(
                    StageModel.id == stage_id,
                    StageModel.organization_id == organization_id,
                )
            )
            stage = result.scalar_one_or_none()
            if stage is None:
                return
            journey_id = stage.journey_id

            await session.execute(delete(StageModel).where(StageModel.id == stage_id))

            # Compact the survivors to 0..N-1
            result = await session.execute(
                select(StageModel)
                .where(StageModel.journey_id == journey_id)
                .order_by(StageModel.position)
            )
            for index, remaining in enumerate(result.scalars().all()):
                if remaining.position != index:
                    remaining.position = index

            await session.commit()

    async def list_people(self, organization_id: uuid.UUID, journey_id: uuid.UUID) -> list[Person]:
        async with self._session("list_people") as session:
            result = await session.execute(
                select(PersonModel)
                .where(
                    PersonModel.organization_id == organization_id,
                    PersonModel.journey_id == journey_id,
                )
                .order_by(PersonModel.created_at)
            )
            return [_to_person(row) for row in result.scalars().all()]

    async def get_person(self, organization_id: uuid.UUID, person_id: uuid.UUID) -> Person | None:
        async with self._session("get_person") as session:
            result = await session.execute(
                select(PersonModel).where(
                    PersonModel.id == person_id,
                    PersonModel.organization_id == organization_id,
                )
            )
            row = result.scalar_one_or_none()
            return _to_person(row) if row else None

    async def _update_person(self, operation: str, organization_id: uuid.UUID, person_id: uuid.UUID, **values) -> None:
        async with self._session(operation) as session:
            await session.execute(
                update(PersonModel)
                .where(PersonModel.id == person_id, PersonModel.organization_id == organization_id)
                .values(**values)
            )
            await session.commit()

    async def update_person_stage(
        self, organization_id: uuid.UUID, person_id: uuid.UUID, stage_id: uuid.UUID
    ) -> None:
        await self._update_person("update_person_stage", organization_id, person_id, stage_id=stage_id)

    async def update_person_journey(
        self,
        organization_id: uuid.UUID,
        person_id: uuid.UUID,
        journey_id: uuid.UUID,
        stage_id: uuid.UUID,
    ) -> None:
        await self._update_person(
            "update_person_journey", organization_id, person_id, journey_id=journey_id, stage_id=stage_id
        )

    async def reassign_stage_members(
        self, organization_id: uuid.UUID, from_stage_id: uuid.UUID, to_stage_id: uuid.UUID
    ) -> int:
        async with self._session("reassign_stage_members") as session:
            result = await session.execute(
                update(PersonModel)
                .where(
                    PersonModel.organization_id == organization_id,
                    PersonModel.stage_id == from_stage_id,
                )
                .values(stage_id=to_stage_id)
            )
            await session.commit()
            return result.rowcount or 0

    async def update_person_archived(
        self, organization_id: uuid.UUID, person_id: uuid.UUID, archived: bool
    ) -> None:
        await self._update_person("update_person_archived", organization_id, person_id, is_archived=archived)


class SqlHistoryRecorder(_SqlBase):
    """HistoryRecorder backed by the person_history table."""

    async def append(self, event: HistoryEvent) -> None:
        async with self._session("append_history") as session:
            session.add(PersonHistoryModel(
                id=event.id,
                person_id=event.person_id,
                organization_id=event.organization_id,
                action_type=event.action_type.value,
                description=event.description,
                event_metadata=event.metadata,
                created_by=event.created_by,
                created_at=event.created_at,
            ))
            await session.commit()

    async def list_for_person(self, organization_id: uuid.UUID, person_id: uuid.UUID) -> list[HistoryEvent]:
        async with self._session("list_history") as session:
            result = await session.execute(
                select(PersonHistoryModel)
                .where(
                    PersonHistoryModel.organization_id == organization_id,
                    PersonHistoryModel.person_id == person_id,
                )
                .order_by(PersonHistoryModel.created_at.desc())
            )
            return [_to_event(row) for row in result.scalars().all()]
