"""PipelineStoreFake: in-memory test double for the store protocols.

Behaves like the SQL store (ordering, organization scoping, compaction on
delete) with two test hooks:
- fail(operation): the next call(s) of that operation raise RemoteError
- delay(operation, seconds): the call sleeps first (timeout tests)

Every call is recorded in ``calls`` as ``(operation, args)`` so tests can
assert exactly which remote writes happened.
"""

import asyncio
import uuid
from dataclasses import replace
from datetime import timedelta
from typing import Any

from journeyboard.core.exceptions import RemoteError
from journeyboard.domain.records import HistoryEvent, Journey, Person, Stage, utcnow
from journeyboard.domain.stages import compact_positions, sort_stages

SIMULATED_FAILURE = "simulated transport error"


class _FaultInjector:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._failures: dict[str, int | None] = {}
        self._delays: dict[str, float] = {}

    def fail(self, operation: str, times: int | None = None) -> None:
        """Make ``operation`` raise RemoteError (forever, or ``times`` times)."""
        self._failures[operation] = times

    def delay(self, operation: str, seconds: float) -> None:
        self._delays[operation] = seconds

    def heal(self) -> None:
        self._failures.clear()
        self._delays.clear()

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [args for name, args in self.calls if name == operation]

    async def _enter(self, operation: str, **args: Any) -> None:
        self.calls.append((operation, args))
        if operation in self._delays:
            await asyncio.sleep(self._delays[operation])
        if operation in self._failures:
            remaining = self._failures[operation]
            if remaining is not None:
                if remaining <= 1:
                    del self._failures[operation]
                else:
                    self._failures[operation] = remaining - 1
            raise RemoteError(operation, SIMULATED_FAILURE)


class PipelineStoreFake(_FaultInjector):
    """In-memory PipelineStore."""

    def __init__(self) -> None:
        super().__init__()
        self.journeys: dict[uuid.UUID, Journey] = {}
        self.stages: dict[uuid.UUID, Stage] = {}
        self.people: dict[uuid.UUID, Person] = {}
        self._clock = utcnow()

    # -- seeding helpers (not part of the protocol, never recorded) ----------

    def _tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def seed_journey(
        self,
        organization_id: uuid.UUID,
        title: str,
        stage_titles: list[str] | tuple[str, ...] = ("VISITANTES",),
    ) -> tuple[Journey, list[Stage]]:
        journey = Journey(id=uuid.uuid4(), organization_id=organization_id, title=title, created_at=self._tick())
        self.journeys[journey.id] = journey
        stages = []
        for position, stage_title in enumerate(stage_titles):
            stage = Stage(
                id=uuid.uuid4(),
                journey_id=journey.id,
                organization_id=organization_id,
                title=stage_title,
                position=position,
            )
            self.stages[stage.id] = stage
            stages.append(stage)
        return journey, stages

    def seed_person(
        self,
        organization_id: uuid.UUID,
        name: str,
        journey_id: uuid.UUID | None = None,
        stage_id: uuid.UUID | None = None,
        is_archived: bool = False,
    ) -> Person:
        person = Person(
            id=uuid.uuid4(),
            organization_id=organization_id,
            name=name,
            journey_id=journey_id,
            stage_id=stage_id,
            is_archived=is_archived,
            created_at=self._tick(),
        )
        self.people[person.id] = person
        return person

    def _journey_stages(self, journey_id: uuid.UUID) -> list[Stage]:
        return sort_stages(s for s in self.stages.values() if s.journey_id == journey_id)

    # -- PipelineStore -------------------------------------------------------

    async def list_journeys(self, organization_id):
        await self._enter("list_journeys", organization_id=organization_id)
        found = [j for j in self.journeys.values() if j.organization_id == organization_id]
        return sorted(found, key=lambda j: j.created_at)

    async def get_journey(self, organization_id, journey_id):
        await self._enter("get_journey", organization_id=organization_id, journey_id=journey_id)
        journey = self.journeys.get(journey_id)
        if journey is None or journey.organization_id != organization_id:
            return None
        return journey

    async def insert_journey(self, organization_id, title, description, entry_stage_title):
        await self._enter(
            "insert_journey",
            organization_id=organization_id,
            title=title,
            description=description,
            entry_stage_title=entry_stage_title,
        )
        journey = Journey(
            id=uuid.uuid4(),
            organization_id=organization_id,
            title=title,
            description=description,
            created_at=self._tick(),
        )
        entry = Stage(
            id=uuid.uuid4(),
            journey_id=journey.id,
            organization_id=organization_id,
            title=entry_stage_title,
            position=0,
        )
        self.journeys[journey.id] = journey
        self.stages[entry.id] = entry
        return journey, entry

    async def insert_stage(self, organization_id, journey_id, title, position):
        await self._enter(
            "insert_stage", organization_id=organization_id, journey_id=journey_id, title=title, position=position
        )
        stage = Stage(
            id=uuid.uuid4(),
            journey_id=journey_id,
            organization_id=organization_id,
            title=title,
            position=position,
        )
        self.stages[stage.id] = stage
        return stage

    async def list_stages(self, organization_id, journey_id):
        await self._enter("list_stages", organization_id=organization_id, journey_id=journey_id)
        return [s for s in self._journey_stages(journey_id) if s.organization_id == organization_id]

    async def update_stage_title(self, organization_id, stage_id, title):
        await self._enter("update_stage_title", organization_id=organization_id, stage_id=stage_id, title=title)
        stage = self.stages.get(stage_id)
        if stage is not None and stage.organization_id == organization_id:
            self.stages[stage_id] = replace(stage, title=title)

    async def upsert_stage_positions(self, organization_id, stages):
        await self._enter(
            "upsert_stage_positions",
            organization_id=organization_id,
            positions={s.id: s.position for s in stages},
        )
        for stage in stages:
            if stage.organization_id == organization_id:
                self.stages[stage.id] = stage

    async def delete_stage(self, organization_id, stage_id):
        await self._enter("delete_stage", organization_id=organization_id, stage_id=stage_id)
        stage = self.stages.get(stage_id)
        if stage is None or stage.organization_id != organization_id:
            return
        del self.stages[stage_id]
        for remaining in compact_positions(self._journey_stages(stage.journey_id)):
            self.stages[remaining.id] = remaining

    async def list_people(self, organization_id, journey_id):
        await self._enter("list_people", organization_id=organization_id, journey_id=journey_id)
        return [
            p for p in self.people.values()
            if p.organization_id == organization_id and p.journey_id == journey_id
        ]

    async def get_person(self, organization_id, person_id):
        await self._enter("get_person", organization_id=organization_id, person_id=person_id)
        person = self.people.get(person_id)
        if person is None or person.organization_id != organization_id:
            return None
        return person

    async def update_person_stage(self, organization_id, person_id, stage_id):
        await self._enter("update_person_stage", organization_id=organization_id, person_id=person_id, stage_id=stage_id)
        self._update_person(organization_id, person_id, stage_id=stage_id)

    async def update_person_journey(self, organization_id, person_id, journey_id, stage_id):
        await self._enter(
            "update_person_journey",
            organization_id=organization_id,
            person_id=person_id,
            journey_id=journey_id,
            stage_id=stage_id,
        )
        self._update_person(organization_id, person_id, journey_id=journey_id, stage_id=stage_id)

    async def reassign_stage_members(self, organization_id, from_stage_id, to_stage_id):
        await self._enter(
            "reassign_stage_members",
            organization_id=organization_id,
            from_stage_id=from_stage_id,
            to_stage_id=to_stage_id,
        )
        moved = 0
        for person in list(self.people.values()):
            if person.organization_id == organization_id and person.stage_id == from_stage_id:
                self.people[person.id] = replace(person, stage_id=to_stage_id)
                moved += 1
        return moved

    async def update_person_archived(self, organization_id, person_id, archived):
        await self._enter(
            "update_person_archived", organization_id=organization_id, person_id=person_id, archived=archived
        )
        self._update_person(organization_id, person_id, is_archived=archived)

    def _update_person(self, organization_id, person_id, **changes):
        person = self.people.get(person_id)
        if person is not None and person.organization_id == organization_id:
            self.people[person_id] = replace(person, **changes)


class HistoryRecorderFake(_FaultInjector):
    """In-memory HistoryRecorder."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[HistoryEvent] = []

    async def append(self, event):
        await self._enter("append", action_type=event.action_type, person_id=event.person_id)
        self.events.append(event)

    async def list_for_person(self, organization_id, person_id):
        await self._enter("list_for_person", organization_id=organization_id, person_id=person_id)
        found = [
            e for e in self.events
            if e.organization_id == organization_id and e.person_id == person_id
        ]
        return sorted(found, key=lambda e: e.created_at, reverse=True)
