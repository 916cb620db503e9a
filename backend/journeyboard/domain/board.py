"""In-memory board aggregate for one journey: stages plus the people in it.

The board is the state the UI renders. Person moves mutate it before the
remote write (optimistic) and put back only the affected record on failure;
stage-structure changes mutate it after the store confirms (pessimistic).
"""

import uuid
from collections.abc import Iterable

from journeyboard.core.exceptions import NotFoundError
from journeyboard.domain.membership import effective_stage, entry_stage, people_by_stage
from journeyboard.domain.records import Journey, Person, Stage
from journeyboard.domain.stages import sort_stages


class BoardState:
    """Stages and people of one journey.

    ``journey`` is None for a detached board that holds a single person who
    is not in any journey yet (used when assigning a first journey).
    """

    def __init__(
        self,
        journey: Journey | None,
        stages: Iterable[Stage] = (),
        people: Iterable[Person] = (),
    ):
        self.journey = journey
        self._stages: list[Stage] = sort_stages(stages)
        self._people: dict[uuid.UUID, Person] = {p.id: p for p in people}
        self.revision = 0

    # -- reads ---------------------------------------------------------------

    @property
    def stages(self) -> list[Stage]:
        return list(self._stages)

    @property
    def people(self) -> list[Person]:
        return list(self._people.values())

    @property
    def stage_ids(self) -> set[uuid.UUID]:
        return {stage.id for stage in self._stages}

    @property
    def entry_stage(self) -> Stage | None:
        return entry_stage(self._stages)

    def has_person(self, person_id: uuid.UUID) -> bool:
        return person_id in self._people

    def get_person(self, person_id: uuid.UUID) -> Person:
        person = self._people.get(person_id)
        if person is None:
            raise NotFoundError(f"Person {person_id} is not on this board")
        return person

    def get_stage(self, stage_id: uuid.UUID) -> Stage:
        for stage in self._stages:
            if stage.id == stage_id:
                return stage
        raise NotFoundError(f"Stage {stage_id} is not on this board")

    def effective_stage(self, person: Person) -> Stage | None:
        return effective_stage(person, self._stages)

    def find_container(self, item_id: uuid.UUID | None) -> uuid.UUID | None:
        """Resolve a drag target id to a stage id.

        Stage ids resolve to themselves (checked first); person ids resolve
        to the person's effective stage. Anything else resolves to None.
        """
        if item_id is None:
            return None
        if item_id in self.stage_ids:
            return item_id
        person = self._people.get(item_id)
        if person is None:
            return None
        stage = self.effective_stage(person)
        return stage.id if stage else None

    def columns(self, include_archived: bool = False) -> dict[uuid.UUID, list[Person]]:
        return people_by_stage(self._people.values(), self._stages, include_archived)

    def counts(self) -> dict[uuid.UUID, int]:
        return {stage_id: len(members) for stage_id, members in self.columns().items()}

    # -- writes --------------------------------------------------------------

    def put_person(self, person: Person) -> None:
        """Insert or replace a person.

        A person whose journey no longer matches this board's journey leaves
        the board.
        """
        if self.journey is not None and person.journey_id != self.journey.id:
            self._people.pop(person.id, None)
        else:
            self._people[person.id] = person
        self.revision += 1

    def replace_stages(self, stages: Iterable[Stage]) -> None:
        self._stages = sort_stages(stages)
        self.revision += 1

    def add_stage(self, stage: Stage) -> None:
        self.replace_stages([*self._stages, stage])
