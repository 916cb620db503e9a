"""Membership rules: which stage a person is effectively in.

Pure functions with no external dependencies. The "null stage means entry
stage" fallback lives here and nowhere else; every board grouping, count and
drag resolution goes through effective_stage().
"""

import uuid
from collections.abc import Iterable, Sequence

from journeyboard.domain.records import Person, Stage


def entry_stage(stages: Sequence[Stage]) -> Stage | None:
    """Return the journey's entry stage (position 0), or None for no stages.

    Uses the lowest position so callers holding non-dense data still get a
    stable answer.
    """
    if not stages:
        return None
    return min(stages, key=lambda s: s.position)


def effective_stage(person: Person, stages: Sequence[Stage]) -> Stage | None:
    """Resolve the stage a person is shown and operated in.

    Returns the stage matching ``person.stage_id``; falls back to the entry
    stage when stage_id is None or does not belong to ``stages``.
    """
    if person.stage_id is not None:
        for stage in stages:
            if stage.id == person.stage_id:
                return stage
    return entry_stage(stages)


def people_by_stage(
    people: Iterable[Person],
    stages: Sequence[Stage],
    include_archived: bool = False,
) -> dict[uuid.UUID, list[Person]]:
    """Group people into stage columns.

    Every stage gets a key (empty list when nobody is in it). Archived people
    are left out unless ``include_archived`` is set. People are ordered by
    creation time inside each column.
    """
    columns: dict[uuid.UUID, list[Person]] = {stage.id: [] for stage in stages}
    for person in people:
        if person.is_archived and not include_archived:
            continue
        stage = effective_stage(person, stages)
        if stage is None:
            continue
        columns[stage.id].append(person)

    for members in columns.values():
        members.sort(key=lambda p: p.created_at)
    return columns


def stage_counts(people: Iterable[Person], stages: Sequence[Stage]) -> dict[uuid.UUID, int]:
    """Visible (non-archived) head count per stage."""
    return {stage_id: len(members) for stage_id, members in people_by_stage(people, stages).items()}


def check_membership(person: Person, stages: Sequence[Stage]) -> bool:
    """Check that a person's explicit stage belongs to their current journey.

    ``stages`` must be the stage list of ``person.journey_id``. A null
    stage_id is always valid.
    """
    if person.stage_id is None:
        return True
    return any(
        stage.id == person.stage_id and stage.journey_id == person.journey_id
        for stage in stages
    )


def deletable_stages(stages: Sequence[Stage]) -> list[Stage]:
    """Stages a user may delete: everything except the entry stage."""
    entry = entry_stage(stages)
    return [s for s in sorted(stages, key=lambda s: s.position) if entry is None or s.id != entry.id]


def reorderable_stages(stages: Sequence[Stage]) -> list[Stage]:
    """Stages a user may drag to a new position: everything except the entry stage."""
    return deletable_stages(stages)
