"""Stage ordering rules and reorder validation.

Pure domain logic with no external dependencies.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from journeyboard.core.exceptions import ValidationError
from journeyboard.domain.records import Stage


@dataclass
class ReorderResult:
    """Result of a reorder attempt."""

    allowed: bool
    reason: str = ""
    stages: list[Stage] = field(default_factory=list)


def clean_title(title: str | None, what: str = "Title") -> str:
    """Strip a required title; raise ValidationError if nothing is left."""
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError(f"{what} is required")
    return cleaned


def sort_stages(stages: Sequence[Stage]) -> list[Stage]:
    return sorted(stages, key=lambda s: s.position)


def next_position(stages: Sequence[Stage]) -> int:
    """Position for an appended stage: the current stage count."""
    return len(stages)


def compact_positions(stages: Sequence[Stage]) -> list[Stage]:
    """Renumber stages to 0..N-1 keeping their relative order."""
    return [
        stage if stage.position == index else replace(stage, position=index)
        for index, stage in enumerate(sort_stages(stages))
    ]


def array_move(ids: Sequence[uuid.UUID], old_index: int, new_index: int) -> list[uuid.UUID]:
    """Move one element from old_index to new_index, shifting the rest."""
    moved = list(ids)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def plan_reorder(stages: Sequence[Stage], ordered_ids: Sequence[uuid.UUID]) -> ReorderResult:
    """Validate a requested column order and compute the renumbered stages.

    Args:
        stages: Current stages of one journey
        ordered_ids: Requested order of every stage id

    Returns:
        ReorderResult with allowed flag, reason and the stages carrying their
        new positions (full list, in the new order)

    Raises:
        ValidationError: If ordered_ids is not a permutation of the stage ids

    Rules:
        - The entry stage must stay at index 0; anything else is refused
        - An order identical to the current one is refused as a no-op
    """
    current = sort_stages(stages)
    by_id = {stage.id: stage for stage in current}

    if len(ordered_ids) != len(current) or set(ordered_ids) != set(by_id):
        raise ValidationError("Stage order must list every stage of the journey exactly once")

    if not current:
        return ReorderResult(False, "Journey has no stages")

    if ordered_ids[0] != current[0].id:
        return ReorderResult(False, "Entry stage must stay first")

    if list(ordered_ids) == [stage.id for stage in current]:
        return ReorderResult(False, "Order unchanged")

    reordered = [replace(by_id[stage_id], position=index) for index, stage_id in enumerate(ordered_ids)]
    return ReorderResult(True, stages=reordered)


def plan_column_move(
    stages: Sequence[Stage],
    active_id: uuid.UUID,
    over_id: uuid.UUID,
) -> ReorderResult:
    """Translate a column drag (active dropped over another column) into a reorder.

    Dragging the entry column, or dropping onto it, is refused.
    """
    current = sort_stages(stages)
    ids = [stage.id for stage in current]
    if active_id not in ids or over_id not in ids:
        return ReorderResult(False, "Unknown column")
    if active_id == over_id:
        return ReorderResult(False, "Order unchanged")

    old_index = ids.index(active_id)
    new_index = ids.index(over_id)
    if old_index == 0 or new_index == 0:
        return ReorderResult(False, "Entry stage must stay first")

    return plan_reorder(current, array_move(ids, old_index, new_index))
