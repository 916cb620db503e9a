"""Drag-and-drop gesture state machine for the kanban board.

One gesture moves through ``IDLE -> DRAGGING -> ENDED -> IDLE``. The payload
(card or column) is resolved once at drag start and carried through the
gesture. Drag-over events only touch the dragged card on the local board;
committing is the TransitionEngine's job once the gesture has ended.

Undo is scoped to the dragged card: a gesture remembers the stage the card
had before its first local placement, and puts that back only while the card
still sits where the gesture left it. Commands that commit while a gesture is
open are never rolled back by it.
"""

import uuid
from dataclasses import dataclass, replace
from enum import Enum

from journeyboard.domain.board import BoardState

COLUMN_TAG = "Column"


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    ENDED = "ended"


@dataclass(frozen=True)
class CardDrag:
    """A person card is being dragged."""

    person_id: uuid.UUID


@dataclass(frozen=True)
class ColumnDrag:
    """A stage column is being dragged (structure edit mode)."""

    stage_id: uuid.UUID


DragPayload = CardDrag | ColumnDrag


@dataclass(frozen=True)
class CardPlacement:
    """A local card move: the stored stage it left and the one it landed in."""

    person_id: uuid.UUID
    from_stage_id: uuid.UUID | None
    to_stage_id: uuid.UUID

    def revert(self, board: BoardState) -> bool:
        """Put the card back, unless something else has moved it since.

        Returns True when the board changed.
        """
        if not board.has_person(self.person_id):
            return False
        current = board.get_person(self.person_id)
        if current.stage_id != self.to_stage_id:
            return False
        board.put_person(replace(current, stage_id=self.from_stage_id))
        return True


def place_card(
    board: BoardState,
    person_id: uuid.UUID,
    stage_id: uuid.UUID,
    previous: CardPlacement | None = None,
) -> CardPlacement:
    """Move a card into ``stage_id`` on the board and return how to undo it.

    When the card still sits where ``previous`` left it, the new placement
    chains back to ``previous.from_stage_id``.

    Raises:
        NotFoundError: The person is not on the board
    """
    person = board.get_person(person_id)
    from_stage_id = person.stage_id
    if previous is not None and previous.person_id == person_id and person.stage_id == previous.to_stage_id:
        from_stage_id = previous.from_stage_id
    board.put_person(replace(person, stage_id=stage_id))
    return CardPlacement(person_id, from_stage_id, stage_id)


@dataclass(frozen=True)
class DragOutcome:
    """What the gesture resolved to when it ended."""

    payload: DragPayload
    over_id: uuid.UUID | None
    target_stage_id: uuid.UUID | None
    origin_stage_id: uuid.UUID | None
    placement: CardPlacement | None = None


def resolve_payload(
    board: BoardState,
    active_id: uuid.UUID,
    tag: str | None = None,
) -> DragPayload | None:
    """Classify the dragged entity.

    A "Column" tag, or an id found among the stage ids, makes a column drag;
    stage ids are checked before person ids. Unknown ids resolve to None.
    """
    if tag == COLUMN_TAG or active_id in board.stage_ids:
        return ColumnDrag(active_id) if active_id in board.stage_ids else None
    if board.has_person(active_id):
        return CardDrag(active_id)
    return None


class DragGesture:
    """Tracks a single drag gesture on one board."""

    def __init__(self) -> None:
        self.phase = DragPhase.IDLE
        self.payload: DragPayload | None = None
        self.placement: CardPlacement | None = None
        self._origin_stage_id: uuid.UUID | None = None

    @property
    def active(self) -> bool:
        return self.phase == DragPhase.DRAGGING

    def start(self, board: BoardState, active_id: uuid.UUID, tag: str | None = None) -> DragPayload | None:
        """Begin a gesture and remember the card's starting column.

        Returns the resolved payload, or None (gesture stays idle) when the
        active id is neither a card nor a column.

        Raises:
            ValueError: If a gesture is already in progress
        """
        if self.phase != DragPhase.IDLE:
            raise ValueError(f"Drag already in progress (phase: {self.phase.value})")

        payload = resolve_payload(board, active_id, tag)
        if payload is None:
            return None

        self.payload = payload
        if isinstance(payload, CardDrag):
            self._origin_stage_id = board.find_container(payload.person_id)
        self.phase = DragPhase.DRAGGING
        return payload

    def over(self, board: BoardState, over_id: uuid.UUID | None) -> bool:
        """Live preview: move the dragged card into the hovered column.

        Returns True only when local state changed. Repeated events over the
        same column, column drags and idle gestures change nothing.
        """
        if self.phase != DragPhase.DRAGGING or not isinstance(self.payload, CardDrag):
            return False

        person_id = self.payload.person_id
        if not board.has_person(person_id):
            return False

        current = board.find_container(person_id)
        target = board.find_container(over_id)
        if current is None or target is None or current == target:
            return False

        self.placement = place_card(board, person_id, target, self.placement)
        return True

    def end(self, board: BoardState, over_id: uuid.UUID | None) -> DragOutcome:
        """Finish the gesture and report where it landed.

        Raises:
            ValueError: If no gesture is in progress
        """
        if self.phase != DragPhase.DRAGGING or self.payload is None:
            raise ValueError("No drag in progress")

        self.phase = DragPhase.ENDED
        target = board.find_container(over_id) if isinstance(self.payload, CardDrag) else None
        return DragOutcome(
            payload=self.payload,
            over_id=over_id,
            target_stage_id=target,
            origin_stage_id=self._origin_stage_id,
            placement=self.placement,
        )

    def cancel(self, board: BoardState) -> bool:
        """Abort the gesture and undo its preview of the dragged card.

        Returns True if a gesture was in progress.
        """
        if self.phase != DragPhase.DRAGGING:
            self.reset()
            return False
        if self.placement is not None:
            self.placement.revert(board)
        self.reset()
        return True

    def reset(self) -> None:
        self.phase = DragPhase.IDLE
        self.payload = None
        self.placement = None
        self._origin_stage_id = None
