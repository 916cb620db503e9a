"""TransitionEngine: moves people between stages and journeys.

Every move is optimistic: the board shows the new placement before the
store is written, and the person's previous record is put back if the write
fails. Moves of the same person are serialized through a keyed lock; a
successful move appends one history event.
"""

import uuid
from dataclasses import dataclass, field, replace

import structlog

from journeyboard.core.config import get_settings
from journeyboard.core.exceptions import NotFoundError, RemoteError, ValidationError
from journeyboard.core.locking import KeyedLock
from journeyboard.domain.board import BoardState
from journeyboard.domain.context import OrgContext
from journeyboard.domain.drag import CardDrag, DragOutcome, place_card
from journeyboard.domain.membership import entry_stage
from journeyboard.domain.records import HistoryAction, Person
from journeyboard.services.history_service import HistoryService
from journeyboard.services.remote import call_remote
from journeyboard.store.base import PipelineStore

logger = structlog.get_logger(__name__)

# Shared by every engine in the process so concurrent requests for one
# person queue up behind each other.
PERSON_LOCKS = KeyedLock()


@dataclass
class TransitionOutcome:
    """What a transition did. ``changed`` is False for no-ops."""

    changed: bool
    person: Person | None = None
    warnings: list[str] = field(default_factory=list)


def _stage_title(board: BoardState, stage_id: uuid.UUID | None) -> str | None:
    for stage in board.stages:
        if stage.id == stage_id:
            return stage.title
    return None


class TransitionEngine:
    def __init__(
        self,
        store: PipelineStore,
        history: HistoryService,
        timeout: float | None = None,
        locks: KeyedLock | None = None,
    ):
        self._store = store
        self._history = history
        self._timeout = timeout if timeout is not None else get_settings().remote_timeout_seconds
        self._locks = locks if locks is not None else PERSON_LOCKS

    async def set_stage(
        self,
        ctx: OrgContext,
        board: BoardState,
        person_id: uuid.UUID,
        stage_id: uuid.UUID,
    ) -> TransitionOutcome:
        """Move a person to another stage of the same journey.

        Raises:
            NotFoundError: Person or stage is not on the board
            RemoteError: The write failed (placement is put back)
        """
        async with self._locks.hold(person_id):
            person = board.get_person(person_id)
            new_stage = board.get_stage(stage_id)
            old_stage = board.effective_stage(person)
            if old_stage is not None and old_stage.id == new_stage.id:
                return TransitionOutcome(False, person)

            moved = replace(person, stage_id=new_stage.id)
            board.put_person(moved)
            try:
                await call_remote(
                    "update_person_stage",
                    self._store.update_person_stage(ctx.organization_id, person.id, new_stage.id),
                    self._timeout,
                )
            except RemoteError:
                board.put_person(person)
                raise

            logger.info(
                "person_stage_changed",
                person_id=str(person.id),
                from_stage_id=str(old_stage.id) if old_stage else None,
                to_stage_id=str(new_stage.id),
            )
            warnings = await self._history.record(
                ctx,
                person.id,
                HistoryAction.STAGE_CHANGE,
                "Changed stage",
                {"old_stage": old_stage.title if old_stage else None, "new_stage": new_stage.title},
            )
            return TransitionOutcome(True, moved, warnings)

    async def set_journey(
        self,
        ctx: OrgContext,
        board: BoardState,
        person_id: uuid.UUID,
        journey_id: uuid.UUID,
    ) -> TransitionOutcome:
        """Move a person into another journey, landing on its entry stage.

        journey_id and stage_id change together in one board update and one
        store write; the person leaves a board that shows the old journey.

        Raises:
            NotFoundError: Person not on the board, or journey unknown
            ValidationError: Target journey has no stages
            RemoteError: A read or the write failed (placement is put back)
        """
        async with self._locks.hold(person_id):
            person = board.get_person(person_id)
            if person.journey_id == journey_id:
                return TransitionOutcome(False, person)

            new_journey = await call_remote(
                "get_journey", self._store.get_journey(ctx.organization_id, journey_id), self._timeout
            )
            if new_journey is None:
                raise NotFoundError(f"Journey {journey_id} not found")

            stages = await call_remote(
                "list_stages", self._store.list_stages(ctx.organization_id, journey_id), self._timeout
            )
            entry = entry_stage(stages)
            if entry is None:
                raise ValidationError(f"Journey '{new_journey.title}' has no entry stage")

            old_title = await self._journey_title(ctx, board, person.journey_id)

            moved = replace(person, journey_id=new_journey.id, stage_id=entry.id)
            board.put_person(moved)
            try:
                await call_remote(
                    "update_person_journey",
                    self._store.update_person_journey(ctx.organization_id, person.id, new_journey.id, entry.id),
                    self._timeout,
                )
            except RemoteError:
                board.put_person(person)
                raise

            logger.info(
                "person_journey_changed",
                person_id=str(person.id),
                from_journey_id=str(person.journey_id) if person.journey_id else None,
                to_journey_id=str(new_journey.id),
                stage_id=str(entry.id),
            )
            warnings = await self._history.record(
                ctx,
                person.id,
                HistoryAction.JOURNEY_CHANGE,
                "Changed journey",
                {"old_journey": old_title, "new_journey": new_journey.title},
            )
            return TransitionOutcome(True, moved, warnings)

    async def set_archived(
        self,
        ctx: OrgContext,
        board: BoardState,
        person_id: uuid.UUID,
        archived: bool,
    ) -> TransitionOutcome:
        """Hide a person from (or bring them back to) the board; stage is untouched."""
        async with self._locks.hold(person_id):
            person = board.get_person(person_id)
            if person.is_archived == archived:
                return TransitionOutcome(False, person)

            updated = replace(person, is_archived=archived)
            board.put_person(updated)
            try:
                await call_remote(
                    "update_person_archived",
                    self._store.update_person_archived(ctx.organization_id, person.id, archived),
                    self._timeout,
                )
            except RemoteError:
                board.put_person(person)
                raise

            action = HistoryAction.ARCHIVED if archived else HistoryAction.UNARCHIVED
            warnings = await self._history.record(
                ctx,
                person.id,
                action,
                "Archived" if archived else "Restored from archive",
                {"is_archived": archived},
            )
            return TransitionOutcome(True, updated, warnings)

    def is_busy(self, person_id: uuid.UUID) -> bool:
        """True while a write for ``person_id`` is in flight."""
        return self._locks.is_locked(person_id)

    async def commit_card_drop(
        self,
        ctx: OrgContext,
        board: BoardState,
        outcome: DragOutcome,
    ) -> TransitionOutcome:
        """Persist the end of a card drag with exactly one write.

        Dropping outside any column, or back onto the starting column, undoes
        the gesture's preview of the card and writes nothing. A failed write
        undoes the card's placement only; the rest of the board is untouched.
        """
        if not isinstance(outcome.payload, CardDrag):
            raise ValueError("commit_card_drop expects a card drag")
        person_id = outcome.payload.person_id

        async with self._locks.hold(person_id):
            target = outcome.target_stage_id
            if target is None or target == outcome.origin_stage_id:
                if outcome.placement is not None:
                    outcome.placement.revert(board)
                return TransitionOutcome(False, board.get_person(person_id) if board.has_person(person_id) else None)

            placement = outcome.placement
            if board.get_person(person_id).stage_id != target:
                placement = place_card(board, person_id, target, placement)
            person = board.get_person(person_id)

            try:
                await call_remote(
                    "update_person_stage",
                    self._store.update_person_stage(ctx.organization_id, person_id, target),
                    self._timeout,
                )
            except RemoteError:
                if placement is not None:
                    placement.revert(board)
                raise

            logger.info(
                "person_dropped",
                person_id=str(person_id),
                from_stage_id=str(outcome.origin_stage_id) if outcome.origin_stage_id else None,
                to_stage_id=str(target),
            )
            warnings = await self._history.record(
                ctx,
                person_id,
                HistoryAction.STAGE_CHANGE,
                "Changed stage",
                {
                    "old_stage": _stage_title(board, outcome.origin_stage_id),
                    "new_stage": _stage_title(board, target),
                },
            )
            return TransitionOutcome(True, person, warnings)

    async def _journey_title(self, ctx: OrgContext, board: BoardState, journey_id: uuid.UUID | None) -> str | None:
        if journey_id is None:
            return None
        if board.journey is not None and board.journey.id == journey_id:
            return board.journey.title
        journey = await call_remote(
            "get_journey", self._store.get_journey(ctx.organization_id, journey_id), self._timeout
        )
        return journey.title if journey else None
