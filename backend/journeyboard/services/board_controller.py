"""BoardController: the pipeline facade consumed by the UI/API layer.

Owns one board (journey, stages, people), the structure edit mode flag and
the current drag gesture, and exposes the imperative commands. Commands
never raise: every outcome, including failures, is a CommandResult whose
message is the user-facing notification.
"""

import uuid
from collections.abc import Awaitable, Callable, Sequence

import structlog

from journeyboard.core.config import get_settings
from journeyboard.core.exceptions import NotFoundError, RemoteError, ValidationError
from journeyboard.domain.board import BoardState
from journeyboard.domain.context import OrgContext
from journeyboard.domain.drag import CardDrag, ColumnDrag, DragGesture, DragPayload
from journeyboard.domain.results import CommandResult, ResultKind
from journeyboard.services.history_service import HistoryService
from journeyboard.services.journey_registry import JourneyRegistry
from journeyboard.services.remote import call_remote
from journeyboard.services.stage_lifecycle import EDIT_MODE_OFF, StageLifecycleManager
from journeyboard.services.transitions import TransitionEngine
from journeyboard.store.base import HistoryRecorder, PipelineStore

logger = structlog.get_logger(__name__)


class BoardController:
    """Commands and read model for one journey board.

    Build with ``open`` (journey board) or ``for_person`` (a person's own
    journey, or a detached board when they have none).
    """

    def __init__(
        self,
        ctx: OrgContext,
        board: BoardState,
        store: PipelineStore,
        recorder: HistoryRecorder,
        timeout: float | None = None,
    ):
        self.ctx = ctx
        self.board = board
        self.edit_mode = False
        self.gesture = DragGesture()
        self.timeout = timeout if timeout is not None else get_settings().remote_timeout_seconds

        self.history = HistoryService(recorder, timeout)
        self.registry = JourneyRegistry(store, timeout)
        self.lifecycle = StageLifecycleManager(store, timeout)
        self.engine = TransitionEngine(store, self.history, timeout)

    @classmethod
    async def open(
        cls,
        ctx: OrgContext,
        journey_id: uuid.UUID,
        store: PipelineStore,
        recorder: HistoryRecorder,
        timeout: float | None = None,
    ) -> "BoardController":
        """Fetch a journey's stages and people into a new board.

        Raises:
            NotFoundError: Journey not in the organization
            RemoteError: Initial fetch failed
        """
        controller = cls(ctx, BoardState(None), store, recorder, timeout)
        journey = await controller.registry.get_journey(ctx, journey_id)
        stages = await controller.lifecycle.list_stages(ctx, journey_id)
        people = await call_remote(
            "list_people",
            store.list_people(ctx.organization_id, journey_id),
            controller.timeout,
        )
        controller.board = BoardState(journey, stages, people)
        logger.debug("board_loaded", journey_id=str(journey_id), stages=len(stages), people=len(people))
        return controller

    @classmethod
    async def for_person(
        cls,
        ctx: OrgContext,
        person_id: uuid.UUID,
        store: PipelineStore,
        recorder: HistoryRecorder,
        timeout: float | None = None,
    ) -> "BoardController":
        """Board holding ``person_id``: their journey's board, or a detached one."""
        controller = cls(ctx, BoardState(None), store, recorder, timeout)
        person = await call_remote(
            "get_person",
            store.get_person(ctx.organization_id, person_id),
            controller.timeout,
        )
        if person is None:
            raise NotFoundError(f"Person {person_id} not found")
        if person.journey_id is None:
            controller.board = BoardState(None, people=[person])
            return controller
        return await cls.open(ctx, person.journey_id, store, recorder, timeout)

    def set_edit_mode(self, enabled: bool) -> None:
        self.edit_mode = enabled

    # -- command plumbing ----------------------------------------------------

    async def _run(self, operation: str, action: Callable[[], Awaitable[CommandResult]]) -> CommandResult:
        try:
            return await action()
        except ValidationError as exc:
            logger.info("command_rejected", operation=operation, reason=str(exc))
            return CommandResult.failure(ResultKind.VALIDATION, str(exc))
        except NotFoundError as exc:
            logger.info("command_target_missing", operation=operation, reason=str(exc))
            return CommandResult.failure(ResultKind.NOT_FOUND, str(exc))
        except RemoteError as exc:
            logger.error(
                "command_failed",
                operation=operation,
                remote_operation=exc.operation,
                error=exc.reason,
                organization_id=str(self.ctx.organization_id),
            )
            return CommandResult.failure(ResultKind.REMOTE, f"Could not {operation.replace('_', ' ')}: {exc.reason}")

    # -- journeys ------------------------------------------------------------

    async def create_journey(self, title: str, description: str | None = None) -> CommandResult:
        async def action():
            journey = await self.registry.create_journey(self.ctx, title, description)
            return CommandResult.success("Journey created", journey)

        return await self._run("create_journey", action)

    # -- stages --------------------------------------------------------------

    async def add_stage(self, title: str) -> CommandResult:
        async def action():
            stage = await self.lifecycle.add_stage(self.ctx, self.board, title)
            return CommandResult.success("Stage added", stage)

        return await self._run("add_stage", action)

    async def rename_stage(self, stage_id: uuid.UUID, title: str) -> CommandResult:
        async def action():
            stage = await self.lifecycle.rename_stage(self.ctx, self.board, stage_id, title)
            return CommandResult.success("Stage renamed", stage)

        return await self._run("rename_stage", action)

    async def reorder_stages(self, ordered_ids: Sequence[uuid.UUID]) -> CommandResult:
        async def action():
            plan = await self.lifecycle.reorder_stages(self.ctx, self.board, ordered_ids, self.edit_mode)
            if not plan.allowed:
                return CommandResult.ignored(plan.reason)
            return CommandResult.success("Stages reordered", plan.stages)

        return await self._run("reorder_stages", action)

    async def delete_stage(self, stage_id: uuid.UUID) -> CommandResult:
        async def action():
            if not self.edit_mode:
                return CommandResult.ignored(EDIT_MODE_OFF)
            if not await self.lifecycle.delete_stage(self.ctx, self.board, stage_id, self.edit_mode):
                return CommandResult.ignored("The entry stage cannot be deleted")
            return CommandResult.success("Stage deleted")

        return await self._run("delete_stage", action)

    # -- people --------------------------------------------------------------

    async def move_card(
        self,
        person_id: uuid.UUID,
        to_stage_id: uuid.UUID,
        from_stage_id: uuid.UUID | None = None,
    ) -> CommandResult:
        """Move a card to ``to_stage_id``.

        ``from_stage_id`` is the column the caller saw the card in; a stale
        value (the card has since moved) makes the command a no-op.
        """
        async def action():
            if from_stage_id is not None:
                current = self.board.find_container(person_id) if self.board.has_person(person_id) else None
                if current is not None and current != from_stage_id:
                    return CommandResult.ignored("Card is no longer in that stage")
            outcome = await self.engine.set_stage(self.ctx, self.board, person_id, to_stage_id)
            if not outcome.changed:
                return CommandResult.ignored("Card is already in that stage", outcome.person)
            return CommandResult.success("Stage updated", outcome.person, outcome.warnings)

        return await self._run("move_card", action)

    async def change_journey(self, person_id: uuid.UUID, journey_id: uuid.UUID) -> CommandResult:
        async def action():
            outcome = await self.engine.set_journey(self.ctx, self.board, person_id, journey_id)
            if not outcome.changed:
                return CommandResult.ignored("Person is already in that journey", outcome.person)
            return CommandResult.success("Journey updated", outcome.person, outcome.warnings)

        return await self._run("change_journey", action)

    async def set_archived(self, person_id: uuid.UUID, archived: bool) -> CommandResult:
        async def action():
            outcome = await self.engine.set_archived(self.ctx, self.board, person_id, archived)
            if not outcome.changed:
                return CommandResult.ignored("Nothing to change", outcome.person)
            message = "Person archived" if archived else "Person restored"
            return CommandResult.success(message, outcome.person, outcome.warnings)

        return await self._run("set_archived", action)

    # -- drag and drop -------------------------------------------------------

    def drag_start(self, active_id: uuid.UUID, tag: str | None = None) -> DragPayload | None:
        """Begin a gesture. A leftover gesture is cancelled (and its preview undone) first."""
        if self.gesture.active:
            self.gesture.cancel(self.board)
        return self.gesture.start(self.board, active_id, tag)

    def drag_over(self, over_id: uuid.UUID | None) -> bool:
        payload = self.gesture.payload
        # A pending write for the card puts its own record back on failure.
        if isinstance(payload, CardDrag) and self.engine.is_busy(payload.person_id):
            return False
        return self.gesture.over(self.board, over_id)

    def drag_cancel(self) -> bool:
        return self.gesture.cancel(self.board)

    async def drag_end(self, over_id: uuid.UUID | None) -> CommandResult:
        """Finish the gesture: column drags reorder, card drags commit one move."""
        if not self.gesture.active:
            return CommandResult.ignored("No drag in progress")

        outcome = self.gesture.end(self.board, over_id)
        try:
            if isinstance(outcome.payload, ColumnDrag):
                return await self._end_column_drag(outcome.payload, over_id)

            async def action():
                result = await self.engine.commit_card_drop(self.ctx, self.board, outcome)
                if not result.changed:
                    return CommandResult.ignored("Card not moved", result.person)
                return CommandResult.success("Stage updated", result.person, result.warnings)

            return await self._run("move_card", action)
        finally:
            self.gesture.reset()

    async def _end_column_drag(self, payload: ColumnDrag, over_id: uuid.UUID | None) -> CommandResult:
        async def action():
            if over_id is None:
                return CommandResult.ignored("Dropped outside the board")
            plan = await self.lifecycle.move_column(
                self.ctx, self.board, payload.stage_id, over_id, self.edit_mode
            )
            if not plan.allowed:
                return CommandResult.ignored(plan.reason)
            return CommandResult.success("Stages reordered", plan.stages)

        return await self._run("reorder_stages", action)

    # -- reads ---------------------------------------------------------------

    async def person_history(self, person_id: uuid.UUID) -> CommandResult:
        async def action():
            events = await self.history.timeline(self.ctx, person_id)
            return CommandResult.success("History loaded", events)

        return await self._run("load_history", action)
