"""StageLifecycleManager: create, rename, reorder and delete board columns.

Create, rename and delete are pessimistic: the board changes only after the
store confirms. Reorder is applied to the board first and put back if the
write fails. Reorder and delete need structure edit mode. The entry stage
(position 0) is never moved or deleted; such requests come back as refused
plans / False instead of errors.
"""

import uuid
from collections.abc import Sequence
from dataclasses import replace

import structlog

from journeyboard.core.config import get_settings
from journeyboard.core.exceptions import RemoteError, ValidationError
from journeyboard.domain.board import BoardState
from journeyboard.domain.context import OrgContext
from journeyboard.domain.records import Stage
from journeyboard.domain.stages import (
    ReorderResult,
    clean_title,
    compact_positions,
    next_position,
    plan_column_move,
    plan_reorder,
)
from journeyboard.services.remote import call_remote
from journeyboard.store.base import PipelineStore

logger = structlog.get_logger(__name__)

EDIT_MODE_OFF = "Structure edit mode is off"


class StageLifecycleManager:
    def __init__(self, store: PipelineStore, timeout: float | None = None):
        self._store = store
        self._timeout = timeout if timeout is not None else get_settings().remote_timeout_seconds

    async def list_stages(self, ctx: OrgContext, journey_id: uuid.UUID) -> list[Stage]:
        stages = await call_remote(
            "list_stages", self._store.list_stages(ctx.organization_id, journey_id), self._timeout
        )
        return sorted(stages, key=lambda s: s.position)

    async def add_stage(self, ctx: OrgContext, board: BoardState, title: str) -> Stage:
        """Append a stage at position = current stage count."""
        title = clean_title(title, "Stage title")
        if board.journey is None:
            raise ValidationError("No journey selected")

        position = next_position(board.stages)
        stage = await call_remote(
            "insert_stage",
            self._store.insert_stage(ctx.organization_id, board.journey.id, title, position),
            self._timeout,
        )
        board.add_stage(stage)
        logger.info("stage_added", journey_id=str(board.journey.id), stage_id=str(stage.id), position=position)
        return stage

    async def rename_stage(self, ctx: OrgContext, board: BoardState, stage_id: uuid.UUID, title: str) -> Stage:
        """Rename in place. Renaming to the current title is allowed and harmless."""
        title = clean_title(title, "Stage title")
        stage = board.get_stage(stage_id)

        await call_remote(
            "update_stage_title",
            self._store.update_stage_title(ctx.organization_id, stage.id, title),
            self._timeout,
        )
        renamed = replace(stage, title=title)
        board.replace_stages([renamed if s.id == stage.id else s for s in board.stages])
        return renamed

    async def reorder_stages(
        self,
        ctx: OrgContext,
        board: BoardState,
        ordered_ids: Sequence[uuid.UUID],
        edit_mode: bool,
    ) -> ReorderResult:
        """Rewrite every stage position to follow ``ordered_ids``.

        Raises:
            ValidationError: ordered_ids is not a permutation of the board's stages
            RemoteError: The write failed (board order is put back)
        """
        if not edit_mode:
            return ReorderResult(False, EDIT_MODE_OFF)
        plan = plan_reorder(board.stages, ordered_ids)
        return await self._apply_reorder(ctx, board, plan)

    async def move_column(
        self,
        ctx: OrgContext,
        board: BoardState,
        active_id: uuid.UUID,
        over_id: uuid.UUID,
        edit_mode: bool,
    ) -> ReorderResult:
        """Column drop: move ``active_id`` to the index of ``over_id``."""
        if not edit_mode:
            return ReorderResult(False, EDIT_MODE_OFF)
        plan = plan_column_move(board.stages, active_id, over_id)
        return await self._apply_reorder(ctx, board, plan)

    async def _apply_reorder(self, ctx: OrgContext, board: BoardState, plan: ReorderResult) -> ReorderResult:
        if not plan.allowed:
            logger.info("stage_reorder_ignored", reason=plan.reason)
            return plan

        previous = board.stages
        board.replace_stages(plan.stages)
        try:
            await call_remote(
                "upsert_stage_positions",
                self._store.upsert_stage_positions(ctx.organization_id, plan.stages),
                self._timeout,
            )
        except RemoteError:
            board.replace_stages(previous)
            raise
        logger.info("stages_reordered", order=[str(s.id) for s in plan.stages])
        return plan

    async def delete_stage(
        self,
        ctx: OrgContext,
        board: BoardState,
        stage_id: uuid.UUID,
        edit_mode: bool,
    ) -> bool:
        """Delete a non-entry stage, moving its people to the entry stage first.

        Returns False (nothing touched) outside edit mode or for the entry
        stage. If the reassignment commits but the delete fails, the board shows
        the reassigned people and keeps the stage.
        """
        if not edit_mode:
            logger.info("stage_delete_ignored", stage_id=str(stage_id), reason="edit mode off")
            return False
        stage = board.get_stage(stage_id)
        entry = board.entry_stage
        if entry is None or stage.id == entry.id:
            logger.info("stage_delete_ignored", stage_id=str(stage_id), reason="entry stage")
            return False

        moved = await call_remote(
            "reassign_stage_members",
            self._store.reassign_stage_members(ctx.organization_id, stage.id, entry.id),
            self._timeout,
        )
        for person in board.people:
            if person.stage_id == stage.id:
                board.put_person(replace(person, stage_id=entry.id))

        await call_remote(
            "delete_stage",
            self._store.delete_stage(ctx.organization_id, stage.id),
            self._timeout,
        )
        board.replace_stages(compact_positions([s for s in board.stages if s.id != stage.id]))
        logger.info("stage_deleted", stage_id=str(stage.id), people_moved=moved, entry_stage_id=str(entry.id))
        return True
