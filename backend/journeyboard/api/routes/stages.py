"""Stage API endpoints, nested under a journey.

POST   /api/journeys/{journey_id}/stages             - Append a stage
PATCH  /api/journeys/{journey_id}/stages/{stage_id}  - Rename a stage
PUT    /api/journeys/{journey_id}/stages/order       - Reorder stages (edit mode)
DELETE /api/journeys/{journey_id}/stages/{stage_id}  - Delete a stage (edit mode), members go to the entry stage

Every endpoint returns a CommandResponse carrying the resulting board.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from journeyboard.api.deps import command_response, get_history_recorder, get_store, open_board
from journeyboard.core.auth import require_org_context
from journeyboard.domain.context import OrgContext
from journeyboard.schemas.board import CommandResponse, StageCreate, StageOrder, StageRename
from journeyboard.store.base import HistoryRecorder, PipelineStore

router = APIRouter()


@router.post("", response_model=CommandResponse)
async def add_stage(
    journey_id: uuid.UUID,
    request: StageCreate,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JSONResponse:
    controller = await open_board(ctx, journey_id, store, recorder)
    result = await controller.add_stage(request.title)
    return command_response(result, controller)


@router.put("/order", response_model=CommandResponse)
async def reorder_stages(
    journey_id: uuid.UUID,
    request: StageOrder,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JSONResponse:
    """Persist a new stage order.

    Ignored (applied=false) outside edit mode, when the entry stage would
    leave the first slot, or when the order is unchanged.
    """
    controller = await open_board(ctx, journey_id, store, recorder)
    controller.set_edit_mode(request.edit_mode)
    result = await controller.reorder_stages(request.ordered_ids)
    return command_response(result, controller)


@router.patch("/{stage_id}", response_model=CommandResponse)
async def rename_stage(
    journey_id: uuid.UUID,
    stage_id: uuid.UUID,
    request: StageRename,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JSONResponse:
    controller = await open_board(ctx, journey_id, store, recorder)
    result = await controller.rename_stage(stage_id, request.title)
    return command_response(result, controller)


@router.delete("/{stage_id}", response_model=CommandResponse)
async def delete_stage(
    journey_id: uuid.UUID,
    stage_id: uuid.UUID,
    edit_mode: bool = Query(False),
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JSONResponse:
    """Delete a stage; its people move to the entry stage.

    Ignored (applied=false) outside edit mode and for the entry stage.
    """
    controller = await open_board(ctx, journey_id, store, recorder)
    controller.set_edit_mode(edit_mode)
    result = await controller.delete_stage(stage_id)
    return command_response(result, controller)
