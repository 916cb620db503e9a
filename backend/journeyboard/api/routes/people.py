"""Person pipeline endpoints.

POST /api/journeys/{journey_id}/people/{person_id}/move - Move a card to another stage
PUT  /api/people/{person_id}/journey                     - Move a person to another journey
PUT  /api/people/{person_id}/archived                    - Archive or restore a person
GET  /api/people/{person_id}/history                     - Audit timeline, newest first
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from journeyboard.api.deps import (
    STATUS_BY_KIND,
    command_response,
    get_history_recorder,
    get_store,
    open_board,
    open_person_board,
)
from journeyboard.core.auth import require_org_context
from journeyboard.domain.context import OrgContext
from journeyboard.schemas.board import (
    ArchiveUpdate,
    CommandResponse,
    HistoryEventResponse,
    JourneyChange,
    MoveCard,
)
from journeyboard.store.base import HistoryRecorder, PipelineStore

router = APIRouter()


@router.post("/journeys/{journey_id}/people/{person_id}/move", response_model=CommandResponse)
async def move_card(
    journey_id: uuid.UUID,
    person_id: uuid.UUID,
    request: MoveCard,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JSONResponse:
    """Move a card. A stale ``from_stage_id`` makes this a no-op (applied=false)."""
    controller = await open_board(ctx, journey_id, store, recorder)
    result = await controller.move_card(person_id, request.to_stage_id, request.from_stage_id)
    return command_response(result, controller)


@router.put("/people/{person_id}/journey", response_model=CommandResponse)
async def change_journey(
    person_id: uuid.UUID,
    request: JourneyChange,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JSONResponse:
    """Move a person to another journey's entry stage.

    The returned board is the one the person left.
    """
    controller = await open_person_board(ctx, person_id, store, recorder)
    result = await controller.change_journey(person_id, request.journey_id)
    return command_response(result, controller)


@router.put("/people/{person_id}/archived", response_model=CommandResponse)
async def set_archived(
    person_id: uuid.UUID,
    request: ArchiveUpdate,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JSONResponse:
    controller = await open_person_board(ctx, person_id, store, recorder)
    result = await controller.set_archived(person_id, request.archived)
    return command_response(result, controller)


@router.get("/people/{person_id}/history", response_model=list[HistoryEventResponse])
async def get_history(
    person_id: uuid.UUID,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> list[HistoryEventResponse]:
    controller = await open_person_board(ctx, person_id, store, recorder)
    result = await controller.person_history(person_id)
    if not result.ok:
        raise HTTPException(status_code=STATUS_BY_KIND[result.kind], detail=result.message)
    return [HistoryEventResponse.from_record(e) for e in result.value]
