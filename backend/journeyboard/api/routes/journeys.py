"""Journey API endpoints.

GET  /api/journeys                     - Journeys of the caller's organization
POST /api/journeys                     - Create a journey with its entry stage
GET  /api/journeys/{journey_id}/board  - Board read model (columns, counts, cards)
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException

from journeyboard.api.deps import STATUS_BY_KIND, get_history_recorder, get_store, open_board
from journeyboard.core.auth import require_org_context
from journeyboard.domain.board import BoardState
from journeyboard.domain.context import OrgContext
from journeyboard.schemas.board import BoardResponse, JourneyCreate, JourneyResponse, build_board_response
from journeyboard.services.board_controller import BoardController
from journeyboard.services.journey_registry import JourneyRegistry
from journeyboard.store.base import HistoryRecorder, PipelineStore

router = APIRouter()


@router.get("", response_model=list[JourneyResponse])
async def list_journeys(
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
) -> list[JourneyResponse]:
    """List the organization's journeys, oldest first."""
    journeys = await JourneyRegistry(store).list_journeys(ctx)
    return [JourneyResponse.from_record(j) for j in journeys]


@router.post("", response_model=JourneyResponse)
async def create_journey(
    request: JourneyCreate,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> JourneyResponse:
    """Create a journey. Its entry stage is created in the same write."""
    controller = BoardController(ctx, BoardState(None), store, recorder)
    result = await controller.create_journey(request.title, request.description)
    if not result.ok:
        raise HTTPException(status_code=STATUS_BY_KIND[result.kind], detail=result.message)
    return JourneyResponse.from_record(result.value)


@router.get("/{journey_id}/board", response_model=BoardResponse)
async def get_board(
    journey_id: uuid.UUID,
    include_archived: bool = False,
    ctx: OrgContext = Depends(require_org_context),
    store: PipelineStore = Depends(get_store),
    recorder: HistoryRecorder = Depends(get_history_recorder),
) -> BoardResponse:
    """Board read model: stages in order, each with its live count and cards.

    Archived people are hidden unless ``include_archived`` is set; counts
    never include them.
    """
    controller = await open_board(ctx, journey_id, store, recorder)
    return build_board_response(controller.board, controller.edit_mode, include_archived)
