"""Shared FastAPI dependencies and result-to-HTTP mapping for the board routes.

Board loading raises NotFoundError / RemoteError straight through; the
application's pipeline exception handler turns them into 404 / 502.
"""

import uuid

from fastapi.responses import JSONResponse

from journeyboard.db.base import get_session_factory
from journeyboard.domain.context import OrgContext
from journeyboard.domain.results import CommandResult, ResultKind
from journeyboard.schemas.board import build_command_response
from journeyboard.services.board_controller import BoardController
from journeyboard.store.base import HistoryRecorder, PipelineStore
from journeyboard.store.sql import SqlHistoryRecorder, SqlPipelineStore

STATUS_BY_KIND = {
    ResultKind.OK: 200,
    ResultKind.IGNORED: 200,
    ResultKind.VALIDATION: 422,
    ResultKind.NOT_FOUND: 404,
    ResultKind.REMOTE: 502,
}


def get_store() -> PipelineStore:
    """Pipeline store dependency. Tests override this with PipelineStoreFake."""
    return SqlPipelineStore(get_session_factory())


def get_history_recorder() -> HistoryRecorder:
    """History recorder dependency. Tests override this with HistoryRecorderFake."""
    return SqlHistoryRecorder(get_session_factory())


async def open_board(
    ctx: OrgContext,
    journey_id: uuid.UUID,
    store: PipelineStore,
    recorder: HistoryRecorder,
) -> BoardController:
    return await BoardController.open(ctx, journey_id, store, recorder)


async def open_person_board(
    ctx: OrgContext,
    person_id: uuid.UUID,
    store: PipelineStore,
    recorder: HistoryRecorder,
) -> BoardController:
    return await BoardController.for_person(ctx, person_id, store, recorder)


def command_response(result: CommandResult, controller: BoardController) -> JSONResponse:
    """Serialize a command result together with the board it left behind."""
    body = build_command_response(result, controller.board, controller.edit_mode)
    return JSONResponse(status_code=STATUS_BY_KIND[result.kind], content=body.model_dump(mode="json"))
