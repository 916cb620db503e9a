"""Pydantic schemas for the journey board API.

Response models are built from domain records; list fields default to empty
arrays, never null.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from journeyboard.domain.board import BoardState
from journeyboard.domain.records import HistoryEvent, Journey, Person, Stage
from journeyboard.domain.results import CommandResult


class JourneyResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    is_default: bool = False
    created_at: datetime

    @classmethod
    def from_record(cls, journey: Journey) -> "JourneyResponse":
        return cls(
            id=journey.id,
            title=journey.title,
            description=journey.description,
            is_default=journey.is_default,
            created_at=journey.created_at,
        )


class StageResponse(BaseModel):
    id: uuid.UUID
    journey_id: uuid.UUID
    title: str
    position: int

    @classmethod
    def from_record(cls, stage: Stage) -> "StageResponse":
        return cls(id=stage.id, journey_id=stage.journey_id, title=stage.title, position=stage.position)


class PersonCard(BaseModel):
    """A person as shown on a board card."""

    id: uuid.UUID
    name: str
    journey_id: uuid.UUID | None = None
    stage_id: uuid.UUID | None = None
    is_archived: bool = False
    phone: str | None = None
    email: str | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, person: Person) -> "PersonCard":
        return cls(
            id=person.id,
            name=person.name,
            journey_id=person.journey_id,
            stage_id=person.stage_id,
            is_archived=person.is_archived,
            phone=person.phone,
            email=person.email,
            created_at=person.created_at,
        )


class StageColumn(StageResponse):
    """A board column: the stage, its live member count and its cards."""

    is_entry: bool = False
    count: int = 0
    people: list[PersonCard] = Field(default_factory=list)


class BoardResponse(BaseModel):
    journey: JourneyResponse | None = None
    columns: list[StageColumn] = Field(default_factory=list)
    edit_mode: bool = False
    revision: int = 0


class CommandResponse(BaseModel):
    """Outcome of a board command.

    ``applied`` is False when a consistency guard turned the command into a
    no-op; the board is the state after the command either way.
    """

    applied: bool
    kind: Literal["ok", "ignored", "validation", "not_found", "remote"]
    message: str = ""
    warnings: list[str] = Field(default_factory=list)
    board: BoardResponse | None = None


class HistoryEventResponse(BaseModel):
    id: uuid.UUID
    person_id: uuid.UUID
    action_type: str
    description: str
    metadata: dict = Field(default_factory=dict)
    created_by: str | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, event: HistoryEvent) -> "HistoryEventResponse":
        return cls(
            id=event.id,
            person_id=event.person_id,
            action_type=event.action_type.value,
            description=event.description,
            metadata=event.metadata,
            created_by=event.created_by,
            created_at=event.created_at,
        )


class JourneyCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class StageCreate(BaseModel):
    title: str = Field(..., max_length=200)


class StageRename(BaseModel):
    title: str = Field(..., max_length=200)


class StageOrder(BaseModel):
    ordered_ids: list[uuid.UUID]
    edit_mode: bool = False


class MoveCard(BaseModel):
    to_stage_id: uuid.UUID
    from_stage_id: uuid.UUID | None = None


class JourneyChange(BaseModel):
    journey_id: uuid.UUID


class ArchiveUpdate(BaseModel):
    archived: bool


def build_board_response(
    board: BoardState, edit_mode: bool = False, include_archived: bool = False
) -> BoardResponse:
    """Render the board's columns in stage order with live counts."""
    columns = board.columns(include_archived)
    counts = board.counts()
    entry = board.entry_stage
    return BoardResponse(
        journey=JourneyResponse.from_record(board.journey) if board.journey else None,
        columns=[
            StageColumn(
                id=stage.id,
                journey_id=stage.journey_id,
                title=stage.title,
                position=stage.position,
                is_entry=entry is not None and stage.id == entry.id,
                count=counts.get(stage.id, 0),
                people=[PersonCard.from_record(p) for p in columns.get(stage.id, [])],
            )
            for stage in board.stages
        ],
        edit_mode=edit_mode,
        revision=board.revision,
    )


def build_command_response(
    result: CommandResult, board: BoardState | None = None, edit_mode: bool = False
) -> CommandResponse:
    return CommandResponse(
        applied=result.ok,
        kind=result.kind.value,
        message=result.message,
        warnings=list(result.warnings),
        board=build_board_response(board, edit_mode) if board is not None else None,
    )
