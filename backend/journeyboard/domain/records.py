"""Immutable pipeline records shared by the domain, services and stores.

Pure domain types with no external dependencies. Records are frozen; a
change is expressed as a new record via ``dataclasses.replace`` so a kept
previous record can be put back as is.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryAction(str, Enum):
    """Audit action types written by the pipeline."""

    STAGE_CHANGE = "stage_change"
    JOURNEY_CHANGE = "journey_change"
    ARCHIVED = "archived"
    UNARCHIVED = "unarchived"


@dataclass(frozen=True)
class Journey:
    id: uuid.UUID
    organization_id: uuid.UUID
    title: str
    description: str | None = None
    is_default: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Stage:
    id: uuid.UUID
    journey_id: uuid.UUID
    organization_id: uuid.UUID
    title: str
    position: int


@dataclass(frozen=True)
class Person:
    """Pipeline view of a person. stage_id None means the journey's entry stage."""

    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    journey_id: uuid.UUID | None = None
    stage_id: uuid.UUID | None = None
    is_archived: bool = False
    phone: str | None = None
    email: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class HistoryEvent:
    """Append-only audit record of one pipeline mutation."""

    person_id: uuid.UUID
    organization_id: uuid.UUID
    action_type: HistoryAction
    description: str
    metadata: dict = field(default_factory=dict)
    created_by: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
