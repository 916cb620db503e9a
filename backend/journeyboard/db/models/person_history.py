"""PersonHistory model: append-only audit events for a person."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from journeyboard.db.base import Base


class PersonHistoryModel(Base):
    __tablename__ = "person_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    person_id = Column(UUID(as_uuid=True), ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    action_type = Column(String(50), nullable=False)  # stage_change, journey_change, archived, unarchived
    description = Column(Text, nullable=False, default="")
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSONB, nullable=False, default=dict)
    created_by = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    # NO updated_at -- events are immutable (append-only)
