"""Stage model: ordered column of a journey board."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from journeyboard.db.base import Base


class StageModel(Base):
    __tablename__ = "visitor_stages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    journey_id = Column(UUID(as_uuid=True), ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    # Zero-based and dense per journey. No unique constraint: reorders rewrite
    # every row and would collide mid-statement.
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
