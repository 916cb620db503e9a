"""Explicit tenant context threaded through every pipeline operation."""

import uuid
from dataclasses import dataclass

from journeyboard.core.exceptions import MissingOrganizationError


@dataclass(frozen=True)
class OrgContext:
    """Organization scope and acting user for one pipeline call."""

    organization_id: uuid.UUID
    actor_id: str

    @classmethod
    def from_claims(cls, claims: dict) -> "OrgContext":
        """Build a context from verified token claims.

        The organization is read from a top-level ``organization_id`` claim or
        from ``app_metadata.organization_id``. Raises MissingOrganizationError
        when neither is present or the value is not a UUID.
        """
        actor_id = claims.get("sub")
        if not actor_id:
            raise MissingOrganizationError("Token missing sub claim")

        raw_org = claims.get("organization_id")
        if not raw_org:
            app_metadata = claims.get("app_metadata") or {}
            raw_org = app_metadata.get("organization_id")
        if not raw_org:
            raise MissingOrganizationError(f"User {actor_id} has no organization")

        try:
            organization_id = uuid.UUID(str(raw_org))
        except ValueError as exc:
            raise MissingOrganizationError(f"Invalid organization id: {raw_org}") from exc

        return cls(organization_id=organization_id, actor_id=str(actor_id))
