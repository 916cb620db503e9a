"""Access-token authentication for FastAPI.

Tokens are issued by the hosted auth service and signed with a shared HS256
secret. The verified claims become an OrgContext, which is the only place
the "which organization is this" precondition is checked.
"""

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from journeyboard.core.config import get_settings
from journeyboard.core.exceptions import MissingOrganizationError
from journeyboard.core.logging import bind_request_context
from journeyboard.domain.context import OrgContext

_bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict:
    """Verify and decode an access token.

    Raises ``HTTPException(401)`` on any validation failure and
    ``HTTPException(500)`` when no signing secret is configured.
    """
    settings = get_settings()
    if not settings.jwt_secret:
        raise HTTPException(status_code=500, detail="Authentication is misconfigured")

    try:
        return pyjwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={"require": ["sub", "exp"]},
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.InvalidAudienceError:
        raise HTTPException(status_code=401, detail="Unauthorized audience (aud mismatch)")
    except pyjwt.MissingRequiredClaimError as exc:
        raise HTTPException(status_code=401, detail=f"Missing required claim: {exc}")
    except pyjwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}")


async def require_org_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> OrgContext:
    """FastAPI dependency that validates the bearer token and returns its OrgContext.

    Usage::

        @router.get("/journeys")
        async def list_journeys(ctx: OrgContext = Depends(require_org_context)):
            ...
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    claims = decode_access_token(credentials.credentials)

    try:
        ctx = OrgContext.from_claims(claims)
    except MissingOrganizationError as exc:
        raise HTTPException(status_code=403, detail=str(exc))

    # Error handlers read these for audit logging
    request.state.user_id = ctx.actor_id
    request.state.organization_id = str(ctx.organization_id)
    bind_request_context(str(ctx.organization_id), ctx.actor_id)

    return ctx
