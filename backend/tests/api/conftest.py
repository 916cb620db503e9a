"""API-specific test fixtures.

Routes run against the in-memory fakes through FastAPI dependency
overrides. The lifespan (database startup) is not entered.
"""

import time

import jwt as pyjwt
import pytest
from fastapi.testclient import TestClient

from journeyboard.api.deps import get_history_recorder, get_store
from journeyboard.core.config import get_settings
from journeyboard.main import app as fastapi_app


def _make_token(ctx, **overrides) -> str:
    """Sign an access token for ``ctx`` with the test secret."""
    claims = {
        "sub": ctx.actor_id,
        "aud": get_settings().jwt_audience,
        "exp": int(time.time()) + 3600,
        "app_metadata": {"organization_id": str(ctx.organization_id)},
    }
    claims.update(overrides)
    return pyjwt.encode(claims, get_settings().jwt_secret, algorithm="HS256")


@pytest.fixture
def api_client(store, recorder):
    """TestClient wired to the fake store and recorder."""
    fastapi_app.dependency_overrides[get_store] = lambda: store
    fastapi_app.dependency_overrides[get_history_recorder] = lambda: recorder
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(ctx):
    return {"Authorization": f"Bearer {_make_token(ctx)}"}


@pytest.fixture
def token_factory():
    """Callable signing tokens for any OrgContext, with claim overrides."""
    return _make_token
