"""Tests for the remote-call timeout wrapper and the fake's fault injection."""

import asyncio

import pytest

from journeyboard.core.exceptions import RemoteError
from journeyboard.services.remote import call_remote
from journeyboard.store.fake import SIMULATED_FAILURE

pytestmark = pytest.mark.unit


async def _value(result, pause: float = 0):
    await asyncio.sleep(pause)
    return result


async def test_returns_value():
    assert await call_remote("op", _value(42), timeout=1.0) == 42


async def test_timeout_becomes_remote_error():
    with pytest.raises(RemoteError) as exc_info:
        await call_remote("list_stages", _value(1, pause=0.5), timeout=0.01)

    assert exc_info.value.operation == "list_stages"
    assert "timed out" in exc_info.value.reason


async def test_store_failure_propagates(ctx, store):
    store.fail("list_journeys")

    with pytest.raises(RemoteError) as exc_info:
        await call_remote("list_journeys", store.list_journeys(ctx.organization_id), timeout=1.0)

    assert exc_info.value.reason == SIMULATED_FAILURE


async def test_fail_times_then_heals(ctx, store):
    store.fail("list_journeys", times=1)

    with pytest.raises(RemoteError):
        await store.list_journeys(ctx.organization_id)
    assert await store.list_journeys(ctx.organization_id) == []
    assert len(store.calls_to("list_journeys")) == 2
