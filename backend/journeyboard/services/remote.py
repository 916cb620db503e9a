"""Timeout wrapper for calls into the persistence collaborators."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from journeyboard.core.exceptions import RemoteError

T = TypeVar("T")


async def call_remote(operation: str, call: Awaitable[T], timeout: float) -> T:
    """Await a store call, turning expiry into RemoteError.

    Store implementations already raise RemoteError for their own failures;
    those propagate unchanged.
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise RemoteError(operation, f"timed out after {timeout}s") from exc
