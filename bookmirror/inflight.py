"""In-process coalescing of identical concurrent scrapes."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Hashable, TypeVar

from bookmirror.logging_config import get_logger

LOGGER = get_logger(__name__)
T = TypeVar("T")


class InflightRegistry:
    """Advisory per-key lock with attach-to-result semantics.

    The first caller for a key runs the work; callers arriving while it is in
    flight await the same future and receive its result (or its exception).
    Keys are released as soon as the work settles, so later calls run fresh.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Future[Any]] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._inflight

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        existing = self._inflight.get(key)
        if existing is not None:
            LOGGER.info("Attaching to in-flight work for %s", key)
            return await asyncio.shield(existing)

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await factory()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Retrieved here so an unattended failure is not reported as unhandled.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)
