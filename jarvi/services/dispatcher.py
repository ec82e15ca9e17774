"""
Per-user ordering for chat operations.

Operations tagged with the same user id run to completion strictly in
arrival order; operations for different users run concurrently.

Each run() call appends a future to the user's chain and waits for the
previous one. The previous future is awaited through asyncio.shield, so
cancelling a waiting or running request only cancels that request. Its
own slot is released after its predecessor finishes, which keeps later
requests for the same user in order even when a request is cancelled
while it is still queued.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, TypeVar

logger = logging.getLogger("jarvi.services.dispatcher")

T = TypeVar("T")


class UserOrderedDispatcher:
    """
    Usage:
        dispatcher = UserOrderedDispatcher()
        response = await dispatcher.run(user_id, lambda: service.handle(text))
    """

    def __init__(self):
        self._tails: Dict[str, asyncio.Future] = {}

    @property
    def active_users(self) -> int:
        """Users with a running or queued operation."""
        return len(self._tails)

    async def run(self, user_id: str, operation: Callable[[], Awaitable[T]]) -> T:
        loop = asyncio.get_running_loop()
        previous = self._tails.get(user_id)
        done = loop.create_future()
        self._tails[user_id] = done

        try:
            if previous is not None:
                logger.debug(f"Queued operation for user {user_id}")
                await asyncio.shield(previous)
            return await operation()
        finally:
            if previous is None or previous.done():
                self._release(user_id, done)
            else:
                previous.add_done_callback(lambda _: self._release(user_id, done))

    def _release(self, user_id: str, done: asyncio.Future) -> None:
        if not done.done():
            done.set_result(None)
        if self._tails.get(user_id) is done:
            del self._tails[user_id]
