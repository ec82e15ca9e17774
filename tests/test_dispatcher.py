"""
Tests for the per-user ordering dispatcher.

Same user: strictly sequential, arrival order. Different users: concurrent.
Cancellation and failures of one operation never break the chain.
"""

import asyncio

import pytest

from jarvi.services.dispatcher import UserOrderedDispatcher


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def dispatcher():
    return UserOrderedDispatcher()


class TestOrdering:
    @pytest.mark.asyncio
    async def test_same_user_runs_in_arrival_order(self, dispatcher):
        log = []

        async def op(name, delay):
            log.append(f"start {name}")
            await asyncio.sleep(delay)
            log.append(f"end {name}")
            return name

        results = await asyncio.gather(
            dispatcher.run("u1", lambda: op("a", 0.05)),
            dispatcher.run("u1", lambda: op("b", 0)),
            dispatcher.run("u1", lambda: op("c", 0.01)),
        )

        assert results == ["a", "b", "c"]
        assert log == ["start a", "end a", "start b", "end b", "start c", "end c"]
        assert dispatcher.active_users == 0

    @pytest.mark.asyncio
    async def test_different_users_run_concurrently(self, dispatcher):
        """u1 waits for something only u2 can do."""
        gate = asyncio.Event()

        async def waiter():
            await asyncio.wait_for(gate.wait(), timeout=1.0)
            return "u1 done"

        async def opener():
            gate.set()
            return "u2 done"

        results = await asyncio.gather(
            dispatcher.run("u1", waiter),
            dispatcher.run("u2", opener),
        )

        assert results == ["u1 done", "u2 done"]

    @pytest.mark.asyncio
    async def test_active_users(self, dispatcher):
        gate = asyncio.Event()

        task = asyncio.create_task(dispatcher.run("u1", gate.wait))
        await _settle()
        assert dispatcher.active_users == 1

        gate.set()
        await task
        assert dispatcher.active_users == 0


class TestFailures:
    @pytest.mark.asyncio
    async def test_exception_does_not_block_next(self, dispatcher):
        async def boom():
            raise ValueError("boom")

        async def fine():
            return "ok"

        first = asyncio.create_task(dispatcher.run("u1", boom))
        second = asyncio.create_task(dispatcher.run("u1", fine))

        with pytest.raises(ValueError):
            await first
        assert await second == "ok"

    @pytest.mark.asyncio
    async def test_cancelled_queued_request_keeps_order(self, dispatcher):
        """Cancelling b while it waits for a must not let c overtake a."""
        log = []
        gate = asyncio.Event()

        async def op(name):
            log.append(f"start {name}")
            if name == "a":
                await gate.wait()
            log.append(f"end {name}")

        a = asyncio.create_task(dispatcher.run("u1", lambda: op("a")))
        await _settle()
        b = asyncio.create_task(dispatcher.run("u1", lambda: op("b")))
        await _settle()
        c = asyncio.create_task(dispatcher.run("u1", lambda: op("c")))
        await _settle()

        b.cancel()
        await _settle()
        assert log == ["start a"]

        gate.set()
        await asyncio.gather(a, c)

        assert b.cancelled()
        assert log == ["start a", "end a", "start c", "end c"]
        assert dispatcher.active_users == 0

    @pytest.mark.asyncio
    async def test_cancelled_running_request_releases_user(self, dispatcher):
        gate = asyncio.Event()

        async def fine():
            return "ok"

        running = asyncio.create_task(dispatcher.run("u1", gate.wait))
        await _settle()
        queued = asyncio.create_task(dispatcher.run("u1", fine))
        await _settle()

        running.cancel()

        assert await asyncio.wait_for(queued, timeout=1.0) == "ok"
        assert running.cancelled()
