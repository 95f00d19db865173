"""Graceful shutdown coordinator tests."""

import asyncio

from kitbash.lifecycle import GracefulShutdown


def test_trigger_releases_waiters() -> None:
    async def scenario() -> None:
        shutdown = GracefulShutdown()
        waiter = asyncio.create_task(shutdown.wait_for_trigger())
        await asyncio.sleep(0)
        assert not waiter.done()

        shutdown.trigger()
        shutdown.trigger()

        await asyncio.wait_for(waiter, timeout=1.0)
        assert shutdown.is_triggered

    asyncio.run(scenario())
