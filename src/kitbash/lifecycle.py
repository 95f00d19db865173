"""Graceful shutdown coordinator for the server process."""
import asyncio

import structlog

logger = structlog.get_logger()


class GracefulShutdown:
    """Signals shutdown to the server and its supervising tasks.

    Attributes:
        is_triggered: Whether shutdown has been triggered.
    """

    def __init__(self) -> None:
        self._triggered = False
        self._event = asyncio.Event()

    @property
    def is_triggered(self) -> bool:
        return self._triggered

    def trigger(self, reason: str = "signal") -> None:
        """Signal all waiting tasks to begin shutdown.

        Idempotent.

        Args:
            reason: Short label recorded in the log line.
        """
        if self._triggered:
            return
        logger.info("shutdown_triggered", reason=reason)
        self._triggered = True
        self._event.set()

    async def wait_for_trigger(self) -> None:
        """Block until trigger() is called."""
        await self._event.wait()
