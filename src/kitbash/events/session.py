"""Per-observer session bridging a subscription to a WebSocket connection."""

import contextlib
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, Protocol

import anyio
import structlog
from starlette.websockets import WebSocketDisconnect

from kitbash.events.hub import Subscription, SubscriptionClosed, SubscriptionLagged

logger = structlog.get_logger()

CLOSE_GOING_AWAY = 1001
CLOSE_TRY_AGAIN_LATER = 1013

WRITE_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


class ObserverConnection(Protocol):
    """Duplex, message-oriented connection to one observer."""

    async def receive(self) -> Mapping[str, Any]: ...

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class SessionState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class EndReason(str, Enum):
    """Why a session ended."""

    OBSERVER_DISCONNECTED = "observer_disconnected"
    WRITE_FAILED = "write_failed"
    HUB_CLOSED = "hub_closed"
    LAGGED = "lagged"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Session:
    """Runs the outbound and inbound halves of one observer connection.

    The outbound half forwards events from the subscription, the inbound
    half drains observer frames. Whichever half ends first cancels the
    other; the subscription is released once both have stopped.

    Attributes:
        state: Current lifecycle state.
        end_reason: Why the session ended, once it has.
    """

    def __init__(
        self,
        connection: ObserverConnection,
        subscription: Subscription,
    ) -> None:
        """Initialize session.

        Args:
            connection: Accepted observer connection.
            subscription: Hub subscription owned by this session.
        """
        self._connection = connection
        self._subscription = subscription
        self.state = SessionState.OPEN
        self.end_reason: EndReason | None = None

    @property
    def subscriber_id(self) -> str:
        return self._subscription.id

    async def _forward_events(self) -> EndReason:
        while True:
            try:
                event = await self._subscription.receive()
            except SubscriptionClosed:
                return EndReason.HUB_CLOSED
            except SubscriptionLagged as e:
                logger.warning(
                    "session_lagged",
                    subscriber_id=self.subscriber_id,
                    missed=e.missed,
                )
                return EndReason.LAGGED

            try:
                await self._connection.send_text(event.model_dump_json())
            except WRITE_ERRORS as e:
                logger.info(
                    "session_write_failed",
                    subscriber_id=self.subscriber_id,
                    error=str(e),
                )
                return EndReason.WRITE_FAILED

    async def _read_inbound(self) -> EndReason:
        while True:
            try:
                message = await self._connection.receive()
            except WRITE_ERRORS:
                return EndReason.OBSERVER_DISCONNECTED
            if message.get("type") == "websocket.disconnect":
                return EndReason.OBSERVER_DISCONNECTED

    async def _run_half(
        self,
        half: Callable[[], Awaitable[EndReason]],
        scope: anyio.CancelScope,
    ) -> None:
        try:
            reason = await half()
        except Exception as e:
            logger.error(
                "session_half_failed",
                subscriber_id=self.subscriber_id,
                error=repr(e),
            )
            reason = EndReason.FAILED

        if self.end_reason is None:
            self.end_reason = reason
        self.state = SessionState.CLOSING
        scope.cancel()

    async def run(self) -> EndReason:
        """Run both halves until either ends, then tear the session down.

        The first half to finish cancels the other. The subscription is
        released without awaiting, so teardown completes even when the
        caller is being cancelled.

        Returns:
            Reason the session ended.
        """
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._run_half, self._forward_events, tg.cancel_scope)
                tg.start_soon(self._run_half, self._read_inbound, tg.cancel_scope)
        finally:
            self._subscription.close()
            if self.end_reason is None:
                self.end_reason = EndReason.CANCELLED
            self.state = SessionState.CLOSED
            logger.info(
                "session_closed",
                subscriber_id=self.subscriber_id,
                reason=self.end_reason.value,
            )

        reason = self.end_reason
        if reason is EndReason.HUB_CLOSED:
            await self._close_connection(CLOSE_GOING_AWAY)
        elif reason is EndReason.LAGGED:
            await self._close_connection(CLOSE_TRY_AGAIN_LATER)
        return reason

    async def _close_connection(self, code: int) -> None:
        with contextlib.suppress(*WRITE_ERRORS):
            await self._connection.close(code=code)
