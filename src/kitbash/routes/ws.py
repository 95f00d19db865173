"""WebSocket endpoint streaming file change events."""

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, WebSocket

from kitbash.events.hub import SubscriptionClosed
from kitbash.events.session import CLOSE_GOING_AWAY, CLOSE_TRY_AGAIN_LATER, Session

if TYPE_CHECKING:
    from kitbash.events.hub import BroadcastHub

logger = structlog.get_logger()

router = APIRouter(tags=["events"])


@router.websocket("/ws")
async def event_socket(websocket: WebSocket) -> None:
    """Stream file change events to one observer.

    The subscription is taken before the handshake completes, so every
    event published after the client sees the connection open is
    delivered. Client frames are read and ignored.

    Args:
        websocket: Incoming WebSocket connection.
    """
    hub: BroadcastHub = websocket.app.state.broadcast_hub

    try:
        subscription = hub.subscribe()
    except ValueError:
        logger.warning("session_rejected", reason="max_subscribers")
        await websocket.close(code=CLOSE_TRY_AGAIN_LATER)
        return
    except SubscriptionClosed:
        await websocket.close(code=CLOSE_GOING_AWAY)
        return

    with subscription:
        await websocket.accept()
        logger.info(
            "session_opened",
            subscriber_id=subscription.id,
            subscriber_count=hub.subscriber_count,
            client=websocket.client.host if websocket.client else None,
        )
        await Session(websocket, subscription).run()
