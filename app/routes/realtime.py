"""Real-time swap notifications over WebSocket.

One connection registers one channel with the notification hub under the
authenticated user's id. Swap services run in worker threads, so the channel
hands messages to the connection's event loop with ``call_soon_threadsafe``.
"""

import asyncio
import contextlib
import logging
import os
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ..auth import resolve_user
from ..database import get_db
from ..services.notification_service import NotificationHub, get_notification_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


# Messages held for a slow client; the oldest is dropped beyond this
MAX_PENDING_MESSAGES = int(os.getenv("WS_MAX_PENDING_MESSAGES", "100"))


class WebSocketChannel:
    """Notification channel feeding a bounded asyncio queue owned by one WebSocket connection"""

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int = MAX_PENDING_MESSAGES):
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def send(self, event: str, payload: dict[str, Any]) -> None:
        message = {"event": event, **payload}
        self.loop.call_soon_threadsafe(self.enqueue, message)

    def enqueue(self, message: dict[str, Any]) -> None:
        """Queue ``message``, evicting the oldest one when full. Loop thread only."""
        if self.queue.full():
            dropped = self.queue.get_nowait()
            logger.warning(f"⚠️ Notification queue full, dropped {dropped.get('event')} message")
        self.queue.put_nowait(message)


async def _pump(websocket: WebSocket, channel: WebSocketChannel) -> None:
    while True:
        message = await channel.queue.get()
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning(f"⚠️ Could not deliver {message.get('event')} over WebSocket: {e}")
            raise


async def _stop(sender: asyncio.Task) -> None:
    """Cancel the pump and collect its outcome, including a send failure"""
    sender.cancel()
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await sender


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    token: str = Query(...),
    db: Session = Depends(get_db),
    hub: NotificationHub = Depends(get_notification_hub),
):
    try:
        user = resolve_user(db, token)
        user_id = user.id
    except HTTPException as e:
        logger.warning(f"⚠️ WebSocket rejected: {e.detail}")
        await websocket.close(code=1008)
        return
    finally:
        # Release the connection; the socket may stay open for hours
        db.close()

    await websocket.accept()
    channel = WebSocketChannel(asyncio.get_running_loop())
    hub.subscribe(user_id, channel)
    channel.enqueue({"event": "connected", "userId": user_id})
    sender = asyncio.create_task(_pump(websocket, channel))
    try:
        while True:
            # Client messages are ignored; receiving detects disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"🔌 WebSocket disconnected for user_id: {user_id}")
    finally:
        hub.unsubscribe(user_id, channel)
        await _stop(sender)
