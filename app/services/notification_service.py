"""
Swap Notification Service
Delivers swap negotiation facts to every live channel a user has open.

A recipient is a user id; each user may have zero or more channels (one per
open browser tab, say). Emission is fire-and-forget: a failing channel is
logged and skipped, and never affects the caller.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SWAP_REQUEST = "swap-request"
SWAP_ACCEPTED = "swap-accepted"
SWAP_REJECTED = "swap-rejected"

SWAP_EVENT_MESSAGES = {
    SWAP_REQUEST: "New swap request received",
    SWAP_ACCEPTED: "Your swap request was accepted",
    SWAP_REJECTED: "Your swap request was rejected",
}


class NotificationChannel(Protocol):
    def send(self, event: str, payload: dict[str, Any]) -> None: ...


class NotificationHub:
    """Thread-safe registry mapping user ids to their live notification channels"""

    def __init__(self):
        self._channels: dict[int, list[NotificationChannel]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, user_id: int, channel: NotificationChannel) -> None:
        with self._lock:
            self._channels[user_id].append(channel)
        logger.info(f"🔌 Channel subscribed for user_id: {user_id}")

    def unsubscribe(self, user_id: int, channel: NotificationChannel) -> None:
        with self._lock:
            channels = self._channels.get(user_id, [])
            if channel in channels:
                channels.remove(channel)
            if not channels:
                self._channels.pop(user_id, None)
        logger.info(f"🔌 Channel unsubscribed for user_id: {user_id}")

    def channels_for(self, user_id: int) -> list[NotificationChannel]:
        with self._lock:
            return list(self._channels.get(user_id, []))

    def emit(self, recipient_id: int, event: str, payload: dict[str, Any]) -> int:
        """
        Send ``event`` to every channel of ``recipient_id``.

        Returns:
            Number of channels that accepted the message
        """
        delivered = 0
        for channel in self.channels_for(recipient_id):
            try:
                channel.send(event, payload)
                delivered += 1
            except Exception as e:
                logger.error(f"❌ Failed to deliver {event} to user_id {recipient_id}: {e}")
        logger.debug(f"📣 {event} delivered to {delivered} channel(s) of user_id {recipient_id}")
        return delivered


def send_swap_notification(
    hub: NotificationHub, recipient_id: int, event: str, swap_request: dict[str, Any]
) -> bool:
    """
    Emit a swap negotiation fact to ``recipient_id``.

    Never raises; returns whether at least one channel received it.
    """
    try:
        payload = {"swapRequest": swap_request, "message": SWAP_EVENT_MESSAGES[event]}
        logger.info(f"📣 Sending {event} notification to user_id {recipient_id}")
        return hub.emit(recipient_id, event, payload) > 0
    except Exception as e:
        logger.error(f"❌ Failed to send {event} notification to user_id {recipient_id}: {e}")
        return False


# Process-wide hub shared by the HTTP and WebSocket layers
notification_hub = NotificationHub()


def get_notification_hub() -> NotificationHub:
    """Dependency injection for the notification hub"""
    return notification_hub
