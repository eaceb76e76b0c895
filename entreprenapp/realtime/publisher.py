"""
Real-time delivery component.

Route handlers record facts in MongoDB first, then hand an ``OutboundEvent``
to the publisher. Delivery is best-effort and at-most-once: offline users
are skipped and emit failures are logged, never raised.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from entreprenapp.models.base import to_public
from entreprenapp.realtime.presence import PresenceRegistry
from entreprenapp.realtime.rooms import room_for_user

logger = logging.getLogger(__name__)


@dataclass
class OutboundEvent:
    """A typed event addressed to one user."""

    recipient_id: str
    event: str
    payload: Dict[str, Any] = field(default_factory=dict)


class RealtimePublisher:
    """Push outbound events to the recipient's room when they are online."""

    def __init__(self, sio, presence: PresenceRegistry):
        self.sio = sio
        self.presence = presence

    async def publish(self, outbound: OutboundEvent) -> bool:
        """Return True when the event was emitted, False when skipped or failed."""
        try:
            if not self.presence.is_online(outbound.recipient_id):
                logger.debug(
                    f"User {outbound.recipient_id} offline, '{outbound.event}' not pushed"
                )
                return False
            await self.sio.emit(
                outbound.event,
                to_public(outbound.payload),
                to=room_for_user(outbound.recipient_id),
            )
            return True
        except Exception:
            logger.warning(
                f"Failed to push '{outbound.event}' to user {outbound.recipient_id}",
                exc_info=True,
            )
            return False

    async def publish_to_user(self, user_id, event: str, payload: Dict[str, Any]) -> bool:
        return await self.publish(OutboundEvent(str(user_id), event, payload))

    async def broadcast(self, event: str, payload: Any, skip_sid: Optional[str] = None) -> None:
        try:
            await self.sio.emit(event, to_public(payload), skip_sid=skip_sid)
        except Exception:
            logger.warning(f"Failed to broadcast '{event}'", exc_info=True)

    async def broadcast_online_users(self) -> None:
        await self.broadcast("users:online-list", self.presence.online_users())

    async def announce_offline(self, user_id: str) -> None:
        await self.broadcast_online_users()
        await self.broadcast(
            "user:offline",
            {"user_id": user_id, "disconnected_at": datetime.utcnow().isoformat()},
        )
