"""
Online presence registry.

An in-process map from user id to the Socket.IO connection ids currently
open for that user. It is owned by the application (``app.state.presence``)
and shared with the Socket.IO gateway; it is never persisted and starts
empty on every restart.

Handlers all run on the same event loop, so no locking is needed.
"""
import logging
from typing import Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Track which users have at least one live connection."""

    def __init__(self) -> None:
        self._connections: Dict[str, Set[str]] = {}

    def connect(self, user_id: str, conn_id: str) -> None:
        user_id = str(user_id)
        self._connections.setdefault(user_id, set()).add(conn_id)
        logger.debug(f"User {user_id} connected on {conn_id}")

    def disconnect(self, conn_id: str) -> Optional[str]:
        """
        Forget a connection.

        Returns the user id when that was the user's last connection, so the
        caller can announce the user as offline; otherwise None.
        """
        for user_id, conn_ids in list(self._connections.items()):
            if conn_id not in conn_ids:
                continue
            conn_ids.discard(conn_id)
            if conn_ids:
                return None
            del self._connections[user_id]
            logger.debug(f"User {user_id} went offline")
            return user_id
        return None

    def lookup(self, user_id: str) -> Set[str]:
        """Connection ids for ``user_id``; empty when offline."""
        return set(self._connections.get(str(user_id), ()))

    def is_online(self, user_id: str) -> bool:
        return bool(self._connections.get(str(user_id)))

    def online_users(self) -> List[str]:
        return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)
