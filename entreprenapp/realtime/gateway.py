"""
Socket.IO gateway.

Client conventions:
- Path: ``/socket.io``
- After connecting, the client emits ``user:join {userId}``; the connection
  joins room ``user:{userId}`` and is recorded in the presence registry
- A valid ``accessToken`` cookie (or ``auth.token``) at connect time joins
  the user automatically and pins the session to that identity

Relay events (typing indicators, optimistic message/comment updates) are
forwarded to the addressed user's room, or broadcast when they concern
public content. Direct relays need a joined socket and carry its user id
as ``senderId``.
"""
import logging
from http.cookies import SimpleCookie
from typing import Any, Optional

import socketio
from jose import JWTError

from entreprenapp.core.security import ACCESS_COOKIE, ACCESS_TOKEN, decode_token
from entreprenapp.realtime.presence import PresenceRegistry
from entreprenapp.realtime.publisher import RealtimePublisher
from entreprenapp.realtime.rooms import room_for_user

logger = logging.getLogger(__name__)


def create_socketio_server(cors_allowed_origins) -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_allowed_origins,
        logger=False,
        engineio_logger=False,
    )


def _extract_token(environ: dict[str, Any], auth: Any) -> Optional[str]:
    """Access token from ``auth.token`` or the ``accessToken`` cookie."""
    if isinstance(auth, dict):
        token = auth.get("token")
        if isinstance(token, str) and token:
            return token

    raw_cookie = environ.get("HTTP_COOKIE") if isinstance(environ, dict) else None
    if not raw_cookie:
        return None
    cookie = SimpleCookie()
    cookie.load(raw_cookie)
    morsel = cookie.get(ACCESS_COOKIE)
    return morsel.value if morsel else None


def _target_of(data: Any, *keys: str) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if value:
            return str(value)
    return None


class RealtimeGateway:
    """Registers Socket.IO handlers bound to one server and presence registry."""

    # client event -> (server event, keys naming the addressed user)
    DIRECT_RELAYS = {
        "message:send": ("message:new", ("receiverId", "receiver")),
        "message:typing": ("message:user-typing", ("receiverId", "receiver")),
        "message:update": ("message:updated", ("receiverId", "receiver")),
        "message:delete": ("message:deleted", ("receiverId", "receiver")),
        "notification:send": ("notification:new", ("recipientId", "recipient", "userId")),
    }

    # client event -> server event echoed to the sender's other connections
    SELF_RELAYS = {
        "notification:read": "notification:read",
        "notification:delete": "notification:deleted",
    }

    # client event -> server event broadcast to everyone else
    BROADCAST_RELAYS = {
        "comment:add": "comment:added",
        "comment:edit": "comment:updated",
        "comment:delete": "comment:removed",
    }

    def __init__(self, sio: socketio.AsyncServer, presence: PresenceRegistry, publisher: RealtimePublisher):
        self.sio = sio
        self.presence = presence
        self.publisher = publisher

    def register(self) -> None:
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on("user:join", self.on_join)
        for client_event, (server_event, keys) in self.DIRECT_RELAYS.items():
            self.sio.on(client_event, self._direct_relay(server_event, keys, ack=client_event == "message:send"))
        for client_event, server_event in self.SELF_RELAYS.items():
            self.sio.on(client_event, self._self_relay(server_event))
        for client_event, server_event in self.BROADCAST_RELAYS.items():
            self.sio.on(client_event, self._broadcast_relay(server_event))

    # =========================================================================
    # Lifecycle
    # =========================================================================
    async def on_connect(self, sid: str, environ: dict, auth: Any = None) -> None:
        token = _extract_token(environ, auth)
        if not token:
            return

        try:
            payload = decode_token(token, ACCESS_TOKEN)
        except JWTError:
            logger.debug(f"Socket {sid} presented an unusable token, waiting for user:join")
            return

        user_id = payload["user"].get("_id")
        if user_id:
            await self.sio.save_session(sid, {"user_id": user_id})
            await self._join(sid, user_id)

    async def on_join(self, sid: str, data: Any) -> None:
        user_id = _target_of(data, "userId")
        if not user_id:
            await self.sio.emit("connection:error", {"message": "userId is required"}, to=sid)
            return

        session = await self.sio.get_session(sid) or {}
        pinned = session.get("user_id")
        if pinned and pinned != user_id:
            logger.warning(f"Socket {sid} tried to join as {user_id} while authenticated as {pinned}")
            await self.sio.emit("connection:error", {"message": "Identity mismatch"}, to=sid)
            return

        await self.sio.save_session(sid, {"user_id": user_id})
        await self._join(sid, user_id)

    async def _join(self, sid: str, user_id: str) -> None:
        await self.sio.enter_room(sid, room_for_user(user_id))
        self.presence.connect(user_id, sid)
        logger.info(f"User {user_id} joined with socket {sid}")

        await self.publisher.broadcast_online_users()
        await self.sio.emit(
            "connection:success",
            {"userId": user_id, "socketId": sid, "message": "Connected"},
            to=sid,
        )

    async def on_disconnect(self, sid: str, *args) -> None:
        user_id = self.presence.disconnect(sid)
        if user_id:
            logger.info(f"User {user_id} disconnected")
            await self.publisher.announce_offline(user_id)

    # =========================================================================
    # Relays
    # =========================================================================
    async def _sender_of(self, sid: str) -> Optional[str]:
        session = await self.sio.get_session(sid) or {}
        return session.get("user_id")

    def _direct_relay(self, server_event: str, keys, ack: bool = False):
        async def handler(sid: str, data: Any) -> None:
            target = _target_of(data, *keys)
            if not target:
                return
            sender_id = await self._sender_of(sid)
            if not sender_id:
                logger.warning(f"Socket {sid} relayed '{server_event}' before user:join")
                await self.sio.emit("connection:error", {"message": "Join before sending events"}, to=sid)
                return
            # The session identity always wins over a client-supplied senderId
            payload = dict(data)
            payload["senderId"] = sender_id
            await self.sio.emit(server_event, payload, to=room_for_user(target), skip_sid=sid)
            if ack:
                await self.sio.emit("message:sent", payload, to=sid)

        return handler

    def _self_relay(self, server_event: str):
        async def handler(sid: str, data: Any) -> None:
            user_id = await self._sender_of(sid)
            if not user_id:
                return
            await self.sio.emit(server_event, data, to=room_for_user(user_id), skip_sid=sid)

        return handler

    def _broadcast_relay(self, server_event: str):
        async def handler(sid: str, data: Any) -> None:
            await self.sio.emit(server_event, data, skip_sid=sid)

        return handler
