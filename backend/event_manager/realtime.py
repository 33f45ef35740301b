"""Socket.IO push channel: authenticated connections and event fanout.

Every connection must present a session token in its ``auth`` payload and is
placed in a room named after its own user id. Fanout is best effort: no
acknowledgment, no retry, no ordering relative to the HTTP response.
"""
import logging
from typing import Any, Optional

import socketio
from socketio import exceptions as socketio_exceptions
from starlette.concurrency import run_in_threadpool

from event_manager.config import settings
from event_manager.database import SessionLocal
from event_manager.security import get_user_for_token

logger = logging.getLogger(__name__)

EVENT_CREATED = "eventCreated"
EVENT_UPDATED = "eventUpdated"
EVENT_DELETED = "eventDeleted"

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.CORS_ORIGINS.split(","),
    logger=False,
    engineio_logger=False,
)


def _authenticate(token: Optional[str]) -> Optional[dict[str, str]]:
    db = SessionLocal()
    try:
        user = get_user_for_token(db, token)
        if not user:
            return None
        return {"user_id": user.id, "email": user.email}
    finally:
        db.close()


@sio.event
async def connect(sid, environ, auth=None):
    """Accept the connection only for a valid token; join the user's room."""
    token = auth.get("token") if isinstance(auth, dict) else None
    if not token:
        logger.info("Socket %s refused: no token", sid)
        raise socketio_exceptions.ConnectionRefusedError("Authentication required")

    identity = await run_in_threadpool(_authenticate, token)
    if not identity:
        logger.info("Socket %s refused: invalid token or unknown user", sid)
        raise socketio_exceptions.ConnectionRefusedError("Invalid token")

    await sio.save_session(sid, identity)
    await sio.enter_room(sid, identity["user_id"])
    logger.info("Socket %s connected for user %s", sid, identity["email"])


@sio.event
async def disconnect(sid, *args):
    session = await sio.get_session(sid)
    user_id = session.get("user_id")
    if user_id:
        await sio.leave_room(sid, user_id)
    logger.info("Socket %s disconnected (user %s)", sid, session.get("email"))


class EventNotifier:
    """Publishes event changes to connected clients."""

    def __init__(self, server: socketio.AsyncServer):
        self.server = server

    async def event_created(self, payload: dict[str, Any]) -> None:
        """Broadcast a new event to every connected client."""
        await self._emit(EVENT_CREATED, payload)

    async def event_updated(self, payload: dict[str, Any], attendee_ids: list[str]) -> None:
        """Send the updated event to the room of each current attendee."""
        for user_id in attendee_ids:
            await self._emit(EVENT_UPDATED, payload, room=user_id)

    async def event_deleted(self, event_id: str, attendee_ids: list[str]) -> None:
        """Tell each former attendee that the event is gone."""
        for user_id in attendee_ids:
            await self._emit(EVENT_DELETED, event_id, room=user_id)

    async def _emit(self, event: str, data: Any, room: Optional[str] = None) -> None:
        try:
            await self.server.emit(event, data, room=room)
        except Exception:
            # Fire and forget: a failed push never fails the request
            logger.warning("Failed to emit %s to room %s", event, room or "*", exc_info=True)


notifier = EventNotifier(sio)


def get_notifier() -> EventNotifier:
    """FastAPI dependency for the process-wide notifier."""
    return notifier
