"""Socket.IO listener that feeds push events into an EventState."""
import logging
from typing import Any, Optional

import socketio

from event_manager.client.state import EventState

logger = logging.getLogger(__name__)


class PushListener:
    """Keeps an ``EventState`` current while connected to the push channel.

    Args:
        url: Server root, e.g. ``http://localhost:8000``.
        state: The cache to update.
        token: Session token presented in the connection ``auth`` payload.
    """

    def __init__(self, url: str, state: EventState, token: str, sio: Optional[socketio.AsyncClient] = None):
        self.url = url
        self.state = state
        self.token = token
        self.sio = sio or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=5,
            reconnection_delay=1,
            reconnection_delay_max=5,
            logger=False,
        )
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on("eventCreated", self.on_event_created)
        self.sio.on("eventUpdated", self.on_event_updated)
        self.sio.on("eventDeleted", self.on_event_deleted)

    async def connect(self) -> None:
        await self.sio.connect(self.url, auth={"token": self.token}, transports=["websocket", "polling"])

    async def disconnect(self) -> None:
        await self.sio.disconnect()

    async def wait(self) -> None:
        await self.sio.wait()

    def on_connect(self) -> None:
        logger.info("Push channel connected")
        self.state.socket_connected = True

    def on_disconnect(self, *args) -> None:
        logger.info("Push channel disconnected")
        self.state.socket_connected = False

    def on_event_created(self, event: dict[str, Any]) -> None:
        self.state.on_event_created(event)

    def on_event_updated(self, event: dict[str, Any]) -> None:
        self.state.on_event_updated(event)

    def on_event_deleted(self, event_id: str) -> None:
        self.state.on_event_deleted(event_id)
