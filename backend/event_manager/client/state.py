"""Client-side state caches kept in sync by HTTP fetches and push events."""
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from event_manager.client.api import ApiError, EventManagerClient

logger = logging.getLogger(__name__)

UNREACHABLE = "Unable to reach the server"


@dataclass
class Pagination:
    total: int = 0
    page: int = 1
    limit: int = 9
    total_pages: int = 1


class AuthState:
    """The logged-in user and their token."""

    def __init__(self, api: EventManagerClient):
        self.api = api
        self.user: Optional[dict[str, Any]] = None
        self.error: Optional[str] = None

    @property
    def token(self) -> Optional[str]:
        return self.api.token

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    def _run(self, call, *args) -> dict[str, Any]:
        self.error = None
        try:
            data = call(*args)
        except ApiError as exc:
            self.error = exc.message
            raise
        except httpx.HTTPError:
            self.error = UNREACHABLE
            raise
        self.user = data["user"]
        return data

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._run(self.api.login, email, password)

    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        return self._run(self.api.register, name, email, password)

    def guest_login(self, email: str) -> dict[str, Any]:
        return self._run(self.api.guest_login, email)

    def load_user(self) -> Optional[dict[str, Any]]:
        """Restore the user for a stored token.

        A token the server rejects logs out. When the server cannot be
        reached the token is kept so a later call can retry.
        """
        if not self.token:
            return None
        self.error = None
        try:
            self.user = self.api.profile()["user"]
        except ApiError as exc:
            logger.info("Stored token rejected: %s", exc.message)
            self.logout()
        except httpx.HTTPError as exc:
            logger.warning("Profile fetch failed: %s", exc)
            self.error = UNREACHABLE
        return self.user

    def logout(self) -> None:
        self.api.token = None
        self.user = None


class EventState:
    """Cached event list, pagination and connection status.

    Server responses and push events both funnel into the same upsert/remove
    helpers, so applying the same change twice is harmless.
    """

    def __init__(self, api: EventManagerClient):
        self.api = api
        self.events: list[dict[str, Any]] = []
        self.pagination = Pagination()
        self.loading = False
        self.error: Optional[str] = None
        self.socket_connected = False

    # ── Local cache ────────────────────────────────────────────────────
    def get(self, event_id: str) -> Optional[dict[str, Any]]:
        return next((e for e in self.events if e["_id"] == event_id), None)

    def _upsert(self, event: dict[str, Any]) -> None:
        for i, existing in enumerate(self.events):
            if existing["_id"] == event["_id"]:
                self.events[i] = event
                return
        self.events.append(event)

    def _replace(self, event: dict[str, Any]) -> None:
        self.events = [event if e["_id"] == event["_id"] else e for e in self.events]

    def _remove(self, event_id: str) -> None:
        self.events = [e for e in self.events if e["_id"] != event_id]

    # ── Push handlers ──────────────────────────────────────────────────
    def on_event_created(self, event: dict[str, Any]) -> None:
        self._upsert(event)

    def on_event_updated(self, event: dict[str, Any]) -> None:
        self._replace(event)

    def on_event_deleted(self, event_id: str) -> None:
        self._remove(event_id)

    # ── Server calls ───────────────────────────────────────────────────
    def fetch_events(self, filters: Optional[dict[str, Any]] = None) -> None:
        """Replace the cached page with a fresh listing. Errors land in ``error``."""
        self.loading = True
        self.error = None
        try:
            response = self.api.list_events(filters)
            self.events = response["data"]
            self.pagination = Pagination(**response["pagination"])
        except ApiError as exc:
            logger.warning("Fetch events failed: %s", exc.message)
            self.error = exc.message or "Failed to fetch events"
        except httpx.HTTPError as exc:
            logger.warning("Fetch events failed: %s", exc)
            self.error = "Failed to fetch events"
        finally:
            self.loading = False

    def _mutate(self, call, *args) -> dict[str, Any]:
        self.error = None
        try:
            return call(*args)
        except ApiError as exc:
            self.error = exc.message
            raise
        except httpx.HTTPError:
            self.error = UNREACHABLE
            raise

    def create_event(self, data: dict[str, Any]) -> dict[str, Any]:
        event = self._mutate(self.api.create_event, data)
        self._upsert(event)
        return event

    def update_event(self, event_id: str, data: dict[str, Any]) -> dict[str, Any]:
        event = self._mutate(self.api.update_event, event_id, data)
        self._replace(event)
        return event

    def delete_event(self, event_id: str) -> None:
        self._mutate(self.api.delete_event, event_id)
        self._remove(event_id)

    def join_event(self, event_id: str) -> dict[str, Any]:
        event = self._mutate(self.api.join_event, event_id)
        self._replace(event)
        return event

    def leave_event(self, event_id: str) -> dict[str, Any]:
        event = self._mutate(self.api.leave_event, event_id)
        self._replace(event)
        return event

    # ── View helpers ───────────────────────────────────────────────────
    @staticmethod
    def is_organizer(event: dict[str, Any], user_id: Optional[str]) -> bool:
        return user_id is not None and event["organizer"]["_id"] == user_id

    @staticmethod
    def is_attending(event: dict[str, Any], user_id: Optional[str]) -> bool:
        return any(a["_id"] == user_id for a in event.get("attendees", []))

    @staticmethod
    def is_at_capacity(event: dict[str, Any]) -> bool:
        cap = event.get("max_attendees")
        if not cap:
            return False
        return len(event.get("attendees", [])) >= cap
