"""HTTP client for the Event Manager API."""
import logging
from typing import Any, BinaryIO, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A non-2xx response, carrying the server's single message string."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if isinstance(detail, str):
            return detail
    return response.reason_phrase


def _query_params(filters: Optional[dict[str, Any]]) -> dict[str, str]:
    """Drop empty filter values and render booleans the way the API parses them."""
    params: dict[str, str] = {}
    for key, value in (filters or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            if not value:
                continue
            value = "true"
        params[key] = str(value)
    return params


class EventManagerClient:
    """Thin wrapper over httpx that attaches the bearer token once logged in.

    Args:
        base_url: Server root, e.g. ``http://localhost:8000``.
        token: A previously issued session token, if any.
        transport: Optional httpx transport (handy for tests).
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.token = token
        self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self._http.request(method, path, headers=headers, **kwargs)
        if response.is_error:
            message = _error_message(response)
            logger.debug("%s %s failed with %s: %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message)
        return response.json()

    def _authenticate(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        data = self._request("POST", path, json=body)
        self.token = data["token"]
        return data

    # ── Auth ───────────────────────────────────────────────────────────
    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        return self._authenticate("/api/auth/register", {"name": name, "email": email, "password": password})

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._authenticate("/api/auth/login", {"email": email, "password": password})

    def guest_login(self, email: str) -> dict[str, Any]:
        return self._authenticate("/api/auth/guest-login", {"email": email})

    def profile(self) -> dict[str, Any]:
        return self._request("GET", "/api/auth/profile")

    # ── Events ─────────────────────────────────────────────────────────
    def list_events(self, filters: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Fetch one page of events. ``filters`` may include paging and sort keys."""
        return self._request("GET", "/api/events", params=_query_params(filters))

    def get_event(self, event_id: str) -> dict[str, Any]:
        return self._request("GET", f"/api/events/{event_id}")

    def create_event(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/api/events", json=data)

    def update_event(self, event_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/api/events/{event_id}", json=data)

    def delete_event(self, event_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/api/events/{event_id}")

    def join_event(self, event_id: str) -> dict[str, Any]:
        return self._request("POST", f"/api/events/{event_id}/join")

    def leave_event(self, event_id: str) -> dict[str, Any]:
        return self._request("POST", f"/api/events/{event_id}/leave")

    # ── Uploads ────────────────────────────────────────────────────────
    def upload_image(self, fileobj: BinaryIO, filename: str, content_type: str) -> str:
        """Upload an image and return the URL to store on an event."""
        data = self._request("POST", "/api/upload/image", files={"image": (filename, fileobj, content_type)})
        return data["url"]
