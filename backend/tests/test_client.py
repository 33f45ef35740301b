"""Tests for the Python client: HTTP wrapper, form checks, state caches, push listener.

The HTTP layer is exercised with ``httpx.MockTransport`` so no server runs.
"""
import json

import httpx
import pytest
import socketio

from event_manager.client.api import ApiError, EventManagerClient
from event_manager.client.forms import validate_credentials, validate_email, validate_event_form
from event_manager.client.push import PushListener
from event_manager.client.state import AuthState, EventState, Pagination


def _event(event_id, title="Event", organizer_id="u1", attendees=("u1",), max_attendees=None):
    return {
        "_id": event_id,
        "title": title,
        "organizer": {"_id": organizer_id, "name": "Org", "email": "org@example.com"},
        "attendees": [{"_id": a, "name": a, "email": f"{a}@example.com"} for a in attendees],
        "max_attendees": max_attendees,
    }


USER = {"_id": "u1", "name": "Ada", "email": "ada@example.com", "is_guest": False}


def _client(handler, token=None):
    return EventManagerClient("http://testserver/", token=token, transport=httpx.MockTransport(handler))


def _refuse_connection(request):
    raise httpx.ConnectError("Connection refused", request=request)


# ---------------------------------------------------------------------------
# EventManagerClient
# ---------------------------------------------------------------------------
class TestApiClient:

    def test_login_stores_token_and_sends_it(self):
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.path == "/api/auth/login":
                return httpx.Response(200, json={"user": USER, "token": "tok-1"})
            return httpx.Response(200, json={"user": USER})

        api = _client(handler)
        api.login("ada@example.com", "secret123")
        assert api.token == "tok-1"
        assert json.loads(seen[0].content) == {"email": "ada@example.com", "password": "secret123"}

        api.profile()
        assert seen[1].headers["Authorization"] == "Bearer tok-1"

    def test_no_auth_header_without_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"user": USER, "token": "t"})

        _client(handler).guest_login("g@example.com")
        assert "Authorization" not in seen[0].headers

    def test_error_carries_server_message(self):
        def handler(request):
            return httpx.Response(400, json={"detail": "Event is at maximum capacity"})

        with pytest.raises(ApiError) as exc_info:
            _client(handler, token="t").join_event("e1")
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Event is at maximum capacity"

    def test_error_without_json_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(ApiError) as exc_info:
            _client(handler).profile()
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"

    def test_list_events_drops_empty_filters(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [], "pagination": {}})

        _client(handler, token="t").list_events({
            "page": 2,
            "category": "Workshop",
            "search_query": "",
            "start_date": None,
            "is_upcoming": True,
            "min_attendees": 0,
        })
        params = dict(seen[0].url.params)
        assert params == {"page": "2", "category": "Workshop", "is_upcoming": "true", "min_attendees": "0"}

    def test_false_upcoming_not_sent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [], "pagination": {}})

        _client(handler, token="t").list_events({"is_upcoming": False})
        assert "is_upcoming" not in seen[0].url.params

    def test_mutation_routes(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"ok": True})

        api = _client(handler, token="t")
        api.create_event({"title": "x"})
        api.update_event("e1", {"title": "y"})
        api.delete_event("e1")
        api.join_event("e1")
        api.leave_event("e1")
        assert seen == [
            ("POST", "/api/events"),
            ("PUT", "/api/events/e1"),
            ("DELETE", "/api/events/e1"),
            ("POST", "/api/events/e1/join"),
            ("POST", "/api/events/e1/leave"),
        ]

    def test_upload_image_returns_url(self):
        def handler(request):
            assert request.url.path == "/api/upload/image"
            assert b'name="image"; filename="cover.png"' in request.content
            return httpx.Response(200, json={"url": "https://cdn.example.com/cover.png"})

        url = _client(handler, token="t").upload_image(b"\x89PNG", "cover.png", "image/png")
        assert url == "https://cdn.example.com/cover.png"


# ---------------------------------------------------------------------------
# Form validation
# ---------------------------------------------------------------------------
class TestForms:

    def test_email(self):
        assert validate_email("ada@example.com") is None
        assert validate_email("ada@") == "Please enter a valid email address"
        assert validate_email("") == "Please enter a valid email address"

    def test_login_form(self):
        assert validate_credentials("ada@example.com", "secret1") is None
        assert validate_credentials("ada@example.com", "short") == "Password must be at least 6 characters long"

    def test_register_form_needs_name(self):
        assert validate_credentials("ada@example.com", "secret1", name=" ", require_name=True) == "Name is required"
        assert validate_credentials("ada@example.com", "secret1", name="Ada", require_name=True) is None

    def test_event_form(self):
        form = {
            "title": "Talk",
            "description": "About things",
            "date": "2030-01-01",
            "time": "10:00",
            "location": "Hall",
            "category": "Seminar",
        }
        assert validate_event_form(form) is None
        assert validate_event_form({**form, "location": ""}) == "Location is required"
        assert validate_event_form({**form, "category": "Party"}) == "Invalid category"
        assert validate_event_form({**form, "max_attendees": "0"}) == "Maximum attendees must be at least 1"
        assert validate_event_form({**form, "max_attendees": "abc"}) == "Maximum attendees must be at least 1"
        assert validate_event_form({**form, "max_attendees": ""}) is None


# ---------------------------------------------------------------------------
# State caches
# ---------------------------------------------------------------------------
class FakeApi:
    """Stands in for EventManagerClient inside the state classes."""

    def __init__(self, token=None):
        self.token = token
        self.fail_with = None
        self.listing = {"data": [], "pagination": {"total": 0, "page": 1, "limit": 9, "total_pages": 0}}

    def _maybe_fail(self):
        if self.fail_with:
            raise self.fail_with

    def login(self, email, password):
        self._maybe_fail()
        self.token = "tok"
        return {"user": USER, "token": "tok"}

    def profile(self):
        self._maybe_fail()
        return {"user": USER}

    def list_events(self, filters=None):
        self._maybe_fail()
        return self.listing

    def create_event(self, data):
        self._maybe_fail()
        return _event("new", title=data["title"])

    def update_event(self, event_id, data):
        self._maybe_fail()
        return _event(event_id, title=data["title"])

    def delete_event(self, event_id):
        self._maybe_fail()
        return {"message": "Event deleted successfully"}

    def join_event(self, event_id):
        self._maybe_fail()
        return _event(event_id, attendees=("u1", "u2"))


class TestAuthState:

    def test_login_sets_user(self):
        auth = AuthState(FakeApi())
        auth.login("ada@example.com", "secret1")
        assert auth.user == USER
        assert auth.is_authenticated

    def test_login_failure_records_error(self):
        api = FakeApi()
        api.fail_with = ApiError(401, "Invalid credentials")
        auth = AuthState(api)
        with pytest.raises(ApiError):
            auth.login("ada@example.com", "wrong12")
        assert auth.error == "Invalid credentials"
        assert not auth.is_authenticated

    def test_load_user_with_rejected_token_logs_out(self):
        api = FakeApi(token="stale")
        api.fail_with = ApiError(401, "Authentication required")
        auth = AuthState(api)
        assert auth.load_user() is None
        assert api.token is None

    def test_load_user_without_token(self):
        assert AuthState(FakeApi()).load_user() is None

    def test_load_user_server_unreachable_keeps_token(self):
        auth = AuthState(_client(_refuse_connection, token="saved"))
        assert auth.load_user() is None
        assert auth.token == "saved"
        assert auth.error == "Unable to reach the server"

    def test_login_server_unreachable(self):
        auth = AuthState(_client(_refuse_connection))
        with pytest.raises(httpx.ConnectError):
            auth.login("ada@example.com", "secret1")
        assert auth.error == "Unable to reach the server"
        assert not auth.is_authenticated

    def test_logout(self):
        auth = AuthState(FakeApi())
        auth.login("ada@example.com", "secret1")
        auth.logout()
        assert auth.user is None
        assert auth.token is None


class TestEventState:

    def test_fetch_with_server_down_sets_error(self):
        state = EventState(_client(_refuse_connection, token="t"))
        state.on_event_created(_event("e1"))
        state.fetch_events()
        assert state.error == "Failed to fetch events"
        assert state.loading is False
        # The stale page stays visible
        assert [e["_id"] for e in state.events] == ["e1"]

    def test_mutation_with_server_down_records_and_raises(self):
        state = EventState(_client(_refuse_connection, token="t"))
        with pytest.raises(httpx.ConnectError):
            state.join_event("e1")
        assert state.error == "Unable to reach the server"

    def test_fetch_replaces_cache(self):
        api = FakeApi()
        api.listing = {
            "data": [_event("e1"), _event("e2")],
            "pagination": {"total": 2, "page": 1, "limit": 9, "total_pages": 1},
        }
        state = EventState(api)
        state.fetch_events({"page": 1})
        assert [e["_id"] for e in state.events] == ["e1", "e2"]
        assert state.pagination == Pagination(total=2, page=1, limit=9, total_pages=1)
        assert state.loading is False

    def test_fetch_failure_sets_error_without_raising(self):
        api = FakeApi()
        api.fail_with = ApiError(500, "Internal server error")
        state = EventState(api)
        state.fetch_events()
        assert state.error == "Internal server error"
        assert state.loading is False

    def test_pushed_create_is_idempotent(self):
        state = EventState(FakeApi())
        state.on_event_created(_event("e1"))
        state.on_event_created(_event("e1", title="Again"))
        assert len(state.events) == 1
        assert state.events[0]["title"] == "Again"

    def test_pushed_update_only_replaces_known_events(self):
        state = EventState(FakeApi())
        state.on_event_created(_event("e1"))
        state.on_event_updated(_event("e1", title="Renamed"))
        state.on_event_updated(_event("unknown"))
        assert [e["title"] for e in state.events] == ["Renamed"]

    def test_pushed_delete(self):
        state = EventState(FakeApi())
        state.on_event_created(_event("e1"))
        state.on_event_deleted("e1")
        state.on_event_deleted("e1")
        assert state.events == []

    def test_local_create_then_push_keeps_one_copy(self):
        state = EventState(FakeApi())
        created = state.create_event({"title": "Mine"})
        state.on_event_created(created)
        assert len(state.events) == 1

    def test_join_replaces_cached_event(self):
        state = EventState(FakeApi())
        state.on_event_created(_event("e1"))
        state.join_event("e1")
        assert EventState.is_attending(state.get("e1"), "u2")

    def test_failed_mutation_records_and_raises(self):
        api = FakeApi()
        state = EventState(api)
        state.on_event_created(_event("e1"))
        api.fail_with = ApiError(404, "Event not found")
        with pytest.raises(ApiError):
            state.delete_event("e1")
        assert state.error == "Event not found"
        assert state.get("e1") is not None

    def test_view_helpers(self):
        event = _event("e1", organizer_id="u1", attendees=("u1", "u2"), max_attendees=2)
        assert EventState.is_organizer(event, "u1")
        assert not EventState.is_organizer(event, "u2")
        assert not EventState.is_organizer(event, None)
        assert EventState.is_attending(event, "u2")
        assert not EventState.is_attending(event, "u3")
        assert EventState.is_at_capacity(event)
        assert not EventState.is_at_capacity(_event("e2"))


# ---------------------------------------------------------------------------
# Push listener
# ---------------------------------------------------------------------------
class StubSocket:
    """Records handler registrations the way socketio.AsyncClient.on does."""

    def __init__(self):
        self.handlers = {}

    def on(self, event, handler):
        self.handlers[event] = handler


class TestPushListener:

    def test_registers_handlers(self):
        sio = StubSocket()
        PushListener("http://testserver", EventState(FakeApi()), "tok", sio=sio)
        assert set(sio.handlers) == {"connect", "disconnect", "eventCreated", "eventUpdated", "eventDeleted"}

    def test_handlers_feed_state(self):
        sio = StubSocket()
        state = EventState(FakeApi())
        PushListener("http://testserver", state, "tok", sio=sio)

        sio.handlers["connect"]()
        assert state.socket_connected is True

        sio.handlers["eventCreated"](_event("e1"))
        sio.handlers["eventUpdated"](_event("e1", title="Live"))
        assert state.get("e1")["title"] == "Live"

        sio.handlers["eventDeleted"]("e1")
        assert state.events == []

        sio.handlers["disconnect"]("transport close")
        assert state.socket_connected is False

    def test_default_socket_client_has_its_transport(self):
        import aiohttp  # noqa: F401
        from engineio import async_client

        listener = PushListener("http://testserver", EventState(FakeApi()), "tok")
        assert isinstance(listener.sio, socketio.AsyncClient)
        # engineio falls back to "aiohttp package not installed" when this is None
        assert async_client.aiohttp is not None
