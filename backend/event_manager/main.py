"""FastAPI application entry point.

Serve with ``uvicorn event_manager.main:asgi_app`` so the Socket.IO channel
is mounted next to the HTTP API.
"""
import logging

import socketio
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from event_manager.config import settings
from event_manager.database import Base, engine
from event_manager.realtime import sio

# Import routers
from event_manager.routers import auth, events, uploads

# Import all models so Base.metadata knows about them
from event_manager.models.user import User                # noqa: F401
from event_manager.models.event import Event              # noqa: F401
from event_manager.models.attendee import EventAttendee   # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Event Manager",
    description="Create, browse and join events with live updates",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

# Register routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(uploads.router, prefix="/api/upload", tags=["Uploads"])


def _validation_message(exc: RequestValidationError) -> str:
    """Collapse pydantic errors into the single message clients display."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    field = next((str(part) for part in reversed(first.get("loc", ())) if isinstance(part, str)), None)
    if field and field not in ("body", "query", "path") and field.lower() not in message.lower():
        return f"{field}: {message}"
    return message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _validation_message(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    logger.info("Event Manager API started")


@app.get("/api/health")
def health_check():
    return {"status": "ok"}


# Socket.IO handles /socket.io/*, everything else goes to FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)
