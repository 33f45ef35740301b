"""Client-side form checks, run before a request is sent.

Each validator returns the first problem as a user-facing message, or None.
"""
import re
from typing import Any, Optional

CATEGORIES = ("Conference", "Workshop", "Seminar", "Networking", "Social", "Other")
MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_email(email: Optional[str]) -> Optional[str]:
    if _blank(email) or not _EMAIL_RE.match(email.strip()):
        return "Please enter a valid email address"
    return None


def validate_credentials(
    email: Optional[str],
    password: Optional[str],
    name: Optional[str] = None,
    require_name: bool = False,
) -> Optional[str]:
    """Login form (email + password) or, with ``require_name``, the register form."""
    if require_name and _blank(name):
        return "Name is required"
    error = validate_email(email)
    if error:
        return error
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    return None


def validate_event_form(data: dict[str, Any]) -> Optional[str]:
    """Check the create/edit event form."""
    for field, label in (
        ("title", "Title"),
        ("description", "Description"),
        ("date", "Date"),
        ("time", "Time"),
        ("location", "Location"),
        ("category", "Category"),
    ):
        if _blank(data.get(field)):
            return f"{label} is required"

    if data["category"] not in CATEGORIES:
        return "Invalid category"

    max_attendees = data.get("max_attendees")
    if max_attendees not in (None, ""):
        try:
            if int(max_attendees) < 1:
                raise ValueError
        except (TypeError, ValueError):
            return "Maximum attendees must be at least 1"
    return None
