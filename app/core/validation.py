"""Input validation rules shared by the request schemas."""
import re
from datetime import date
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_RE = re.compile(r"^[a-zA-Z0-9\s\-']+$")

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 5000
MAX_LOCATION_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_MESSAGE_LENGTH = 10000


def validate_email(email: Optional[str]) -> bool:
    return bool(email) and len(email) <= 255 and bool(EMAIL_RE.match(email))


def validate_name(name: Optional[str]) -> bool:
    """2-255 characters: letters, digits, spaces, hyphens and apostrophes."""
    if not name or len(name.strip()) < 2:
        return False
    if len(name) > MAX_NAME_LENGTH:
        return False
    return bool(NAME_RE.match(name))


def validate_password(password: Optional[str]) -> bool:
    """8-128 characters with an uppercase letter, a lowercase letter and a digit."""
    if not password or len(password) < 8 or len(password) > 128:
        return False
    return (
        any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
    )


def validate_title(title: Optional[str]) -> bool:
    return bool(title) and len(title.strip()) > 0 and len(title) <= MAX_TITLE_LENGTH


def validate_description(description: Optional[str]) -> bool:
    return not description or len(description) <= MAX_DESCRIPTION_LENGTH


def validate_location(location: Optional[str]) -> bool:
    return not location or len(location) <= MAX_LOCATION_LENGTH


def validate_required(value: Optional[str]) -> bool:
    return value is not None and len(value.strip()) > 0


def validate_date_range(start: Optional[date], end: Optional[date] = None) -> bool:
    if start is None:
        return False
    return end is None or end >= start


def validate_message(content: Optional[str]) -> bool:
    return validate_required(content) and len(content) <= MAX_MESSAGE_LENGTH
