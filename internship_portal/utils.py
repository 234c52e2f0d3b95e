"""Utility functions for time, sanitization and validation."""

import re
from datetime import datetime, timezone
from typing import Callable, Optional

import bleach

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what SQLite stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC.

    Stored datetimes and ``utcnow()`` are naive UTC, so anything arriving with
    an offset has to be shifted before it is stored or compared. Naive values
    are assumed to be UTC already.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for storage inside a JSON column."""
    if value is None:
        return None
    return value.isoformat()


def from_iso(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def sanitize_feedback(text: Optional[str]) -> Optional[str]:
    """Sanitize reviewer feedback text.

    Strips all HTML down to plain text.
    """
    if text is None:
        return None
    sanitized = bleach.clean(text, tags=[], strip=True)
    return sanitized.strip()


def validate_hours(hours: float) -> bool:
    """Validate that hours worked is a non-negative number.

    Raises:
        ValueError: If hours is negative
    """
    if hours is None or hours < 0:
        raise ValueError(f"Hours worked {hours} cannot be negative")
    return True


def validate_grade(grade: Optional[float]) -> bool:
    """Validate that a grade lies in [0, 100]; ``None`` means no grade.

    Raises:
        ValueError: If grade is out of range
    """
    if grade is not None and (grade < 0 or grade > 100):
        raise ValueError(f"Grade {grade} out of range [0, 100]")
    return True


def validate_quality_score(score: Optional[int]) -> bool:
    if score is not None and (score < 1 or score > 5):
        raise ValueError(f"Quality score {score} out of range [1, 5]")
    return True


def validate_rate(rate: float) -> bool:
    if rate is None or rate < 0:
        raise ValueError(f"Hourly rate {rate} cannot be negative")
    return True


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^[0-9]{10}$")


def validate_email_format(email: str) -> str:
    """Normalize and validate an email address; returns the lowercased form."""
    normalized = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Please enter a valid email")
    return normalized


def validate_phone(phone: Optional[str]) -> bool:
    if phone is not None and not PHONE_PATTERN.match(phone):
        raise ValueError("Please enter a valid 10-digit phone number")
    return True
