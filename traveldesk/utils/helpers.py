"""Shared utility functions - date parsing, UTC normalisation, email checks.

parse_date:        returns None on bad input
parse_date_input:  raises ValueError on bad input
ensure_utc:        attaches UTC to naive datetimes read back from SQLite
is_valid_email:    email-validator, syntax only (no DNS)
"""
from datetime import date, datetime, timezone

from email_validator import EmailNotValidError, validate_email


def parse_date(value):
    """Parse a date string (ISO or DD/MM/YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD/MM/YYYY (the format the ministry prints on forms)
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d/%m/%Y").date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Same as parse_date() but raises ValueError instead of returning None for
    non-empty input that cannot be parsed.
    """
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed


def ensure_utc(value):
    """Return ``value`` as an aware UTC datetime (None passes through)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_valid_email(value) -> bool:
    if not value or not str(value).strip():
        return False
    try:
        validate_email(str(value).strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def inclusive_day_count(start, end) -> int:
    """Travel duration in days, counting both ends; 0 when dates are unusable."""
    if not start or not end:
        return 0
    diff = (end - start).days
    return diff + 1 if diff >= 0 else 0
