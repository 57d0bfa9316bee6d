"""
Common utility functions for the volunteer hub.

This module provides reusable helper functions for:
- Date/time normalization and formatting (ISO-8601 with UTC)
- Lightweight input validation for emails, URLs, lengths and URL ids
- Committing a unit of work with rollback on database failure
"""

import re
from datetime import datetime, timezone
from urllib.parse import urlparse

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

# Largest value a BIGINT / SQLite INTEGER primary key can hold
MAX_RECORD_ID = 2 ** 63 - 1


def utc_now():
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_naive_utc(dt):
    """Return ``dt`` as a naive UTC datetime (the storage convention). Naive input is assumed UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def format_utc_iso(dt):
    """Return a UTC ISO-8601 string (with trailing Z) for a datetime or None."""
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def parse_iso_datetime(value):
    """
    Parse an ISO-8601 date or datetime string into naive UTC.

    Accepts a trailing ``Z``. Returns None when the value cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return to_naive_utc(parsed)


def normalize_email(value):
    """Lowercase and strip an email address; None stays None."""
    if value is None:
        return None
    return str(value).strip().lower()


def is_valid_email(value):
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def is_valid_url(value):
    """True for absolute http(s) URLs with a host."""
    if not value or not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def is_length_between(value, min_length, max_length):
    return isinstance(value, str) and min_length <= len(value) <= max_length


def parse_record_id(raw_id, message='Invalid ID'):
    """
    Parse a primary key taken from a URL.

    Only ASCII decimal digits are accepted and the value must fit a signed
    64-bit column. Raises ValidationError otherwise.
    """
    from app.utils.errors import ValidationError

    text = str(raw_id).strip()
    if not text or not text.isascii() or not text.isdecimal():
        raise ValidationError(message)
    value = int(text)
    if value < 1 or value > MAX_RECORD_ID:
        raise ValidationError(message)
    return value


def commit_session(description='changes'):
    """
    Commit the current session, converting database failures to StorageError.

    The session is rolled back before the error propagates, so nothing from
    the failed unit of work is persisted.
    """
    from app.extensions import db
    from app.utils.errors import StorageError

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"Failed to commit {description}: {exc}", exc_info=True)
        raise StorageError() from exc
