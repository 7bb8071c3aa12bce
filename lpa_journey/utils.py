"""
Utility functions for formatting, hashing, and text processing.
"""

import hashlib
from datetime import date, datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

LONDON = ZoneInfo('Europe/London')


def format_date(date_value: Any) -> str:
    """
    Format a date value for display.

    Args:
        date_value: ISO date string, date or datetime

    Returns:
        Formatted date string, e.g. '2 January 2000'
    """
    if date_value is None or date_value == '':
        return ''

    if isinstance(date_value, str):
        try:
            date_value = date.fromisoformat(date_value[:10])
        except ValueError:
            return date_value

    if isinstance(date_value, (date, datetime)):
        return f'{date_value.day} {date_value.strftime("%B %Y")}'

    return str(date_value)


def pluralise(count: int, singular: str, plural: Optional[str] = None) -> str:
    """'1 attorney', '2 attorneys'."""
    word = singular if count == 1 else (plural or singular + 's')
    return f'{count} {word}'


def calculate_sha256(data: bytes) -> str:
    """
    Calculate SHA256 hash of data.

    Args:
        data: Bytes to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(data).hexdigest()


def short_hash(full_hash: str, length: int = 16) -> str:
    """Get a shortened version of a hash for display."""
    if not full_hash:
        return ''
    return full_hash[:length]


def escape_text(text: str) -> str:
    """
    Escape special characters in text for safe PDF rendering.

    Args:
        text: Input text

    Returns:
        Escaped text safe for ReportLab
    """
    if not text:
        return ''

    replacements = [
        ('&', '&amp;'),
        ('<', '&lt;'),
        ('>', '&gt;'),
        ('"', '&quot;'),
        ("'", '&apos;'),
    ]

    result = text
    for old, new in replacements:
        result = result.replace(old, new)

    return result


def format_london_datetime(dt: Optional[datetime] = None) -> str:
    """
    Format a UTC datetime in UK local time.

    Args:
        dt: Naive UTC datetime (defaults to now)

    Returns:
        e.g. '19 October 2026 at 05:55 PM BST'
    """
    if dt is None:
        dt = datetime.utcnow()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo('UTC'))
    return dt.astimezone(LONDON).strftime('%d %B %Y at %I:%M %p %Z')
