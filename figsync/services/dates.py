"""
Date normalization for imported collection records.

Catalog site exports mix several date shapes: full ISO dates, zeroed
placeholders (``0000-00-00``, ``2002-00-00``), bare years and ``MM/YYYY``.
Everything is reduced to an ISO ``YYYY-MM-DD`` string or ``None``.

Day/month orders such as ``03/04/2023`` cannot be told apart from
month/day and are rejected rather than guessed.
"""

import re
from datetime import date

PLACEHOLDER_DATE = "0000-00-00"

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATETIME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]\d{2}:\d{2}")
_YEAR_ONLY_RE = re.compile(r"^\d{4}$")
_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})/(\d{4})$")
_ZERO_PART_RE = re.compile(r"-00(?=-|$)")


def sanitize_date(value: str | None) -> str | None:
    """Return ``value`` as an ISO calendar date string, or None.

    Never raises: empty, placeholder and unparseable input all give None.
    """
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed or trimmed == PLACEHOLDER_DATE:
        return None

    if _YEAR_ONLY_RE.match(trimmed):
        trimmed = f"{trimmed}-01-01"
    else:
        month_year = _MONTH_YEAR_RE.match(trimmed)
        if month_year:
            month, year = month_year.groups()
            trimmed = f"{year}-{int(month):02d}-01"

    datetime_match = _ISO_DATETIME_RE.match(trimmed)
    if datetime_match:
        trimmed = datetime_match.group(1)

    if not _ISO_DATE_RE.match(trimmed):
        return None

    # 2002-00-00 -> 2002-01-01, 2002-05-00 -> 2002-05-01
    trimmed = _ZERO_PART_RE.sub("-01", trimmed)

    try:
        return date.fromisoformat(trimmed).isoformat()
    except ValueError:
        return None


def to_date(value: str | None) -> date | None:
    """Convert an already-sanitized ISO date string to a ``date``."""
    if not value:
        return None
    return date.fromisoformat(value)
