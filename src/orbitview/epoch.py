"""TLE epoch decoding.

Line 1 of a TLE carries its epoch as a compact ``YYDDD.DDDDDDDD`` token:
a two-digit year followed by the fractional day of year (1.0 = midnight on
January 1). This module turns that token into a timezone-aware UTC
``datetime`` accurate to one second.

Only years 2000-2099 are supported. The NORAD convention of mapping
57-99 onto the 1900s is deliberately not applied, since the catalogs this
package reads are current-epoch Space-Track dumps.
"""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, timedelta, timezone

from .errors import EpochParseError

MIN_YEAR = 2000
MAX_YEAR = 2099


def decode_epoch(token: str) -> datetime:
    """Convert a ``YYDDD.DDDDDDDD`` epoch token to a UTC datetime.

    Hours, minutes and seconds are obtained by multiplying the day fraction
    by 24, 60 and 60 in turn and flooring at each stage, so the result is
    truncated to the second rather than rounded.

    Args:
        token: Epoch token with spaces already removed, e.g. ``"24001.5"``.

    Returns:
        Epoch as a timezone-aware UTC datetime.

    Raises:
        EpochParseError: If the token is unreadable, the year falls outside
            2000-2099, or the day of year is not valid for that year.
    """
    token = token.strip()
    if len(token) < 3 or not token[:2].isdigit():
        raise EpochParseError(f"Unreadable epoch token {token!r}")

    year = MIN_YEAR + int(token[:2])
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise EpochParseError(f"Epoch year {year} outside {MIN_YEAR}-{MAX_YEAR}")

    try:
        rest = float(token[2:])
    except ValueError as exc:
        raise EpochParseError(f"Unreadable day of year in {token!r}") from exc
    if not math.isfinite(rest):
        raise EpochParseError(f"Unreadable day of year in {token!r}")

    day = math.floor(rest)
    days_in_year = 366 if calendar.isleap(year) else 365
    if day <= 0 or day > days_in_year:
        raise EpochParseError(f"Day of year {day} invalid for {year}")

    rest -= day
    hour = math.floor(rest * 24)
    rest = rest * 24 - hour
    minute = math.floor(rest * 60)
    rest = rest * 60 - minute
    second = math.floor(rest * 60)

    calendar_date = ordinal_date(year, day)
    return datetime(
        calendar_date.year,
        calendar_date.month,
        calendar_date.day,
        hour,
        minute,
        second,
        tzinfo=timezone.utc,
    )


def ordinal_date(year: int, day_of_year: int) -> date:
    """Calendar date of the given 1-based day of year."""
    return date(year, 1, 1) + timedelta(days=day_of_year - 1)


def encode_epoch(dt: datetime) -> str:
    """Format a datetime back into a ``YYDDD.DDDDDDDD`` token.

    Used to build synthetic catalogs; the inverse of ``decode_epoch`` up to
    its one-second truncation.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    if not MIN_YEAR <= dt.year <= MAX_YEAR:
        raise EpochParseError(f"Epoch year {dt.year} outside {MIN_YEAR}-{MAX_YEAR}")
    start = datetime(dt.year, 1, 1)
    day = (dt - start).total_seconds() / 86400.0 + 1.0
    return f"{dt.year % 100:02d}{day:012.8f}"
