"""Time normalization between studio wall clocks and stored timestamps.

Stored ("canonical") timestamps follow a historical convention: the studio's
local wall-clock time advanced by the studio's UTC offset, formatted as ISO
and labelled with a literal ``Z``. The wall clock of a canonical value is
read as home-base wall time (Moscow, UTC+3, by default), which is what the
sweeps compare it against.

Everything outside this module works with timezone-aware UTC datetimes;
canonical strings are only produced and parsed here.

Round trip: ``canonical_to_display(local_to_canonical(T, O), O, False)``
renders exactly ``T + home_offset`` hours for every studio offset ``O``.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone

from modules.events.errors import InvalidTimeError

LOCAL_FORMATS = ("%d.%m.%Y %H:%M:%S", "%d.%m.%Y %H:%M", "%d.%m.%Y")
CANONICAL_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
DISPLAY_FORMAT = "%d.%m.%Y %H:%M:%S"

DEFAULT_HOME_OFFSET_HOURS = 3.0


def parse_offset(value: object, default: float | None = None) -> float:
    """Parse a studio UTC offset stored as text (``"+5"``, ``"-1"``, ``"5.5"``)."""
    if value is None or str(value).strip() == "":
        if default is not None:
            return default
        raise InvalidTimeError("UTC offset is missing")
    try:
        return float(str(value).strip())
    except ValueError:
        if default is not None:
            return default
        raise InvalidTimeError(f"Invalid UTC offset: {value!r}") from None


def parse_local(text: str) -> datetime:
    """Parse a ``DD.MM.YYYY HH:mm:ss`` wall-clock string into a naive datetime."""
    text = (text or "").strip()
    for fmt in LOCAL_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise InvalidTimeError(f"Expected DD.MM.YYYY HH:mm:ss, got {text!r}")


def local_to_canonical(text: str, utc_offset_hours: float) -> str:
    """Convert studio-local time text into the stored canonical string."""
    shifted = parse_local(text) + timedelta(hours=utc_offset_hours)
    return shifted.strftime(CANONICAL_FORMAT)


def parse_canonical(text: str) -> datetime:
    """Return the naive wall clock of a canonical string.

    Values written with an explicit offset are normalised to their UTC
    fields first, the same reading the ``Z`` label gets.
    """
    if not text:
        raise InvalidTimeError("Timestamp is missing")
    raw = str(text).strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidTimeError(f"Invalid stored timestamp: {text!r}") from None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0)


def home_wall(now: datetime, home_offset_hours: float = DEFAULT_HOME_OFFSET_HOURS) -> datetime:
    """Home-base wall clock (naive) for an aware instant."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    utc = now.astimezone(timezone.utc).replace(tzinfo=None)
    return utc + timedelta(hours=home_offset_hours)


def canonical_to_instant(
    text: str, home_offset_hours: float = DEFAULT_HOME_OFFSET_HOURS
) -> datetime:
    """The true UTC instant at which a canonical timestamp is due."""
    wall = parse_canonical(text)
    return (wall - timedelta(hours=home_offset_hours)).replace(tzinfo=timezone.utc)


def with_year_month(dt: datetime, year: int, month: int) -> datetime:
    """Move ``dt`` into another month, clamping the day for short months."""
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def monthly_occurrence(wall: datetime, today: date) -> datetime:
    """This month's occurrence of a monthly recurring wall-clock time."""
    return with_year_month(wall, today.year, today.month)


def displayed_datetime(
    text: str,
    utc_offset_hours: float,
    recurring: bool,
    home_offset_hours: float = DEFAULT_HOME_OFFSET_HOURS,
    now: datetime | None = None,
) -> datetime:
    """The naive datetime that ``canonical_to_display`` renders."""
    base = parse_canonical(text) - timedelta(hours=utc_offset_hours - home_offset_hours)
    if not recurring:
        return base
    current = home_wall(now or datetime.now(timezone.utc), home_offset_hours)
    wall = base + timedelta(hours=home_offset_hours)
    return with_year_month(wall, current.year, current.month)


def canonical_to_display(
    text: str,
    utc_offset_hours: float,
    recurring: bool,
    home_offset_hours: float = DEFAULT_HOME_OFFSET_HOURS,
    now: datetime | None = None,
) -> str:
    """Render a canonical timestamp for listings.

    One-off events render as ISO-8601 UTC; recurring events render this
    month's occurrence as ``DD.MM.YYYY HH:mm:ss`` in home wall time.
    """
    shown = displayed_datetime(text, utc_offset_hours, recurring, home_offset_hours, now)
    if recurring:
        return shown.strftime(DISPLAY_FORMAT)
    return shown.strftime("%Y-%m-%dT%H:%M:%S") + ".000Z"


def format_for_message(text: str | None) -> str:
    """Canonical wall clock as ``DD.MM.YYYY HH:mm:ss`` for chat messages."""
    if not text:
        return "-"
    try:
        return parse_canonical(text).strftime(DISPLAY_FORMAT)
    except InvalidTimeError:
        return str(text)
