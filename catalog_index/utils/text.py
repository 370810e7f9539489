"""
Text normalizers shared by the crawler and the index builder.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone

from bs4 import BeautifulSoup


_WS_RE = re.compile(r"\s+")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")
_ISO_DURATION_RE = re.compile(
    r"P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?",
    re.IGNORECASE,
)


def strip_html(value: object) -> str:
    """Drop markup and decode entities. Tags and <br> become spaces."""
    if value is None:
        return ""
    s = str(value)
    if not s:
        return ""
    # Plain text needs no parsing.
    if "<" not in s and "&" not in s:
        return s
    soup = BeautifulSoup(s, "html.parser")
    return soup.get_text(" ")


def normalize_text(value: object) -> str:
    return _WS_RE.sub(" ", strip_html(value)).strip()


def slugify(value: object) -> str:
    """Lowercase a-z0-9 words joined by single hyphens.

    slugify("Hidden Gems!!") -> "hidden-gems"
    """
    s = str(value or "").lower()
    return _SLUG_STRIP_RE.sub("-", s).strip("-")


def parse_iso_duration(value: object) -> int:
    """Parse an ISO-8601 duration (PT1H2M5S, P1DT2H) into whole seconds.

    Anything that is not a recognizable duration yields 0.
    """
    if not isinstance(value, str) or not value.strip():
        return 0
    m = _ISO_DURATION_RE.fullmatch(value.strip())
    if not m or not any(m.groupdict().values()):
        return 0
    days = int(m.group("days") or 0)
    hours = int(m.group("hours") or 0)
    minutes = int(m.group("minutes") or 0)
    seconds = int(m.group("seconds") or 0)
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def to_iso_duration(total_seconds: int) -> str:
    """Inverse of parse_iso_duration for whole, non-negative seconds."""
    value = max(0, int(total_seconds))
    hours, rest = divmod(value, 3600)
    minutes, seconds = divmod(rest, 60)
    out = "PT"
    if hours:
        out += f"{hours}H"
    if minutes:
        out += f"{minutes}M"
    if seconds or out == "PT":
        out += f"{seconds}S"
    return out


def format_duration(total_seconds: object) -> str:
    """3725 -> "1:02:05", 65 -> "1:05"."""
    try:
        value = int(float(total_seconds or 0))
    except (TypeError, ValueError, OverflowError):
        value = 0
    if value < 0:
        value = 0
    hours, rest = divmod(value, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def coerce_int(value: object, default: int | None = 0) -> int | None:
    """Best-effort int for loosely typed snapshot fields."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def iso_timestamp(dt: datetime | None = None) -> str:
    """UTC timestamp in the 2024-01-02T03:04:05.678Z form."""
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: object) -> float | None:
    """Epoch seconds for an ISO-8601 date/time, None when absent or unparseable.

    Naive values are taken as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    s = value.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()
