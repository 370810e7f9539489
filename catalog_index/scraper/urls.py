from __future__ import annotations

import re
from typing import Any, Mapping

DISCOVER_BASE = "https://app.patristicnectar.org/discover"
YOUTUBE_WATCH = "https://www.youtube.com/watch?v="
YOUTUBE_PLAYLIST = "https://www.youtube.com/playlist?list="

_ABSOLUTE_RE = re.compile(r"^https?://", re.IGNORECASE)
_YT_VIDEO_RE = re.compile(r"^yt:video:([A-Za-z0-9_-]{6,})$", re.IGNORECASE)
_YT_PLAYLIST_RE = re.compile(r"^yt:playlist:([A-Za-z0-9_-]{6,})$", re.IGNORECASE)


def is_absolute_url(value: object) -> bool:
    return isinstance(value, str) and bool(_ABSOLUTE_RE.match(value.strip()))


def youtube_watch_url(video_id: str) -> str:
    return f"{YOUTUBE_WATCH}{video_id}"


def youtube_playlist_url(playlist_id: str) -> str:
    return f"{YOUTUBE_PLAYLIST}{playlist_id}"


def to_discover_url(slug: object) -> str:
    s = str(slug or "").strip()
    if not s:
        return ""
    if is_absolute_url(s):
        return s
    return f"{DISCOVER_BASE}/{s}"


def to_discover_item_url(parent_slug: str, slug: str) -> str:
    return f"{DISCOVER_BASE}/{parent_slug}/item/{slug}"


def resolve_external_url(external_id: object) -> str:
    """Map an external id (absolute URL, yt:video:<id>, yt:playlist:<id>) to a URL, else ""."""
    value = str(external_id or "").strip()
    if not value:
        return ""
    if is_absolute_url(value):
        return value
    m = _YT_VIDEO_RE.match(value)
    if m:
        return youtube_watch_url(m.group(1))
    m = _YT_PLAYLIST_RE.match(value)
    if m:
        return youtube_playlist_url(m.group(1))
    return ""


def resolve_content_url(
    content: Mapping[str, Any],
    parent_url: str = "",
    parent_slug: str = "",
) -> str:
    """Canonical URL of a crawled content leaf.

    Precedence: absolute external id, YouTube video, YouTube playlist, nested
    discover path (catalog-style ids such as LS0883.001), parent collection URL,
    absolute ``url`` field, flat discover path, "".
    """
    external_id = str(content.get("externalId") or "").strip()
    slug = str(content.get("slug") or "").strip()

    if external_id:
        resolved = resolve_external_url(external_id)
        if resolved:
            return resolved
        if slug and parent_slug:
            return to_discover_item_url(parent_slug, slug)
        return parent_url or ""

    url = content.get("url")
    if is_absolute_url(url):
        return str(url).strip()

    if slug:
        return to_discover_url(slug)

    return ""
