from __future__ import annotations

from typing import Any, Iterable, Mapping

from catalog_index.utils.config import DEFAULT_ROOT_PARENT_ID
from catalog_index.utils.logger import logger
from catalog_index.utils.text import (
    coerce_int,
    format_duration,
    iso_timestamp,
    normalize_text,
    parse_iso_duration,
    parse_timestamp,
    slugify,
)
from .types import (
    CONTENT_TYPES,
    FLAT_SOURCE,
    SYSTEM_SOURCE,
    TREE_SOURCE,
    UnifiedCollectionRecord,
    UnifiedIndex,
    UnifiedItemRecord,
)
from .urls import resolve_content_url, youtube_playlist_url, youtube_watch_url


OTHER = "Other"
ROOT_ID = "root"

# Tree-source top-level collection names folded into the flat source's naming scheme.
TREE_CLASSIFICATION_OVERRIDES: dict[str, str] = {
    "weekly vlog": "Videos",
    "theological lectures": "Lectures",
    "all conference videos": "Videos",
    "reflections with bp. irenei": "Videos",
    "patristic nectar kids": "Videos",
    "hidden gems": "Lectures",
}


def map_tree_classification(value: object) -> str:
    text = normalize_text(value)
    return TREE_CLASSIFICATION_OVERRIDES.get(text.lower()) or text or OTHER


def flat_classification(value: object) -> str:
    return normalize_text(value) or OTHER


def major_id(classification: str) -> str:
    return f"major:{slugify(classification) or 'other'}"


def flat_collection_id(playlist_id: str) -> str:
    return f"yt:collection:{playlist_id}"


def tree_collection_id(collection_id: int) -> str:
    return f"pat:collection:{collection_id}"


def sort_classifications(values: Iterable[str]) -> list[str]:
    """Alphabetical, with "Other" always last."""
    return sorted(set(values), key=lambda c: (c == OTHER, c))


def _records(rows: object, label: str) -> list[Mapping[str, Any]]:
    if not isinstance(rows, list):
        logger.warning(f"{label}: expected a list, got {type(rows).__name__}; treating as empty")
        return []
    out = [r for r in rows if isinstance(r, Mapping)]
    if len(out) != len(rows):
        logger.warning(f"{label}: skipped {len(rows) - len(out)} non-object entries")
    return out


def _first_by_key(rows: Iterable[Mapping[str, Any]], key_fn) -> dict:
    out: dict = {}
    for r in rows:
        k = key_fn(r)
        if k in (None, "") or k in out:
            continue
        out[k] = r
    return out


def _search_text(*parts: object) -> str:
    return " ".join(str(p or "") for p in parts).lower()


class IndexBuilder:
    """Merges the tree crawl snapshot with the flat playlist/video snapshot.

    Construct with the six decoded snapshot files and call ``build()``.
    """

    def __init__(
        self,
        *,
        playlists: object,
        videos: object,
        flat_metadata: object,
        tree_collections: object,
        tree_content: object,
        tree_metadata: object,
    ):
        self.flat_metadata: Mapping[str, Any] = flat_metadata if isinstance(flat_metadata, Mapping) else {}
        self.tree_metadata: Mapping[str, Any] = tree_metadata if isinstance(tree_metadata, Mapping) else {}

        self.root_parent_id = coerce_int(self.tree_metadata.get("rootParentId"), DEFAULT_ROOT_PARENT_ID)

        self.playlist_rows = _records(playlists, "playlists")
        self.video_rows = _records(videos, "videos")
        self.tree_collection_rows = _records(tree_collections, "api-collections")
        self.tree_content_rows = _records(tree_content, "api-content")

        # Duplicate ids: first occurrence wins.
        self.playlists: dict[str, Mapping[str, Any]] = _first_by_key(
            self.playlist_rows, lambda r: str(r.get("id") or "").strip()
        )
        self.videos: dict[str, Mapping[str, Any]] = _first_by_key(
            self.video_rows, lambda r: str(r.get("id") or "").strip()
        )
        self.tree_collections: dict[int, Mapping[str, Any]] = _first_by_key(
            self.tree_collection_rows, lambda r: coerce_int(r.get("id"), None)
        )
        self.tree_content: dict[int, Mapping[str, Any]] = _first_by_key(
            self.tree_content_rows, lambda r: coerce_int(r.get("id"), None)
        )

        self.membership = self._playlist_membership()

    # -- Classification registry --

    def _playlist_membership(self) -> dict[str, list[str]]:
        """video id -> playlist ids listing it, in playlist order."""
        membership: dict[str, list[str]] = {}
        for pid, playlist in self.playlists.items():
            video_ids = playlist.get("videoIds") or []
            if not isinstance(video_ids, list):
                continue
            for vid in video_ids:
                vid = str(vid or "").strip()
                if not vid:
                    continue
                bucket = membership.setdefault(vid, [])
                if pid not in bucket:
                    bucket.append(pid)
        return membership

    def classifications(self) -> list[str]:
        values: set[str] = set()
        for playlist in self.playlists.values():
            values.add(flat_classification(playlist.get("category")))
        for c in self.tree_collections.values():
            values.add(map_tree_classification(c.get("majorCollection")))
        for c in self.tree_content.values():
            values.add(map_tree_classification(c.get("majorCollection")))
        if any(vid not in self.membership for vid in self.videos):
            values.add(OTHER)
        return sort_classifications(values)

    def build_majors(self) -> list[UnifiedCollectionRecord]:
        records: list[UnifiedCollectionRecord] = []
        seen: set[str] = set()
        for major in self.classifications():
            mid = major_id(major)
            # Classifications slugifying alike share the first node.
            if mid in seen:
                continue
            seen.add(mid)
            records.append(
                UnifiedCollectionRecord(
                    id=mid,
                    source=SYSTEM_SOURCE,
                    type="major",
                    title=major,
                    description="",
                    parent_id=ROOT_ID,
                    major_collection=major,
                    url="",
                    cover_url="",
                    position=0,
                )
            )
        return records

    # -- Collections --

    def build_flat_collections(self) -> list[UnifiedCollectionRecord]:
        records: list[UnifiedCollectionRecord] = []
        for pid, playlist in self.playlists.items():
            major = flat_classification(playlist.get("category"))
            records.append(
                UnifiedCollectionRecord(
                    id=flat_collection_id(pid),
                    source=FLAT_SOURCE,
                    type="collection",
                    title=normalize_text(playlist.get("title")),
                    description=normalize_text(playlist.get("description")),
                    parent_id=major_id(major),
                    major_collection=major,
                    url=youtube_playlist_url(pid),
                    cover_url=str(playlist.get("thumbnailUrl") or ""),
                    position=0,
                    source_id=pid,
                )
            )
        return records

    def _tree_parents(self) -> dict[int, int | None]:
        """collection id -> recorded tree parent id, or None when it hangs off its major node."""
        parents: dict[int, int | None] = {}
        for cid, c in self.tree_collections.items():
            parent = coerce_int(c.get("parentCollectionId"), None)
            if parent is None or parent == self.root_parent_id:
                parents[cid] = None
            elif parent in self.tree_collections:
                parents[cid] = parent
            else:
                logger.warning(f"collection {cid}: parent {parent} not in snapshot, attaching to its major collection")
                parents[cid] = None

        # Cut cycles so the parentId graph stays a forest.
        done: set[int] = set()
        for start in sorted(parents):
            path: list[int] = []
            on_path: set[int] = set()
            node: int | None = start
            while node is not None and node not in done:
                if node in on_path:
                    logger.warning(f"collection {node}: parent cycle, attaching to its major collection")
                    parents[node] = None
                    break
                on_path.add(node)
                path.append(node)
                node = parents.get(node)
            done.update(path)
        return parents

    def build_tree_collections(self) -> list[UnifiedCollectionRecord]:
        parents = self._tree_parents()
        records: list[UnifiedCollectionRecord] = []
        for cid, c in self.tree_collections.items():
            major = map_tree_classification(c.get("majorCollection"))
            parent = parents.get(cid)
            records.append(
                UnifiedCollectionRecord(
                    id=tree_collection_id(cid),
                    source=TREE_SOURCE,
                    type="collection",
                    title=normalize_text(c.get("title")),
                    description=normalize_text(c.get("description")),
                    parent_id=major_id(major) if parent is None else tree_collection_id(parent),
                    major_collection=major,
                    url=str(c.get("url") or ""),
                    cover_url=str(c.get("coverUrl") or ""),
                    position=coerce_int(c.get("position")),
                    source_id=str(cid),
                )
            )
        return records

    # -- Items --

    def build_flat_items(self) -> list[UnifiedItemRecord]:
        records: list[UnifiedItemRecord] = []
        for vid, video in self.videos.items():
            playlist_ids = self.membership.get(vid) or []
            if playlist_ids:
                parent_ids = [flat_collection_id(pid) for pid in playlist_ids]
                majors: list[str] = []
                for pid in playlist_ids:
                    m = flat_classification(self.playlists[pid].get("category"))
                    if m not in majors:
                        majors.append(m)
            else:
                parent_ids = [major_id(OTHER)]
                majors = [OTHER]

            duration = coerce_int(video.get("durationSeconds")) or parse_iso_duration(video.get("duration"))
            title = normalize_text(video.get("title"))
            description = normalize_text(video.get("description"))
            records.append(
                UnifiedItemRecord(
                    id=f"yt:item:{vid}",
                    source=FLAT_SOURCE,
                    source_id=vid,
                    content_type="video",
                    title=title,
                    description=description,
                    parent_collection_ids=parent_ids,
                    major_collection=majors[0] if majors else OTHER,
                    major_collections=majors,
                    published_at=video.get("publishedAt") or None,
                    duration_seconds=duration,
                    duration_formatted=str(video.get("durationFormatted") or "") or format_duration(duration),
                    thumbnail_url=str(video.get("thumbnailUrl") or ""),
                    url=str(video.get("videoUrl") or "") or youtube_watch_url(vid),
                    view_count=coerce_int(video.get("viewCount")),
                    like_count=coerce_int(video.get("likeCount")),
                    search_text=_search_text(title, description, " ".join(majors)),
                )
            )
        return records

    def build_tree_items(self) -> list[UnifiedItemRecord]:
        records: list[UnifiedItemRecord] = []
        for cid, content in self.tree_content.items():
            major = map_tree_classification(content.get("majorCollection"))
            parent = coerce_int(content.get("parentCollectionId"), None)
            parent_rec = self.tree_collections.get(parent) if parent is not None else None

            if parent is None or parent == self.root_parent_id:
                membership = major_id(major)
            else:
                # Unrecorded parents still get a namespaced reference.
                membership = tree_collection_id(parent)

            parent_url = str(parent_rec.get("url") or "") if parent_rec else ""
            parent_slug = str(parent_rec.get("slug") or "") if parent_rec else ""
            duration = max(0, coerce_int(content.get("durationSeconds")))
            title = normalize_text(content.get("title"))
            description = normalize_text(content.get("description"))
            content_type = str(content.get("contentType") or "")
            if content_type not in CONTENT_TYPES:
                content_type = "lecture"

            records.append(
                UnifiedItemRecord(
                    id=f"pat:item:{cid}",
                    source=TREE_SOURCE,
                    source_id=str(cid),
                    content_type=content_type,
                    title=title,
                    description=description,
                    parent_collection_ids=[membership],
                    major_collection=major,
                    major_collections=[major],
                    published_at=content.get("availableAt") or None,
                    duration_seconds=duration,
                    duration_formatted=format_duration(duration),
                    thumbnail_url=str(content.get("coverUrl") or ""),
                    url=resolve_content_url(content, parent_url, parent_slug),
                    asset_type=content.get("assetType") or None,
                    external_id=str(content.get("externalId") or ""),
                    search_text=_search_text(title, description, major),
                )
            )
        return records

    # -- Metadata --

    def build_metadata(
        self,
        collections: list[UnifiedCollectionRecord],
        items: list[UnifiedItemRecord],
        timestamp: str | None = None,
    ) -> dict[str, Any]:
        fm = self.flat_metadata
        tm = self.tree_metadata
        return {
            "timestamp": timestamp or iso_timestamp(),
            "collectionCount": len(collections),
            "itemCount": len(items),
            "sources": {
                FLAT_SOURCE: {
                    "timestamp": fm.get("timestamp") or None,
                    "playlistCount": coerce_int(fm.get("playlistCount")) or len(self.playlist_rows),
                    "videoCount": coerce_int(fm.get("videoCount")) or len(self.video_rows),
                },
                TREE_SOURCE: {
                    "timestamp": tm.get("timestamp") or None,
                    "collectionCount": coerce_int(tm.get("collectionCount")) or len(self.tree_collection_rows),
                    "contentCount": coerce_int(tm.get("contentCount")) or len(self.tree_content_rows),
                },
            },
            "contentTypeCounts": {t: sum(1 for i in items if i.content_type == t) for t in CONTENT_TYPES},
        }

    def build(self, *, timestamp: str | None = None) -> UnifiedIndex:
        collections = self.build_majors() + self.build_flat_collections() + self.build_tree_collections()
        items = self.build_flat_items() + self.build_tree_items()

        collections = sort_collections(collections)
        items = sort_items(items)
        metadata = self.build_metadata(collections, items, timestamp)
        logger.info(f"unified index: {len(collections)} collections, {len(items)} items")
        return UnifiedIndex(collections=collections, items=items, metadata=metadata)


def sort_collections(records: Iterable[UnifiedCollectionRecord]) -> list[UnifiedCollectionRecord]:
    return sorted(records, key=lambda r: (r.parent_id, r.position, r.title.casefold(), r.title, r.id))


def sort_items(records: Iterable[UnifiedItemRecord]) -> list[UnifiedItemRecord]:
    """Newest first, then title; an absent publish date sorts as the oldest."""

    def key(r: UnifiedItemRecord) -> tuple:
        ts = parse_timestamp(r.published_at)
        return (-(ts if ts is not None else float("-inf")), r.title.casefold(), r.title, r.id)

    return sorted(records, key=key)


def build_unified_index(
    *,
    playlists: object,
    videos: object,
    flat_metadata: object,
    tree_collections: object,
    tree_content: object,
    tree_metadata: object,
    timestamp: str | None = None,
) -> UnifiedIndex:
    return IndexBuilder(
        playlists=playlists,
        videos=videos,
        flat_metadata=flat_metadata,
        tree_collections=tree_collections,
        tree_content=tree_content,
        tree_metadata=tree_metadata,
    ).build(timestamp=timestamp)
