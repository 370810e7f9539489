from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from catalog_index.utils.config import CrawlerConfig
from catalog_index.utils.logger import logger
from catalog_index.utils.text import iso_timestamp, normalize_text
from ..types import (
    CarouselNode,
    CollectionNode,
    ContentNode,
    CrawlerCollectionRecord,
    CrawlerContentRecord,
    CrawlMetadata,
    CrawlSnapshot,
    TreeRow,
)
from ..urls import resolve_external_url, to_discover_url
from .base import CatalogClient


OTHER = "Other"


def infer_content_type(asset_type: str | None, classification: str | None) -> str:
    """podcast | lecture: asset media type first, then a keyword in the classification."""
    upper_type = str(asset_type or "").upper()
    if "AUDIO" in upper_type:
        return "podcast"
    if "VIDEO" in upper_type:
        return "lecture"
    path_text = str(classification or "").lower()
    if "podcast" in path_text or "audio" in path_text:
        return "podcast"
    return "lecture"


def _sort_key(rec) -> tuple:
    return (rec.parent_collection_id, rec.position, rec.title.casefold(), rec.title, rec.id)


@dataclass
class CrawlRun:
    """State of one breadth-first traversal.

    ``depth`` of a queue entry is the depth of the parent being expanded; the
    root is expanded at depth 0 and its children are recorded at depth 1.
    """

    root_parent_id: int
    max_depth: int
    queue: deque[tuple[int, int]] = field(default_factory=deque)
    visited: set[int] = field(default_factory=set)
    # collection id -> classification inherited from the root's direct child
    ancestry: dict[int, str] = field(default_factory=dict)
    collections: dict[int, CrawlerCollectionRecord] = field(default_factory=dict)
    content: dict[int, CrawlerContentRecord] = field(default_factory=dict)
    skipped_rows: int = 0

    def __post_init__(self) -> None:
        if not self.queue:
            self.queue.append((self.root_parent_id, 0))

    def next_parent(self) -> tuple[int, int] | None:
        """Dequeue the next unvisited parent and mark it visited."""
        while self.queue:
            parent_id, depth = self.queue.popleft()
            if parent_id in self.visited:
                continue
            self.visited.add(parent_id)
            return parent_id, depth
        return None

    def ingest(self, rows: list[TreeRow], depth: int) -> None:
        for row in rows:
            node = row.item
            if isinstance(node, CollectionNode):
                self._add_collection(row, node, depth)
            elif isinstance(node, ContentNode):
                self._add_content(row, node, depth)
            elif isinstance(node, CarouselNode) or node is None:
                self.skipped_rows += 1

    def _classify_collection(self, row: TreeRow, node: CollectionNode) -> str:
        if row.parent_id == self.root_parent_id:
            return normalize_text(node.name)
        return self.ancestry.get(row.parent_id, "")

    def _add_collection(self, row: TreeRow, node: CollectionNode, depth: int) -> None:
        # The root is never its own descendant.
        if node.id in self.collections or node.id == self.root_parent_id:
            return

        classification = self._classify_collection(row, node)
        self.ancestry[node.id] = classification

        self.collections[node.id] = CrawlerCollectionRecord(
            id=node.id,
            parent_collection_id=row.parent_id,
            collection_item_id=row.id,
            title=normalize_text(node.name),
            description=normalize_text(node.description),
            slug=node.slug or "",
            url=to_discover_url(node.slug),
            cover_url=(node.cover.src if node.cover else None) or "",
            position=row.position or 0,
            depth=depth + 1,
            major_collection=classification or OTHER,
        )

        if depth < self.max_depth:
            self.queue.append((node.id, depth + 1))

    def _add_content(self, row: TreeRow, node: ContentNode, depth: int) -> None:
        if node.id in self.content:
            return

        classification = self.ancestry.get(row.parent_id) or OTHER
        asset_type = node.asset.type if node.asset else None

        self.content[node.id] = CrawlerContentRecord(
            id=node.id,
            parent_collection_id=row.parent_id,
            collection_item_id=row.id,
            title=normalize_text(node.name),
            description=normalize_text(node.description),
            slug=node.slug or "",
            external_id=node.external_id or "",
            url=resolve_external_url(node.external_id) or to_discover_url(node.slug),
            cover_url=(node.cover.src if node.cover else None) or "",
            available_at=node.available_at or None,
            asset_type=asset_type or None,
            duration_seconds=node.asset.duration_seconds if node.asset else 0,
            position=row.position or 0,
            depth=depth + 1,
            major_collection=classification,
            content_type=infer_content_type(asset_type, classification),
        )

    def sorted_collections(self) -> list[CrawlerCollectionRecord]:
        return sorted(self.collections.values(), key=_sort_key)

    def sorted_content(self) -> list[CrawlerContentRecord]:
        return sorted(self.content.values(), key=_sort_key)


class TreeCrawler:
    """Breadth-first crawl of the nested catalog below ``cfg.root_parent_id``."""

    name = "patristic_api"

    def __init__(self, client: CatalogClient, cfg: CrawlerConfig):
        self.client = client
        self.cfg = cfg

    async def crawl(self) -> CrawlSnapshot:
        run = CrawlRun(root_parent_id=self.cfg.root_parent_id, max_depth=self.cfg.max_depth)

        while True:
            nxt = run.next_parent()
            if nxt is None:
                break
            parent_id, depth = nxt
            rows = await self.client.fetch_all_pages(parent_id)
            run.ingest(rows, depth)
            logger.debug(
                f"expanded parent {parent_id} at depth {depth}: "
                f"{len(run.collections)} collections, {len(run.content)} content, {len(run.queue)} queued"
            )

        collections = run.sorted_collections()
        content = run.sorted_content()
        metadata = CrawlMetadata(
            timestamp=iso_timestamp(),
            endpoint=self.cfg.endpoint,
            root_parent_id=self.cfg.root_parent_id,
            display_mode=self.cfg.display_mode,
            per_page=self.cfg.per_page,
            max_depth=self.cfg.max_depth,
            collection_count=len(collections),
            content_count=len(content),
            visited_parent_count=len(run.visited),
        )
        logger.info(
            f"crawl finished: {metadata.collection_count} collections, "
            f"{metadata.content_count} content items, {metadata.visited_parent_count} parents visited, "
            f"{run.skipped_rows} rows skipped"
        )
        return CrawlSnapshot(collections=collections, content=content, metadata=metadata)
