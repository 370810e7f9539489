from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx

from catalog_index.utils.config import CrawlerConfig
from catalog_index.utils.files import read_json, write_json_files
from catalog_index.utils.logger import logger

from .crawlers.base import CatalogClient
from .crawlers.tree import TreeCrawler
from .merger import build_unified_index
from .types import CrawlSnapshot, UnifiedIndex


# Tree crawl snapshot (written by run_crawl, read by run_build)
API_COLLECTIONS_FILE = "api-collections.json"
API_CONTENT_FILE = "api-content.json"
API_METADATA_FILE = "api-metadata.json"

# Flat source snapshot (produced by the external playlist fetcher)
PLAYLISTS_FILE = "playlists.json"
VIDEOS_FILE = "videos.json"
FLAT_METADATA_FILE = "metadata.json"

# Unified index (read by the browsing widget)
INDEX_COLLECTIONS_FILE = "index-collections.json"
INDEX_ITEMS_FILE = "index-items.json"
INDEX_METADATA_FILE = "index-metadata.json"

BUILD_INPUTS: dict[str, str] = {
    "playlists": PLAYLISTS_FILE,
    "videos": VIDEOS_FILE,
    "flat_metadata": FLAT_METADATA_FILE,
    "tree_collections": API_COLLECTIONS_FILE,
    "tree_content": API_CONTENT_FILE,
    "tree_metadata": API_METADATA_FILE,
}


def write_crawl_snapshot(snapshot: CrawlSnapshot, data_dir: str | Path) -> list[Path]:
    d = Path(data_dir)
    files: dict[Path, Any] = {
        d / API_COLLECTIONS_FILE: [c.to_dict() for c in snapshot.collections],
        d / API_CONTENT_FILE: [c.to_dict() for c in snapshot.content],
        d / API_METADATA_FILE: snapshot.metadata.to_dict() if snapshot.metadata else {},
    }
    written = write_json_files(files)
    for p in written:
        logger.info(f"Wrote {p}")
    return written


async def run_crawl(cfg: CrawlerConfig, http: httpx.AsyncClient | None = None) -> CrawlSnapshot:
    """Crawl the tree source and replace the api-*.json snapshot.

    Nothing is written unless the whole traversal succeeds.
    """
    logger.info(f"Fetching tree catalog from {cfg.endpoint}")
    logger.info(f"Root parent ID: {cfg.root_parent_id}, perPage: {cfg.per_page}, maxDepth: {cfg.max_depth}")

    async with CatalogClient(cfg, http=http) as client:
        snapshot = await TreeCrawler(client, cfg).crawl()
        logger.debug(f"{client.request_count} requests issued")

    write_crawl_snapshot(snapshot, cfg.data_path)
    return snapshot


def load_build_inputs(data_dir: str | Path) -> dict[str, Any]:
    """Read all six snapshot files; raises on the first missing or malformed one."""
    d = Path(data_dir)
    inputs: dict[str, Any] = {}
    for key, name in BUILD_INPUTS.items():
        inputs[key] = read_json(d / name)
    return inputs


def write_index(index: UnifiedIndex, data_dir: str | Path) -> list[Path]:
    d = Path(data_dir)
    files: dict[Path, Any] = {
        d / INDEX_COLLECTIONS_FILE: [c.to_dict() for c in index.collections],
        d / INDEX_ITEMS_FILE: [i.to_dict() for i in index.items],
        d / INDEX_METADATA_FILE: index.metadata,
    }
    written = write_json_files(files)
    for p in written:
        logger.info(f"Wrote {p}")
    return written


def run_build(data_dir: str | Path, *, timestamp: str | None = None) -> UnifiedIndex:
    """Merge both snapshots found in ``data_dir`` into the index-*.json files."""
    inputs = load_build_inputs(data_dir)
    index = build_unified_index(**inputs, timestamp=timestamp)
    write_index(index, data_dir)
    return index
