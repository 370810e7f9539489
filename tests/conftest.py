"""
Shared test fixtures for catalog-index tests.

Network access is never needed: the tree source is served by FakeCatalog through
httpx.MockTransport, and snapshot files live under tmp_path.
"""
import asyncio
import json

import pytest

from catalog_index.scraper.crawlers.base import CatalogClient
from catalog_index.scraper.crawlers.tree import TreeCrawler
from catalog_index.utils.config import CrawlerConfig


@pytest.fixture
def data_dir(tmp_path):
    """Snapshot directory for a single test."""
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def crawl():
    """Run TreeCrawler against a FakeCatalog; returns the CrawlSnapshot."""

    def _crawl(catalog, **cfg_kwargs):
        cfg_kwargs.setdefault("endpoint", "https://catalog.test/graphql")
        cfg = CrawlerConfig(**cfg_kwargs)

        async def go():
            async with catalog.client() as http:
                async with CatalogClient(cfg, http=http) as client:
                    return await TreeCrawler(client, cfg).crawl()

        return asyncio.run(go())

    return _crawl


@pytest.fixture
def flat_snapshot():
    """Playlist/video snapshot as the external fetcher writes it."""
    playlists = [
        {
            "id": "PLlectures01",
            "title": "Patristic Lectures",
            "description": "Talks on the <b>Fathers</b>",
            "thumbnailUrl": "https://i.ytimg.com/pl1.jpg",
            "category": "Lectures",
            "videoIds": ["vid00000001", "vid00000002"],
            "publishedAt": "2021-01-01T00:00:00Z",
        },
        {
            "id": "PLvideos0002",
            "title": "Weekly Videos",
            "description": "",
            "thumbnailUrl": "",
            "category": "Videos",
            "videoIds": ["vid00000002"],
            "publishedAt": "2021-02-01T00:00:00Z",
        },
    ]
    videos = [
        {
            "id": "vid00000001",
            "title": "On Humility",
            "description": "A talk &amp; discussion",
            "thumbnailUrl": "https://i.ytimg.com/v1.jpg",
            "publishedAt": "2022-03-01T10:00:00Z",
            "duration": "PT1H2M5S",
            "viewCount": "120",
            "likeCount": 7,
            "videoUrl": "https://www.youtube.com/watch?v=vid00000001",
        },
        {
            "id": "vid00000002",
            "title": "On Prayer",
            "description": "",
            "thumbnailUrl": "",
            "publishedAt": "2022-04-01T10:00:00Z",
            "durationSeconds": 65,
            "viewCount": 3,
            "likeCount": 0,
        },
    ]
    metadata = {"timestamp": "2024-01-01T00:00:00.000Z", "playlistCount": 2, "videoCount": 2}
    return {"playlists": playlists, "videos": videos, "metadata": metadata}


@pytest.fixture
def tree_snapshot():
    """api-*.json content for the Lectures > Intermediate scenario."""
    collections = [
        {
            "id": 10,
            "parentCollectionId": 2,
            "collectionItemId": 1010,
            "title": "Lectures",
            "description": "",
            "slug": "lectures",
            "url": "https://app.patristicnectar.org/discover/lectures",
            "coverUrl": "",
            "position": 0,
            "depth": 1,
            "majorCollection": "Lectures",
            "source": "patristic_api",
        },
        {
            "id": 11,
            "parentCollectionId": 10,
            "collectionItemId": 1011,
            "title": "Intermediate",
            "description": "",
            "slug": "intermediate",
            "url": "https://app.patristicnectar.org/discover/intermediate",
            "coverUrl": "",
            "position": 0,
            "depth": 2,
            "majorCollection": "Lectures",
            "source": "patristic_api",
        },
    ]
    content = [
        {
            "id": 100,
            "parentCollectionId": 10,
            "collectionItemId": 5100,
            "title": "Intro",
            "description": "",
            "slug": "intro",
            "externalId": "",
            "url": "https://app.patristicnectar.org/discover/intro",
            "coverUrl": "",
            "availableAt": "2023-01-01T00:00:00.000Z",
            "assetType": "VIDEO",
            "durationSeconds": 600,
            "position": 0,
            "depth": 2,
            "majorCollection": "Lectures",
            "contentType": "lecture",
            "source": "patristic_api",
        },
        {
            "id": 101,
            "parentCollectionId": 11,
            "collectionItemId": 5101,
            "title": "Deeper",
            "description": "",
            "slug": "deeper",
            "externalId": "LS0883.001",
            "url": "",
            "coverUrl": "",
            "availableAt": None,
            "assetType": "AUDIO",
            "durationSeconds": 3725,
            "position": 0,
            "depth": 3,
            "majorCollection": "Lectures",
            "contentType": "podcast",
            "source": "patristic_api",
        },
    ]
    metadata = {
        "timestamp": "2024-01-02T00:00:00.000Z",
        "endpoint": "https://catalog.test/graphql",
        "rootParentId": 2,
        "perPage": 50,
        "maxDepth": 8,
        "collectionCount": 2,
        "contentCount": 2,
        "visitedParentCount": 3,
    }
    return {"collections": collections, "content": content, "metadata": metadata}


@pytest.fixture
def write_inputs(data_dir, flat_snapshot, tree_snapshot):
    """Write all six build inputs into data_dir; returns data_dir."""

    def _write(skip=()):
        files = {
            "playlists.json": flat_snapshot["playlists"],
            "videos.json": flat_snapshot["videos"],
            "metadata.json": flat_snapshot["metadata"],
            "api-collections.json": tree_snapshot["collections"],
            "api-content.json": tree_snapshot["content"],
            "api-metadata.json": tree_snapshot["metadata"],
        }
        for name, payload in files.items():
            if name in skip:
                continue
            (data_dir / name).write_text(json.dumps(payload), encoding="utf-8")
        return data_dir

    return _write
