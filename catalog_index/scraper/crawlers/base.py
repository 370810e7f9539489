from __future__ import annotations

import json
from typing import Any

import httpx
from pydantic import ValidationError

from catalog_index.utils.config import CrawlerConfig
from catalog_index.utils.logger import logger
from ..errors import ProtocolError, TransportError
from ..types import TreePage, TreeRow


DEFAULT_USER_AGENT = "catalog-index/0.1"

ALL_COLLECTION_ITEMS_QUERY = """
query allCollectionItems(
  $parentId: ID!
  $displayMode: DisplayMode!
  $terminatingTypes: [CollectionItemType!]
  $perPage: Int
  $page: Int
  $sortField: String
  $sortOrder: String
  $playbackFilter: PlaybackFilter
) {
  items: allCollectionItems(
    parentId: $parentId
    displayMode: $displayMode
    terminatingTypes: $terminatingTypes
    perPage: $perPage
    page: $page
    sortField: $sortField
    sortOrder: $sortOrder
    playbackFilter: $playbackFilter
  ) {
    __typename
    id
    position
    parentId
    depth
    item {
      ... on Carousel {
        __typename
        id
        name
      }
      ... on Collection {
        __typename
        id
        name
        slug
        description
        cover { __typename id src }
      }
      ... on Content {
        __typename
        id
        slug
        externalId
        name
        description
        availableAt
        cover { id src type }
        asset { id type duration }
      }
    }
  }
  meta: _allCollectionItemsMeta(
    parentId: $parentId
    displayMode: $displayMode
    terminatingTypes: $terminatingTypes
    perPage: $perPage
    page: $page
    sortField: $sortField
    sortOrder: $sortOrder
    playbackFilter: $playbackFilter
  ) {
    count
    pageCount
    page
    nextPage
    prevPage
    perPage
  }
}
"""


class CatalogClient:
    """Paginated access to the tree source's allCollectionItems query.

    One request in flight at a time and no retries: any failure raises.
    Pass ``http`` to reuse (or mock) an httpx.AsyncClient; otherwise one is
    opened by ``async with``.
    """

    def __init__(
        self,
        cfg: CrawlerConfig,
        http: httpx.AsyncClient | None = None,
    ):
        self.cfg = cfg
        self._http = http
        self._owns_http = http is None
        self.request_count = 0

    async def __aenter__(self) -> "CatalogClient":
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.cfg.timeout_sec)
        return self

    async def __aexit__(self, *exc) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    # -- Logging --

    def _emit(self, msg: str) -> None:
        logger.debug(msg)

    # -- Network helpers --

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": DEFAULT_USER_AGENT,
        }

    async def _post_graphql(self, variables: dict[str, Any]) -> dict[str, Any]:
        if self._http is None:
            raise RuntimeError("CatalogClient used outside 'async with'")

        url = self.cfg.endpoint
        body = {"query": ALL_COLLECTION_ITEMS_QUERY, "variables": variables}
        self._emit(f"POST {url} {json.dumps(variables, sort_keys=True)}")
        self.request_count += 1
        try:
            r = await self._http.post(url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise TransportError(f"request error {url}: {e}") from e
        self._emit(f"<- {r.status_code} {url}")

        if not r.is_success:
            raise TransportError(f"HTTP {r.status_code}: {r.text[:400]}", status_code=r.status_code)

        try:
            payload = r.json()
        except ValueError as e:
            raise ProtocolError(f"invalid JSON from {url}: {e}") from e
        if not isinstance(payload, dict):
            raise ProtocolError(f"unexpected response shape from {url}: {type(payload).__name__}")

        errors = payload.get("errors")
        if errors:
            raise ProtocolError(json.dumps(errors, ensure_ascii=False))

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ProtocolError(f"response from {url} has no data")
        return data

    async def fetch_page(self, parent_id: int, page: int) -> TreePage:
        data = await self._post_graphql(
            {
                "parentId": parent_id,
                "displayMode": self.cfg.display_mode,
                "perPage": self.cfg.per_page,
                "page": page,
            }
        )
        try:
            return TreePage.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(f"malformed page {page} for parent {parent_id}: {e}") from e

    async def fetch_all_pages(self, parent_id: int) -> list[TreeRow]:
        """Every row under ``parent_id``; the latest response's pageCount decides when to stop."""
        page = 0
        page_count = 1
        rows: list[TreeRow] = []
        while page < page_count:
            result = await self.fetch_page(parent_id, page)
            rows.extend(result.items)
            page_count = result.page_count
            page += 1
        self._emit(f"parent {parent_id}: {len(rows)} rows in {page} page(s)")
        return rows
