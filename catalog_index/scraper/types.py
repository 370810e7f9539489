from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog_index.utils.text import coerce_int, parse_iso_duration


TREE_SOURCE = "patristic_api"
FLAT_SOURCE = "youtube"
SYSTEM_SOURCE = "system"

CONTENT_TYPES: tuple[str, ...] = ("video", "lecture", "podcast")


# ---------------------------------------------------------------------------
# Tree source wire format (allCollectionItems query)
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Cover(_WireModel):
    id: Any = None
    src: str | None = None
    type: str | None = None


class Asset(_WireModel):
    id: Any = None
    type: str | None = None
    # Either a number of seconds, {"length": seconds} or an ISO-8601 string.
    duration: Any = None

    @property
    def duration_seconds(self) -> int:
        d = self.duration
        if isinstance(d, dict):
            d = d.get("length")
        if isinstance(d, str) and d.strip().upper().startswith("P"):
            return parse_iso_duration(d)
        return max(0, coerce_int(d))


class CollectionNode(_WireModel):
    typename: Literal["Collection"] = Field(alias="__typename")
    id: int
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    cover: Cover | None = None


class ContentNode(_WireModel):
    typename: Literal["Content"] = Field(alias="__typename")
    id: int
    slug: str | None = None
    external_id: str | None = Field(default=None, alias="externalId")
    name: str | None = None
    description: str | None = None
    available_at: str | None = Field(default=None, alias="availableAt")
    cover: Cover | None = None
    asset: Asset | None = None


class CarouselNode(_WireModel):
    typename: Literal["Carousel"] = Field(alias="__typename")
    id: Any = None
    name: str | None = None


TreeNode = Annotated[Union[CollectionNode, ContentNode, CarouselNode], Field(discriminator="typename")]
NODE_TYPENAMES = frozenset({"Collection", "Content", "Carousel"})


class TreeRow(_WireModel):
    """One row of a page: a node placed under ``parent_id``."""

    id: int | None = None
    position: int | None = None
    parent_id: int = Field(alias="parentId")
    depth: int | None = None
    item: Optional[TreeNode] = None

    @field_validator("item", mode="before")
    @classmethod
    def _drop_unknown_nodes(cls, v: Any) -> Any:
        # Node kinds added upstream later are skipped rather than failing the run.
        if isinstance(v, dict) and v.get("__typename") not in NODE_TYPENAMES:
            return None
        return v


class PageMeta(_WireModel):
    count: int | None = None
    page_count: int | None = Field(default=None, alias="pageCount")
    page: int | None = None
    next_page: int | None = Field(default=None, alias="nextPage")
    prev_page: int | None = Field(default=None, alias="prevPage")
    per_page: int | None = Field(default=None, alias="perPage")


class TreePage(_WireModel):
    items: list[TreeRow] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)

    @field_validator("items", mode="before")
    @classmethod
    def _none_items(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("meta", mode="before")
    @classmethod
    def _none_meta(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def page_count(self) -> int:
        # A missing or zero page count means the single page just received.
        return self.meta.page_count or 1


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


class _Record:
    """Dataclass mixin: camelCase JSON dict in field order."""

    # Keys dropped from the output when their value is None.
    omit_if_none: ClassVar[frozenset[str]] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            v = getattr(self, f.name)
            if v is None and f.name in self.omit_if_none:
                continue
            if isinstance(v, (list, tuple)):
                v = list(v)
            out[_camel(f.name)] = v
        return out


@dataclass(frozen=True)
class CrawlerCollectionRecord(_Record):
    id: int
    parent_collection_id: int
    collection_item_id: int | None
    title: str
    description: str
    slug: str
    url: str
    cover_url: str
    position: int
    depth: int
    major_collection: str
    source: str = TREE_SOURCE


@dataclass(frozen=True)
class CrawlerContentRecord(_Record):
    id: int
    parent_collection_id: int
    collection_item_id: int | None
    title: str
    description: str
    slug: str
    external_id: str
    url: str
    cover_url: str
    available_at: str | None
    asset_type: str | None
    duration_seconds: int
    position: int
    depth: int
    major_collection: str
    content_type: str
    source: str = TREE_SOURCE


@dataclass(frozen=True)
class CrawlMetadata(_Record):
    timestamp: str
    endpoint: str
    root_parent_id: int
    display_mode: str
    per_page: int
    max_depth: int
    collection_count: int
    content_count: int
    visited_parent_count: int


@dataclass
class CrawlSnapshot:
    collections: list[CrawlerCollectionRecord] = field(default_factory=list)
    content: list[CrawlerContentRecord] = field(default_factory=list)
    metadata: CrawlMetadata | None = None


@dataclass
class UnifiedCollectionRecord(_Record):
    omit_if_none: ClassVar[frozenset[str]] = frozenset({"source_id"})

    id: str
    source: str
    type: Literal["major", "collection"]
    title: str
    description: str
    parent_id: str
    major_collection: str
    url: str
    cover_url: str
    position: int
    source_id: str | None = None


@dataclass
class UnifiedItemRecord(_Record):
    omit_if_none: ClassVar[frozenset[str]] = frozenset({"asset_type", "external_id"})

    id: str
    source: str
    source_id: str
    content_type: str
    title: str
    description: str
    parent_collection_ids: list[str]
    major_collection: str
    major_collections: list[str]
    published_at: str | None
    duration_seconds: int
    duration_formatted: str
    thumbnail_url: str
    url: str
    view_count: int = 0
    like_count: int = 0
    asset_type: str | None = None
    external_id: str | None = None
    search_text: str = ""


@dataclass
class UnifiedIndex:
    collections: list[UnifiedCollectionRecord] = field(default_factory=list)
    items: list[UnifiedItemRecord] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
