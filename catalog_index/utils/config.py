from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from catalog_index.utils.logger import logger


DEFAULT_ENDPOINT = "https://api.patristicnectar.org/graphql"
DEFAULT_ROOT_PARENT_ID = 2
DEFAULT_DISPLAY_MODE = "CAROUSEL"
DEFAULT_PER_PAGE = 50
DEFAULT_MAX_DEPTH = 8
DEFAULT_TIMEOUT_SEC = 30.0
DEFAULT_DATA_DIR = "data"

# Environment variable -> CrawlerConfig field
ENV_FIELDS: dict[str, str] = {
    "PAT_API_ENDPOINT": "endpoint",
    "PAT_API_ROOT_PARENT_ID": "root_parent_id",
    "PAT_API_DISPLAY_MODE": "display_mode",
    "PAT_API_PER_PAGE": "per_page",
    "PAT_API_MAX_DEPTH": "max_depth",
    "CATALOG_INDEX_TIMEOUT_SEC": "timeout_sec",
    "CATALOG_INDEX_DATA_DIR": "data_dir",
}


def _coerce_int(value: object, *, default: int, name: str) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        logger.warning(f"invalid {name}={value!r}, using default {default}")
        return default


def _coerce_float(value: object, *, default: float, name: str) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        logger.warning(f"invalid {name}={value!r}, using default {default}")
        return default


@dataclass
class CrawlerConfig:
    # --- Tree source (GraphQL catalog) ---
    endpoint: str = DEFAULT_ENDPOINT
    root_parent_id: int = DEFAULT_ROOT_PARENT_ID
    # Passed through verbatim to the allCollectionItems query.
    display_mode: str = DEFAULT_DISPLAY_MODE
    per_page: int = DEFAULT_PER_PAGE
    # Collections found while expanding a parent at this depth are recorded, not expanded.
    max_depth: int = DEFAULT_MAX_DEPTH
    timeout_sec: float = DEFAULT_TIMEOUT_SEC

    # --- Snapshots ---
    # Holds both the crawl snapshot and the unified index.
    data_dir: str = DEFAULT_DATA_DIR

    def __post_init__(self) -> None:
        self.endpoint = str(self.endpoint or "").strip() or DEFAULT_ENDPOINT
        self.root_parent_id = _coerce_int(self.root_parent_id, default=DEFAULT_ROOT_PARENT_ID, name="root_parent_id")
        self.display_mode = str(self.display_mode or "").strip().upper() or DEFAULT_DISPLAY_MODE

        self.per_page = _coerce_int(self.per_page, default=DEFAULT_PER_PAGE, name="per_page")
        if self.per_page < 1:
            self.per_page = 1

        self.max_depth = _coerce_int(self.max_depth, default=DEFAULT_MAX_DEPTH, name="max_depth")
        if self.max_depth < 0:
            self.max_depth = 0

        self.timeout_sec = _coerce_float(self.timeout_sec, default=DEFAULT_TIMEOUT_SEC, name="timeout_sec")
        if self.timeout_sec <= 0:
            self.timeout_sec = DEFAULT_TIMEOUT_SEC

        self.data_dir = str(self.data_dir or "").strip() or DEFAULT_DATA_DIR

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for logging/serialization."""
        return {k: v for k, v in self.__dict__.items()}


def load_config(env: Mapping[str, str] | None = None, **overrides: Any) -> CrawlerConfig:
    """Build a CrawlerConfig from the environment.

    Unset variables keep dataclass defaults; keyword overrides (e.g. from CLI flags)
    win over the environment when not None.
    """
    source = os.environ if env is None else env
    values: dict[str, Any] = {}
    for var, field_name in ENV_FIELDS.items():
        raw = source.get(var)
        if raw is None or str(raw).strip() == "":
            continue
        values[field_name] = raw
    for k, v in overrides.items():
        if v is not None:
            values[k] = v
    return CrawlerConfig(**values)
