"""
catalog-index CLI - crawl the tree catalog and build the unified browse index
"""
import argparse
import asyncio
import sys

from catalog_index.scraper.errors import CatalogIndexError
from catalog_index.scraper.runner import run_build, run_crawl
from catalog_index.utils.config import load_config
from catalog_index.utils.logger import logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-index",
        description="Crawl the nested catalog API and merge it with the playlist snapshot into one index",
    )
    parser.add_argument(
        "command",
        choices=["crawl", "build", "all"],
        help="crawl: write api-*.json; build: write index-*.json; all: both in order",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Snapshot directory (default: $CATALOG_INDEX_DATA_DIR or ./data)",
    )
    parser.add_argument("--endpoint", type=str, default=None, help="GraphQL endpoint (default: $PAT_API_ENDPOINT)")
    parser.add_argument("--root-parent-id", type=int, default=None, help="Traversal root (default: $PAT_API_ROOT_PARENT_ID)")
    parser.add_argument("--per-page", type=int, default=None, help="Page size (default: $PAT_API_PER_PAGE)")
    parser.add_argument("--max-depth", type=int, default=None, help="Maximum traversal depth (default: $PAT_API_MAX_DEPTH)")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logs",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.verbose:
        logger.setLevel("DEBUG")

    cfg = load_config(
        data_dir=args.data_dir,
        endpoint=args.endpoint,
        root_parent_id=args.root_parent_id,
        per_page=args.per_page,
        max_depth=args.max_depth,
    )
    logger.debug(f"config: {cfg.to_dict()}")

    try:
        if args.command in ("crawl", "all"):
            asyncio.run(run_crawl(cfg))
        if args.command in ("build", "all"):
            run_build(cfg.data_path)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except CatalogIndexError as e:
        logger.error(f"Failed to {args.command}: {e}")
        sys.exit(1)
    except OSError as e:
        logger.error(f"Failed to {args.command}: {e}")
        sys.exit(1)

    return 0


if __name__ == "__main__":
    main()
