"""CLI entry point and orchestrator."""

import argparse
import logging
import os
from datetime import date
from typing import Optional

import httpx
from dotenv import find_dotenv, load_dotenv

from .catalog import build_tasks, load_catalog
from .config import AppConfig, load_config
from .downloader import ConditionalFetcher
from .logger import setup_logger
from .metadata import MetadataStore
from .models import FatalError, RunSummary
from .worker import Mirror, WorkerPool
from .writer import DATE_FORMAT

logger = logging.getLogger("climate_mirror")

EXIT_OK = 0
EXIT_TASK_FAILED = 1
EXIT_FATAL = 2


def run_mirror(config: AppConfig, today: Optional[str] = None,
               transport: Optional[httpx.BaseTransport] = None) -> RunSummary:
    """Fetch every catalog URL once and persist the updated metadata."""
    today = today or date.today().strftime(DATE_FORMAT)

    catalog = load_catalog(config.catalog_path)
    store = MetadataStore.load(config.metadata_path)
    tasks = build_tasks(catalog, config.data_dir)
    logger.info(f"Mirroring {len(tasks)} URLs across {len(catalog)} directories for {today}")

    fetcher = ConditionalFetcher(config.download, transport=transport)
    try:
        mirror = Mirror(fetcher, store, today)
        summary = WorkerPool(mirror.process, config.download.max_parallel).run_all(tasks)
    finally:
        fetcher.close()

    # Partial progress is durable even when some tasks failed
    store.persist()

    logger.info(
        f"Done: {summary.total} checked, {summary.fetched} downloaded, "
        f"{summary.unchanged} not modified, {summary.failed} failed"
    )
    return summary


def show_stats(config: AppConfig):
    """Display per-directory archive statistics."""
    catalog = load_catalog(config.catalog_path)
    tracked = MetadataStore.load(config.metadata_path).snapshot()

    print("\n" + "=" * 70)
    print("  ARCHIVE STATISTICS")
    print("=" * 70)
    print(f"{'Directory':<30} {'URLs':>6} {'Tracked':>8} {'Files':>8} {'Size':>14}")
    print("-" * 70)

    total_files = 0
    total_bytes = 0
    for directory, urls in sorted(catalog.items()):
        dest = os.path.join(config.data_dir, directory)
        files = []
        if os.path.isdir(dest):
            files = [os.path.join(dest, f) for f in os.listdir(dest) if f.endswith(".csv")]
        size = sum(os.path.getsize(f) for f in files)
        n_tracked = sum(1 for u in urls if u in tracked)
        print(f"{directory:<30} {len(urls):>6} {n_tracked:>8} {len(files):>8} {_format_bytes(size):>14}")
        total_files += len(files)
        total_bytes += size

    print("-" * 70)
    n_urls = sum(len(urls) for urls in catalog.values())
    print(f"{'TOTAL':<30} {n_urls:>6} {len(tracked):>8} {total_files:>8} {_format_bytes(total_bytes):>14}")
    print()


def _format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    elif n < 1024 ** 2:
        return f"{n / 1024:.1f} KB"
    elif n < 1024 ** 3:
        return f"{n / 1024 ** 2:.1f} MB"
    else:
        return f"{n / 1024 ** 3:.2f} GB"


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mirror a catalog of remote CSV files into a dated archive")
    parser.add_argument("--config", type=str, default="mirror.yaml",
                        help="Path to config file (optional)")
    parser.add_argument("--catalog", type=str, default=None,
                        help="Catalog YAML mapping directory -> URLs")
    parser.add_argument("--metadata", type=str, default=None,
                        help="Metadata file holding Last-Modified/ETag per URL")
    parser.add_argument("--data-dir", type=str, default=None,
                        help="Root directory for the catalog directories")
    parser.add_argument("--workers", type=_positive_int, default=None,
                        help="Number of concurrent downloads")
    parser.add_argument("--log-dir", type=str, default=None,
                        help="Also write a rotating log file here")
    parser.add_argument("--stats", action="store_true",
                        help="Show archive statistics and exit")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv(find_dotenv(usecwd=True))

    try:
        config = load_config(args.config)
    except FatalError as e:
        setup_logger()
        logger.error(str(e))
        return EXIT_FATAL

    if args.catalog:
        config.catalog_path = args.catalog
    if args.metadata:
        config.metadata_path = args.metadata
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.workers:
        config.download.max_parallel = args.workers
    if args.log_dir:
        config.log_dir = args.log_dir

    setup_logger(config.log_dir)

    try:
        if args.stats:
            show_stats(config)
            return EXIT_OK
        summary = run_mirror(config)
    except FatalError as e:
        logger.error(str(e))
        return EXIT_FATAL

    return EXIT_TASK_FAILED if summary.had_failure else EXIT_OK
