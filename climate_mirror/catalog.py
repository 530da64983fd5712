"""Catalog loader: directory name -> list of CSV URLs."""

import logging
import os
from typing import Dict, List

import yaml

from .models import FatalError, FetchTask

logger = logging.getLogger("climate_mirror")

Catalog = Dict[str, List[str]]


def load_catalog(path: str) -> Catalog:
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise FatalError(f"Failed to open {path}: {e}") from e
    except yaml.YAMLError as e:
        raise FatalError(f"Failed to parse {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise FatalError(f"Failed to parse {path}: expected a mapping of directory to URLs")

    catalog: Catalog = {}
    for directory, urls in raw.items():
        if urls is None:
            urls = []
        if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise FatalError(f"Failed to parse {path}: {directory!r} must map to a list of URLs")
        catalog[str(directory)] = urls
    return catalog


def build_tasks(catalog: Catalog, data_dir: str = ".") -> List[FetchTask]:
    """Create every catalog directory, then return one task per distinct URL."""
    tasks = []
    seen = {}
    for directory, urls in catalog.items():
        dest = os.path.join(data_dir, directory)
        try:
            os.makedirs(dest, exist_ok=True)
        except OSError as e:
            raise FatalError(f"Failed to create directory {dest}: {e}") from e

        for url in urls:
            if url in seen:
                logger.warning(f"Skipping duplicate URL {url} in {directory} (already listed under {seen[url]})")
                continue
            seen[url] = directory
            tasks.append(FetchTask(directory=dest, url=url))
    return tasks
