"""Atomic file writes: temp file in the destination directory, then rename."""

import logging
import os
import tempfile
import time
from typing import Iterable, Optional
from urllib.parse import urlparse

logger = logging.getLogger("climate_mirror")

DATE_FORMAT = "%Y-%m-%d"


def output_filename(url: str, today: str) -> str:
    """Dated archive name for a URL, e.g. ``data.csv`` -> ``data-2025-06-01.csv``."""
    base = os.path.basename(urlparse(url).path.rstrip("/")) or "index"
    if base.endswith(".csv"):
        base = base[:-len(".csv")]
    return f"{base}-{today}.csv"


def write_atomically(directory: str, final_path: str, chunks: Iterable[bytes],
                     mtime: Optional[float] = None, mode: Optional[int] = None) -> int:
    """Copy chunks to a temp file in ``directory`` and rename it onto ``final_path``.

    Returns the number of bytes written. On any error the temp file is removed
    and the exception re-raised; ``final_path`` is left untouched. ``mode``, when
    given, is applied to the temp file before the rename (mkstemp creates 0600).
    """
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=directory)
    size = 0
    committed = False
    try:
        with os.fdopen(fd, "wb") as f:
            for chunk in chunks:
                f.write(chunk)
                size += len(chunk)
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, final_path)
        committed = True
    finally:
        if not committed and os.path.exists(tmp_path):
            os.remove(tmp_path)

    if mtime is not None:
        try:
            os.utime(final_path, (time.time(), mtime))
        except OSError as e:
            logger.warning(f"Could not set modification time on {final_path}: {e}")

    return size
