"""Fixed-size worker pool that mirrors each catalog URL."""

import logging
import os
import queue
import threading
from collections import Counter
from typing import Callable, List, Sequence

import httpx

from .downloader import ConditionalFetcher, parse_http_date
from .metadata import MetadataStore
from .models import FAILED, FETCHED, UNCHANGED, Failed, Fetched, FetchTask, RunSummary
from .writer import output_filename, write_atomically

logger = logging.getLogger("climate_mirror")

DEFAULT_CONCURRENCY = 16

_CLOSED = object()


class Mirror:
    """Per-task pipeline: prior metadata -> conditional fetch -> atomic write -> metadata update."""

    def __init__(self, fetcher: ConditionalFetcher, store: MetadataStore, today: str):
        self.fetcher = fetcher
        self.store = store
        self.today = today

    def process(self, task: FetchTask) -> str:
        logger.info(f"Checking {task.url}")
        prior = self.store.get(task.url)

        try:
            with self.fetcher.fetch(task.url, prior) as outcome:
                if isinstance(outcome, Failed):
                    logger.error(f"Error fetching {task.url}: {outcome.cause}")
                    return FAILED
                if not isinstance(outcome, Fetched):
                    logger.info(f"Not modified: {task.url}")
                    return UNCHANGED

                out_path = os.path.join(task.directory, output_filename(task.url, self.today))
                size = write_atomically(
                    task.directory, out_path, outcome.chunks,
                    mtime=parse_http_date(outcome.metadata.last_modified),
                )
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Error fetching {task.url}: {type(e).__name__}: {e}")
            return FAILED

        self.store.set(task.url, outcome.metadata)
        logger.info(f"Downloaded: {task.url} → {out_path} ({size:,} bytes)")
        return FETCHED


class WorkerPool:
    """Runs ``handler`` over tasks with a fixed number of threads.

    Tasks flow through a bounded queue that is closed with one sentinel per
    worker. run_all() returns only after every worker has exited. Each worker
    tallies its own outcomes and the tallies are summed after the join.
    """

    def __init__(self, handler: Callable[[FetchTask], str], concurrency: int = DEFAULT_CONCURRENCY):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.handler = handler
        self.concurrency = concurrency

    def run_all(self, tasks: Sequence[FetchTask]) -> RunSummary:
        task_queue: queue.Queue = queue.Queue(maxsize=self.concurrency)
        results: List[Counter] = [Counter() for _ in range(self.concurrency)]
        workers = [
            threading.Thread(target=self._work, args=(task_queue, results[i]),
                             name=f"mirror-worker-{i}", daemon=True)
            for i in range(self.concurrency)
        ]
        for w in workers:
            w.start()

        try:
            for task in tasks:
                task_queue.put(task)
        finally:
            for _ in workers:
                task_queue.put(_CLOSED)
            for w in workers:
                w.join()

        totals = sum(results, Counter())
        return RunSummary(
            fetched=totals[FETCHED],
            unchanged=totals[UNCHANGED],
            failed=totals[FAILED],
        )

    def _work(self, task_queue: queue.Queue, tally: Counter):
        while True:
            task = task_queue.get()
            if task is _CLOSED:
                return
            try:
                status = self.handler(task)
            except Exception as e:
                logger.error(f"Error fetching {task.url}: {type(e).__name__}: {e}")
                status = FAILED
            tally[status] += 1
