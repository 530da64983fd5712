"""Conditional HTTP fetcher: one GET per URL, classified as unchanged/fetched/failed."""

import logging
import threading
from contextlib import contextmanager
from email.utils import parsedate_to_datetime
from typing import Dict, Iterator, Optional

import httpx

from .config import DownloadConfig
from .models import Failed, Fetched, FetchOutcome, ResourceMetadata, Unchanged

logger = logging.getLogger("climate_mirror")


def conditional_headers(prior: ResourceMetadata) -> Dict[str, str]:
    headers = {}
    if prior.last_modified:
        headers["If-Modified-Since"] = prior.last_modified
    if prior.etag:
        headers["If-None-Match"] = prior.etag
    return headers


def parse_http_date(value: Optional[str]) -> Optional[float]:
    """POSIX timestamp for an HTTP-date, or None if it can't be parsed."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


class ConditionalFetcher:
    def __init__(self, config: DownloadConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
                    limits=httpx.Limits(max_connections=self.config.max_parallel),
                    follow_redirects=True,
                    headers={"User-Agent": self.config.user_agent},
                    transport=self._transport,
                )
            return self._client

    def close(self):
        if self._client and not self._client.is_closed:
            self._client.close()

    @contextmanager
    def fetch(self, url: str, prior: ResourceMetadata) -> Iterator[FetchOutcome]:
        """Issue a single conditional GET and yield its outcome.

        A ``Fetched`` outcome streams from the live response, so its chunks
        must be consumed inside the ``with`` block. The response is closed on
        exit either way. No retries.
        """
        try:
            request = self.client.build_request("GET", url, headers=conditional_headers(prior))
            response = self.client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            yield Failed(url, f"{type(e).__name__}: {e}")
            return

        try:
            yield self._classify(url, response)
        finally:
            response.close()

    def _classify(self, url: str, response: httpx.Response) -> FetchOutcome:
        if response.status_code == 304:
            return Unchanged(url)
        if response.status_code != 200:
            return Failed(url, f"unexpected response: {response.status_code} {response.reason_phrase}")

        # New metadata replaces the old entry wholesale; missing headers clear fields
        metadata = ResourceMetadata(
            last_modified=response.headers.get("last-modified") or None,
            etag=response.headers.get("etag") or None,
        )
        return Fetched(url, response.iter_bytes(chunk_size=self.config.chunk_size), metadata)
