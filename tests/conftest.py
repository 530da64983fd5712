"""Shared pytest fixtures: temp configs, catalogs and a scriptable HTTP server."""

import sys
import threading
from pathlib import Path
from typing import Callable, Dict, List

import httpx
import pytest
import yaml

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from climate_mirror.config import AppConfig, DownloadConfig  # noqa: E402

TODAY = "2025-06-02"
LAST_MODIFIED = "Mon, 01 Jun 2025 00:00:00 GMT"


class FakeServer:
    """Serves fixed CSV bodies and honours If-None-Match / If-Modified-Since."""

    def __init__(self):
        self.resources: Dict[str, dict] = {}
        self.requests: List[httpx.Request] = []
        self._lock = threading.Lock()

    def add(self, url: str, body: bytes, etag: str = None, last_modified: str = None,
            status: int = 200):
        self.resources[url] = {
            "body": body, "etag": etag, "last_modified": last_modified, "status": status,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        res = self.resources.get(str(request.url))
        if res is None:
            return httpx.Response(404, request=request)
        if res["status"] != 200:
            return httpx.Response(res["status"], request=request)

        headers = {}
        if res["etag"]:
            headers["ETag"] = res["etag"]
        if res["last_modified"]:
            headers["Last-Modified"] = res["last_modified"]

        inm = request.headers.get("if-none-match")
        ims = request.headers.get("if-modified-since")
        if (inm and inm == res["etag"]) or (ims and not inm and ims == res["last_modified"]):
            return httpx.Response(304, headers=headers, request=request)
        return httpx.Response(200, headers=headers, content=res["body"], request=request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., AppConfig]:
    """Write a catalog under tmp_path and return an AppConfig pointing at it."""

    def _make(catalog: dict, max_parallel: int = 4) -> AppConfig:
        catalog_path = tmp_path / "data-sources.yaml"
        catalog_path.write_text(yaml.safe_dump(catalog), encoding="utf-8")
        return AppConfig(
            catalog_path=str(catalog_path),
            metadata_path=str(tmp_path / ".metadata.yaml"),
            data_dir=str(tmp_path / "archive"),
            download=DownloadConfig(max_parallel=max_parallel),
        )

    return _make
