"""Data models for the mirror."""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union


class FatalError(Exception):
    """The run cannot establish a valid starting or ending state."""


def _as_str(value) -> Optional[str]:
    # Hand-edited files may hold unquoted scalars (etag: 12345)
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class ResourceMetadata:
    last_modified: Optional[str] = None
    etag: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {}
        if self.last_modified:
            data["last_modified"] = self.last_modified
        if self.etag:
            data["etag"] = self.etag
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ResourceMetadata":
        return cls(
            last_modified=_as_str(data.get("last_modified")),
            etag=_as_str(data.get("etag")),
        )


@dataclass(frozen=True)
class FetchTask:
    directory: str
    url: str


@dataclass
class Unchanged:
    url: str


@dataclass
class Fetched:
    url: str
    chunks: Iterable[bytes]
    metadata: ResourceMetadata


@dataclass
class Failed:
    url: str
    cause: str


FetchOutcome = Union[Unchanged, Fetched, Failed]

FETCHED = "fetched"
UNCHANGED = "unchanged"
FAILED = "failed"


@dataclass
class RunSummary:
    fetched: int = 0
    unchanged: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.fetched + self.unchanged + self.failed

    @property
    def had_failure(self) -> bool:
        return self.failed > 0
