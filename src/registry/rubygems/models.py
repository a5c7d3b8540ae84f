"""Data models for RubyGems lookups."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass
class Release:
    """One published version of a gem."""
    version: str
    platform: Optional[str] = None
    release_timestamp: Optional[str] = None
    tool_version: Optional[str] = None  # rubygems_version
    runtime_version: Optional[str] = None  # ruby_version


@dataclass
class ReleaseResult:
    """Lookup outcome: the releases plus whatever links the registry reported."""
    releases: List[Release] = field(default_factory=list)
    homepage_url: Optional[str] = None
    source_url: Optional[str] = None
    changelog_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize, dropping unset optional fields."""
        return {
            "releases": [
                {k: v for k, v in asdict(r).items() if v is not None}
                for r in self.releases
            ],
            **{
                k: v
                for k, v in (
                    ("homepage_url", self.homepage_url),
                    ("source_url", self.source_url),
                    ("changelog_url", self.changelog_url),
                )
                if v is not None
            },
        }


@dataclass
class PackageInfo:
    """Subset of the /api/v1/gems/<name>.json document."""
    name: str
    version: Optional[str] = None
    platform: Optional[str] = None
    homepage_url: Optional[str] = None
    source_url: Optional[str] = None
    changelog_url: Optional[str] = None


class FetchStatus(Enum):
    """Classification of a fallback HTTP call."""
    OK = "ok"
    NOT_FOUND = "not_found"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    CONNECTION_ERROR = "connection_error"

    @classmethod
    def from_status_code(cls, status_code: int) -> "FetchStatus":
        """Map an HTTP status code (0 for transport failure) to a FetchStatus."""
        if status_code == 0:
            return cls.CONNECTION_ERROR
        if 200 <= status_code < 300:
            return cls.OK
        if status_code == 404:
            return cls.NOT_FOUND
        if 400 <= status_code < 500:
            return cls.CLIENT_ERROR
        return cls.SERVER_ERROR


@dataclass
class FetchResult:
    """Status plus decoded JSON body of a fallback HTTP call."""
    status: FetchStatus
    status_code: int
    url: str
    data: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK
