"""RubyGems registry support.

rubygems.org lookups are answered from a local mirror of the /versions feed
that is kept current by fetching only newly appended bytes; other registries
are queried per package over the JSON API.
"""

from .datasource import RubyGemsDatasource, is_canonical_registry
from .errors import (
    ExternalHostError,
    FallbackLookupError,
    MalformedLineError,
    UpstreamUnavailableError,
)
from .feed import FetchKind, FetchOutcome, IncrementalFetcher
from .index_cache import VersionCache
from .line_parser import DeltaLine, VersionToken, apply_line, apply_lines, parse_line
from .models import FetchResult, FetchStatus, PackageInfo, Release, ReleaseResult
from .sync import SyncCoordinator, SyncState, SyncStatus

__all__ = [
    "RubyGemsDatasource",
    "is_canonical_registry",
    "ExternalHostError",
    "FallbackLookupError",
    "MalformedLineError",
    "UpstreamUnavailableError",
    "FetchKind",
    "FetchOutcome",
    "IncrementalFetcher",
    "VersionCache",
    "DeltaLine",
    "VersionToken",
    "apply_line",
    "apply_lines",
    "parse_line",
    "FetchResult",
    "FetchStatus",
    "PackageInfo",
    "Release",
    "ReleaseResult",
    "SyncCoordinator",
    "SyncState",
    "SyncStatus",
]
