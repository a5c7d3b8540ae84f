"""Per-package JSON API client for RubyGems-compatible registries.

Used for every registry except rubygems.org itself, which is served from the
mirrored versions index.
"""
from __future__ import annotations

import logging
import urllib.parse
from typing import Any, List, Optional

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url

from .errors import FallbackLookupError
from .models import FetchResult, FetchStatus, PackageInfo, Release

logger = logging.getLogger(__name__)


def build_url(registry_base: str, path: str, package_name: str) -> str:
    """Join registry base, API path and ``<name>.json``."""
    quoted = urllib.parse.quote(package_name, safe="")
    return f"{registry_base.rstrip('/')}/{path.strip('/')}/{quoted}.json"


def fetch(package_name: str, registry_base: str, path: str) -> FetchResult:
    """GET one JSON document and classify the outcome."""
    url = build_url(registry_base, path, package_name)
    if is_debug_enabled(logger):
        logger.debug(
            "RubyGems lookup request",
            extra=extra_context(
                event="http_request",
                component="client",
                action="GET",
                target=safe_url(url),
                package=package_name,
            )
        )
    status_code, _, data = get_json(url)
    status = FetchStatus.from_status_code(status_code)
    if status is FetchStatus.OK and data is None:
        # 200 with an empty or undecodable body carries nothing usable.
        status = FetchStatus.NOT_FOUND
    return FetchResult(status=status, status_code=status_code, url=url, data=data)


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def parse_info(data: Any) -> Optional[PackageInfo]:
    """Build PackageInfo from a gems/<name>.json document."""
    if not isinstance(data, dict) or not data.get("name"):
        return None
    return PackageInfo(
        name=str(data["name"]),
        version=_str_or_none(data.get("version")),
        platform=_str_or_none(data.get("platform")),
        homepage_url=_str_or_none(data.get("homepage_uri")),
        source_url=_str_or_none(data.get("source_code_uri")),
        changelog_url=_str_or_none(data.get("changelog_uri")),
    )


def parse_versions(data: Any) -> List[Release]:
    """Build releases from a versions/<name>.json document, keeping its order."""
    if not isinstance(data, list):
        return []
    releases = []
    for item in data:
        if not isinstance(item, dict) or item.get("number") in (None, ""):
            continue
        releases.append(
            Release(
                version=str(item["number"]),
                platform=_str_or_none(item.get("platform")),
                release_timestamp=_str_or_none(item.get("created_at")),
                tool_version=_str_or_none(item.get("rubygems_version")),
                runtime_version=_str_or_none(item.get("ruby_version")),
            )
        )
    return releases


def fetch_package_info(package_name: str, registry_base: str) -> Optional[PackageInfo]:
    """Fetch gem metadata.

    Returns:
        PackageInfo, or None when the registry does not know the gem.

    Raises:
        FallbackLookupError: any other failure.
    """
    result = fetch(package_name, registry_base, Constants.INFO_PATH)
    if result.status is FetchStatus.NOT_FOUND:
        return None
    if not result.ok:
        raise FallbackLookupError(
            f"RubyGems info lookup failed with {result.status.value}",
            url=result.url,
            status_code=result.status_code,
        )
    return parse_info(result.data)


def fetch_package_versions(package_name: str, registry_base: str) -> FetchResult:
    """Fetch the versions document; the caller decides how to treat failures."""
    return fetch(package_name, registry_base, Constants.VERSIONS_PATH)
