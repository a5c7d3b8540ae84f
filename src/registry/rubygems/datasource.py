"""RubyGems datasource: release lookups across RubyGems-compatible registries."""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Iterable, Optional

from constants import Constants
from common.logging_utils import extra_context

from . import client
from .errors import FallbackLookupError
from .models import FetchStatus, Release, ReleaseResult
from .sync import SyncCoordinator

logger = logging.getLogger(__name__)


def normalize_registry_url(registry_url: str) -> str:
    """Strip whitespace and default a bare host like ``gems.example.com`` to https."""
    registry_url = registry_url.strip()
    if registry_url and "://" not in registry_url:
        registry_url = f"https://{registry_url}"
    return registry_url


def is_canonical_registry(registry_url: str) -> bool:
    """True when the URL points at the host mirrored through the versions feed."""
    host = urllib.parse.urlparse(normalize_registry_url(registry_url)).hostname
    return bool(host) and host.lower() == Constants.RUBYGEMS_ORG_HOST.lower()


class RubyGemsDatasource:
    """Answers "which versions of gem X exist" for a registry URL.

    rubygems.org lookups are served from an incrementally synced copy of its
    versions index; other registries are asked per package over the JSON API.
    """

    def __init__(self, coordinator: Optional[SyncCoordinator] = None):
        self.coordinator = coordinator or SyncCoordinator()

    async def lookup(
        self, package_name: str, registry_url: Optional[str] = None
    ) -> Optional[ReleaseResult]:
        """Look up the releases of a gem on one registry.

        Returns:
            ReleaseResult, or None if the registry does not know the gem.

        Raises:
            UpstreamUnavailableError: the rubygems.org feed could not be synced.
            FallbackLookupError: a non-canonical registry failed.
        """
        registry_url = normalize_registry_url(registry_url or Constants.RUBYGEMS_ORG_URL)
        if is_canonical_registry(registry_url):
            return await self._lookup_mirrored(package_name)
        return await asyncio.to_thread(self.get_dependency, package_name, registry_url)

    async def get_releases(
        self, package_name: str, registry_urls: Optional[Iterable[str]] = None
    ) -> Optional[ReleaseResult]:
        """Try registries in order and return the first hit.

        Feed failures abort the hunt; a failing fallback registry is skipped,
        and its error is re-raised only if no other registry answered.
        """
        urls = list(registry_urls) if registry_urls is not None else list(Constants.DEFAULT_REGISTRY_URLS)
        last_error: Optional[FallbackLookupError] = None
        for registry_url in urls:
            try:
                result = await self.lookup(package_name, registry_url)
            except FallbackLookupError as exc:
                logger.warning(
                    "RubyGems registry lookup failed, trying next registry",
                    extra=extra_context(
                        component="datasource",
                        package=package_name,
                        registry=registry_url,
                        status_code=exc.status_code,
                    )
                )
                last_error = exc
                continue
            if result is not None:
                return result
        if last_error is not None:
            raise last_error
        return None

    async def _lookup_mirrored(self, package_name: str) -> Optional[ReleaseResult]:
        logger.debug("Rubygems.org index lookup for %s", package_name)
        await self.coordinator.ensure_fresh()
        versions = self.coordinator.cache.lookup(package_name)
        if versions is None:
            return None
        return ReleaseResult(releases=[Release(version=v) for v in versions])

    def get_dependency(self, package_name: str, registry_url: str) -> Optional[ReleaseResult]:
        """Blocking per-package lookup against a non-canonical registry."""
        logger.debug(
            "RubyGems lookup for dependency",
            extra=extra_context(component="datasource", package=package_name, registry=registry_url),
        )
        info = client.fetch_package_info(package_name, registry_url)
        if info is None:
            logger.debug("RubyGems package not found: %s", package_name)
            return None

        if package_name.lower() != info.name.lower():
            logger.warning(
                "Lookup name does not match with returned.",
                extra=extra_context(component="datasource", lookup=package_name, returned=info.name),
            )
            return None

        versions = client.fetch_package_versions(package_name, registry_url)
        if versions.status in (FetchStatus.NOT_FOUND, FetchStatus.CLIENT_ERROR):
            logger.debug(
                "versions endpoint returns error - falling back to info endpoint",
                extra=extra_context(component="datasource", registry=registry_url, status_code=versions.status_code),
            )
            releases = []
        elif not versions.ok:
            raise FallbackLookupError(
                f"RubyGems versions lookup failed with {versions.status.value}",
                url=versions.url,
                status_code=versions.status_code,
            )
        else:
            releases = client.parse_versions(versions.data)

        if not releases and info.version:
            logger.warning("falling back to the version from the info endpoint")
            releases = [Release(version=info.version, platform=info.platform)]

        return ReleaseResult(
            releases=releases,
            homepage_url=info.homepage_url,
            source_url=info.source_url,
            changelog_url=info.changelog_url,
        )

    def reset_cache(self) -> None:
        """Drop the mirrored index and sync state. Tests only."""
        self.coordinator.reset_all()

    async def close(self) -> None:
        await self.coordinator.fetcher.stop()

    async def __aenter__(self) -> "RubyGemsDatasource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
