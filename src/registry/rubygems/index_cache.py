"""In-memory mirror of the RubyGems versions index."""

from __future__ import annotations

from typing import Dict, List, Optional


class VersionCache:
    """Package name -> versions in feed order.

    Names are plain dict keys and never touch attribute lookup, so gems
    called ``keys`` or ``__class__`` behave like any other name. Duplicate
    additions are kept; a removal drops every matching entry.
    """

    def __init__(self) -> None:
        self._releases: Dict[str, List[str]] = {}

    def add_version(self, package_name: str, version: str) -> None:
        """Append a version, creating the package entry on first use."""
        self._releases.setdefault(package_name, []).append(version)

    def remove_version(self, package_name: str, version: str) -> None:
        """Remove all occurrences of a version. Unknown names are ignored."""
        versions = self._releases.get(package_name)
        if versions is None:
            return
        versions[:] = [v for v in versions if v != version]

    def lookup(self, package_name: str) -> Optional[List[str]]:
        """Return a copy of the known versions, or None if never seen."""
        versions = self._releases.get(package_name)
        if versions is None:
            return None
        return list(versions)

    def reset(self) -> None:
        """Drop every entry."""
        self._releases.clear()

    def __contains__(self, package_name: object) -> bool:
        return package_name in self._releases

    def __len__(self) -> int:
        return len(self._releases)
