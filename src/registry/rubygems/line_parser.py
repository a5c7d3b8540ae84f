"""Parser for lines of the rubygems.org /versions feed.

Each data line looks like::

    rails 7.1.0,7.1.1,-7.1.0.rc1 0d1e3f...

i.e. a gem name, a comma-separated token list and a checksum column. A
token prefixed with ``-`` removes that version; anything else adds it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled

from .errors import MalformedLineError
from .index_cache import VersionCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionToken:
    """A single addition or removal parsed from the token list."""
    version: str
    removed: bool = False

    @classmethod
    def parse(cls, raw: str) -> Optional["VersionToken"]:
        """Parse one raw token; returns None for an empty token."""
        token = raw.strip()
        if not token:
            return None
        if token.startswith(Constants.REMOVAL_MARKER):
            return cls(token[len(Constants.REMOVAL_MARKER):], removed=True)
        return cls(token)


@dataclass
class DeltaLine:
    """One parsed data line of the feed."""
    package_name: str
    tokens: List[VersionToken] = field(default_factory=list)
    checksum: Optional[str] = None


def is_control_line(line: str) -> bool:
    """True for blank lines, the ``---`` separator and ``created_at:`` directives."""
    return (
        not line
        or line == Constants.FEED_SEPARATOR_LINE
        or line.startswith(Constants.FEED_COMMENT_PREFIX)
    )


def parse_line(line: str) -> Optional[DeltaLine]:
    """Parse a feed line.

    Returns:
        DeltaLine, or None for control lines.

    Raises:
        MalformedLineError: the line has no token list.
    """
    stripped = line.strip()
    if is_control_line(stripped):
        return None
    package_name, _, rest = stripped.partition(" ")
    if not rest.strip():
        raise MalformedLineError(stripped)
    raw_tokens = [raw.strip() for raw in rest.split(",")]
    checksum = None
    # Only the last token can carry the trailing checksum column.
    last = raw_tokens[-1].split(None, 1)
    if len(last) == 2:
        raw_tokens[-1], checksum = last[0], last[1].strip()
    tokens = [t for t in (VersionToken.parse(raw) for raw in raw_tokens) if t]
    return DeltaLine(package_name=package_name, tokens=tokens, checksum=checksum)


def apply_line(line: str, cache: VersionCache) -> bool:
    """Apply one feed line to the cache.

    Malformed lines are logged and skipped so the rest of the delta still
    applies.

    Returns:
        True if the line carried data, False if it was skipped.
    """
    try:
        delta = parse_line(line)
    except MalformedLineError as exc:
        logger.warning(
            "Rubygems line parsing error",
            extra=extra_context(
                event="parse",
                component="line_parser",
                action="apply_line",
                outcome="malformed_line",
                line=exc.line,
            )
        )
        return False
    if delta is None:
        return False

    for token in delta.tokens:
        if token.removed:
            if is_debug_enabled(logger):
                logger.debug(
                    "Rubygems: Deleting version",
                    extra=extra_context(
                        component="line_parser",
                        package=delta.package_name,
                        deleted_version=token.version,
                    )
                )
            cache.remove_version(delta.package_name, token.version)
        else:
            cache.add_version(delta.package_name, token.version)
    return True


def apply_lines(text: str, cache: VersionCache) -> int:
    """Apply every line of a delta in order; returns the number of data lines."""
    applied = 0
    for line in text.split("\n"):
        if apply_line(line, cache):
            applied += 1
    return applied
