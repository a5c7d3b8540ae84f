"""Resumable fetcher for the rubygems.org /versions feed.

The feed is append-only, so each fetch asks for ``bytes=<offset>-`` and
only receives what was appended since the previous one. Compression is
disabled on both sides: byte offsets must refer to the raw file.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import aiohttp

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


class FetchKind(Enum):
    """How a feed fetch ended."""
    DELTA = "delta"
    NO_NEW_DATA = "no_new_data"
    FATAL = "fatal"


@dataclass
class FetchOutcome:
    """Result of one feed fetch.

    ``resumed`` is False when the server ignored the Range header and sent
    the whole file; the text then starts at byte zero, not at ``offset``.
    """
    kind: FetchKind
    offset: int
    text: str = ""
    length: int = 0
    resumed: bool = True
    status: Optional[int] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def next_offset(self) -> int:
        """Cumulative offset after consuming this outcome."""
        if self.kind is not FetchKind.DELTA:
            return self.offset
        start = self.offset if self.resumed else 0
        return start + self.length


class IncrementalFetcher:
    """Fetches new bytes of the versions feed starting at a byte offset."""

    def __init__(
        self,
        feed_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the fetcher.

        Args:
            feed_url: Feed URL, defaults to Constants.VERSIONS_FEED_URL.
            timeout: Total request timeout in seconds, defaults to
                Constants.FEED_TIMEOUT_SEC.
            session: Optional externally managed session; it is not closed
                by stop().
        """
        self._feed_url = feed_url or Constants.VERSIONS_FEED_URL
        self._timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else Constants.FEED_TIMEOUT_SEC
        )
        self._session = session
        self._owns_session = session is None

    @property
    def feed_url(self) -> str:
        return self._feed_url

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                auto_decompress=False,
            )
            self._owns_session = True

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def build_headers(self, offset: int) -> Dict[str, str]:
        """Request headers for a fetch resuming at ``offset``."""
        return {
            "Accept-Encoding": "identity",
            "Range": f"bytes={offset}-",
            "User-Agent": Constants.USER_AGENT,
        }

    async def fetch(self, offset: int) -> FetchOutcome:
        """Fetch everything appended to the feed after ``offset`` bytes.

        Never raises for HTTP or transport failures; those come back as a
        FATAL outcome.
        """
        if self._session is None:
            await self.start()
        assert self._session is not None

        target = safe_url(self._feed_url)
        headers = self.build_headers(offset)
        logger.debug("Rubygems: Fetching rubygems.org versions from offset %s", offset)

        with Timer() as t:
            try:
                async with self._session.get(
                    self._feed_url, headers=headers, timeout=self._timeout
                ) as response:
                    status = response.status
                    if status == 416:
                        logger.debug(
                            "Rubygems: No update",
                            extra=extra_context(
                                event="http_response",
                                component="feed",
                                outcome="range_not_satisfiable",
                                status_code=status,
                                target=target,
                            )
                        )
                        return FetchOutcome(FetchKind.NO_NEW_DATA, offset, status=status)
                    if status not in (200, 206):
                        return FetchOutcome(
                            FetchKind.FATAL,
                            offset,
                            status=status,
                            reason=f"unexpected status {status}",
                        )
                    body = await response.read()
            except asyncio.TimeoutError as exc:
                return FetchOutcome(FetchKind.FATAL, offset, reason="timeout", error=exc)
            except aiohttp.ClientError as exc:
                return FetchOutcome(
                    FetchKind.FATAL, offset, reason=f"client error: {exc}", error=exc
                )

        resumed = not (status == 200 and offset > 0)
        if not resumed:
            logger.warning(
                "Rubygems: server ignored Range header; rebuilding index from full feed",
                extra=extra_context(component="feed", target=target, offset=offset),
            )
        if is_debug_enabled(logger):
            logger.debug(
                "Rubygems: Fetched rubygems.org versions",
                extra=extra_context(
                    event="http_response",
                    component="feed",
                    outcome="success",
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    bytes=len(body),
                    target=target,
                )
            )
        return FetchOutcome(
            FetchKind.DELTA,
            offset,
            text=body.decode("utf-8", errors="replace"),
            length=len(body),
            resumed=resumed,
            status=status,
        )

    async def __aenter__(self) -> "IncrementalFetcher":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
