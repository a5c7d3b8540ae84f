"""Keeps the local versions index in step with the rubygems.org feed.

Refreshes are single-flight: however many coroutines find the index stale
at once, one feed fetch runs and every caller awaits the same task and sees
the same result or exception.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from constants import Constants
from common.logging_utils import extra_context, Timer

from .errors import UpstreamUnavailableError
from .feed import FetchKind, FetchOutcome, IncrementalFetcher
from .index_cache import VersionCache
from .line_parser import apply_lines

logger = logging.getLogger(__name__)

# Epoch: any real clock reading is far past this, so a reset index is stale.
NEVER_SYNCED = 0.0


class SyncStatus(Enum):
    """Freshness of the local index."""
    FRESH = "fresh"
    STALE = "stale"
    REFRESHING = "refreshing"


@dataclass
class SyncState:
    """Bookkeeping for the incremental feed.

    ``consumed_offset`` always describes exactly the bytes reflected in the
    cache; the two are reset together.
    """
    last_sync: float = NEVER_SYNCED
    consumed_offset: int = 0
    in_flight: Optional["asyncio.Task[None]"] = None


class SyncCoordinator:
    """Owns the VersionCache and refreshes it from the feed when stale."""

    def __init__(
        self,
        fetcher: Optional[IncrementalFetcher] = None,
        cache: Optional[VersionCache] = None,
        stale_window: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.fetcher = fetcher or IncrementalFetcher()
        self.cache = cache if cache is not None else VersionCache()
        self.state = SyncState()
        self._stale_window = (
            stale_window if stale_window is not None else Constants.STALE_WINDOW_SEC
        )
        self._clock = clock

    def is_stale(self) -> bool:
        return self._clock() - self.state.last_sync >= self._stale_window

    @property
    def status(self) -> SyncStatus:
        if self.state.in_flight is not None and not self.state.in_flight.done():
            return SyncStatus.REFRESHING
        return SyncStatus.STALE if self.is_stale() else SyncStatus.FRESH

    async def ensure_fresh(self) -> None:
        """Refresh the index if it is stale.

        Joins the running refresh if there is one. Cancelling the caller
        does not cancel the shared refresh.

        Raises:
            UpstreamUnavailableError: the feed fetch failed for this round.
        """
        if not self.is_stale():
            return
        task = self.state.in_flight
        if task is None:
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(_consume_task_result)
            self.state.in_flight = task
        await asyncio.shield(task)

    async def _refresh(self) -> None:
        current = asyncio.current_task()
        state = self.state
        try:
            with Timer() as t:
                outcome = await self.fetcher.fetch(state.consumed_offset)
                if self.state is not state:
                    logger.debug(
                        "Rubygems: dropping sync result from before reset",
                        extra=extra_context(event="sync", component="sync", outcome=outcome.kind.value),
                    )
                    return
                self._apply_outcome(outcome)
            logger.debug(
                "Rubygems: sync complete",
                extra=extra_context(
                    event="sync",
                    component="sync",
                    outcome=outcome.kind.value,
                    duration_ms=t.duration_ms(),
                    packages=len(self.cache),
                    offset=self.state.consumed_offset,
                )
            )
        finally:
            if self.state.in_flight is current:
                self.state.in_flight = None

    def _apply_outcome(self, outcome: FetchOutcome) -> None:
        if outcome.kind is FetchKind.DELTA:
            if not outcome.resumed:
                self.cache.reset()
            apply_lines(outcome.text, self.cache)
            self.state.consumed_offset = outcome.next_offset
            self.state.last_sync = self._clock()
            return

        if outcome.kind is FetchKind.NO_NEW_DATA:
            self.state.last_sync = self._clock()
            return

        # The offset means nothing without a cache built from exactly those
        # bytes, so both go back to zero and the next attempt resyncs fully.
        self.cache.reset()
        self.state.consumed_offset = 0
        logger.error(
            "Rubygems fetch error - need to reset cache",
            extra=extra_context(
                event="sync",
                component="sync",
                outcome="fatal",
                status_code=outcome.status,
                reason=outcome.reason,
            )
        )
        raise UpstreamUnavailableError(
            f"Rubygems fetch error - need to reset cache ({outcome.reason})",
            host=Constants.RUBYGEMS_ORG_HOST,
        ) from outcome.error

    def reset_all(self) -> None:
        """Forget everything, including a running refresh. Tests only.

        A refresh still in flight finishes against the discarded state and
        its result is dropped.
        """
        self.cache.reset()
        self.state = SyncState()

    def stats(self) -> Dict[str, Any]:
        """Snapshot of sync bookkeeping."""
        return {
            "packages": len(self.cache),
            "consumed_offset": self.state.consumed_offset,
            "last_sync": self.state.last_sync,
            "status": self.status.value,
        }


def _consume_task_result(task: "asyncio.Task[None]") -> None:
    """Mark the refresh exception as retrieved even if every waiter left."""
    if not task.cancelled():
        task.exception()
