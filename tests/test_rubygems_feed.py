"""Tests for the resumable versions feed fetcher."""

import asyncio

import pytest

aiohttp_mod = pytest.importorskip("aiohttp")

from registry.rubygems.feed import FetchKind, FetchOutcome, IncrementalFetcher


class _DummyResponse:
    """Minimal async response stub usable with ``async with``."""

    def __init__(self, status: int = 200, body: bytes = b""):
        self.status = status
        self._body = body

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class _DummySession:
    """Session stub returning queued responses and recording requests."""

    def __init__(self, responses, calls):
        self._responses = list(responses)
        self._calls = calls
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self._calls.append((url, dict(headers or {})))
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self):
        self.closed = True


def _fetch(fetcher, offset):
    return asyncio.run(fetcher.fetch(offset))


class TestIncrementalFetcherRequests:
    """Request construction."""

    def test_headers_request_range_without_compression(self):
        """Range starts at the offset and compression is disabled."""
        fetcher = IncrementalFetcher(feed_url="https://feed.example/versions")
        headers = fetcher.build_headers(1234)
        assert headers["Range"] == "bytes=1234-"
        assert headers["Accept-Encoding"] == "identity"

    def test_fetch_targets_feed_url_with_offset(self):
        """The session sees the feed URL and the resume offset."""
        calls = []
        session = _DummySession([_DummyResponse(206, b"a 1.0\n")], calls)
        fetcher = IncrementalFetcher(feed_url="https://feed.example/versions", session=session)

        _fetch(fetcher, 42)

        assert calls[0][0] == "https://feed.example/versions"
        assert calls[0][1]["Range"] == "bytes=42-"


class TestIncrementalFetcherOutcomes:
    """Classification of responses."""

    def test_partial_content_is_delta(self):
        """206 carries the appended bytes."""
        body = "rails 7.1.0\n".encode("utf-8")
        session = _DummySession([_DummyResponse(206, body)], [])
        outcome = _fetch(IncrementalFetcher(session=session), 100)

        assert outcome.kind is FetchKind.DELTA
        assert outcome.text == "rails 7.1.0\n"
        assert outcome.length == len(body)
        assert outcome.resumed is True
        assert outcome.next_offset == 100 + len(body)

    def test_length_counts_bytes_not_characters(self):
        """Offsets advance by encoded length."""
        body = "café 1.0\n".encode("utf-8")
        session = _DummySession([_DummyResponse(206, body)], [])
        outcome = _fetch(IncrementalFetcher(session=session), 0)
        assert outcome.length == len(body)
        assert outcome.length != len(outcome.text)

    def test_full_content_from_zero_is_resumed(self):
        """A 200 for offset zero is the normal first sync."""
        session = _DummySession([_DummyResponse(200, b"a 1.0\n")], [])
        outcome = _fetch(IncrementalFetcher(session=session), 0)
        assert outcome.kind is FetchKind.DELTA
        assert outcome.resumed is True
        assert outcome.next_offset == 6

    def test_full_content_for_nonzero_offset_restarts(self):
        """A 200 when a range was asked means the whole file came back."""
        session = _DummySession([_DummyResponse(200, b"a 1.0\n")], [])
        outcome = _fetch(IncrementalFetcher(session=session), 500)
        assert outcome.kind is FetchKind.DELTA
        assert outcome.resumed is False
        assert outcome.next_offset == 6

    def test_range_not_satisfiable_is_no_new_data(self):
        """416 is the steady-state 'nothing new' signal."""
        session = _DummySession([_DummyResponse(416)], [])
        outcome = _fetch(IncrementalFetcher(session=session), 900)
        assert outcome.kind is FetchKind.NO_NEW_DATA
        assert outcome.next_offset == 900

    @pytest.mark.parametrize("status", [404, 500, 503])
    def test_other_status_is_fatal(self, status):
        """Any other status is a fatal outcome, not an exception."""
        session = _DummySession([_DummyResponse(status)], [])
        outcome = _fetch(IncrementalFetcher(session=session), 10)
        assert outcome.kind is FetchKind.FATAL
        assert outcome.status == status

    def test_client_error_is_fatal(self):
        """Transport failures are reported as fatal."""
        error = aiohttp_mod.ClientConnectionError("connection reset")
        session = _DummySession([error], [])
        outcome = _fetch(IncrementalFetcher(session=session), 10)
        assert outcome.kind is FetchKind.FATAL
        assert outcome.error is error

    def test_timeout_is_fatal(self):
        """An expired fetch is fatal."""
        session = _DummySession([asyncio.TimeoutError()], [])
        outcome = _fetch(IncrementalFetcher(session=session), 10)
        assert outcome.kind is FetchKind.FATAL
        assert outcome.reason == "timeout"

    def test_fatal_outcome_keeps_offset(self):
        """next_offset only moves for deltas."""
        outcome = FetchOutcome(FetchKind.FATAL, 77, length=10)
        assert outcome.next_offset == 77


class TestIncrementalFetcherLifecycle:
    """Session ownership."""

    def test_injected_session_is_not_closed(self):
        """stop() leaves externally managed sessions open."""
        session = _DummySession([], [])
        fetcher = IncrementalFetcher(session=session)
        asyncio.run(fetcher.stop())
        assert session.closed is False

    def test_context_manager_creates_and_closes_session(self):
        """async with opens an owned session and closes it on exit."""
        async def _run():
            async with IncrementalFetcher() as fetcher:
                session = fetcher._session
                assert session is not None
            return fetcher, session

        fetcher, session = asyncio.run(_run())
        assert fetcher._session is None
        assert session.closed is True
