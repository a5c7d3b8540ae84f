"""Tests for versions feed line parsing."""

import logging

import pytest

from registry.rubygems.errors import MalformedLineError
from registry.rubygems.index_cache import VersionCache
from registry.rubygems.line_parser import (
    DeltaLine,
    VersionToken,
    apply_line,
    apply_lines,
    parse_line,
)


class TestParseLine:
    """Parsing single lines."""

    @pytest.mark.parametrize("line", ["", "   ", "---", "created_at: 2024-01-01T00:00:00Z"])
    def test_control_lines_are_skipped(self, line):
        """Blank, separator and created_at lines carry no data."""
        assert parse_line(line) is None

    def test_additions_and_removals(self):
        """Tokens prefixed with '-' are removals."""
        delta = parse_line("rails 7.1.0,-7.0.0.rc1, 7.1.1")
        assert delta == DeltaLine(
            package_name="rails",
            tokens=[
                VersionToken("7.1.0"),
                VersionToken("7.0.0.rc1", removed=True),
                VersionToken("7.1.1"),
            ],
        )

    def test_checksum_column_is_not_a_version(self):
        """The trailing checksum column of the real feed is ignored."""
        delta = parse_line("rack 2.2.8,3.0.0 0d8b1e3a4f5c\n")
        assert [t.version for t in delta.tokens] == ["2.2.8", "3.0.0"]
        assert delta.checksum == "0d8b1e3a4f5c"

    def test_space_after_comma_keeps_following_tokens(self):
        """Tokens are trimmed, so a space after a comma is not a column break."""
        cache = VersionCache()
        apply_line("a 1.0, 1.1", cache)
        assert cache.lookup("a") == ["1.0", "1.1"]
        assert parse_line("a 1.0, 1.1").checksum is None

    def test_checksum_after_spaced_token_list(self):
        """The checksum is split off the last token only."""
        delta = parse_line("a 1.0, -0.9, 1.1 abc123")
        assert delta.tokens == [
            VersionToken("1.0"),
            VersionToken("0.9", removed=True),
            VersionToken("1.1"),
        ]
        assert delta.checksum == "abc123"

    def test_platform_versions_are_kept_verbatim(self):
        """Platform suffixes are part of the version string."""
        delta = parse_line("nokogiri 1.15.4-x86_64-linux,1.15.4-java")
        assert [t.version for t in delta.tokens] == ["1.15.4-x86_64-linux", "1.15.4-java"]
        assert not any(t.removed for t in delta.tokens)

    def test_line_without_token_list_is_malformed(self):
        """A line with no space cannot be split."""
        with pytest.raises(MalformedLineError):
            parse_line("lonely-gem")

    def test_empty_tokens_are_dropped(self):
        """Stray commas do not produce empty versions."""
        delta = parse_line("a 1.0,,1.1,")
        assert [t.version for t in delta.tokens] == ["1.0", "1.1"]


class TestApplyLine:
    """Applying lines to the cache."""

    def test_add_then_remove_across_lines(self):
        """'a 1.0,1.1' then 'a -1.0' leaves only 1.1."""
        cache = VersionCache()
        apply_line("a 1.0,1.1", cache)
        apply_line("a -1.0", cache)
        assert cache.lookup("a") == ["1.1"]

    def test_readd_after_remove(self):
        """Order inside one line matters."""
        cache = VersionCache()
        apply_line("a 1.0,-1.0,1.0", cache)
        assert cache.lookup("a") == ["1.0"]

    def test_removal_of_unknown_version_is_noop(self):
        """Removals of versions never seen do not raise."""
        cache = VersionCache()
        apply_line("a 1.0", cache)
        assert apply_line("a -2.0", cache) is True
        assert cache.lookup("a") == ["1.0"]

    def test_malformed_line_is_logged_and_skipped(self, caplog):
        """Malformed lines neither raise nor mutate existing entries."""
        cache = VersionCache()
        apply_line("lonely 1.0", cache)
        with caplog.at_level(logging.WARNING):
            assert apply_line("lonely", cache) is False
        assert cache.lookup("lonely") == ["1.0"]
        assert "Rubygems line parsing error" in caplog.text

    def test_malformed_line_does_not_create_entry(self):
        """A bare name never creates an empty package."""
        cache = VersionCache()
        apply_line("ghost", cache)
        assert "ghost" not in cache

    def test_control_line_returns_false(self):
        """Control lines report that nothing was applied."""
        assert apply_line("---", VersionCache()) is False


class TestApplyLines:
    """Applying whole deltas."""

    def test_full_feed_block(self):
        """Header, data and a malformed line in one delta."""
        text = (
            "created_at: 2024-05-01T00:00:00Z\n"
            "---\n"
            "a 1.0,1.1 abc\n"
            "broken\n"
            "b 0.1 def\n"
            "a -1.0 123\n"
        )
        cache = VersionCache()
        assert apply_lines(text, cache) == 3
        assert cache.lookup("a") == ["1.1"]
        assert cache.lookup("b") == ["0.1"]

    def test_empty_delta_changes_nothing(self):
        """An empty delta leaves the cache untouched."""
        cache = VersionCache()
        cache.add_version("a", "1.0")
        assert apply_lines("", cache) == 0
        assert cache.lookup("a") == ["1.0"]
        assert len(cache) == 1
