"""Exceptions raised by the RubyGems datasource."""

from typing import Optional


class ExternalHostError(Exception):
    """A remote host failed in a way the caller cannot recover from locally."""

    def __init__(self, message: str, host_type: str = "rubygems", host: Optional[str] = None):
        super().__init__(message)
        self.host_type = host_type
        self.host = host


class UpstreamUnavailableError(ExternalHostError):
    """The versions feed could not be fetched; the local index was reset."""


class FallbackLookupError(Exception):
    """A per-package API call failed with a status that has no local fallback."""

    def __init__(self, message: str, url: str, status_code: int):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class MalformedLineError(ValueError):
    """A versions feed line could not be split into a name and a token list."""

    def __init__(self, line: str):
        super().__init__(f"Malformed versions line: {line!r}")
        self.line = line
