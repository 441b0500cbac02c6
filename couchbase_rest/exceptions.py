"""
Exceptions raised by the Couchbase REST SDK.

Every failure of a REST call is normalized into a subclass of
`CouchbaseRestError` whose `messages` attribute is a non-empty list of
human-readable strings. The subclass tells callers what kind of failure
occurred without inspecting message text:

- `TransportError`: no HTTP response was received (connection refused,
  DNS failure, timeout).
- `UpstreamError`: the server answered with a non-2xx status.
- `NotFoundError`: the server answered 404, or a named resource lookup found
  nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"
NOT_FOUND_MESSAGE = "Not Found"


class CouchbaseRestError(Exception):
    """Base exception for all SDK errors."""

    def __init__(
        self,
        messages: Iterable[str] | str,
        *,
        status_code: int | None = None,
        body: Any | None = None,
    ):
        if isinstance(messages, str):
            messages = [messages]
        self.messages: list[str] = list(messages) or [UNKNOWN_ERROR_MESSAGE]
        self.status_code = status_code
        self.body = body
        super().__init__("; ".join(self.messages))

    @property
    def message(self) -> str:
        return "; ".join(self.messages)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(messages={self.messages!r}, status_code={self.status_code!r})"


class TransportError(CouchbaseRestError):
    """The request never produced an HTTP response."""


class UpstreamError(CouchbaseRestError):
    """The server rejected the request with a non-2xx status."""


class NotFoundError(CouchbaseRestError):
    """The requested resource does not exist."""

    def __init__(
        self,
        messages: Iterable[str] | str = NOT_FOUND_MESSAGE,
        *,
        status_code: int | None = 404,
        body: Any | None = None,
    ):
        super().__init__(messages, status_code=status_code, body=body)


class ClusterReferenceError(CouchbaseRestError):
    """A handle's owning-cluster reference was reassigned or is missing."""
