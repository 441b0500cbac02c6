"""
Request descriptions and the async middleware chain.

A handle operation becomes a `RequestDescription` (verb, path, body, target
coordinates, credentials); middlewares see it before the httpx call and see the
`RawResponse` after it. Request logging is one such middleware.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias

from ..models.types import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_PROTOCOL


def build_url(protocol: str, host: str, port: int, endpoint: str) -> str:
    """Join coordinates and an endpoint path with exactly one slash after the port."""
    return f"{protocol}://{host}:{port}/{endpoint.lstrip('/')}"


@dataclass(slots=True)
class RequestDescription:
    method: str
    endpoint: str
    form: Mapping[str, Any] | None = None
    json: Any | None = None
    params: Mapping[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    protocol: str = DEFAULT_PROTOCOL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    auth: tuple[str, str] | None = None

    @property
    def url(self) -> str:
        return build_url(self.protocol, self.host, self.port, self.endpoint)


@dataclass(slots=True)
class RawResponse:
    status_code: int
    headers: list[tuple[str, str]]
    content: bytes
    elapsed_seconds: float | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


AsyncPipeline: TypeAlias = Callable[[RequestDescription], Awaitable[RawResponse]]


class AsyncMiddleware(Protocol):
    async def __call__(self, req: RequestDescription, next: AsyncPipeline) -> RawResponse: ...


def compose_async(middlewares: Sequence[AsyncMiddleware], terminal: AsyncPipeline) -> AsyncPipeline:
    pipeline = terminal
    for middleware in reversed(middlewares):
        next_pipeline = pipeline

        async def _wrapped(
            req: RequestDescription,
            *,
            _mw: AsyncMiddleware = middleware,
            _n: AsyncPipeline = next_pipeline,
        ) -> RawResponse:
            return await _mw(req, _n)

        pipeline = _wrapped
    return pipeline
