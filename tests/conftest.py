from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest

from couchbase_rest import ClientConfig, RestApi

Route = tuple[str, str]
Reply = Callable[[httpx.Request], httpx.Response]


@dataclass
class RecordedRequest:
    method: str
    url: httpx.URL
    headers: httpx.Headers
    content: bytes

    @property
    def path(self) -> str:
        return self.url.path

    @property
    def form(self) -> dict[str, str]:
        return dict(parse_qsl(self.content.decode(), keep_blank_values=True))

    @property
    def json(self) -> Any:
        return json.loads(self.content)


@dataclass
class FakeCluster:
    """Route table for `httpx.MockTransport`; unknown routes answer 404."""

    routes: dict[Route, Reply] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def on(
        self, method: str, path: str, reply: Reply | None = None, *, status: int = 200, **kwargs: Any
    ) -> None:
        """Answer `method path` with `reply(request)`, or a fresh response built from kwargs."""
        if reply is None:

            def _default(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status, request=request, **kwargs)

            reply = _default

        self.routes[(method, path)] = reply

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(
            RecordedRequest(
                method=request.method,
                url=request.url,
                headers=request.headers,
                content=request.read(),
            )
        )
        reply = self.routes.get((request.method, request.url.path))
        if reply is None:
            return httpx.Response(404, text="Not found.", request=request)
        return reply(request)

    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.path) for r in self.requests]

    def api(self, username: str = "Administrator", password: str = "password") -> RestApi:
        config = ClientConfig(transport=httpx.MockTransport(self.handler))
        return RestApi(username, password, config=config)


@pytest.fixture
def fake() -> FakeCluster:
    return FakeCluster()
