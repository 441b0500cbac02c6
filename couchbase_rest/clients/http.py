"""
HTTP request layer.

Turns a `RequestDescription` into a single HTTP call against the cluster's
admin REST API and turns the outcome into either decoded JSON or one of the
normalized `CouchbaseRestError` subclasses. This is the only place where
upstream error payloads are interpreted.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..exceptions import (
    NOT_FOUND_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    CouchbaseRestError,
    NotFoundError,
    TransportError,
    UpstreamError,
)
from ..models.types import HTTP_METHODS
from .pipeline import AsyncMiddleware, AsyncPipeline, RawResponse, RequestDescription, compose_async

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
DEFAULT_USER_AGENT = "couchbase-rest-sdk"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """
    Transport-level settings shared by every handle derived from one root.

    Attributes:
        timeout: Per-request timeout in seconds (None keeps the httpx default)
        verify: Verify TLS certificates for https clusters
        user_agent: User-Agent header value
        log_requests: Log each request/response pair at DEBUG level
        middlewares: Extra async middlewares wrapped around every request
        transport: Custom httpx transport (e.g. `httpx.MockTransport` in tests)
    """

    timeout: float | None = None
    verify: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    log_requests: bool = False
    middlewares: Sequence[AsyncMiddleware] = field(default_factory=tuple)
    transport: httpx.AsyncBaseTransport | None = None


# =============================================================================
# Response decoding and error normalization
# =============================================================================


def decode_body(content: bytes) -> Any:
    """Decode a response body as JSON, falling back to text; empty bodies are None."""
    if not content or not content.strip():
        return None
    text = content.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def _flatten_messages(detail: Any) -> list[str]:
    if detail is None:
        return []
    if isinstance(detail, str):
        text = detail.strip()
        return [text] if text else []
    if isinstance(detail, Mapping):
        items: Iterable[Any] = detail.values()
    elif isinstance(detail, (list, tuple)):
        items = detail
    else:
        return [str(detail)]
    messages: list[str] = []
    for item in items:
        messages.extend(_flatten_messages(item))
    return messages


def normalize_error_messages(status_code: int, body: Any) -> list[str]:
    """
    Reduce an upstream error payload to a non-empty list of strings.

    Prefers the body's `errors` field, then the body itself. Mappings are
    flattened to their values in order. A 404 without usable detail becomes
    `["Not Found"]`; any other failure without detail becomes the unknown-error
    sentinel.
    """
    detail: Any = body
    if isinstance(body, Mapping) and body.get("errors"):
        detail = body["errors"]

    if status_code == 404 and isinstance(detail, str):
        # The server answers unknown REST paths with a plain-text body.
        detail = None

    messages = _flatten_messages(detail)
    if not messages:
        if status_code == 404:
            return [NOT_FOUND_MESSAGE]
        return [UNKNOWN_ERROR_MESSAGE]
    return messages


def error_for_response(response: RawResponse) -> CouchbaseRestError:
    body = decode_body(response.content)
    messages = normalize_error_messages(response.status_code, body)
    if response.status_code == 404:
        return NotFoundError(messages, status_code=404, body=body)
    return UpstreamError(messages, status_code=response.status_code, body=body)


def error_for_transport_failure(exc: Exception) -> TransportError:
    message = str(exc).strip() or type(exc).__name__
    return TransportError([message])


# =============================================================================
# Middleware
# =============================================================================


class RequestLoggingMiddleware:
    """Log each request and its outcome; credentials are never part of the URL."""

    async def __call__(self, req: RequestDescription, next: AsyncPipeline) -> RawResponse:
        logger.debug("-> %s %s", req.method, req.url)
        try:
            res = await next(req)
        except CouchbaseRestError as exc:
            logger.debug("!! %s %s: %s", req.method, req.url, exc)
            raise
        logger.debug(
            "<- %s %s %s (%.1f ms)",
            res.status_code,
            req.method,
            req.url,
            (res.elapsed_seconds or 0.0) * 1000,
        )
        return res


# =============================================================================
# Client
# =============================================================================


class AsyncHTTPClient:
    """
    Asynchronous request layer backed by a single `httpx.AsyncClient`.

    No retries and no timeout policy beyond `ClientConfig.timeout`; callers
    needing retry/backoff wrap calls themselves.
    """

    def __init__(self, config: ClientConfig | None = None):
        self._config = config or ClientConfig()
        client_kwargs: dict[str, Any] = {
            "headers": {
                "Accept": JSON_CONTENT_TYPE,
                "User-Agent": self._config.user_agent,
            },
            "verify": self._config.verify,
        }
        if self._config.timeout is not None:
            client_kwargs["timeout"] = self._config.timeout
        if self._config.transport is not None:
            client_kwargs["transport"] = self._config.transport
        self._client = httpx.AsyncClient(**client_kwargs)

        middlewares: list[AsyncMiddleware] = list(self._config.middlewares)
        if self._config.log_requests:
            middlewares.insert(0, RequestLoggingMiddleware())
        self._pipeline = compose_async(middlewares, self._terminal)

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def __aenter__(self) -> AsyncHTTPClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _terminal(self, req: RequestDescription) -> RawResponse:
        started = time.monotonic()
        try:
            response = await self._client.request(
                req.method,
                req.url,
                data=dict(req.form) if req.form else None,
                json=req.json,
                params=dict(req.params) if req.params else None,
                headers=req.headers or None,
                auth=req.auth,
            )
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            # connect/timeout failures, undecodable bodies, redirect loops, bad hosts
            raise error_for_transport_failure(exc) from exc
        return RawResponse(
            status_code=response.status_code,
            headers=list(response.headers.multi_items()),
            content=response.content,
            elapsed_seconds=time.monotonic() - started,
        )

    async def send(self, req: RequestDescription) -> Any:
        """
        Send one request and return the decoded body.

        Raises:
            ValueError: If the method or endpoint is invalid
            TransportError: If no HTTP response was received
            NotFoundError: On HTTP 404
            UpstreamError: On any other non-2xx response
        """
        method = req.method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {req.method!r}")
        if not req.endpoint or not req.endpoint.strip("/"):
            raise ValueError("endpoint must be a non-empty path")
        req.method = method

        res = await self._pipeline(req)
        if not res.ok:
            raise error_for_response(res)
        return decode_body(res.content)
