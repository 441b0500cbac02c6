from __future__ import annotations

import asyncio
import os
import sys
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from pydantic import ValidationError

from couchbase_rest import RestApi
from couchbase_rest.clients.http import ClientConfig
from couchbase_rest.exceptions import (
    CouchbaseRestError,
    NotFoundError,
    TransportError,
)
from couchbase_rest.handles.cluster import Cluster
from couchbase_rest.models.types import (
    DEFAULT_HOST,
    DEFAULT_PASSWORD,
    DEFAULT_POOL,
    DEFAULT_PORT,
    DEFAULT_PROTOCOL,
    DEFAULT_USERNAME,
)

from .errors import USAGE_EXIT_CODE, CLIError
from .results import CommandMeta, CommandResult, ErrorInfo

OutputFormat = Literal["table", "json"]

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ClientSettings:
    host: str
    port: int
    protocol: str
    username: str
    password: str
    pool: str
    timeout: float | None
    verify: bool
    log_requests: bool

    def resolved(self) -> dict[str, Any]:
        """Coordinates echoed into command metadata (never the password)."""
        return {
            "host": self.host,
            "port": self.port,
            "protocol": self.protocol,
            "username": self.username,
            "pool": self.pool,
        }


@dataclass
class CLIContext:
    output: OutputFormat
    quiet: bool
    verbosity: int
    host: str | None = None
    port: int | None = None
    protocol: str | None = None
    username: str | None = None
    password: str | None = None
    password_stdin: bool = False
    pool: str | None = None
    timeout: float | None = None
    insecure: bool = False

    _settings: ClientSettings | None = None

    def _resolve_password(self) -> str:
        if self.password_stdin:
            password = sys.stdin.read().strip()
            if not password:
                raise CLIError.usage("Empty password provided via stdin.")
            return password
        return self.password or os.getenv("COUCHBASE_PASSWORD") or DEFAULT_PASSWORD

    def _resolve_port(self) -> int:
        if self.port is not None:
            return self.port
        raw = os.getenv("COUCHBASE_PORT", "").strip()
        if not raw:
            return DEFAULT_PORT
        try:
            return int(raw)
        except ValueError:
            raise CLIError.usage(f"COUCHBASE_PORT must be an integer, got {raw!r}.") from None

    def resolve_client_settings(self) -> ClientSettings:
        if self._settings is not None:
            return self._settings
        protocol = self.protocol or os.getenv("COUCHBASE_PROTOCOL") or DEFAULT_PROTOCOL
        if protocol not in ("http", "https"):
            raise CLIError.usage(
                f"Unsupported protocol: {protocol!r} (expected http or https)."
            )
        self._settings = ClientSettings(
            host=self.host or os.getenv("COUCHBASE_HOST") or DEFAULT_HOST,
            port=self._resolve_port(),
            protocol=protocol,
            username=self.username or os.getenv("COUCHBASE_USERNAME") or DEFAULT_USERNAME,
            password=self._resolve_password(),
            pool=self.pool or DEFAULT_POOL,
            timeout=self.timeout,
            verify=not self.insecure,
            log_requests=self.verbosity >= 2,
        )
        return self._settings

    def get_client(self) -> RestApi:
        settings = self.resolve_client_settings()
        config = ClientConfig(
            timeout=settings.timeout,
            verify=settings.verify,
            log_requests=settings.log_requests,
        )
        return RestApi(settings.username, settings.password, config=config, pool=settings.pool)

    def cluster(self, api: RestApi) -> Cluster:
        settings = self.resolve_client_settings()
        return api.cluster(
            settings.host,
            cluster_port=settings.port,
            cluster_protocol=settings.protocol,
        )

    def run(self, operation: Callable[[RestApi], Awaitable[T]]) -> T:
        """Run one async operation against a fresh client, closing it afterwards."""

        async def _main() -> T:
            async with self.get_client() as api:
                return await operation(api)

        return asyncio.run(_main())


def normalize_exception(exc: Exception) -> Exception:
    if isinstance(exc, ValidationError):
        return CLIError(
            f"Invalid options: {exc.error_count()} validation error(s).",
            exit_code=USAGE_EXIT_CODE,
            error_type="validation_error",
            details={"errors": [str(err.get("msg", "")) for err in exc.errors()]},
        )
    if isinstance(exc, (TypeError, ValueError)) and not isinstance(exc, CouchbaseRestError):
        return CLIError.usage(str(exc))
    return exc


def exit_code_for_exception(exc: Exception) -> int:
    if isinstance(exc, CLIError):
        return exc.exit_code
    if isinstance(exc, NotFoundError):
        return 4
    if isinstance(exc, TransportError):
        return 5
    return 1


def error_info_for_exception(exc: Exception) -> ErrorInfo:
    if isinstance(exc, CLIError):
        return ErrorInfo(
            type=exc.error_type, message=exc.message, hint=exc.hint, details=exc.details
        )
    if isinstance(exc, CouchbaseRestError):
        details: dict[str, Any] = {"messages": exc.messages}
        if exc.status_code is not None:
            details["statusCode"] = exc.status_code
        hint = None
        if isinstance(exc, TransportError):
            hint = "Check --host/--port (or COUCHBASE_HOST/COUCHBASE_PORT) and that the server is up."
        return ErrorInfo(type=exc.__class__.__name__, message=str(exc), hint=hint, details=details)
    return ErrorInfo(type=exc.__class__.__name__, message=str(exc), details=None)


def build_result(
    *,
    ok: bool,
    command: str,
    started_at: float,
    data: Any | None,
    warnings: list[str],
    resolved: dict[str, Any] | None = None,
    error: ErrorInfo | None = None,
) -> CommandResult:
    duration_ms = int(max(0.0, (time.time() - started_at) * 1000))
    meta = CommandMeta(duration_ms=duration_ms, resolved=resolved)
    return CommandResult(
        ok=ok,
        command=command,
        data=data,
        warnings=warnings,
        meta=meta,
        error=error,
    )
