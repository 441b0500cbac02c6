"""
Core types, defaults, and connection coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Literal, TypeAlias

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8091
DEFAULT_PROTOCOL = "http"
DEFAULT_POOL = "default"
DEFAULT_NODE_PREFIX = "ns_1"
DEFAULT_USERNAME = "Administrator"
DEFAULT_PASSWORD = "password"
DEFAULT_DATA_PATH = "/opt/couchbase/var/lib/couchbase/data"

HTTPMethod: TypeAlias = Literal["GET", "POST", "PUT", "DELETE"]
HTTP_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT", "DELETE"})

RecoveryType: TypeAlias = Literal["full", "delta"]

CoordinateKey: TypeAlias = tuple[str, int, str, str | None, str | None]


def otp_node(hostname: str, node_prefix: str = DEFAULT_NODE_PREFIX) -> str:
    """Build the server's internal node identifier (`ns_1@10.0.0.5`)."""
    return f"{node_prefix}@{hostname}"


# =============================================================================
# Connection coordinates
# =============================================================================


@dataclass(frozen=True, slots=True)
class ConnectionCoordinates:
    """
    Where and as whom a handle talks to the cluster.

    Every field is optional; unset fields are filled in from less specific
    layers by `resolve_coordinates`.
    """

    host: str | None = None
    port: int | None = None
    protocol: str | None = None
    username: str | None = None
    password: str | None = None

    def with_credentials(self, username: str | None, password: str | None) -> ConnectionCoordinates:
        return ConnectionCoordinates(
            host=self.host,
            port=self.port,
            protocol=self.protocol,
            username=username,
            password=password,
        )


@dataclass(frozen=True, slots=True)
class ResolvedCoordinates:
    host: str
    port: int
    protocol: str
    username: str | None = None
    password: str | None = None

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"

    @property
    def auth(self) -> tuple[str, str] | None:
        """Basic auth pair, only when a username and a non-empty password exist."""
        if self.username and self.password:
            return (self.username, self.password)
        return None

    def same_location(self, other: ResolvedCoordinates) -> bool:
        return (self.protocol, self.host, self.port) == (other.protocol, other.host, other.port)

    def cache_key(self) -> CoordinateKey:
        return (self.host, self.port, self.protocol, self.username, self.password)


def resolve_coordinates(*layers: ConnectionCoordinates | None) -> ResolvedCoordinates:
    """
    Merge coordinate layers, most specific first.

    For each field the first non-None value wins; host, port and protocol fall
    back to `localhost`, `8091` and `http`.
    """
    merged: dict[str, object] = {}
    for f in fields(ConnectionCoordinates):
        for layer in layers:
            if layer is None:
                continue
            value = getattr(layer, f.name)
            if value is not None:
                merged[f.name] = value
                break
    return ResolvedCoordinates(
        host=str(merged.get("host", DEFAULT_HOST)),
        port=int(merged.get("port", DEFAULT_PORT)),  # type: ignore[call-overload]
        protocol=str(merged.get("protocol", DEFAULT_PROTOCOL)),
        username=merged.get("username"),  # type: ignore[arg-type]
        password=merged.get("password"),  # type: ignore[arg-type]
    )
