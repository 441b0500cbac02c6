"""
Base class shared by every resource handle.

A handle binds connection coordinates to the shared request layer. The
`get/post/put/delete` helpers resolve the target host/port/protocol (explicit
override, then the handle's own layers, then defaults), attach credentials and
delegate to `AsyncHTTPClient.send`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..clients.http import FORM_CONTENT_TYPE, JSON_CONTENT_TYPE
from ..clients.pipeline import RequestDescription
from ..exceptions import ClusterReferenceError
from ..models.types import (
    DEFAULT_POOL,
    ConnectionCoordinates,
    HTTPMethod,
    ResolvedCoordinates,
    resolve_coordinates,
)

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient
    from .cluster import Cluster


def compact(values: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop None values; None or an all-None mapping yields None."""
    if values is None:
        return None
    result = {k: v for k, v in values.items() if v is not None}
    return result or None


class Handle:
    """Connection coordinates plus request helpers."""

    def __init__(
        self,
        http: AsyncHTTPClient,
        coordinates: ConnectionCoordinates,
        *,
        pool: str = DEFAULT_POOL,
    ):
        self._http = http
        self._coordinates = coordinates
        self.pool = pool

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.resolved.base_url!r})"

    # =========================================================================
    # Coordinates
    # =========================================================================

    @property
    def coordinates(self) -> ConnectionCoordinates:
        return self._coordinates

    def _coordinate_layers(self) -> tuple[ConnectionCoordinates | None, ...]:
        """Coordinate layers, most specific first."""
        return (self._coordinates,)

    @property
    def resolved(self) -> ResolvedCoordinates:
        return resolve_coordinates(*self._coordinate_layers())

    @property
    def host(self) -> str:
        return self.resolved.host

    @property
    def port(self) -> int:
        return self.resolved.port

    @property
    def protocol(self) -> str:
        return self.resolved.protocol

    @property
    def username(self) -> str | None:
        return self.resolved.username

    @property
    def password(self) -> str | None:
        return self.resolved.password

    # =========================================================================
    # Requests
    # =========================================================================

    async def send(
        self,
        method: HTTPMethod,
        endpoint: str,
        *,
        form: Mapping[str, Any] | None = None,
        json: Any | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        host: str | None = None,
        port: int | None = None,
        protocol: str | None = None,
    ) -> Any:
        override = ConnectionCoordinates(host=host, port=port, protocol=protocol)
        target = resolve_coordinates(override, *self._coordinate_layers())
        req = RequestDescription(
            method=method,
            endpoint=endpoint,
            form=compact(form),
            json=json,
            params=compact(params),
            headers=dict(headers or {}),
            protocol=target.protocol,
            host=target.host,
            port=target.port,
            auth=target.auth,
        )
        return await self._http.send(req)

    async def get(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        host: str | None = None,
        port: int | None = None,
        protocol: str | None = None,
    ) -> Any:
        return await self.send(
            "GET", path, params=params, host=host, port=port, protocol=protocol
        )

    async def post(
        self,
        path: str,
        *,
        form: Mapping[str, Any] | None = None,
        json: Any | None = None,
        params: Mapping[str, Any] | None = None,
        host: str | None = None,
        port: int | None = None,
        protocol: str | None = None,
    ) -> Any:
        return await self.send(
            "POST",
            path,
            form=form,
            json=json,
            params=params,
            headers=_body_headers(json),
            host=host,
            port=port,
            protocol=protocol,
        )

    async def put(
        self,
        path: str,
        *,
        form: Mapping[str, Any] | None = None,
        json: Any | None = None,
        params: Mapping[str, Any] | None = None,
        host: str | None = None,
        port: int | None = None,
        protocol: str | None = None,
    ) -> Any:
        return await self.send(
            "PUT",
            path,
            form=form,
            json=json,
            params=params,
            headers=_body_headers(json),
            host=host,
            port=port,
            protocol=protocol,
        )

    async def delete(
        self,
        path: str,
        *,
        form: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        host: str | None = None,
        port: int | None = None,
        protocol: str | None = None,
    ) -> Any:
        return await self.send(
            "DELETE",
            path,
            form=form,
            params=params,
            headers=_body_headers(None),
            host=host,
            port=port,
            protocol=protocol,
        )


def _body_headers(json: Any | None) -> dict[str, str]:
    return {"Content-Type": JSON_CONTENT_TYPE if json is not None else FORM_CONTENT_TYPE}


class ClusterChildHandle(Handle):
    """
    A handle that may point back at the cluster it was derived from.

    The back-reference is write-once: assigning it a second time raises
    `ClusterReferenceError` instead of silently replacing it.
    """

    def __init__(
        self,
        http: AsyncHTTPClient,
        coordinates: ConnectionCoordinates,
        *,
        pool: str = DEFAULT_POOL,
        cluster: Cluster | None = None,
    ):
        super().__init__(http, coordinates, pool=pool)
        self._cluster: Cluster | None = cluster

    @property
    def cluster(self) -> Cluster | None:
        return self._cluster

    @cluster.setter
    def cluster(self, value: Cluster) -> None:
        if self._cluster is not None:
            raise ClusterReferenceError(
                f"{type(self).__name__} is already bound to {self._cluster!r}"
            )
        self._cluster = value

    def _require_cluster(self, operation: str) -> Cluster:
        if self._cluster is None:
            raise ClusterReferenceError(
                f"{type(self).__name__}.{operation}() requires the handle to be bound to a cluster"
            )
        return self._cluster
