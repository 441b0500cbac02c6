"""
Main Couchbase REST API client.

`RestApi` is the root handle: it holds the base admin credentials and the
shared HTTP client, and derives cluster and node handles from them.
"""

from __future__ import annotations

import logging
from typing import Any

from .clients.http import AsyncHTTPClient, ClientConfig
from .handles.base import Handle
from .handles.cluster import Cluster
from .handles.node import Node, default_node_coordinates
from .models.types import (
    DEFAULT_HOST,
    DEFAULT_PASSWORD,
    DEFAULT_POOL,
    DEFAULT_PORT,
    DEFAULT_PROTOCOL,
    DEFAULT_USERNAME,
    ConnectionCoordinates,
    CoordinateKey,
    resolve_coordinates,
)

logger = logging.getLogger(__name__)


class RestApi(Handle):
    """
    Asynchronous client for the Couchbase Server admin REST API.

    Example:
        ```python
        from couchbase_rest import RestApi

        async with RestApi("Administrator", "password") as api:
            cluster = api.cluster("10.0.0.1")
            await cluster.initialize(
                kv_memory=512,
                services="kv,index,n1ql",
                cluster_name="dev",
                buckets=["travel-sample"],
            )
            await cluster.rebalance()
        ```

    Cluster handles are memoized per `RestApi` instance: deriving the same
    coordinates twice returns the same `Cluster` object until `clear_cache()`
    or the client is discarded.
    """

    def __init__(
        self,
        username: str | None = DEFAULT_USERNAME,
        password: str | None = DEFAULT_PASSWORD,
        *,
        config: ClientConfig | None = None,
        http: AsyncHTTPClient | None = None,
        pool: str = DEFAULT_POOL,
    ):
        """
        Args:
            username: Admin username used by every derived handle by default
            password: Admin password used by every derived handle by default
            config: Transport settings (ignored when `http` is given)
            http: An existing request layer to share
            pool: Pool name used in `/pools/{pool}` paths
        """
        self._owns_http = http is None
        super().__init__(
            http or AsyncHTTPClient(config),
            ConnectionCoordinates(username=username, password=password),
            pool=pool,
        )
        self._clusters: dict[tuple[CoordinateKey, str], Cluster] = {}

    async def __aenter__(self) -> RestApi:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client (only when this root created it)."""
        if self._owns_http:
            await self._http.close()

    def clear_cache(self) -> None:
        """
        Forget memoized cluster handles.

        Not needed after `Cluster.credentials()`: the handle is then found
        under its new credentials.
        """
        self._clusters.clear()

    def cluster(
        self,
        cluster_host: str | ConnectionCoordinates = DEFAULT_HOST,
        *,
        cluster_port: int = DEFAULT_PORT,
        cluster_protocol: str = DEFAULT_PROTOCOL,
        username: str | None = None,
        password: str | None = None,
        pool: str | None = None,
    ) -> Cluster:
        """
        Get a handle for the cluster reachable at the given node.

        Credentials default to the root's. Accepts either keyword coordinates
        or a `ConnectionCoordinates`.
        """
        if isinstance(cluster_host, ConnectionCoordinates):
            requested = cluster_host
        else:
            requested = ConnectionCoordinates(
                host=cluster_host,
                port=cluster_port,
                protocol=cluster_protocol,
                username=username,
                password=password,
            )
        resolved = resolve_coordinates(requested, self._coordinates)
        pool = pool or self.pool
        key = (resolved.cache_key(), pool)
        cluster = self._clusters.get(key)
        if cluster is None or _memo_key(cluster) != key:
            # a cluster whose credentials changed is filed under its new ones
            self._clusters = {_memo_key(c): c for c in self._clusters.values()}
            cluster = self._clusters.get(key)
        if cluster is None:
            logger.debug("cluster: %s (pool=%s)", resolved.base_url, pool)
            cluster = Cluster(
                self._http,
                ConnectionCoordinates(
                    host=resolved.host,
                    port=resolved.port,
                    protocol=resolved.protocol,
                    username=resolved.username,
                    password=resolved.password,
                ),
                pool=pool,
            )
            self._clusters[key] = cluster
        return cluster

    async def node(
        self,
        node_host: str = DEFAULT_HOST,
        *,
        node_port: int = DEFAULT_PORT,
        node_protocol: str = DEFAULT_PROTOCOL,
        data_path: str | None = None,
        index_path: str | None = None,
        hostname: str | None = None,
        services: str | None = None,
    ) -> Node:
        """
        Provision a standalone node (not yet part of a cluster).

        The node uses the root's credentials and is configured with whichever
        of services, hostname and paths are given before being returned.
        """
        node = Node(
            self._http,
            self._coordinates,
            node=default_node_coordinates(node_host, node_port, node_protocol),
            pool=self.pool,
        )
        logger.debug("node: %s", node.resolved.base_url)
        return await node.configure(
            data_path=data_path,
            hostname=hostname,
            index_path=index_path,
            services=services,
        )


def _memo_key(cluster: Cluster) -> tuple[CoordinateKey, str]:
    return (cluster.resolved.cache_key(), cluster.pool)
