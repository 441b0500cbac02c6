"""
Node handle.

Node-level provisioning (paths, hostname, services) and membership operations
(join, eject, failover, recovery).

Reference: https://docs.couchbase.com/server/current/rest-api/rest-node-provisioning.html
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from ..models.types import (
    DEFAULT_DATA_PATH,
    DEFAULT_HOST,
    DEFAULT_NODE_PREFIX,
    DEFAULT_PASSWORD,
    DEFAULT_POOL,
    DEFAULT_PORT,
    DEFAULT_PROTOCOL,
    DEFAULT_USERNAME,
    ConnectionCoordinates,
    RecoveryType,
    otp_node,
)
from .base import ClusterChildHandle

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient
    from .cluster import Cluster

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_services(services: str) -> str:
    """`"data, index"` -> `"kv,index"`."""
    return _WHITESPACE_RE.sub("", services.replace("data", "kv"))


class Node(ClusterChildHandle):
    """
    A single server node.

    Requests go to the node's own host/port/protocol; credentials and any unset
    coordinates come from the owning cluster (when bound) or from the
    coordinates the node was created with.
    """

    def __init__(
        self,
        http: AsyncHTTPClient,
        coordinates: ConnectionCoordinates,
        *,
        node: ConnectionCoordinates,
        pool: str = DEFAULT_POOL,
        node_prefix: str = DEFAULT_NODE_PREFIX,
        cluster: Cluster | None = None,
    ):
        super().__init__(http, coordinates, pool=pool, cluster=cluster)
        self._node = node
        self.node_prefix = node_prefix
        self.services: str | None = None

    def _coordinate_layers(self) -> tuple[ConnectionCoordinates | None, ...]:
        cluster_layer = self._cluster.coordinates if self._cluster is not None else None
        return (self._node, cluster_layer, self._coordinates)

    @property
    def node_coordinates(self) -> ConnectionCoordinates:
        return self._node

    @property
    def otp_node(self) -> str:
        return otp_node(self.host, self.node_prefix)

    # =========================================================================
    # Provisioning
    # =========================================================================

    async def configure(
        self,
        *,
        data_path: str | None = None,
        hostname: str | None = None,
        index_path: str | None = None,
        services: str | None = None,
    ) -> Node:
        """
        Apply services, hostname and disk paths, in that order.

        Each step is skipped when its input is absent.
        """
        logger.debug(
            "node configure: services=%s hostname=%s data_path=%s index_path=%s",
            services,
            hostname,
            data_path,
            index_path,
        )
        if services:
            await self.use_services(services)
        if hostname:
            await self.set_hostname(hostname)
        if data_path or index_path:
            await self.paths(
                data_path=data_path or DEFAULT_DATA_PATH,
                index_path=index_path or DEFAULT_DATA_PATH,
            )
        return self

    async def paths(
        self,
        *,
        data_path: str = DEFAULT_DATA_PATH,
        index_path: str = DEFAULT_DATA_PATH,
    ) -> Node:
        """Set the data and index paths."""
        await self.post(
            "/nodes/self/controller/settings",
            form={"path": data_path, "index_path": index_path},
        )
        return self

    async def set_hostname(self, hostname: str | None = None) -> Node:
        """Rename the node; must happen before it joins a cluster."""
        await self.post("/node/controller/rename", form={"hostname": hostname or self.host})
        return self

    async def use_services(self, services: str = "kv") -> Node:
        """Enable services (comma-delimited: kv, index, n1ql, fts)."""
        services = normalize_services(services)
        logger.debug("node use_services: %s", services)
        await self.post("/node/controller/setupServices", form={"services": services})
        self.services = services
        return self

    # =========================================================================
    # Membership
    # =========================================================================

    async def join(
        self,
        *,
        cluster_host: str | None = None,
        cluster_port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        rebalance: bool = False,
    ) -> Node:
        """
        Join this node to an existing cluster.

        Target coordinates and credentials default to the bound cluster's; a
        rebalance afterwards requires the node to be bound to that cluster.
        """
        cluster = self._require_cluster("join") if rebalance else self._cluster
        target = cluster.resolved if cluster is not None else None
        form = {
            "clusterMemberHostIp": cluster_host or (target.host if target else DEFAULT_HOST),
            "clusterMemberPort": cluster_port or (target.port if target else DEFAULT_PORT),
            "user": username or (target.username if target else None) or DEFAULT_USERNAME,
            "password": password or (target.password if target else None) or DEFAULT_PASSWORD,
        }
        logger.debug(
            "node join: %s -> %s:%s", self.host, form["clusterMemberHostIp"], form["clusterMemberPort"]
        )
        await self.post("/node/controller/doJoinCluster", form=form)
        if rebalance and cluster is not None:
            await cluster.rebalance()
        return self

    async def eject(
        self,
        *,
        node_prefix: str | None = None,
        hostname: str | None = None,
    ) -> Node:
        """
        Eject this node from its cluster.

        Only nodes that are not active (e.g. failed over) can be ejected. The
        request goes to the owning cluster, not to the node itself.
        """
        cluster = self._require_cluster("eject").resolved
        await self.post(
            "/controller/ejectNode",
            form={"otpNode": otp_node(hostname or self.host, node_prefix or self.node_prefix)},
            host=cluster.host,
            port=cluster.port,
            protocol=cluster.protocol,
        )
        return self

    async def failover(
        self,
        *,
        graceful: bool = True,
        node_prefix: str | None = None,
        hostname: str | None = None,
    ) -> Node:
        """Start a graceful (default) or hard failover of this node."""
        endpoint = "/controller/startGracefulFailover" if graceful else "/controller/failOver"
        await self.post(
            endpoint,
            form={"otpNode": otp_node(hostname or self.host, node_prefix or self.node_prefix)},
        )
        return self

    async def recover(
        self,
        *,
        recovery_type: RecoveryType = "full",
        node_prefix: str | None = None,
        hostname: str | None = None,
        rebalance: bool = False,
    ) -> Node:
        """Set the recovery type of a failed-over node, optionally rebalancing afterwards."""
        cluster = self._require_cluster("recover") if rebalance else None
        await self.post(
            "/controller/setRecoveryType",
            form={
                "otpNode": otp_node(hostname or self.host, node_prefix or self.node_prefix),
                "recoveryType": recovery_type,
            },
        )
        if cluster is not None:
            await cluster.rebalance()
        return self


def default_node_coordinates(
    host: str | None = None,
    port: int | None = None,
    protocol: str | None = None,
) -> ConnectionCoordinates:
    return ConnectionCoordinates(
        host=host or DEFAULT_HOST,
        port=port or DEFAULT_PORT,
        protocol=protocol or DEFAULT_PROTOCOL,
    )
