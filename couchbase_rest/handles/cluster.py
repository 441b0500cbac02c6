"""
Cluster handle.

Cluster-wide provisioning, topology and settings. Child handles (nodes,
buckets, server groups) are derived from here and share its HTTP client.

Reference: https://docs.couchbase.com/server/current/rest-api/rest-cluster-intro.html
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from ..models.settings import (
    DEFAULT_ALERTS,
    DEFAULT_AUTO_FAILOVER_TIMEOUT,
    DEFAULT_EMAIL_PORT,
    DEFAULT_EMAIL_RECIPIENTS,
    DEFAULT_EMAIL_SENDER,
    INTERNAL_SETTINGS_FIELDS,
    REPLICATION_SETTINGS_FIELDS,
    settings_form,
)
from ..models.types import (
    DEFAULT_NODE_PREFIX,
    DEFAULT_POOL,
    ConnectionCoordinates,
    CoordinateKey,
    otp_node,
    resolve_coordinates,
)
from .base import Handle
from .bucket import Bucket, BucketByHandle, BucketByName, BucketSpec
from .node import Node
from .server_group import ServerGroup

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient

logger = logging.getLogger(__name__)


def as_bucket_spec(value: BucketSpec | Bucket | Mapping[str, Any] | str) -> BucketSpec:
    """Accept a spec, a `Bucket` handle, a `{"name": ...}` mapping or a bare name."""
    if isinstance(value, (BucketByHandle, BucketByName)):
        return value
    if isinstance(value, Bucket):
        return BucketByHandle(value)
    if isinstance(value, str):
        return BucketByName(value)
    return BucketByName.from_mapping(value)


class Cluster(Handle):
    """
    A cluster reached through one of its nodes.

    Nodes derived with `node()` are memoized per cluster handle, keyed by their
    effective coordinates, and are bound back to this cluster.
    """

    def __init__(
        self,
        http: AsyncHTTPClient,
        coordinates: ConnectionCoordinates,
        *,
        pool: str = DEFAULT_POOL,
    ):
        super().__init__(http, coordinates, pool=pool)
        self._nodes: dict[tuple[CoordinateKey, str, str], Node] = {}

    # =========================================================================
    # Bootstrapping
    # =========================================================================

    async def initialize(
        self,
        *,
        buckets: Iterable[BucketSpec | Bucket | Mapping[str, Any] | str] | None = None,
        cluster_name: str | None = None,
        data_path: str | None = None,
        fts_memory: int | None = None,
        hostname: str | None = None,
        index_path: str | None = None,
        index_memory: int | None = None,
        kv_memory: int | None = None,
        nodes: Sequence[Node] | None = None,
        password: str | None = None,
        rebalance: bool = True,
        services: str | None = None,
        username: str | None = None,
    ) -> Cluster:
        """
        Bootstrap a fresh cluster.

        Steps run in a fixed order and each is skipped when its inputs are
        absent: memory quotas, node configuration, admin credentials, cluster
        name, buckets, then additional nodes (optionally rebalanced).
        Credentials default to the handle's own.

        Returns:
            This cluster handle
        """
        username = username or self.username
        password = password or self.password
        logger.debug(
            "initialize: cluster_name=%s kv=%s index=%s fts=%s services=%s hostname=%s",
            cluster_name,
            kv_memory,
            index_memory,
            fts_memory,
            services,
            hostname,
        )
        if kv_memory or index_memory or fts_memory:
            await self.memory(kv_memory=kv_memory, index_memory=index_memory, fts_memory=fts_memory)
        if data_path or hostname or index_path or services:
            await self.node().configure(
                data_path=data_path,
                hostname=hostname,
                index_path=index_path,
                services=services,
            )
        if username and password:
            await self.credentials(username, password)
        if cluster_name:
            await self.cluster_name(cluster_name)
        if buckets:
            await self.add_buckets(buckets)
        if nodes:
            await self.add_nodes(nodes, rebalance=rebalance)
        return self

    async def credentials(self, username: str | None = None, password: str | None = None) -> Cluster:
        """Set the administrator credentials; later requests use the new ones."""
        username = username or self.username
        password = password or self.password
        logger.debug("credentials: username=%s", username)
        await self.post(
            "/settings/web",
            form={"username": username, "password": password, "port": "SAME"},
        )
        self._coordinates = self._coordinates.with_credentials(username, password)
        # memoized nodes follow the new credentials
        self._nodes = {
            self._node_key(node.node_coordinates, node.node_prefix): node
            for node in self._nodes.values()
        }
        return self

    async def memory(
        self,
        *,
        kv_memory: int | None = 100,
        index_memory: int | None = 256,
        fts_memory: int | None = 256,
    ) -> Cluster:
        """Set the per-service memory quotas (MB); None leaves a quota unchanged."""
        logger.debug("memory: kv=%s index=%s fts=%s", kv_memory, index_memory, fts_memory)
        await self.post(
            f"/pools/{self.pool}",
            form={
                "memoryQuota": kv_memory,
                "indexMemoryQuota": index_memory,
                "ftsMemoryQuota": fts_memory,
            },
        )
        return self

    async def kv_memory_quota(self, quota: int = 100) -> Cluster:
        await self.post(f"/pools/{self.pool}", form={"memoryQuota": quota})
        return self

    async def index_memory_quota(self, quota: int = 256) -> Cluster:
        await self.post(f"/pools/{self.pool}", form={"indexMemoryQuota": quota})
        return self

    async def fts_memory_quota(self, quota: int = 256) -> Cluster:
        await self.post(f"/pools/{self.pool}", form={"ftsMemoryQuota": quota})
        return self

    async def cluster_name(self, name: str) -> Cluster:
        logger.debug("cluster_name: %s", name)
        await self.post(f"/pools/{self.pool}", form={"clusterName": name})
        return self

    async def info(self) -> dict[str, Any]:
        """Get version and pool information (`GET /pools`)."""
        return await self.get("/pools")

    async def details(self) -> dict[str, Any]:
        """Get the pool details, including every node and its `otpNode`."""
        return await self.get(f"/pools/{self.pool}")

    # =========================================================================
    # Nodes
    # =========================================================================

    def node(
        self,
        node_host: str | None = None,
        *,
        node_port: int | None = None,
        node_protocol: str | None = None,
        node_prefix: str = DEFAULT_NODE_PREFIX,
    ) -> Node:
        """
        Get a handle for a node, bound to this cluster.

        Unset coordinates and the credentials follow the cluster. Repeated
        calls with the same effective coordinates and prefix return the same
        handle.
        """
        node_coordinates = ConnectionCoordinates(host=node_host, port=node_port, protocol=node_protocol)
        key = self._node_key(node_coordinates, node_prefix)
        node = self._nodes.get(key)
        if node is None:
            logger.debug("node: %s", key[0][:3])
            node = Node(
                self._http,
                self._coordinates,
                node=node_coordinates,
                pool=self.pool,
                node_prefix=node_prefix,
                cluster=self,
            )
            self._nodes[key] = node
        return node

    def _node_key(
        self, coordinates: ConnectionCoordinates, node_prefix: str
    ) -> tuple[CoordinateKey, str, str]:
        return (
            resolve_coordinates(coordinates, self._coordinates).cache_key(),
            self.pool,
            node_prefix,
        )

    async def add_nodes(self, nodes: Sequence[Node], *, rebalance: bool = True) -> list[Node]:
        """
        Add nodes to the cluster concurrently, then optionally rebalance.

        Nodes at the cluster's own host/port/protocol are skipped. The first
        failing add propagates; the others are not cancelled.
        """
        location = self.resolved
        pending = [node for node in nodes if not node.resolved.same_location(location)]
        logger.debug("add_nodes: %s", [node.host for node in pending])
        await asyncio.gather(*(self.add_node(node.host, services=node.services) for node in pending))
        if rebalance:
            await self.rebalance()
        return list(nodes)

    async def add_node(self, hostname: str, *, services: str | None = None) -> Any:
        """Add a node (by hostname or IP) to the cluster."""
        logger.debug("add_node: hostname=%s services=%s", hostname, services)
        return await self.post(
            "/controller/addNode",
            form={
                "hostname": hostname,
                "services": services,
                "user": self.username,
                "password": self.password,
            },
        )

    async def eject_node(self, hostname: str, node_prefix: str = DEFAULT_NODE_PREFIX) -> Cluster:
        """Eject an inactive (e.g. failed-over) node from the cluster."""
        logger.debug("eject_node: %s", hostname)
        await self.post("/controller/ejectNode", form={"otpNode": otp_node(hostname, node_prefix)})
        return self

    async def rebalance(
        self,
        known_nodes: Sequence[str] | None = None,
        ejected_nodes: Sequence[str] | None = None,
    ) -> Cluster:
        """
        Start a rebalance.

        Args:
            known_nodes: `otpNode` ids of every node; fetched from `details()`
                when empty (minus `ejected_nodes`)
            ejected_nodes: `otpNode` ids to remove during the rebalance
        """
        ejected = list(ejected_nodes or [])
        known = list(known_nodes or [])
        if not known:
            data = await self.details()
            known = [
                node["otpNode"]
                for node in data.get("nodes", [])
                if node.get("otpNode") and node["otpNode"] not in ejected
            ]
        logger.debug("rebalance: known=%s ejected=%s", known, ejected)
        form: dict[str, Any] = {"knownNodes": ",".join(known)}
        if ejected:
            form["ejectedNodes"] = ",".join(ejected)
        await self.post("/controller/rebalance", form=form)
        return self

    # =========================================================================
    # Buckets
    # =========================================================================

    def bucket(self, name: str) -> Bucket:
        return Bucket(self._http, self._coordinates, name=name, pool=self.pool)

    async def buckets(self) -> list[dict[str, Any]]:
        """List every bucket with its configuration."""
        return await self.get(f"/pools/{self.pool}/buckets")

    async def add_bucket(self, spec: BucketSpec | Bucket | Mapping[str, Any] | str) -> Bucket:
        """Create a bucket from a handle or from a name plus options."""
        spec = as_bucket_spec(spec)
        if isinstance(spec, BucketByHandle):
            bucket = spec.bucket
        else:
            bucket = self.bucket(spec.name)
        logger.debug("add_bucket: %s", bucket.name)
        return await bucket.create(**dict(spec.options))

    async def add_buckets(
        self, specs: Iterable[BucketSpec | Bucket | Mapping[str, Any] | str]
    ) -> list[Bucket]:
        """Create several buckets concurrently; the first failure propagates."""
        return list(await asyncio.gather(*(self.add_bucket(spec) for spec in specs)))

    # =========================================================================
    # Server groups
    # =========================================================================

    async def server_groups(self) -> dict[str, Any]:
        return await self.get(f"/pools/{self.pool}/serverGroups")

    def server_group(self, name: str, *, node_prefix: str = DEFAULT_NODE_PREFIX) -> ServerGroup:
        return ServerGroup(
            self._http,
            self._coordinates,
            name=name,
            pool=self.pool,
            node_prefix=node_prefix,
            cluster=self,
        )

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_internal_settings(self) -> dict[str, Any]:
        return await self.get("/internalSettings")

    async def set_internal_settings(self, **settings: Any) -> Any:
        """
        Update internal settings, e.g. `max_bucket_count=20`.

        Raises:
            TypeError: On an unrecognized setting
        """
        form = settings_form("internal", INTERNAL_SETTINGS_FIELDS, settings)
        logger.debug("set_internal_settings: %s", sorted(form))
        return await self.post("/internalSettings", form=form)

    async def get_replication_settings(self) -> dict[str, Any]:
        return await self.get("/settings/replications")

    async def set_replication_settings(self, **settings: Any) -> Any:
        """
        Update the global XDCR replication settings, e.g. `worker_batch_size=500`.

        Raises:
            TypeError: On an unrecognized setting
        """
        form = settings_form("replication", REPLICATION_SETTINGS_FIELDS, settings)
        logger.debug("set_replication_settings: %s", sorted(form))
        return await self.post("/settings/replications", form=form)

    async def get_auto_failover(self) -> dict[str, Any]:
        return await self.get("/settings/autoFailover")

    async def set_auto_failover(
        self, enabled: bool = False, timeout: int = DEFAULT_AUTO_FAILOVER_TIMEOUT
    ) -> Any:
        logger.debug("set_auto_failover: enabled=%s timeout=%s", enabled, timeout)
        return await self.post(
            "/settings/autoFailover", form={"enabled": enabled, "timeout": timeout}
        )

    async def reset_auto_failover_count(self) -> Any:
        return await self.post("/settings/autoFailover/resetCount")

    async def get_email_settings(self) -> dict[str, Any]:
        return await self.get("/settings/alerts")

    async def set_email_settings(
        self,
        *,
        alerts: str | Sequence[str] = DEFAULT_ALERTS,
        email_encrypt: bool = False,
        email_host: str = "",
        email_port: int = DEFAULT_EMAIL_PORT,
        email_pass: str = "",
        email_user: str = "",
        enabled: bool = False,
        recipients: str = DEFAULT_EMAIL_RECIPIENTS,
        sender: str = DEFAULT_EMAIL_SENDER,
    ) -> Any:
        """Configure email alerts (`alerts` may be a list or a comma-delimited string)."""
        if not isinstance(alerts, str):
            alerts = ",".join(alerts)
        logger.debug(
            "set_email_settings: enabled=%s host=%s port=%s recipients=%s",
            enabled,
            email_host,
            email_port,
            recipients,
        )
        return await self.post(
            "/settings/alerts",
            form={
                "alerts": alerts,
                "emailEncrypt": email_encrypt,
                "emailHost": email_host,
                "emailPort": email_port,
                "emailPass": email_pass,
                "emailUser": email_user,
                "enabled": enabled,
                "recipients": recipients,
                "sender": sender,
            },
        )
