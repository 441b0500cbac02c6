"""
Server group handle.

Server groups place replicas across failure domains. The membership endpoint
accepts only the complete group topology tagged with the revision it was read
at, so every membership change is a read-modify-write of all groups.

Concurrent membership changes against the same cluster can race on the
revision token; the server rejects the stale write and nothing here retries.

Reference: https://docs.couchbase.com/server/current/rest-api/rest-rza.html
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlsplit

from ..exceptions import NotFoundError
from ..models.types import DEFAULT_NODE_PREFIX, DEFAULT_POOL, ConnectionCoordinates, otp_node
from .base import ClusterChildHandle
from .node import Node

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient
    from .cluster import Cluster

logger = logging.getLogger(__name__)

_PORT_SUFFIX_RE = re.compile(r":[0-9]+$")
_HOST_KEYS = ("hostname", "node_host", "ip", "ip_address")

MemberSpec = str | Node | Mapping[str, Any]


def strip_port(hostname: str) -> str:
    return _PORT_SUFFIX_RE.sub("", hostname)


def revision_from_uri(uri: str) -> str:
    """`/pools/default/serverGroups?rev=1234` -> `1234`."""
    return parse_qs(urlsplit(uri).query).get("rev", [""])[0]


def uuid_from_uri(uri: str) -> str:
    """`/pools/default/serverGroups/0` -> `0`."""
    return uri.rstrip("/").rsplit("/", 1)[-1]


def _member_host(member: MemberSpec) -> str:
    if isinstance(member, str):
        return member.strip()
    if isinstance(member, Node):
        return member.host
    for key in _HOST_KEYS:
        value = member.get(key)
        if value:
            return str(value)
    return ""


def member_hosts(nodes: str | Sequence[MemberSpec]) -> list[str]:
    """Reduce a comma-delimited string or a list of hosts/nodes to host strings."""
    members: Sequence[MemberSpec] = nodes.split(",") if isinstance(nodes, str) else nodes
    return [host for host in (_member_host(m) for m in members) if host]


class ServerGroup(ClusterChildHandle):
    """A named server group."""

    def __init__(
        self,
        http: AsyncHTTPClient,
        coordinates: ConnectionCoordinates,
        *,
        name: str,
        pool: str = DEFAULT_POOL,
        node_prefix: str = DEFAULT_NODE_PREFIX,
        cluster: Cluster | None = None,
    ):
        super().__init__(http, coordinates, pool=pool, cluster=cluster)
        self.name = name
        self.node_prefix = node_prefix

    def __repr__(self) -> str:
        return f"ServerGroup({self.name!r}, {self.resolved.base_url!r})"

    @property
    def _groups_path(self) -> str:
        return f"/pools/{self.pool}/serverGroups"

    async def groups(self) -> dict[str, Any]:
        """Get every server group plus the revision URI."""
        return await self.get(self._groups_path)

    async def details(self, name: str | None = None) -> dict[str, Any]:
        """
        Look up a server group by name.

        Returns the group record with two extra keys: `uuid` (from the group's
        URI) and `rev` (the revision token of the listing).

        Raises:
            NotFoundError: If no group has that name
        """
        name = name or self.name
        data = await self.groups()
        rev = revision_from_uri(data.get("uri", ""))
        for group in data.get("groups", []):
            if group.get("name") == name:
                record = dict(group)
                record["uuid"] = uuid_from_uri(group.get("uri", ""))
                record["rev"] = rev
                return record
        raise NotFoundError([f"Server group {name!r} not found"])

    async def _uuid(self, name: str | None, uuid: str | None) -> str:
        if uuid:
            return uuid
        record = await self.details(name)
        return str(record["uuid"])

    async def create(self, name: str | None = None) -> dict[str, Any]:
        """Create a server group and return its freshly fetched record."""
        name = name or self.name
        logger.debug("server group create: %s", name)
        await self.post(self._groups_path, form={"name": name})
        return await self.details(name)

    async def rename(
        self,
        new_name: str,
        old_name: str | None = None,
        uuid: str | None = None,
    ) -> ServerGroup:
        """Rename a server group identified by name (default: this group) or uuid."""
        uuid = await self._uuid(old_name, uuid)
        logger.debug("server group rename: %s -> %s", uuid, new_name)
        await self.put(f"{self._groups_path}/{uuid}", form={"name": new_name})
        return self

    async def remove(self, name: str | None = None, uuid: str | None = None) -> ServerGroup:
        """Delete an (empty) server group identified by name or uuid."""
        uuid = await self._uuid(name, uuid)
        logger.debug("server group remove: %s", uuid)
        await self.delete(f"{self._groups_path}/{uuid}")
        return self

    async def add_members(
        self,
        nodes: str | Sequence[MemberSpec],
        name: str | None = None,
    ) -> ServerGroup:
        """
        Move nodes that are already in the cluster into a server group.

        Reads the full topology, removes the hosts from whichever groups hold
        them, appends them to the target group and writes the whole topology
        back with the revision it was read at.

        Args:
            nodes: Comma-delimited hosts, or a list of hosts / `Node` handles /
                mappings with a `hostname`, `node_host`, `ip` or `ip_address`
            name: Target group (default: this group)

        Raises:
            NotFoundError: If the target group does not exist (nothing is written)
        """
        name = name or self.name
        # members are matched and named by bare host, once each
        hosts = list(dict.fromkeys(strip_port(host) for host in member_hosts(nodes)))
        logger.debug("server group add_members: %s -> %s", hosts, name)
        requested = set(hosts)

        data = await self.groups()
        rev = revision_from_uri(data.get("uri", ""))
        groups: list[dict[str, Any]] = []
        for group in data.get("groups", []):
            kept = [
                {"otpNode": member["otpNode"]}
                for member in group.get("nodes", [])
                if strip_port(str(member.get("hostname", ""))) not in requested
            ]
            groups.append({**group, "nodes": kept})

        target = next((g for g in groups if g.get("name") == name), None)
        if target is None:
            raise NotFoundError([f"Server group {name!r} not found"])
        target["nodes"] = target["nodes"] + [
            {"otpNode": otp_node(host, self.node_prefix)} for host in hosts
        ]

        await self.put(self._groups_path, json={"groups": groups}, params={"rev": rev})
        return self

    async def add_nodes(
        self,
        nodes: Sequence[Node],
        *,
        name: str | None = None,
        uuid: str | None = None,
        rebalance: bool = True,
    ) -> list[Node]:
        """
        Add new nodes to the cluster directly into this server group.

        Nodes at the same location as this handle are skipped. Adds run
        concurrently; the first failure propagates. Rebalances afterwards when
        requested and the group is bound to a cluster.
        """
        location = self.resolved
        pending = [node for node in nodes if not node.resolved.same_location(location)]
        if pending:
            uuid = await self._uuid(name, uuid)
            await asyncio.gather(
                *(self.add_node(node.host, services=node.services, uuid=uuid) for node in pending)
            )
        if rebalance and self._cluster is not None:
            await self._cluster.rebalance()
        return list(nodes)

    async def add_node(
        self,
        hostname: str,
        *,
        services: str | None = None,
        name: str | None = None,
        uuid: str | None = None,
    ) -> Any:
        """Add a new node to the cluster in this server group."""
        uuid = await self._uuid(name, uuid)
        logger.debug("server group add_node: %s -> %s", hostname, uuid)
        return await self.post(
            f"{self._groups_path}/{uuid}/addNode",
            form={
                "hostname": hostname,
                "services": services,
                "user": self.username,
                "password": self.password,
            },
        )
