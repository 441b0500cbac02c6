from __future__ import annotations

from .bucket import Bucket, BucketByHandle, BucketByName, BucketSpec
from .cluster import Cluster
from .node import Node
from .server_group import ServerGroup

__all__ = [
    "Bucket",
    "BucketByHandle",
    "BucketByName",
    "BucketSpec",
    "Cluster",
    "Node",
    "ServerGroup",
]
