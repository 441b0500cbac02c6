"""
Couchbase REST SDK.

Async client for the Couchbase Server admin REST API: cluster bootstrap,
node provisioning, buckets, rebalancing and server groups.
"""

from __future__ import annotations

from .client import RestApi
from .clients.http import AsyncHTTPClient, ClientConfig
from .exceptions import (
    ClusterReferenceError,
    CouchbaseRestError,
    NotFoundError,
    TransportError,
    UpstreamError,
)
from .handles import (
    Bucket,
    BucketByHandle,
    BucketByName,
    Cluster,
    Node,
    ServerGroup,
)
from .models import BucketSettings, ConnectionCoordinates

__version__ = "0.3.0"

__all__ = [
    "AsyncHTTPClient",
    "Bucket",
    "BucketByHandle",
    "BucketByName",
    "BucketSettings",
    "ClientConfig",
    "Cluster",
    "ClusterReferenceError",
    "ConnectionCoordinates",
    "CouchbaseRestError",
    "Node",
    "NotFoundError",
    "RestApi",
    "ServerGroup",
    "TransportError",
    "UpstreamError",
    "__version__",
]
