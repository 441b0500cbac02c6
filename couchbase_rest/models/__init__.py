"""
Couchbase REST SDK data models and type definitions.
"""

from __future__ import annotations

from .bucket import BucketSettings, normalize_bucket_params
from .types import (
    DEFAULT_HOST,
    DEFAULT_NODE_PREFIX,
    DEFAULT_POOL,
    DEFAULT_PORT,
    DEFAULT_PROTOCOL,
    ConnectionCoordinates,
    ResolvedCoordinates,
    otp_node,
    resolve_coordinates,
)

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_NODE_PREFIX",
    "DEFAULT_POOL",
    "DEFAULT_PORT",
    "DEFAULT_PROTOCOL",
    "BucketSettings",
    "ConnectionCoordinates",
    "ResolvedCoordinates",
    "normalize_bucket_params",
    "otp_node",
    "resolve_coordinates",
]
