"""
Bucket handle.

Reference: https://docs.couchbase.com/server/current/rest-api/rest-bucket-create.html
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..models.bucket import BucketSettings, normalize_bucket_params
from ..models.types import DEFAULT_POOL, ConnectionCoordinates
from .base import Handle

if TYPE_CHECKING:
    from ..clients.http import AsyncHTTPClient

logger = logging.getLogger(__name__)


class Bucket(Handle):
    """A named bucket in a cluster."""

    def __init__(
        self,
        http: AsyncHTTPClient,
        coordinates: ConnectionCoordinates,
        *,
        name: str,
        pool: str = DEFAULT_POOL,
    ):
        super().__init__(http, coordinates, pool=pool)
        self.name = name

    def __repr__(self) -> str:
        return f"Bucket({self.name!r}, {self.resolved.base_url!r})"

    def params(self, options: BucketSettings | Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Form fields that `create()`/`validate()` would send for `options`."""
        return normalize_bucket_params(options, name=self.name)

    async def create(self, settings: BucketSettings | None = None, **options: Any) -> Bucket:
        """
        Create the bucket.

        Options are the `BucketSettings` fields (e.g. `ram_size=256`,
        `bucket_type="ephemeral"`); pass either a settings model or keywords.
        """
        params = self.params(settings if settings is not None else options)
        logger.debug("bucket create: name=%s type=%s", params.get("name"), params.get("bucketType"))
        await self.post(f"/pools/{self.pool}/buckets", form=params)
        return self

    async def validate(self, settings: BucketSettings | None = None, **options: Any) -> bool:
        """Ask the server to validate bucket settings without creating the bucket."""
        params = self.params(settings if settings is not None else options)
        logger.debug("bucket validate: name=%s", params.get("name"))
        await self.post(
            f"/pools/{self.pool}/buckets",
            form=params,
            params={"ignore_warnings": 0, "just_validate": 1},
        )
        return True

    async def details(self) -> dict[str, Any]:
        """Get the bucket's current configuration and stats summary."""
        return await self.get(f"/pools/{self.pool}/buckets/{self.name}")


# =============================================================================
# Bucket specs accepted by Cluster.add_bucket()
# =============================================================================


@dataclass(frozen=True, slots=True)
class BucketByHandle:
    """Create an existing `Bucket` handle with the given options."""

    bucket: Bucket
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BucketByName:
    """Create a new bucket by name with the given options."""

    name: str
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BucketByName:
        """Build from a flat mapping such as `{"name": "b1", "ram_size": 256}`."""
        if not data.get("name"):
            raise ValueError("bucket mapping requires a 'name'")
        options = {k: v for k, v in data.items() if k != "name"}
        return cls(name=str(data["name"]), options=options)


BucketSpec = BucketByHandle | BucketByName
