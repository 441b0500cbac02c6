"""
Bucket settings and their mapping onto REST form fields.

The bucket endpoints use field names, casing and units that differ from the
option names exposed by the SDK (MB vs bytes, bracketed keys such as
`allowedTimePeriod[fromHour]`, thread counts instead of a priority name).
`BucketSettings` documents the semantic options and their defaults;
`normalize_bucket_params` turns them into the flat form the server expects.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

_TIME_RE = re.compile(r"^\d{1,2}:\d{2}$")

# Semantic option name -> REST form field, for options that are a plain rename.
BUCKET_FIELD_MAP: dict[str, str] = {
    "name": "name",
    "ram_size": "ramQuotaMB",
    "document_replicas": "replicaNumber",
    "threads_number": "threadsNumber",
    "eviction_policy": "evictionPolicy",
    "conflict_resolution_type": "conflictResolutionType",
    "abort_outside_allowed_time": "allowedTimePeriod[abortOutside]",
    "auth_type": "authType",
    "database_fragmentation_percentage_threshold": "databaseFragmentationThreshold[percentage]",
    "index_compaction_mode": "indexCompactionMode",
    "index_replicas": "replicaIndex",
    "parallel_compaction": "parallelDBAndViewCompaction",
    "sasl_password": "saslPassword",
    "view_fragmentation_percentage_threshold": "viewFragmentationThreshold[percentage]",
}

COMPACTION_THRESHOLD_OPTIONS: tuple[str, ...] = (
    "database_fragmentation_percentage_threshold",
    "database_fragmentation_size_threshold",
    "view_fragmentation_percentage_threshold",
    "view_fragmentation_size_threshold",
)

# Fields the ephemeral bucket type rejects.
EPHEMERAL_EXCLUDED_FIELDS: frozenset[str] = frozenset({"autoCompactionDefined", "replicaIndex"})

HIGH_PRIORITY_THREADS = 8
DEFAULT_PRIORITY_THREADS = 3


def _megabytes_to_bytes(value: float) -> int:
    return int(value * 1024 * 1024)


def _split_time(value: str) -> tuple[str, str]:
    hour, minute = value.split(":", 1)
    return hour, minute


class BucketSettings(BaseModel):
    """
    Options for creating or validating a bucket.

    Unrecognized keys are ignored. An option explicitly set to None is left out
    of the request. Sizes are in MB; compaction time windows use `HH:MM`.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    ram_size: int | None = 100
    document_replicas: int | None = 1
    bucket_priority: str | None = "high"
    threads_number: int | None = None
    bucket_type: str | None = "membase"
    eviction_policy: str | None = "valueOnly"
    conflict_resolution_type: str | None = "seqno"
    flush_enabled: bool | None = False
    abort_outside_allowed_time: bool | None = False
    allowed_time_period_start: str | None = ""
    allowed_time_period_stop: str | None = ""
    auth_type: str | None = None
    auto_compaction_defined: bool | None = False
    database_fragmentation_percentage_threshold: int | None = None
    database_fragmentation_size_threshold: float | None = None
    index_compaction_mode: str | None = "circular"
    index_replicas: int | None = 0
    parallel_compaction: bool | None = False
    sasl_password: str | None = None
    view_fragmentation_percentage_threshold: int | None = None
    view_fragmentation_size_threshold: float | None = None

    @field_validator("allowed_time_period_start", "allowed_time_period_stop")
    @classmethod
    def _check_time(cls, value: str | None) -> str | None:
        if value and not _TIME_RE.match(value):
            raise ValueError(f"expected HH:MM, got {value!r}")
        return value

    @property
    def caller_defined_compaction(self) -> bool:
        """True when the caller supplied any compaction threshold."""
        return any(
            key in self.model_fields_set and getattr(self, key) is not None
            for key in COMPACTION_THRESHOLD_OPTIONS
        )


def normalize_bucket_params(
    options: BucketSettings | Mapping[str, Any] | None = None,
    *,
    name: str | None = None,
) -> dict[str, Any]:
    """
    Map bucket options onto REST form fields.

    Args:
        options: Caller options (merged over the `BucketSettings` defaults)
        name: Bucket name used when `options` does not carry one

    Returns:
        A flat mapping of form field names to values, ready to form-encode.
    """
    if isinstance(options, BucketSettings):
        settings = options
    else:
        settings = BucketSettings.model_validate(dict(options or {}))

    explicit_threads = "threads_number" in settings.model_fields_set and (
        settings.threads_number is not None
    )

    params: dict[str, Any] = {}
    for key, value in settings.model_dump().items():
        if key == "name" and value is None:
            value = name
        if value is None:
            continue

        if key == "allowed_time_period_start":
            if value:
                hour, minute = _split_time(value)
                params["allowedTimePeriod[fromHour]"] = hour
                params["allowedTimePeriod[fromMinute]"] = minute
        elif key == "allowed_time_period_stop":
            if value:
                hour, minute = _split_time(value)
                params["allowedTimePeriod[toHour]"] = hour
                params["allowedTimePeriod[toMinute]"] = minute
        elif key == "bucket_type":
            params["bucketType"] = "membase" if value == "couchbase" else value
        elif key == "database_fragmentation_size_threshold":
            params["databaseFragmentationThreshold[size]"] = _megabytes_to_bytes(value)
        elif key == "view_fragmentation_size_threshold":
            params["viewFragmentationThreshold[size]"] = _megabytes_to_bytes(value)
        elif key == "bucket_priority":
            if not explicit_threads:
                params["threadsNumber"] = (
                    HIGH_PRIORITY_THREADS if value == "high" else DEFAULT_PRIORITY_THREADS
                )
        elif key == "flush_enabled":
            params["flushEnabled"] = 1 if value else 0
        elif key in BUCKET_FIELD_MAP:
            params[BUCKET_FIELD_MAP[key]] = value

    params["autoCompactionDefined"] = settings.caller_defined_compaction

    if params.get("bucketType") == "ephemeral":
        params = {k: v for k, v in params.items() if k not in EPHEMERAL_EXCLUDED_FIELDS}
    return params
