"""
Cluster-wide settings forms.

The settings endpoints take camelCase form fields; the SDK accepts the
snake_case spelling of each recognized field.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# /internalSettings
INTERNAL_SETTINGS_FIELDS: dict[str, str] = {
    "index_aware_rebalance_disabled": "indexAwareRebalanceDisabled",
    "rebalance_index_waiting_disabled": "rebalanceIndexWaitingDisabled",
    "rebalance_index_pausing_disabled": "rebalanceIndexPausingDisabled",
    "rebalance_ignore_view_compactions": "rebalanceIgnoreViewCompactions",
    "rebalance_moves_per_node": "rebalanceMovesPerNode",
    "rebalance_moves_before_compaction": "rebalanceMovesBeforeCompaction",
    "max_parallel_indexers": "maxParallelIndexers",
    "max_parallel_replica_indexers": "maxParallelReplicaIndexers",
    "max_bucket_count": "maxBucketCount",
    "gotraceback": "gotraceback",
    "index_auto_failover_disabled": "indexAutoFailoverDisabled",
    "cert_use_sha1": "certUseSha1",
    "capi_request_limit": "capiRequestLimit",
    "rest_request_limit": "restRequestLimit",
}

# /settings/replications (global XDCR defaults)
REPLICATION_SETTINGS_FIELDS: dict[str, str] = {
    "checkpoint_interval": "checkpointInterval",
    "worker_batch_size": "workerBatchSize",
    "doc_batch_size_kb": "docBatchSizeKb",
    "failure_restart_interval": "failureRestartInterval",
    "optimistic_replication_threshold": "optimisticReplicationThreshold",
    "source_nozzle_per_node": "sourceNozzlePerNode",
    "target_nozzle_per_node": "targetNozzlePerNode",
    "network_usage_limit": "networkUsageLimit",
    "compression_type": "compressionType",
    "log_level": "logLevel",
    "stats_interval": "statsInterval",
}

DEFAULT_ALERTS: tuple[str, ...] = (
    "auto_failover_node",
    "auto_failover_maximum_reached",
    "auto_failover_other_nodes_down",
    "auto_failover_cluster_too_small",
    "auto_failover_disabled",
    "ip",
    "disk",
    "overhead",
    "ep_oom_errors",
    "ep_item_commit_failed",
    "audit_dropped_events",
    "indexer_ram_max_usage",
    "ep_clock_cas_drift_threshold_exceeded",
    "communication_issue",
)
DEFAULT_EMAIL_PORT = 25
DEFAULT_EMAIL_RECIPIENTS = "root@localhost"
DEFAULT_EMAIL_SENDER = "couchbase@localhost"

DEFAULT_AUTO_FAILOVER_TIMEOUT = 120


def settings_form(kind: str, fields: Mapping[str, str], options: Mapping[str, Any]) -> dict[str, Any]:
    """
    Map snake_case options onto form fields, dropping None values.

    Both spellings are accepted (`max_bucket_count` or `maxBucketCount`).

    Raises:
        TypeError: On an option the endpoint does not recognize
    """
    known = set(fields.values())
    form: dict[str, Any] = {}
    for key, value in options.items():
        if key in fields:
            field_name = fields[key]
        elif key in known:
            field_name = key
        else:
            raise TypeError(f"unknown {kind} setting: {key!r}")
        if value is not None:
            form[field_name] = value
    return form
