from __future__ import annotations

from urllib.parse import urlencode

import pydantic
import pytest

from couchbase_rest.models.bucket import BucketSettings, normalize_bucket_params


def test_defaults_use_high_priority_threads_and_flush_disabled() -> None:
    params = normalize_bucket_params(name="bucket1")
    assert params["threadsNumber"] == 8
    assert params["flushEnabled"] == 0
    assert params["autoCompactionDefined"] is False
    assert params["bucketType"] == "membase"
    assert params["replicaIndex"] == 0
    assert "allowedTimePeriod[fromHour]" not in params
    assert "saslPassword" not in params


def test_default_form_body_leads_with_core_fields() -> None:
    params = normalize_bucket_params(name="bucket1")
    body = urlencode(params)
    assert body.startswith(
        "name=bucket1&ramQuotaMB=100&replicaNumber=1&threadsNumber=8&bucketType=membase"
        "&evictionPolicy=valueOnly&conflictResolutionType=seqno&flushEnabled=0"
    )


def test_low_priority_maps_to_three_threads() -> None:
    assert normalize_bucket_params({"bucket_priority": "low"}, name="b")["threadsNumber"] == 3


def test_explicit_threads_number_wins_over_priority() -> None:
    params = normalize_bucket_params({"threads_number": 5, "bucket_priority": "high"}, name="b")
    assert params["threadsNumber"] == 5


def test_time_windows_are_split_into_hour_and_minute() -> None:
    params = normalize_bucket_params(
        {"allowed_time_period_start": "02:30", "allowed_time_period_stop": "6:05"},
        name="b",
    )
    assert params["allowedTimePeriod[fromHour]"] == "02"
    assert params["allowedTimePeriod[fromMinute]"] == "30"
    assert params["allowedTimePeriod[toHour]"] == "6"
    assert params["allowedTimePeriod[toMinute]"] == "05"


def test_invalid_time_window_is_rejected() -> None:
    with pytest.raises(pydantic.ValidationError):
        normalize_bucket_params({"allowed_time_period_start": "2.30"}, name="b")


def test_size_thresholds_are_converted_to_bytes() -> None:
    params = normalize_bucket_params(
        {"database_fragmentation_size_threshold": 10, "view_fragmentation_size_threshold": 0.5},
        name="b",
    )
    assert params["databaseFragmentationThreshold[size]"] == 10 * 1024 * 1024
    assert params["viewFragmentationThreshold[size]"] == 512 * 1024
    assert params["autoCompactionDefined"] is True


def test_percentage_threshold_marks_compaction_defined() -> None:
    params = normalize_bucket_params(
        {"database_fragmentation_percentage_threshold": 30}, name="b"
    )
    assert params["databaseFragmentationThreshold[percentage]"] == 30
    assert params["autoCompactionDefined"] is True


def test_threshold_explicitly_none_does_not_define_compaction() -> None:
    params = normalize_bucket_params({"view_fragmentation_percentage_threshold": None}, name="b")
    assert params["autoCompactionDefined"] is False
    assert "viewFragmentationThreshold[percentage]" not in params


def test_couchbase_type_is_sent_as_membase() -> None:
    assert normalize_bucket_params({"bucket_type": "couchbase"}, name="b")["bucketType"] == "membase"


@pytest.mark.parametrize(
    "options",
    [
        {"bucket_type": "ephemeral"},
        {"bucket_type": "ephemeral", "index_replicas": 1, "view_fragmentation_size_threshold": 5},
    ],
)
def test_ephemeral_buckets_drop_unsupported_fields(options: dict[str, object]) -> None:
    params = normalize_bucket_params(options, name="cache")
    assert params["bucketType"] == "ephemeral"
    assert "autoCompactionDefined" not in params
    assert "replicaIndex" not in params


def test_unknown_options_are_ignored_and_none_values_dropped() -> None:
    params = normalize_bucket_params({"colour": "blue", "ram_size": None}, name="b")
    assert "colour" not in params
    assert "ramQuotaMB" not in params


def test_flush_enabled_and_sasl_password() -> None:
    params = normalize_bucket_params(
        {"flush_enabled": True, "auth_type": "sasl", "sasl_password": "pw"}, name="b"
    )
    assert params["flushEnabled"] == 1
    assert params["authType"] == "sasl"
    assert params["saslPassword"] == "pw"


def test_name_in_options_overrides_argument() -> None:
    assert normalize_bucket_params({"name": "explicit"}, name="fallback")["name"] == "explicit"


def test_settings_model_is_accepted_directly() -> None:
    settings = BucketSettings(ram_size=256, document_replicas=2)
    params = normalize_bucket_params(settings, name="b")
    assert params["ramQuotaMB"] == 256
    assert params["replicaNumber"] == 2
    assert params["name"] == "b"
