from __future__ import annotations

import asyncio
import base64

import httpx
import pytest

from couchbase_rest import BucketByName, Cluster, UpstreamError
from couchbase_rest.handles.bucket import BucketByHandle

POOL_DETAILS = {
    "nodes": [
        {"otpNode": "ns_1@10.0.0.1", "hostname": "10.0.0.1:8091"},
        {"otpNode": "ns_1@10.0.0.2", "hostname": "10.0.0.2:8091"},
        {"otpNode": "ns_1@10.0.0.3", "hostname": "10.0.0.3:8091"},
    ]
}


@pytest.mark.asyncio
async def test_rebalance_derives_known_nodes_from_details(fake) -> None:
    fake.on("GET", "/pools/default", json=POOL_DETAILS)
    fake.on("POST", "/controller/rebalance")
    async with fake.api() as api:
        await api.cluster("10.0.0.1").rebalance(ejected_nodes=["ns_1@10.0.0.3"])

    assert fake.calls() == [("GET", "/pools/default"), ("POST", "/controller/rebalance")]
    assert fake.requests[1].form == {
        "knownNodes": "ns_1@10.0.0.1,ns_1@10.0.0.2",
        "ejectedNodes": "ns_1@10.0.0.3",
    }


@pytest.mark.asyncio
async def test_rebalance_with_known_nodes_skips_lookup(fake) -> None:
    fake.on("POST", "/controller/rebalance")
    async with fake.api() as api:
        await api.cluster().rebalance(known_nodes=["ns_1@a", "ns_1@b"])
    assert fake.calls() == [("POST", "/controller/rebalance")]
    assert fake.requests[0].form == {"knownNodes": "ns_1@a,ns_1@b"}


@pytest.mark.asyncio
async def test_initialize_runs_steps_in_order(fake) -> None:
    for method, path in [
        ("POST", "/pools/default"),
        ("POST", "/node/controller/setupServices"),
        ("POST", "/node/controller/rename"),
        ("POST", "/nodes/self/controller/settings"),
        ("POST", "/settings/web"),
        ("POST", "/pools/default/buckets"),
        ("POST", "/controller/addNode"),
        ("POST", "/controller/rebalance"),
    ]:
        fake.on(method, path)
    fake.on("GET", "/pools/default", json=POOL_DETAILS)

    async with fake.api("Administrator", "password") as api:
        cluster = api.cluster("10.0.0.1")
        result = await cluster.initialize(
            kv_memory=512,
            services="data, index",
            hostname="db1.local",
            data_path="/data",
            cluster_name="dev",
            buckets=["travel"],
            nodes=[cluster.node("10.0.0.2")],
        )

    assert result is cluster
    assert fake.calls() == [
        ("POST", "/pools/default"),
        ("POST", "/node/controller/setupServices"),
        ("POST", "/node/controller/rename"),
        ("POST", "/nodes/self/controller/settings"),
        ("POST", "/settings/web"),
        ("POST", "/pools/default"),
        ("POST", "/pools/default/buckets"),
        ("POST", "/controller/addNode"),
        ("GET", "/pools/default"),
        ("POST", "/controller/rebalance"),
    ]
    forms = [r.form for r in fake.requests]
    assert forms[0] == {"memoryQuota": "512"}
    assert forms[1] == {"services": "kv,index"}
    assert forms[2] == {"hostname": "db1.local"}
    assert forms[4] == {"username": "Administrator", "password": "password", "port": "SAME"}
    assert forms[5] == {"clusterName": "dev"}
    assert forms[6]["name"] == "travel"
    assert forms[7]["hostname"] == "10.0.0.2"


@pytest.mark.asyncio
async def test_initialize_skips_absent_steps(fake) -> None:
    fake.on("POST", "/settings/web")
    async with fake.api() as api:
        await api.cluster().initialize()
    assert fake.calls() == [("POST", "/settings/web")]


@pytest.mark.asyncio
async def test_credentials_switch_later_requests(fake) -> None:
    fake.on("POST", "/settings/web")
    fake.on("GET", "/pools", json={})
    async with fake.api("Administrator", "old-password") as api:
        cluster = api.cluster()
        node = cluster.node("10.0.0.2")
        await cluster.credentials("admin2", "new-password")
        assert cluster.username == "admin2"
        assert node.password == "new-password"
        await cluster.info()

    expected = base64.b64encode(b"admin2:new-password").decode()
    assert fake.requests[-1].headers["authorization"] == f"Basic {expected}"


@pytest.mark.asyncio
async def test_add_nodes_skips_cluster_location_and_rebalances(fake) -> None:
    fake.on("POST", "/controller/addNode")
    fake.on("GET", "/pools/default", json=POOL_DETAILS)
    fake.on("POST", "/controller/rebalance")
    async with fake.api() as api:
        cluster = api.cluster("10.0.0.1")
        same = cluster.node()
        other = cluster.node("10.0.0.2")
        other.services = "kv,n1ql"
        nodes = await cluster.add_nodes([same, other])

    assert nodes == [same, other]
    add_calls = [r for r in fake.requests if r.path == "/controller/addNode"]
    assert len(add_calls) == 1
    assert add_calls[0].form == {
        "hostname": "10.0.0.2",
        "services": "kv,n1ql",
        "user": "Administrator",
        "password": "password",
    }
    assert fake.calls()[-1] == ("POST", "/controller/rebalance")


@pytest.mark.asyncio
async def test_add_nodes_first_failure_propagates(fake) -> None:
    def add_node(request: httpx.Request) -> httpx.Response:
        if b"10.0.0.3" in request.content:
            return httpx.Response(400, json=["Prepare join failed."], request=request)
        return httpx.Response(200, json={"otpNode": "ns_1@10.0.0.2"}, request=request)

    fake.on("POST", "/controller/addNode", add_node)
    async with fake.api() as api:
        cluster = api.cluster("10.0.0.1")
        with pytest.raises(UpstreamError) as exc_info:
            await cluster.add_nodes([cluster.node("10.0.0.2"), cluster.node("10.0.0.3")])

    assert exc_info.value.messages == ["Prepare join failed."]
    assert ("POST", "/controller/rebalance") not in fake.calls()


@pytest.mark.asyncio
async def test_add_buckets_accepts_names_mappings_specs_and_handles(fake) -> None:
    fake.on("POST", "/pools/default/buckets")
    async with fake.api() as api:
        cluster = api.cluster()
        handle = cluster.bucket("d")
        buckets = await cluster.add_buckets(
            [
                "a",
                {"name": "b", "ram_size": 256},
                BucketByName("c", {"bucket_type": "ephemeral"}),
                BucketByHandle(handle, {"document_replicas": 2}),
            ]
        )

    assert [b.name for b in buckets] == ["a", "b", "c", "d"]
    assert buckets[3] is handle
    forms = {r.form["name"]: r.form for r in fake.requests}
    assert forms["b"]["ramQuotaMB"] == "256"
    assert forms["c"]["bucketType"] == "ephemeral"
    assert forms["d"]["replicaNumber"] == "2"


def test_bucket_mapping_without_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        BucketByName.from_mapping({"ram_size": 100})


@pytest.mark.asyncio
async def test_cluster_handles_are_memoized_per_root(fake) -> None:
    async with fake.api() as api:
        first = api.cluster("10.0.0.1")
        assert api.cluster("10.0.0.1", cluster_port=8091) is first
        assert api.cluster("10.0.0.1", cluster_port=18091, cluster_protocol="https") is not first
        assert api.cluster("10.0.0.1", username="other", password="pw") is not first
        assert api.cluster("10.0.0.1", pool="other") is not first
        assert isinstance(first, Cluster)

        api.clear_cache()
        assert api.cluster("10.0.0.1") is not first

    async with fake.api() as other_root:
        assert other_root.cluster("10.0.0.1") is not first


@pytest.mark.asyncio
async def test_cluster_nodes_are_memoized_and_bound(fake) -> None:
    async with fake.api() as api:
        cluster = api.cluster("10.0.0.1")
        node = cluster.node("10.0.0.2")
        assert cluster.node("10.0.0.2", node_port=8091) is node
        assert cluster.node("10.0.0.3") is not node
        assert node.cluster is cluster
        assert cluster.node().host == "10.0.0.1"


@pytest.mark.asyncio
async def test_memory_and_quota_helpers(fake) -> None:
    fake.on("POST", "/pools/default")
    async with fake.api() as api:
        cluster = api.cluster()
        await cluster.memory()
        await cluster.index_memory_quota(512)
        await cluster.fts_memory_quota()
        await cluster.kv_memory_quota(1024)

    forms = [r.form for r in fake.requests]
    assert forms == [
        {"memoryQuota": "100", "indexMemoryQuota": "256", "ftsMemoryQuota": "256"},
        {"indexMemoryQuota": "512"},
        {"ftsMemoryQuota": "256"},
        {"memoryQuota": "1024"},
    ]


@pytest.mark.asyncio
async def test_eject_node_and_add_node(fake) -> None:
    fake.on("POST", "/controller/ejectNode")
    async with fake.api() as api:
        await api.cluster().eject_node("10.0.0.5")
    assert fake.requests[0].form == {"otpNode": "ns_1@10.0.0.5"}


@pytest.mark.asyncio
async def test_internal_settings_map_snake_case(fake) -> None:
    fake.on("POST", "/internalSettings")
    fake.on("GET", "/internalSettings", json={"maxBucketCount": 10})
    async with fake.api() as api:
        cluster = api.cluster()
        assert await cluster.get_internal_settings() == {"maxBucketCount": 10}
        await cluster.set_internal_settings(max_bucket_count=20, rest_request_limit=None)
        with pytest.raises(TypeError):
            await cluster.set_internal_settings(max_buckets=20)

    assert fake.requests[1].form == {"maxBucketCount": "20"}
    assert len(fake.requests) == 2


@pytest.mark.asyncio
async def test_replication_settings_post_to_replications_endpoint(fake) -> None:
    fake.on("POST", "/settings/replications", json={})
    async with fake.api() as api:
        await api.cluster().set_replication_settings(worker_batch_size=500, logLevel="Debug")
    assert fake.requests[0].form == {"workerBatchSize": "500", "logLevel": "Debug"}


@pytest.mark.asyncio
async def test_auto_failover_settings(fake) -> None:
    fake.on("POST", "/settings/autoFailover")
    fake.on("POST", "/settings/autoFailover/resetCount")
    async with fake.api() as api:
        cluster = api.cluster()
        await cluster.set_auto_failover()
        await cluster.set_auto_failover(enabled=True, timeout=30)
        await cluster.reset_auto_failover_count()

    assert [r.form for r in fake.requests[:2]] == [
        {"enabled": "false", "timeout": "120"},
        {"enabled": "true", "timeout": "30"},
    ]
    assert fake.calls()[-1] == ("POST", "/settings/autoFailover/resetCount")


@pytest.mark.asyncio
async def test_email_settings_defaults(fake) -> None:
    fake.on("POST", "/settings/alerts")
    async with fake.api() as api:
        await api.cluster().set_email_settings(alerts=["ip", "disk"], enabled=True)

    form = fake.requests[0].form
    assert form["alerts"] == "ip,disk"
    assert form["emailPort"] == "25"
    assert form["recipients"] == "root@localhost"
    assert form["sender"] == "couchbase@localhost"
    assert form["enabled"] == "true"
    assert form["emailHost"] == ""


@pytest.mark.asyncio
async def test_concurrent_derivations_share_the_client(fake) -> None:
    fake.on("GET", "/pools/default/buckets", json=[{"name": "a"}])
    async with fake.api() as api:
        results = await asyncio.gather(*(api.cluster().buckets() for _ in range(3)))
    assert results == [[{"name": "a"}]] * 3


@pytest.mark.asyncio
async def test_node_prefix_is_part_of_node_identity(fake) -> None:
    fake.on("POST", "/controller/failOver")
    async with fake.api() as api:
        cluster = api.cluster("10.0.0.1")
        default = cluster.node("10.0.0.2")
        prefixed = cluster.node("10.0.0.2", node_prefix="n_1")
        assert prefixed is not default
        assert prefixed.node_prefix == "n_1"
        assert cluster.node("10.0.0.2", node_prefix="n_1") is prefixed
        await prefixed.failover(graceful=False)
    assert fake.requests[0].form == {"otpNode": "n_1@10.0.0.2"}


@pytest.mark.asyncio
async def test_memoized_handles_follow_credential_change(fake) -> None:
    fake.on("POST", "/settings/web")
    async with fake.api("Administrator", "password") as api:
        cluster = api.cluster("10.0.0.1")
        node = cluster.node("10.0.0.2")
        await cluster.credentials("Administrator", "newpw")

        assert api.cluster("10.0.0.1", password="newpw") is cluster
        assert api.cluster("10.0.0.1") is not cluster
        assert cluster.node("10.0.0.2") is node
