from __future__ import annotations

import pytest

from couchbase_rest import ClusterReferenceError, Node
from couchbase_rest.handles.node import normalize_services

POOL_DETAILS = {"nodes": [{"otpNode": "ns_1@10.0.0.1"}, {"otpNode": "ns_1@10.0.0.2"}]}


def test_normalize_services() -> None:
    assert normalize_services("data, index,\tn1ql") == "kv,index,n1ql"
    assert normalize_services("kv") == "kv"


@pytest.mark.asyncio
async def test_cluster_reference_is_write_once(fake) -> None:
    async with fake.api() as api:
        cluster = api.cluster("10.0.0.1")
        node = cluster.node("10.0.0.2")
        with pytest.raises(ClusterReferenceError):
            node.cluster = api.cluster("10.0.0.9")
        assert node.cluster is cluster


@pytest.mark.asyncio
async def test_unbound_node_can_be_bound_once(fake) -> None:
    fake.on("POST", "/node/controller/setupServices")
    async with fake.api() as api:
        node = await api.node("10.0.0.2")
        assert node.cluster is None
        cluster = api.cluster("10.0.0.1")
        node.cluster = cluster
        assert node.cluster is cluster
        with pytest.raises(ClusterReferenceError):
            node.cluster = cluster


@pytest.mark.asyncio
async def test_root_node_configures_services_hostname_and_paths_in_order(fake) -> None:
    fake.on("POST", "/node/controller/setupServices")
    fake.on("POST", "/node/controller/rename")
    fake.on("POST", "/nodes/self/controller/settings")
    async with fake.api() as api:
        node = await api.node(
            "10.0.0.2", services="data,query", hostname="db2.local", data_path="/data"
        )

    assert isinstance(node, Node)
    assert node.services == "kv,query"
    assert fake.calls() == [
        ("POST", "/node/controller/setupServices"),
        ("POST", "/node/controller/rename"),
        ("POST", "/nodes/self/controller/settings"),
    ]
    assert all(str(r.url).startswith("http://10.0.0.2:8091/") for r in fake.requests)
    assert fake.requests[2].form == {
        "path": "/data",
        "index_path": "/opt/couchbase/var/lib/couchbase/data",
    }


@pytest.mark.asyncio
async def test_configure_without_inputs_sends_nothing(fake) -> None:
    async with fake.api() as api:
        await api.node("10.0.0.2")
    assert fake.requests == []


@pytest.mark.asyncio
async def test_set_hostname_defaults_to_node_host(fake) -> None:
    fake.on("POST", "/node/controller/rename")
    async with fake.api() as api:
        await api.cluster().node("10.0.0.4").set_hostname()
    assert fake.requests[0].form == {"hostname": "10.0.0.4"}


@pytest.mark.asyncio
async def test_join_targets_bound_cluster_with_its_credentials(fake) -> None:
    fake.on("POST", "/node/controller/doJoinCluster")
    fake.on("GET", "/pools/default", json=POOL_DETAILS)
    fake.on("POST", "/controller/rebalance")
    async with fake.api("admin", "pw") as api:
        cluster = api.cluster("10.0.0.1", cluster_port=18091)
        await cluster.node("10.0.0.2", node_port=8091).join(rebalance=True)

    join = fake.requests[0]
    assert str(join.url) == "http://10.0.0.2:8091/node/controller/doJoinCluster"
    assert join.form == {
        "clusterMemberHostIp": "10.0.0.1",
        "clusterMemberPort": "18091",
        "user": "admin",
        "password": "pw",
    }
    assert fake.calls()[-1] == ("POST", "/controller/rebalance")


@pytest.mark.asyncio
async def test_unbound_join_uses_defaults(fake) -> None:
    fake.on("POST", "/node/controller/doJoinCluster")
    async with fake.api(None, None) as api:
        node = await api.node("10.0.0.2")
        await node.join()
        with pytest.raises(ClusterReferenceError):
            await node.join(rebalance=True)

    assert fake.requests[0].form == {
        "clusterMemberHostIp": "localhost",
        "clusterMemberPort": "8091",
        "user": "Administrator",
        "password": "password",
    }
    assert len(fake.requests) == 1


@pytest.mark.asyncio
async def test_eject_is_sent_to_the_cluster_host(fake) -> None:
    fake.on("POST", "/controller/ejectNode")
    async with fake.api() as api:
        cluster = api.cluster("10.0.0.1")
        await cluster.node("10.0.0.3", node_port=9000).eject()

    (request,) = fake.requests
    assert str(request.url) == "http://10.0.0.1:8091/controller/ejectNode"
    assert request.form == {"otpNode": "ns_1@10.0.0.3"}


@pytest.mark.asyncio
async def test_eject_requires_a_cluster(fake) -> None:
    async with fake.api() as api:
        node = await api.node("10.0.0.3")
        with pytest.raises(ClusterReferenceError):
            await node.eject()
    assert fake.requests == []


@pytest.mark.asyncio
async def test_failover_graceful_and_hard(fake) -> None:
    fake.on("POST", "/controller/startGracefulFailover")
    fake.on("POST", "/controller/failOver")
    async with fake.api() as api:
        node = api.cluster("10.0.0.1").node("10.0.0.3")
        await node.failover()
        await node.failover(graceful=False, node_prefix="n_0")

    assert fake.calls() == [
        ("POST", "/controller/startGracefulFailover"),
        ("POST", "/controller/failOver"),
    ]
    assert fake.requests[0].form == {"otpNode": "ns_1@10.0.0.3"}
    assert fake.requests[1].form == {"otpNode": "n_0@10.0.0.3"}


@pytest.mark.asyncio
async def test_recover_then_rebalance(fake) -> None:
    fake.on("POST", "/controller/setRecoveryType")
    fake.on("GET", "/pools/default", json=POOL_DETAILS)
    fake.on("POST", "/controller/rebalance")
    async with fake.api() as api:
        await api.cluster("10.0.0.1").node("10.0.0.2").recover(recovery_type="delta", rebalance=True)

    assert fake.requests[0].form == {"otpNode": "ns_1@10.0.0.2", "recoveryType": "delta"}
    assert fake.calls()[-1] == ("POST", "/controller/rebalance")


@pytest.mark.asyncio
async def test_recover_with_rebalance_checks_binding_before_writing(fake) -> None:
    async with fake.api() as api:
        node = await api.node("10.0.0.2")
        with pytest.raises(ClusterReferenceError):
            await node.recover(rebalance=True)
    assert fake.requests == []
