from __future__ import annotations

from typing import Any

from couchbase_rest import RestApi

from ..click_compat import RichCommand, RichGroup, click
from ..context import CLIContext
from ..options import node_prefix_option, output_options, rebalance_option, split_csv
from ..runner import CommandOutput, run_command


@click.group(name="cluster", cls=RichGroup)
def cluster_group() -> None:
    """Cluster commands."""


def _node_summary(node: dict[str, Any]) -> dict[str, Any]:
    return {
        "hostname": node.get("hostname"),
        "otpNode": node.get("otpNode"),
        "status": node.get("status"),
        "clusterMembership": node.get("clusterMembership"),
        "services": node.get("services"),
        "version": node.get("version"),
    }


@cluster_group.command(name="info", cls=RichCommand)
@output_options
@click.pass_obj
def cluster_info(ctx: CLIContext) -> None:
    """Show server version and pool information."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            return await ctx.cluster(api).info()

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="cluster info", fn=fn)


@cluster_group.command(name="details", cls=RichCommand)
@output_options
@click.pass_obj
def cluster_details(ctx: CLIContext) -> None:
    """Show pool details and node membership."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            return await ctx.cluster(api).details()

        details = ctx.run(op)
        if ctx.output == "json":
            return CommandOutput(data=details, api_called=True)
        summary = {
            k: details.get(k)
            for k in ("clusterName", "rebalanceStatus", "balanced")
            if isinstance(details, dict) and k in details
        }
        nodes = [_node_summary(n) for n in details.get("nodes", [])] if isinstance(details, dict) else []
        return CommandOutput(data={"cluster": summary, "nodes": nodes}, api_called=True)

    run_command(ctx, command="cluster details", fn=fn)


@cluster_group.command(name="init", cls=RichCommand)
@click.option("--cluster-name", type=str, default=None, help="Cluster name.")
@click.option("--kv-memory", type=int, default=None, help="Data service quota (MB).")
@click.option("--index-memory", type=int, default=None, help="Index service quota (MB).")
@click.option("--fts-memory", type=int, default=None, help="Search service quota (MB).")
@click.option("--services", type=str, default=None, help="Services for this node, e.g. kv,index.")
@click.option("--hostname", type=str, default=None, help="Rename this node before joining.")
@click.option("--data-path", type=str, default=None, help="Data path on this node.")
@click.option("--index-path", type=str, default=None, help="Index path on this node.")
@click.option("--bucket", "buckets", multiple=True, help="Create a bucket with defaults (repeatable).")
@click.option("--add-node", "nodes", multiple=True, help="Add a node by host (repeatable).")
@click.option("--rebalance/--no-rebalance", default=True, show_default=True)
@output_options
@click.pass_obj
def cluster_init(
    ctx: CLIContext,
    *,
    cluster_name: str | None,
    kv_memory: int | None,
    index_memory: int | None,
    fts_memory: int | None,
    services: str | None,
    hostname: str | None,
    data_path: str | None,
    index_path: str | None,
    buckets: tuple[str, ...],
    nodes: tuple[str, ...],
    rebalance: bool,
) -> None:
    """
    Bootstrap a cluster: quotas, node setup, credentials, name, buckets, nodes.

    The admin credentials given with --username/--password are set on the
    cluster.

    Examples:
    - `cbrest --host 10.0.0.1 cluster init --kv-memory 512 --services kv,index,n1ql`
    - `cbrest cluster init --cluster-name dev --bucket travel --add-node 10.0.0.2`
    """

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            cluster = ctx.cluster(api)
            node_handles = [cluster.node(host) for host in split_csv(nodes)]
            await cluster.initialize(
                buckets=split_csv(buckets),
                cluster_name=cluster_name,
                data_path=data_path,
                fts_memory=fts_memory,
                hostname=hostname,
                index_path=index_path,
                index_memory=index_memory,
                kv_memory=kv_memory,
                nodes=node_handles,
                rebalance=rebalance,
                services=services,
            )
            return {
                "initialized": True,
                "clusterName": cluster_name,
                "buckets": split_csv(buckets),
                "nodes": [n.host for n in node_handles],
            }

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="cluster init", fn=fn)


@cluster_group.command(name="rebalance", cls=RichCommand)
@click.option("--known-node", "known_nodes", multiple=True, help="otpNode to keep (repeatable).")
@click.option("--eject", "ejected_nodes", multiple=True, help="otpNode to eject (repeatable).")
@output_options
@click.pass_obj
def cluster_rebalance(
    ctx: CLIContext,
    *,
    known_nodes: tuple[str, ...],
    ejected_nodes: tuple[str, ...],
) -> None:
    """
    Start a rebalance.

    Without --known-node, every current node (minus --eject) is kept.
    """

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            await ctx.cluster(api).rebalance(split_csv(known_nodes), split_csv(ejected_nodes))
            return {"rebalanceStarted": True, "ejectedNodes": split_csv(ejected_nodes)}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="cluster rebalance", fn=fn)


@cluster_group.command(name="add-node", cls=RichCommand)
@click.argument("hostname")
@click.option("--services", type=str, default=None, help="Services for the new node.")
@rebalance_option("Rebalance after adding.")
@output_options
@click.pass_obj
def cluster_add_node(
    ctx: CLIContext,
    hostname: str,
    *,
    services: str | None,
    rebalance: bool,
) -> None:
    """Add a node to the cluster."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            cluster = ctx.cluster(api)
            added = await cluster.add_node(hostname, services=services)
            if rebalance:
                await cluster.rebalance()
            return added

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="cluster add-node", fn=fn)


@cluster_group.command(name="eject-node", cls=RichCommand)
@click.argument("hostname")
@node_prefix_option
@output_options
@click.pass_obj
def cluster_eject_node(ctx: CLIContext, hostname: str, *, node_prefix: str) -> None:
    """Eject an inactive (failed-over) node."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            await ctx.cluster(api).eject_node(hostname, node_prefix)
            return {"ejected": f"{node_prefix}@{hostname}"}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="cluster eject-node", fn=fn)


@cluster_group.command(name="auto-failover", cls=RichCommand)
@click.option("--enable/--disable", "enabled", default=None, help="Turn auto-failover on/off.")
@click.option("--timeout", type=int, default=None, help="Seconds before failing over.")
@click.option("--reset-count", is_flag=True, help="Reset the auto-failover counter.")
@output_options
@click.pass_obj
def cluster_auto_failover(
    ctx: CLIContext,
    *,
    enabled: bool | None,
    timeout: int | None,
    reset_count: bool,
) -> None:
    """
    Show or change auto-failover settings.

    Examples:
    - `cbrest cluster auto-failover`
    - `cbrest cluster auto-failover --enable --timeout 60`
    - `cbrest cluster auto-failover --reset-count`
    """

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            cluster = ctx.cluster(api)
            if reset_count:
                await cluster.reset_auto_failover_count()
            if enabled is not None:
                kwargs: dict[str, Any] = {"enabled": enabled}
                if timeout is not None:
                    kwargs["timeout"] = timeout
                await cluster.set_auto_failover(**kwargs)
            return await cluster.get_auto_failover()

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="cluster auto-failover", fn=fn)
