from __future__ import annotations

from typing import Any

from couchbase_rest import RestApi
from couchbase_rest.handles.node import Node

from ..click_compat import RichCommand, RichGroup, click
from ..context import CLIContext
from ..options import node_prefix_option, output_options, rebalance_option
from ..runner import CommandOutput, run_command


@click.group(name="node", cls=RichGroup)
def node_group() -> None:
    """Node commands."""


def _cluster_node(ctx: CLIContext, api: RestApi, host: str, node_port: int | None) -> Node:
    return ctx.cluster(api).node(host, node_port=node_port)


def _node_payload(node: Node, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"host": node.host, "port": node.port, "otpNode": node.otp_node}
    if node.services:
        payload["services"] = node.services
    payload.update(extra)
    return payload


@node_group.command(name="configure", cls=RichCommand)
@click.argument("host")
@click.option("--node-port", type=int, default=None, help="Node admin port (default: --port).")
@click.option("--services", type=str, default=None, help="e.g. data,index,n1ql")
@click.option("--hostname", type=str, default=None, help="New node hostname.")
@click.option("--data-path", type=str, default=None)
@click.option("--index-path", type=str, default=None)
@output_options
@click.pass_obj
def node_configure(
    ctx: CLIContext,
    host: str,
    *,
    node_port: int | None,
    services: str | None,
    hostname: str | None,
    data_path: str | None,
    index_path: str | None,
) -> None:
    """
    Provision a node that is not yet part of a cluster.

    Examples:
    - `cbrest node configure 10.0.0.2 --services data,index`
    - `cbrest node configure 10.0.0.2 --hostname db2.local --data-path /data`
    """

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        settings = ctx.resolve_client_settings()

        async def op(api: RestApi) -> Any:
            node = await api.node(
                host,
                node_port=node_port or settings.port,
                node_protocol=settings.protocol,
                data_path=data_path,
                index_path=index_path,
                hostname=hostname,
                services=services,
            )
            return _node_payload(node, configured=True)

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="node configure", fn=fn)


@node_group.command(name="join", cls=RichCommand)
@click.argument("host")
@click.option("--node-port", type=int, default=None, help="Node admin port (default: --port).")
@rebalance_option("Rebalance the cluster after joining.")
@output_options
@click.pass_obj
def node_join(ctx: CLIContext, host: str, *, node_port: int | None, rebalance: bool) -> None:
    """Join the node at HOST to the cluster given by --host/--port."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            node = _cluster_node(ctx, api, host, node_port)
            await node.join(rebalance=rebalance)
            return _node_payload(node, joined=True, rebalanced=rebalance)

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="node join", fn=fn)


@node_group.command(name="failover", cls=RichCommand)
@click.argument("host")
@click.option("--hard", is_flag=True, help="Hard failover instead of graceful.")
@node_prefix_option
@output_options
@click.pass_obj
def node_failover(ctx: CLIContext, host: str, *, hard: bool, node_prefix: str) -> None:
    """Fail over a node (graceful by default)."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            # Failover is a cluster-level control call about HOST.
            node = ctx.cluster(api).node()
            await node.failover(graceful=not hard, node_prefix=node_prefix, hostname=host)
            return {"failedOver": host, "graceful": not hard}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="node failover", fn=fn)


@node_group.command(name="recover", cls=RichCommand)
@click.argument("host")
@click.option(
    "--recovery-type",
    type=click.Choice(["full", "delta"]),
    default="full",
    show_default=True,
)
@rebalance_option("Rebalance after setting the recovery type.")
@node_prefix_option
@output_options
@click.pass_obj
def node_recover(
    ctx: CLIContext,
    host: str,
    *,
    recovery_type: str,
    rebalance: bool,
    node_prefix: str,
) -> None:
    """Set the recovery type of a failed-over node."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            node = ctx.cluster(api).node()
            await node.recover(
                recovery_type=recovery_type,  # type: ignore[arg-type]
                node_prefix=node_prefix,
                hostname=host,
                rebalance=rebalance,
            )
            return {"recovered": host, "recoveryType": recovery_type, "rebalanced": rebalance}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="node recover", fn=fn)


@node_group.command(name="eject", cls=RichCommand)
@click.argument("host")
@node_prefix_option
@output_options
@click.pass_obj
def node_eject(ctx: CLIContext, host: str, *, node_prefix: str) -> None:
    """Eject a failed-over node from the cluster."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            node = _cluster_node(ctx, api, host, None)
            await node.eject(node_prefix=node_prefix)
            return _node_payload(node, ejected=True)

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="node eject", fn=fn)
