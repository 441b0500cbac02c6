from __future__ import annotations

from typing import Any

from couchbase_rest import RestApi

from ..click_compat import RichCommand, RichGroup, click
from ..context import CLIContext
from ..options import output_options, split_csv
from ..runner import CommandOutput, run_command


@click.group(name="server-group", cls=RichGroup)
def server_group_group() -> None:
    """Server group commands."""


def _group_row(group: dict[str, Any]) -> dict[str, Any]:
    nodes = group.get("nodes") or []
    return {
        "name": group.get("name"),
        "uri": group.get("uri"),
        "nodes": [str(n.get("hostname", n.get("otpNode", ""))) for n in nodes],
    }


@server_group_group.command(name="ls", cls=RichCommand)
@output_options
@click.pass_obj
def server_group_ls(ctx: CLIContext) -> None:
    """List server groups and their members."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            return await ctx.cluster(api).server_groups()

        data = ctx.run(op)
        if ctx.output == "json":
            return CommandOutput(data=data, api_called=True)
        rows = [_group_row(g) for g in (data or {}).get("groups", [])]
        return CommandOutput(data={"groups": rows}, api_called=True)

    run_command(ctx, command="server-group ls", fn=fn)


@server_group_group.command(name="get", cls=RichCommand)
@click.argument("name")
@output_options
@click.pass_obj
def server_group_get(ctx: CLIContext, name: str) -> None:
    """Show one server group, with its uuid and the current revision."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            return await ctx.cluster(api).server_group(name).details()

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="server-group get", fn=fn)


@server_group_group.command(name="create", cls=RichCommand)
@click.argument("name")
@output_options
@click.pass_obj
def server_group_create(ctx: CLIContext, name: str) -> None:
    """Create a server group."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            return await ctx.cluster(api).server_group(name).create()

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="server-group create", fn=fn)


@server_group_group.command(name="rename", cls=RichCommand)
@click.argument("name")
@click.argument("new_name")
@output_options
@click.pass_obj
def server_group_rename(ctx: CLIContext, name: str, new_name: str) -> None:
    """Rename a server group."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            await ctx.cluster(api).server_group(name).rename(new_name)
            return {"renamed": name, "name": new_name}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="server-group rename", fn=fn)


@server_group_group.command(name="rm", cls=RichCommand)
@click.argument("name")
@output_options
@click.pass_obj
def server_group_rm(ctx: CLIContext, name: str) -> None:
    """Delete an empty server group."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            await ctx.cluster(api).server_group(name).remove()
            return {"removed": name}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="server-group rm", fn=fn)


@server_group_group.command(name="add-members", cls=RichCommand)
@click.argument("name")
@click.argument("hosts", nargs=-1, required=True)
@output_options
@click.pass_obj
def server_group_add_members(ctx: CLIContext, name: str, hosts: tuple[str, ...]) -> None:
    """
    Move cluster nodes into a server group.

    Examples:
    - `cbrest server-group add-members rack-a 10.0.0.5 10.0.0.6`
    - `cbrest server-group add-members rack-b 10.0.0.7,10.0.0.8`
    """

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        members = split_csv(hosts)

        async def op(api: RestApi) -> Any:
            await ctx.cluster(api).server_group(name).add_members(members)
            return {"group": name, "added": members}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="server-group add-members", fn=fn)
