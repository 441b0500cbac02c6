from __future__ import annotations

import couchbase_rest

from .click_compat import RichGroup, click
from .context import CLIContext
from .logging import configure_logging, restore_logging


@click.group(
    name="cbrest",
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    cls=RichGroup,
)
@click.option(
    "--output",
    type=click.Choice(["table", "json"]),
    default="table",
)
@click.option("--json", "json_flag", is_flag=True, help="Alias for --output json.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-essential stderr output.")
@click.option("-v", "verbose", count=True, help="Increase verbosity (-v, -vv).")
@click.option("--host", type=str, default=None, help="Cluster node host (env: COUCHBASE_HOST).")
@click.option("--port", type=int, default=None, help="Admin REST port (env: COUCHBASE_PORT).")
@click.option(
    "--protocol",
    type=click.Choice(["http", "https"]),
    default=None,
    help="http or https (env: COUCHBASE_PROTOCOL).",
)
@click.option("-u", "--username", type=str, default=None, help="Admin user (env: COUCHBASE_USERNAME).")
@click.option(
    "-p",
    "--password",
    type=str,
    default=None,
    help="Admin password (env: COUCHBASE_PASSWORD).",
)
@click.option("--password-stdin", is_flag=True, help="Read the admin password from stdin.")
@click.option("--pool", type=str, default=None, help="Pool name (default: default).")
@click.option("--timeout", type=float, default=None, help="Per-request timeout in seconds.")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification.")
@click.version_option(version=couchbase_rest.__version__, prog_name="cbrest")
@click.pass_context
def cli(
    click_ctx: click.Context,
    *,
    output: str,
    json_flag: bool,
    quiet: bool,
    verbose: int,
    host: str | None,
    port: int | None,
    protocol: str | None,
    username: str | None,
    password: str | None,
    password_stdin: bool,
    pool: str | None,
    timeout: float | None,
    insecure: bool,
) -> None:
    if click_ctx.invoked_subcommand is None:
        # No args: show help; no network calls.
        click.echo(click_ctx.get_help())
        raise click.exceptions.Exit(0)

    out = "json" if json_flag else output
    click_ctx.obj = CLIContext(
        output=out,  # type: ignore[arg-type]
        quiet=quiet,
        verbosity=verbose,
        host=host,
        port=port,
        protocol=protocol,
        username=username,
        password=password,
        password_stdin=password_stdin,
        pool=pool,
        timeout=timeout,
        insecure=insecure,
    )

    previous_logging = configure_logging(verbosity=verbose)
    click_ctx.call_on_close(lambda: restore_logging(previous_logging))


# Register commands
from .commands.bucket_cmds import bucket_group as _bucket_group  # noqa: E402
from .commands.cluster_cmds import cluster_group as _cluster_group  # noqa: E402
from .commands.node_cmds import node_group as _node_group  # noqa: E402
from .commands.server_group_cmds import server_group_group as _server_group_group  # noqa: E402
from .commands.version_cmd import version_cmd as _version_cmd  # noqa: E402

cli.add_command(_version_cmd)
cli.add_command(_cluster_group)
cli.add_command(_bucket_group)
cli.add_command(_node_group)
cli.add_command(_server_group_group)
