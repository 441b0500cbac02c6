from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from couchbase_rest.models.types import DEFAULT_NODE_PREFIX

from .click_compat import click
from .context import CLIContext

F = TypeVar("F", bound=Callable[..., object])


def _override_output(ctx: click.Context, param: click.Parameter, value: str | bool | None) -> None:
    # --json is a flag; --output carries the format itself
    if not value or not isinstance(ctx.obj, CLIContext):
        return
    ctx.obj.output = "json" if param.name == "json" else value  # type: ignore[assignment]


def output_options(fn: F) -> F:
    """Per-command `--output` / `--json`, overriding the global choice."""
    fn = click.option(
        "--output",
        type=click.Choice(["table", "json"]),
        default=None,
        help="Output format for this command.",
        callback=_override_output,
        expose_value=False,
    )(fn)
    fn = click.option(
        "--json",
        is_flag=True,
        help="Alias for --output json.",
        callback=_override_output,
        expose_value=False,
    )(fn)
    return fn


def node_prefix_option(fn: F) -> F:
    return click.option(
        "--node-prefix",
        type=str,
        default=DEFAULT_NODE_PREFIX,
        show_default=True,
        help="Prefix of the node's otpNode id.",
    )(fn)


def rebalance_option(help: str) -> Callable[[F], F]:
    """Opt-in `--rebalance` flag for commands that change membership."""
    return click.option("--rebalance", is_flag=True, help=help)


def split_csv(values: tuple[str, ...]) -> list[str]:
    """Flatten repeatable options that may also hold comma-delimited values."""
    items: list[str] = []
    for value in values:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items
