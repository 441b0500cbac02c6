from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from couchbase_rest import RestApi
from couchbase_rest.models.bucket import BucketSettings

from ..click_compat import RichCommand, RichGroup, click
from ..context import CLIContext
from ..errors import CLIError
from ..options import output_options
from ..runner import CommandOutput, run_command

F = TypeVar("F", bound=Callable[..., object])


@click.group(name="bucket", cls=RichGroup)
def bucket_group() -> None:
    """Bucket commands."""


def bucket_options(fn: F) -> F:
    """Options shared by `bucket create` and `bucket validate`."""
    options = [
        click.option("--ram-size", type=int, default=None, help="RAM quota per node (MB)."),
        click.option("--replicas", type=int, default=None, help="Document replicas."),
        click.option(
            "--bucket-type",
            type=click.Choice(["couchbase", "membase", "memcached", "ephemeral"]),
            default=None,
        ),
        click.option("--priority", type=click.Choice(["high", "low"]), default=None),
        click.option(
            "--eviction-policy",
            type=click.Choice(["valueOnly", "fullEviction", "nruEviction", "noEviction"]),
            default=None,
        ),
        click.option("--flush/--no-flush", "flush_enabled", default=None),
        click.option(
            "--set",
            "extra",
            multiple=True,
            metavar="KEY=VALUE",
            help="Any other bucket option, e.g. --set index_replicas=1 (repeatable).",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _parse_extra(extra: tuple[str, ...]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for item in extra:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise CLIError.usage(f"Expected KEY=VALUE, got {item!r}.")
        if key not in BucketSettings.model_fields:
            raise CLIError.usage(
                f"Unknown bucket option: {key!r}.",
                hint="Options are BucketSettings fields, e.g. index_replicas or eviction_policy.",
            )
        parsed[key] = value
    return parsed


def _settings_from_options(
    name: str,
    *,
    ram_size: int | None,
    replicas: int | None,
    bucket_type: str | None,
    priority: str | None,
    eviction_policy: str | None,
    flush_enabled: bool | None,
    extra: tuple[str, ...],
) -> BucketSettings:
    options: dict[str, Any] = _parse_extra(extra)
    given = {
        "ram_size": ram_size,
        "document_replicas": replicas,
        "bucket_type": bucket_type,
        "bucket_priority": priority,
        "eviction_policy": eviction_policy,
        "flush_enabled": flush_enabled,
    }
    options.update({k: v for k, v in given.items() if v is not None})
    options["name"] = name
    return BucketSettings.model_validate(options)


@bucket_group.command(name="ls", cls=RichCommand)
@output_options
@click.pass_obj
def bucket_ls(ctx: CLIContext) -> None:
    """List buckets."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            return await ctx.cluster(api).buckets()

        buckets = ctx.run(op)
        if ctx.output == "json":
            return CommandOutput(data={"buckets": buckets}, api_called=True)
        rows = [
            {
                "name": b.get("name"),
                "bucketType": b.get("bucketType"),
                "replicaNumber": b.get("replicaNumber"),
                "evictionPolicy": b.get("evictionPolicy"),
                "ramQuotaMB": (b.get("quota") or {}).get("ram", 0) // (1024 * 1024),
            }
            for b in buckets or []
        ]
        return CommandOutput(data={"buckets": rows}, api_called=True)

    run_command(ctx, command="bucket ls", fn=fn)


@bucket_group.command(name="get", cls=RichCommand)
@click.argument("name")
@output_options
@click.pass_obj
def bucket_get(ctx: CLIContext, name: str) -> None:
    """Show a bucket's configuration."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        async def op(api: RestApi) -> Any:
            return await ctx.cluster(api).bucket(name).details()

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="bucket get", fn=fn)


@bucket_group.command(name="create", cls=RichCommand)
@click.argument("name")
@bucket_options
@output_options
@click.pass_obj
def bucket_create(ctx: CLIContext, name: str, **options: Any) -> None:
    """
    Create a bucket.

    Examples:
    - `cbrest bucket create travel --ram-size 256`
    - `cbrest bucket create cache --bucket-type ephemeral --set index_replicas=1`
    """

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        settings = _settings_from_options(name, **options)

        async def op(api: RestApi) -> Any:
            bucket = ctx.cluster(api).bucket(name)
            await bucket.create(settings)
            return {"created": name, "params": bucket.params(settings)}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="bucket create", fn=fn)


@bucket_group.command(name="validate", cls=RichCommand)
@click.argument("name")
@bucket_options
@output_options
@click.pass_obj
def bucket_validate(ctx: CLIContext, name: str, **options: Any) -> None:
    """Ask the server to validate bucket settings without creating the bucket."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        settings = _settings_from_options(name, **options)

        async def op(api: RestApi) -> Any:
            bucket = ctx.cluster(api).bucket(name)
            valid = await bucket.validate(settings)
            return {"valid": valid, "params": bucket.params(settings)}

        return CommandOutput(data=ctx.run(op), api_called=True)

    run_command(ctx, command="bucket validate", fn=fn)
