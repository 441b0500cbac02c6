from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass
from typing import Any

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .results import CommandResult

_CAMEL_BREAK_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Columns shown first when a list of records is rendered as a table.
_PREFERRED_COLUMNS = (
    "name",
    "hostname",
    "otpNode",
    "status",
    "clusterMembership",
    "services",
    "bucketType",
    "uuid",
    "uri",
)


@dataclass(frozen=True, slots=True)
class RenderSettings:
    output: str  # "table" | "json"
    quiet: bool
    verbosity: int


def _error_title(error_type: str) -> str:
    normalized = (error_type or "").strip()
    mapping = {
        "usage_error": "Usage error",
        "validation_error": "Validation error",
        "not_found": "Not found",
        "NotFoundError": "Not found",
        "TransportError": "Network error",
        "UpstreamError": "Server error",
        "ClusterReferenceError": "Cluster reference error",
    }
    return mapping.get(normalized, "Error")


def _render_error_details(
    *,
    stderr: Console,
    command: str,
    error_type: str,
    hint: str | None,
    details: dict[str, Any] | None,
    settings: RenderSettings,
) -> None:
    if settings.quiet:
        return
    if hint:
        stderr.print(f"Hint: {hint}")
    if error_type == "usage_error" and not hint:
        stderr.print(f"Hint: run `cbrest {command} --help`")
    if not details:
        return
    messages = details.get("messages")
    if isinstance(messages, list) and len(messages) > 1:
        for message in messages:
            stderr.print(f"  - {message}")
    if settings.verbosity >= 2:
        stderr.print(Panel.fit(Text(json.dumps(details, ensure_ascii=False, indent=2))))


def _humanize_title(value: str) -> str:
    raw = (value or "").strip().replace("_", " ").replace("-", " ")
    raw = _CAMEL_BREAK_RE.sub(" ", raw)
    raw = " ".join(raw.split())
    return raw[:1].upper() + raw[1:]


def _format_scalar_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        if all(isinstance(v, str) for v in value):
            return ", ".join(value)
        return f"list ({len(value):,} items)"
    if isinstance(value, dict):
        return f"object ({len(value):,} keys)"
    return str(value)


def _kv_table(obj: dict[str, Any]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("field")
    table.add_column("value")
    for k, v in obj.items():
        table.add_row(str(k), _format_scalar_value(v))
    return table


def _columns_for(rows: list[dict[str, Any]]) -> list[str]:
    seen: list[str] = []
    for row in rows:
        for key, value in row.items():
            if key in seen:
                continue
            # nested values are summarized, except service lists
            if isinstance(value, (dict, list)) and key != "services":
                continue
            seen.append(key)
    preferred = [c for c in _PREFERRED_COLUMNS if c in seen]
    rest = [c for c in seen if c not in preferred]
    return (preferred + rest)[:8]


def _table_from_rows(rows: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, header_style="bold")
    columns = _columns_for(rows)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*[_format_scalar_value(row.get(col)) for col in columns])
    return table


def _render_section(title: str | None, value: Any, *, verbosity: int) -> Any:
    renderables: list[Any] = []
    if title:
        renderables.append(Text(_humanize_title(title), style="bold"))
    if isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
        renderables.append(_table_from_rows(value))
    elif isinstance(value, dict):
        renderables.append(_kv_table(value))
        if verbosity >= 1:
            for key, nested in value.items():
                if isinstance(nested, list) and nested and all(isinstance(v, dict) for v in nested):
                    renderables.append(_render_section(key, nested, verbosity=0))
    elif isinstance(value, list):
        renderables.append(Text(_format_scalar_value(value) or "(empty)"))
    else:
        renderables.append(Text(_format_scalar_value(value)))
    return Group(*renderables) if len(renderables) > 1 else renderables[0]


def _render_human_data(data: Any, *, verbosity: int) -> Any:
    if data is None:
        return Text("OK")
    if isinstance(data, dict) and data and all(
        isinstance(v, (dict, list)) for v in data.values()
    ):
        sections = [_render_section(k, v, verbosity=verbosity) for k, v in data.items()]
        return Group(*sections)
    return _render_section(None, data, verbosity=verbosity)


def render_result(result: CommandResult, *, settings: RenderSettings) -> int:
    stdout = Console(file=sys.stdout, force_terminal=False)
    stderr = Console(file=sys.stderr, force_terminal=False)

    if settings.output == "json":
        payload = result.model_dump(by_alias=True, mode="json")
        sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
        return 0

    if not result.ok:
        if result.error is not None:
            title = _error_title(result.error.type)
            stderr.print(f"{title}: {result.error.message}")
            _render_error_details(
                stderr=stderr,
                command=result.command,
                error_type=result.error.type,
                hint=result.error.hint,
                details=result.error.details,
                settings=settings,
            )
        else:
            stderr.print("Error")
        return 0

    renderable: Any
    if result.command == "version" and isinstance(result.data, dict):
        renderable = Text(result.data.get("version", ""), style="bold")
    else:
        renderable = _render_human_data(result.data, verbosity=settings.verbosity)
    stdout.print(renderable)
    return 0
