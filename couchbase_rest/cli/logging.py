"""
CLI logging setup.

Library modules log through stdlib `logging`; the CLI attaches a rich handler
on stderr whose level follows `-v` / `-vv`.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER = "couchbase_rest"


@dataclass(frozen=True, slots=True)
class LoggingState:
    level: int
    handlers: tuple[logging.Handler, ...]
    propagate: bool


def level_for_verbosity(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(*, verbosity: int) -> LoggingState:
    """Route `couchbase_rest.*` records to stderr; returns the state to restore."""
    logger = logging.getLogger(_ROOT_LOGGER)
    previous = LoggingState(
        level=logger.level,
        handlers=tuple(logger.handlers),
        propagate=logger.propagate,
    )
    handler = RichHandler(
        console=Console(file=sys.stderr, force_terminal=False),
        show_path=verbosity >= 2,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.handlers = [handler]
    logger.setLevel(level_for_verbosity(verbosity))
    logger.propagate = False
    return previous


def restore_logging(state: LoggingState) -> None:
    logger = logging.getLogger(_ROOT_LOGGER)
    for handler in logger.handlers:
        if handler not in state.handlers:
            handler.close()
    logger.handlers = list(state.handlers)
    logger.setLevel(state.level)
    logger.propagate = state.propagate
