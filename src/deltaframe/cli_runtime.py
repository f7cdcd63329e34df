"""Runtime helpers shared by the CLI commands."""

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from src.deltaframe.env_flags import DEBUG_ENV_FLAG, env_flag_enabled

__all__ = [
    "CLIAppError",
    "configure_logging",
    "resolve_log_level",
]

_HANDLER_MARKER = "_deltaframe_handler"


class CLIAppError(RuntimeError):
    """Raised when the CLI cannot complete its work."""

    def __init__(self, message: str, *, code: int = 1, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.rich_message = rich_message or message


def resolve_log_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Pick the ``deltaframe`` logger level from CLI flags and the debug env flag."""

    if env_flag_enabled(os.environ.get(DEBUG_ENV_FLAG)):
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.INFO
    return logging.WARNING


def configure_logging(level: int, console: Optional[Console] = None) -> logging.Logger:
    """Attach a single RichHandler to the ``src.deltaframe`` logger tree."""

    package_logger = logging.getLogger("src.deltaframe")
    for handler in list(package_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            package_logger.removeHandler(handler)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    setattr(handler, _HANDLER_MARKER, True)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return package_logger
