"""Logging configuration for command-line use.

Library modules only call logging.getLogger(__name__); handlers are
installed here, once, by the entry point.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai", "aiosqlite", "asyncio")


def setup_logging(level: int = logging.WARNING, console: Console | None = None) -> None:
    """Install a Rich console handler on the root logger.

    Args:
        level: Root log level
        console: Optional Rich console (defaults to stderr)
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=level <= logging.DEBUG,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.captureWarnings(True)

    external_level = level if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(external_level)
