from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str, console: Console | None = None) -> None:
    """Route library logging through a rich handler for the command-line scripts."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )
