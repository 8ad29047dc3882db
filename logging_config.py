"""Console logging setup for the command-line entry point.

Library modules only create ``logging.getLogger(__name__)`` loggers; this is
the one place handlers are attached, rendering records through rich.
"""

import logging
from rich.logging import RichHandler


def configure(level: str = "INFO") -> None:
    """Route the root logger through a RichHandler at *level* (case-insensitive)."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_path=False)],
    )
