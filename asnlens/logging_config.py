"""
Logging setup for the asnlens command line
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
}


def init_logging(verbosity: int = 0, console: Optional[Console] = None) -> None:
    """
    Route log records to stderr through rich.

    Args:
        verbosity: 0 warnings only, 1 info, 2 or more debug
        console: Console to log to, defaults to a stderr console
    """
    level = _LEVELS.get(verbosity, logging.DEBUG)

    root = logging.getLogger()
    root.setLevel(level)

    # Replace a handler from a previous call instead of stacking another
    for h in list(root.handlers):
        if isinstance(h, RichHandler):
            root.removeHandler(h)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbosity >= 2,
        rich_tracebacks=True
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
