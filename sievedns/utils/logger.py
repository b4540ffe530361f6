"""Rich-based logging system for SIEVEDNS.

Provides colourised, module-tagged log messages with optional file output.
Log output always goes to stderr so that domain lists printed to stdout stay
pipeable.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_console = Console(stderr=True)
_FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
_root_configured = False


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Configure the root logger used by all SIEVEDNS components.

    Args:
        level: Base log level (e.g. ``logging.DEBUG``).
        log_file: Optional filesystem path for a persistent log file.
        verbose: When ``True``, forces ``DEBUG`` level.
        quiet: When ``True``, only warnings and errors reach the console.
            ``verbose`` wins when both are set.
    """
    global _root_configured

    if quiet:
        level = logging.WARNING
    if verbose:
        level = logging.DEBUG

    root = logging.getLogger("sievedns")
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=_console,
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=True,
    )
    rich_handler.setLevel(level)
    root.addHandler(rich_handler)

    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)

    _root_configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a named child logger under the ``sievedns`` hierarchy.

    Automatically configures the root logger on first use if it hasn't been
    configured yet.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        :class:`logging.Logger` instance.
    """
    if not _root_configured:
        configure_logging()

    if name.startswith("sievedns.") or name == "sievedns":
        return logging.getLogger(name)
    return logging.getLogger(f"sievedns.{name}")
