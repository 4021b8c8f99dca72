"""Centralized logging configuration for intraclient.

Sets up standard Python logging with appropriate levels, formatters,
and handlers (console via rich when attached to a terminal, optional file).
"""

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
RICH_LOG_FORMAT = '%(message)s'
DEFAULT_LOG_FILE = None

def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = DEFAULT_LOG_FILE,
    rich_console: Optional[Console] = None,
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for plain (non-terminal) log messages.
        log_file: Optional path to a file for logging output.
        rich_console: Console to render colored log lines on. When omitted, a
            stderr console is used if stderr is a terminal, else plain output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers attached to the root logger
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if rich_console is None and sys.stderr.isatty():
        rich_console = Console(stderr=True)

    # Console handler: rich colors on a terminal, plain text otherwise
    if rich_console is not None:
        console_handler: logging.Handler = RichHandler(
            console=rich_console, show_path=False, markup=False, rich_tracebacks=True
        )
        console_handler.setFormatter(logging.Formatter(RICH_LOG_FORMAT))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(log_format))
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(log_format))
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    # httpx logs every request at INFO; the client's own request lines cover that
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))
    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}")
