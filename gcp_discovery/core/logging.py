"""
Logging Configuration Module
============================

Provides centralized logging configuration for GCP Discovery.

Every module logs through a standard ``logging.getLogger(__name__)``
logger; this module only decides where those records go:
- Console output through Rich
- Optional file logging
- Quieter Google client libraries

Functions
---------
setup_logging
    Configure application-wide logging.
get_logger
    Get a logger for a specific module.

Example
-------
>>> from gcp_discovery.core.logging import setup_logging, get_logger
>>>
>>> setup_logging(level="INFO", log_file="gcp-discovery.log")
>>> logger = get_logger(__name__)
>>> logger.info("Starting discovery")

See Also
--------
logging : Python standard library logging module.
rich.logging : Rich library's logging handler.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Google client libraries log every retry and token refresh at INFO/DEBUG
NOISY_LOGGERS = (
    "google",
    "google.auth",
    "google.api_core",
    "googleapiclient",
    "grpc",
    "urllib3",
)


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure application-wide logging.

    Installs a Rich console handler on the root logger and, when
    ``log_file`` is given, a plain-text file handler next to it.

    Parameters
    ----------
    level : str or int, default="INFO"
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    log_file : str, optional
        Path to log file.
    rich_tracebacks : bool, default=True
        Whether to use Rich for exception tracebacks.
    console : Console, optional
        Rich Console instance. Defaults to a stderr console so that
        progress output on stdout stays clean.

    Notes
    -----
    Existing root handlers are cleared, so calling this twice replaces
    the previous configuration instead of duplicating output.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    rich_console = console or Console(stderr=True)
    console_handler = RichHandler(
        console=rich_console,
        show_time=True,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=False,
        markup=False,
    )
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
        )
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root_logger.debug(
        f"Logging configured: level={logging.getLevelName(level)}, "
        f"file={log_file or 'None'}"
    )


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (typically ``__name__``)."""
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for temporary log level changes.

    Parameters
    ----------
    logger : logging.Logger
        Logger to modify.
    level : str or int
        Temporary log level.

    Example
    -------
    >>> logger = get_logger("gcp_discovery.scanners")
    >>> with LogContext(logger, "DEBUG"):
    ...     logger.debug("Per-zone details are shown here")
    """

    def __init__(
        self,
        logger: logging.Logger,
        level: Union[str, int],
    ) -> None:
        self.logger = logger
        self.new_level = (
            getattr(logging, level.upper()) if isinstance(level, str) else level
        )
        self.original_level: Optional[int] = None

    def __enter__(self) -> logging.Logger:
        self.original_level = self.logger.level
        self.logger.setLevel(self.new_level)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_level is not None:
            self.logger.setLevel(self.original_level)
