#!/usr/bin/env python3
"""
Audit log setup

Every cleanup phase writes one line per affected path to the "kenosis.audit"
logger. The log goes to an appended file or to syslog, and is mirrored to
the rich console unless running quietly.
"""

import logging
import logging.handlers
import os
import pathlib
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from kenosis_errors import ConfigurationError

AUDIT_LOGGER = "kenosis.audit"
SYSLOG_SENTINEL = "syslog"
SYSLOG_SOCKET = "/dev/log"

FILE_FORMAT = "%(asctime)s kenosis[%(process)d] %(levelname)s %(message)s"
SYSLOG_FORMAT = "kenosis[%(process)d]: %(message)s"


def validate_log_file(destination: str) -> pathlib.Path:
    """Check that a log file can be appended to"""
    path = pathlib.Path(destination).expanduser()
    if path.is_dir():
        raise ConfigurationError(f"Log destination is a directory: {destination}")
    parent = path.parent
    if not parent.is_dir():
        raise ConfigurationError(f"Log directory does not exist: {parent}")
    if path.exists():
        if not os.access(path, os.W_OK):
            raise ConfigurationError(f"Log file is not writable: {destination}")
    elif not os.access(parent, os.W_OK):
        raise ConfigurationError(f"Log directory is not writable: {parent}")
    return path


def _destination_handler(destination: str) -> logging.Handler:
    if destination == SYSLOG_SENTINEL:
        address = SYSLOG_SOCKET if os.path.exists(SYSLOG_SOCKET) else ("localhost", logging.handlers.SYSLOG_UDP_PORT)
        try:
            handler = logging.handlers.SysLogHandler(
                address=address, facility=logging.handlers.SysLogHandler.LOG_USER
            )
        except OSError as e:
            raise ConfigurationError(f"Cannot connect to syslog: {e}") from e
        handler.setFormatter(logging.Formatter(SYSLOG_FORMAT))
        return handler

    path = validate_log_file(destination)
    try:
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot open log file {destination}: {e}") from e
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_audit_log(
    destination: Optional[str] = None, console: Optional[Console] = None, quiet: bool = False
) -> logging.Logger:
    """Configure the audit logger for one run

    Args:
        destination: Log file path, "syslog", or None for no persistent log
        console: Rich console used for the mirrored copy
        quiet: Drop the console mirror, keep the persistent log

    Returns:
        The configured audit logger

    Raises:
        ConfigurationError: the destination cannot be written
    """
    logger = logging.getLogger(AUDIT_LOGGER)
    close_audit_log(logger)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    if destination:
        logger.addHandler(_destination_handler(destination))

    if not quiet:
        mirror = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=False)
        mirror.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(mirror)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


def close_audit_log(logger: Optional[logging.Logger] = None):
    """Detach and close all audit handlers"""
    logger = logger or logging.getLogger(AUDIT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
