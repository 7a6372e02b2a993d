"""Unified logging for starlxc with console and file output."""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

# Log file configuration
LOG_DIR = Path("/var/log/starlxc")
LOG_FILE = LOG_DIR / "starlxc.log"

# Track if file logging has been set up
_file_logging_configured = False


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Set up file logging for provisioning runs.

    Args:
        log_file: Path to log file (defaults to /var/log/starlxc/starlxc.log)
        verbose: Enable debug-level logging

    Returns:
        Path of the log file in use

    Note:
        Falls back to /tmp if /var/log/starlxc is not writable.
    """
    global _file_logging_configured

    target_log_file = Path(log_file) if log_file else LOG_FILE

    if _file_logging_configured:
        return target_log_file

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        target_log_file = Path("/tmp/starlxc.log")

    root_logger = logging.getLogger("starlxc")
    file_handler = logging.FileHandler(target_log_file)
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True
    root_logger.info(f"starlxc logging initialized: {target_log_file}")
    return target_log_file


def set_console_level(verbose: bool) -> None:
    """Raise or lower the console level of every starlxc logger."""
    level = logging.DEBUG if verbose else logging.INFO
    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and name.startswith("starlxc"):
            logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with console output.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
