"""
Logging configuration for the Roblox account manager.
Logs are written to stderr so stdout stays free for MCP's stdio transport.
"""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "roblox_account_manager"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: int | str) -> int:
    """Map a level name or number to a logging level; unknown names give INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    name: str = LOGGER_NAME, level: int | str = logging.INFO, log_file: Path | None = None
) -> logging.Logger:
    """
    Configure the application logger.

    Calling it again replaces the handlers, so the level and log file from
    the settings can be applied once they have been read.

    Args:
        name: Logger name
        level: Level number or name such as "DEBUG"
        log_file: Optional file that receives the same records as stderr
    """
    numeric_level = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if numeric_level == logging.INFO and isinstance(level, str) and level.strip().upper() != "INFO":
        logger.warning(f"Unknown log level '{level}', using INFO")

    return logger


logger = setup_logger()
