"""
Logging configuration for the Correios relay.

Every record carries ``extra["request_id"]``: the id of the relayed request
that produced it, or ``-`` outside a request.
"""

import sys
from pathlib import Path
from loguru import logger

from correios_relay.config import RelayConfig


NO_REQUEST = "-"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<magenta>[{extra[request_id]}]</magenta> "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <7} [{extra[request_id]}] {name}:{line} - {message}"


def setup_logging(config: RelayConfig, console: bool = True) -> None:
    """
    Replace loguru's sinks with the relay's.

    Args:
        config: Relay configuration (level and optional log file)
        console: Whether to log to stdout
    """
    handlers = []

    if console:
        handlers.append({
            "sink": sys.stdout,
            "format": CONSOLE_FORMAT,
            "level": config.log_level,
            "colorize": True,
        })

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handlers.append({
            "sink": str(log_path),
            "format": FILE_FORMAT,
            "level": config.log_level,
            "rotation": "10 MB",
            "retention": "30 days",
            "enqueue": True,
        })
        # Failed relays only, kept apart for alerting
        handlers.append({
            "sink": str(log_path.with_name(f"{log_path.stem}.errors{log_path.suffix or '.log'}")),
            "format": FILE_FORMAT,
            "level": "ERROR",
            "rotation": "10 MB",
            "retention": "60 days",
            "enqueue": True,
        })

    logger.configure(handlers=handlers, extra={"request_id": NO_REQUEST})
    logger.debug(f"Logging configured at {config.log_level} with {len(handlers)} sink(s)")
