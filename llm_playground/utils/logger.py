"""
Logging utilities.

WHAT: One logging setup for the API, the orchestrator and the provider adapters
WHY: Session lifecycles interleave across providers; every line needs its module and time
HOW: stdlib logging with a console handler and a DEBUG file handler; API keys only ever logged masked
"""

import logging
import sys
from pathlib import Path

from ..core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from the HTTP stack; adapters log their own summaries
NOISY_LOGGERS = ("httpx", "httpcore", "sse_starlette")


def setup_logging():
    """Configure the root logger from LOG_LEVEL and LOG_FILE (replaces existing handlers)."""
    log_file = Path(settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    # File keeps adapter debug lines (masked keys, base URLs) with source locations
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(LOG_FORMAT.replace("%(message)s", "%(pathname)s:%(lineno)d - %(message)s"), datefmt=DATE_FORMAT)
    )
    root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized (level={settings.LOG_LEVEL}, file={log_file})")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask_secret(secret: str | None) -> str:
    """
    Render an API key for logs and API responses.

    >>> mask_secret("sk-live-abcdef123456")
    '**********3456'
    """
    if not secret:
        return "<empty>"
    if len(secret) <= 4:
        return "***"
    return "*" * 10 + secret[-4:]
