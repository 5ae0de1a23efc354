"""
Logger Configuration
Unified logging setup
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler
from rich.console import Console


# Shared console for log output and report tables
console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

LOG_DIR = Path(__file__).parent.parent / "logs"


def setup_logger(
    name: Optional[str] = None,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Configure a logger (the root logger when name is None)

    Args:
        name: logger name
        level: log level
        log_file: optional file name under logs/
        use_rich: render console output with Rich

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # never attach a second set of handlers
    if logger.handlers:
        return logger

    if use_rich:
        console_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
        )
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_path = LOG_DIR / log_file

        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    # quiet chatty HTTP client loggers
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


def get_logger(name: str = "pregen") -> logging.Logger:
    """
    Get a logger, configuring it on first use

    Args:
        name: logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers and not logging.getLogger().handlers:
        return setup_logger(name)

    return logger
