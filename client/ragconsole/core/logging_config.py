"""
Logging configuration for the console.

Usage:
    from ragconsole.core.logging_config import setup_logging
    setup_logging("DEBUG")
"""

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the console process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Reduce noise from the transport
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
