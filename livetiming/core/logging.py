# livetiming/core/logging.py
"""Logging setup shared by the API and the ingestion CLI."""
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a single console handler.

    Calling it again only adjusts the level, so the API lifespan and the
    CLI entrypoint can both call it safely.
    
    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR)
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    
    if not any(getattr(h, "_livetiming", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._livetiming = True
        root.addHandler(handler)
    
    # httpx logs every request at INFO, which floods the console at 3s polling
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)
