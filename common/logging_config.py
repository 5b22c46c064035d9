import logging
import os
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class PayloadAbbreviationFilter(logging.Filter):
    """Filter to shorten raw byte payloads in log records."""

    MAX_PREVIEW_BYTES = 16

    def filter(self, record: logging.LogRecord) -> bool:
        """Replace a bytes-like message or bytes-like arguments with a short preview."""
        if isinstance(record.msg, (bytes, bytearray, memoryview)):
            record.msg = self._abbreviate(record.msg)

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._abbreviate(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._abbreviate(arg) for arg in record.args)

        return True

    def _abbreviate(self, value):
        """Abbreviate a bytes-like value, leave anything else untouched."""
        if isinstance(value, (bytes, bytearray, memoryview)):
            raw = bytes(value)
            if len(raw) <= self.MAX_PREVIEW_BYTES:
                return raw
            return f"<{len(raw)} bytes: {raw[:self.MAX_PREVIEW_BYTES].hex()}...>"
        return value


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Args:
        component_name: Name of the component (e.g., 'gridstore')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

    level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(PayloadAbbreviationFilter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, PayloadAbbreviationFilter) for f in logger.filters):
        logger.addFilter(PayloadAbbreviationFilter())

    return logger
