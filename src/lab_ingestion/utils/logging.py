# ============================================================================
# src/lab_ingestion/utils/logging.py
# ============================================================================
"""
Logging setup for the lab-ingest CLI, a JSON formatter that carries the
queue's document_id, and a timing decorator for synchronous steps.
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Optional


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False
) -> None:
    """Route root logging to stdout and, when given, to log_file."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JsonFormatter() if format_json else logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    # aiohttp client chatter is noise at INFO
    logging.getLogger("aiohttp").setLevel(max(log_level, logging.WARNING))


class JsonFormatter(logging.Formatter):
    """One JSON object per record; adds document_id when a queue worker set it."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        document_id = getattr(record, 'document_id', None)
        if document_id is not None:
            entry['document_id'] = document_id
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_performance(logger: logging.Logger, operation: str):
    """Log how long the wrapped call took at DEBUG, or its failure at ERROR."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{operation} failed after {time.perf_counter() - started:.3f}s: {e}")
                raise
            logger.debug(f"{operation} completed in {time.perf_counter() - started:.3f}s")
            return result
        return wrapper
    return decorator
