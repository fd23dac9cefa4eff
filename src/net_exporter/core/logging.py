"""
Logging configuration for the exporter.

Provides JSON-formatted logs for production and human-readable logs for development.
Every record emitted during a collection cycle carries that cycle's scrape id.
"""

import logging
import sys
import json
from datetime import datetime, timezone
from typing import Optional
from contextvars import ContextVar
import traceback

# Scrape id of the collection cycle running in the current context
scrape_id_var: ContextVar[Optional[int]] = ContextVar('scrape_id', default=None)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        scrape_id = scrape_id_var.get()
        if scrape_id is not None:
            log_data['scrape_id'] = scrape_id

        # Structured fields passed as extra={'extra_fields': {...}}
        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for development."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)

        prefix_parts = [f'{color}{record.levelname}{self.RESET}']

        scrape_id = scrape_id_var.get()
        if scrape_id is not None:
            prefix_parts.append(f'[scrape {scrape_id}]')

        prefix = ' '.join(prefix_parts)

        message = f"{prefix} {record.name}: {record.getMessage()}"

        if hasattr(record, 'extra_fields'):
            fields = ' '.join(f'{k}={v}' for k, v in record.extra_fields.items())
            message += f' ({fields})'

        if record.exc_info:
            message += '\n' + ''.join(traceback.format_exception(*record.exc_info))

        return message


def setup_logging(
    level: str = 'INFO',
    json_format: bool = False,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (for production)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers = []

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = ColoredFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


class ScrapeContext:
    """Context manager binding a scrape id to every log record of a cycle."""

    def __init__(self, scrape_id: int):
        self.scrape_id = scrape_id
        self._token = None

    def __enter__(self):
        self._token = scrape_id_var.set(self.scrape_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        scrape_id_var.reset(self._token)
