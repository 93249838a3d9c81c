# netflow/core/logging.py
"""
Centralized logging system for the netflow indexer.

Provides:
- NetflowLogger: Global logging configuration
- LoggingMixin: Consistent logging behavior for classes
- Utility functions: Context logging helpers
"""

import json
import logging
import sys
from datetime import datetime
from logging import DEBUG, INFO, WARNING, ERROR, CRITICAL
from pathlib import Path
from typing import Optional, Dict, Any


CONTEXT_ATTRS = (
    'token_address', 'from_block', 'to_block', 'block_number', 'tx_hash',
    'log_index', 'method', 'attempt', 'delay', 'inserted', 'skipped',
    'malformed', 'added', 'removed', 'log_count', 'cursor', 'state',
    'path', 'tokens', 'watched', 'tables', 'db_url', 'host', 'port',
    'service_type',
    'error', 'exception_type',
)


class NetflowFormatter(logging.Formatter):
    def __init__(self, include_context: bool = False, structured: bool = False):
        self.include_context = include_context
        self.structured = structured
        super().__init__()

    def _context(self, record: logging.LogRecord) -> Dict[str, Any]:
        return {
            attr: getattr(record, attr)
            for attr in CONTEXT_ATTRS
            if hasattr(record, attr)
        }

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        context = self._context(record) if self.include_context else {}

        if self.structured:
            entry = {
                'timestamp': timestamp,
                'level': record.levelname,
                'logger': record.name,
                'message': record.getMessage(),
            }
            if context:
                entry['context'] = context
            if record.exc_info:
                entry['exception'] = self.formatException(record.exc_info)
            return json.dumps(entry, separators=(',', ':'), default=str)

        base_msg = f"{timestamp} - {record.name} - {record.levelname} - {record.getMessage()}"
        if context:
            base_msg = f"{base_msg} | {' '.join(f'{k}={v}' for k, v in context.items())}"
        if record.exc_info:
            base_msg = f"{base_msg}\n{self.formatException(record.exc_info)}"
        return base_msg


class NetflowLogger:
    """Global logging configuration and management"""

    _configured = False
    _log_dir: Optional[Path] = None
    _log_level = logging.INFO

    @classmethod
    def configure(cls,
                  log_dir: Optional[Path] = None,
                  log_level: str = "INFO",
                  console_enabled: bool = True,
                  file_enabled: bool = False,
                  structured_format: bool = False) -> None:

        if cls._configured:
            return

        cls._log_dir = log_dir
        cls._log_level = getattr(logging, log_level.upper(), logging.INFO)

        if file_enabled and log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger('netflow')
        root_logger.setLevel(cls._log_level)
        root_logger.handlers.clear()

        if console_enabled:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(cls._log_level)
            console_handler.setFormatter(
                NetflowFormatter(include_context=True, structured=structured_format)
            )
            root_logger.addHandler(console_handler)

        if file_enabled and log_dir:
            file_formatter = NetflowFormatter(include_context=True, structured=True)

            file_handler = logging.FileHandler(log_dir / 'netflow.log')
            file_handler.setLevel(cls._log_level)
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

            error_handler = logging.FileHandler(log_dir / 'netflow_errors.log')
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(file_formatter)
            root_logger.addHandler(error_handler)

        cls._configured = True

    @classmethod
    def reset(cls) -> None:
        logging.getLogger('netflow').handlers.clear()
        cls._configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not name.startswith('netflow'):
            name = f'netflow.{name}'
        return logging.getLogger(name)


# === Utility Functions ===

def get_class_logger(cls_instance) -> logging.Logger:
    module = cls_instance.__class__.__module__
    class_name = cls_instance.__class__.__name__

    if module.startswith('netflow.'):
        module = module[len('netflow.'):]

    return NetflowLogger.get_logger(f"{module}.{class_name}")


def log_with_context(logger: logging.Logger, level: int, message: str,
                     exc_info: bool = False, **context) -> None:
    if logger.isEnabledFor(level):
        record = logger.makeRecord(
            logger.name, level, "", 0, message, (),
            sys.exc_info() if exc_info else None
        )
        for key, value in context.items():
            setattr(record, key, value)
        logger.handle(record)


# === LoggingMixin for Classes ===

class LoggingMixin:
    """
    Mixin to add consistent logging behavior to any class.

    Provides convenient logging methods that automatically:
    - Create class-specific loggers
    - Support structured context logging
    """

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            self._logger = get_class_logger(self)
        return self._logger

    def log_debug(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.DEBUG, message, **context)

    def log_info(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.INFO, message, **context)

    def log_warning(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.WARNING, message, **context)

    def log_error(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.ERROR, message, **context)

    def log_range_context(self, token_address: str, from_block: int, to_block: int,
                          **additional_context) -> Dict[str, Any]:
        context = {
            'token_address': token_address,
            'from_block': from_block,
            'to_block': to_block,
        }
        context.update(additional_context)
        return context


__all__ = [
    'NetflowFormatter', 'NetflowLogger', 'LoggingMixin',
    'get_class_logger', 'log_with_context',
    'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL',
]
