"""Structured logging with correlation IDs and operation tracking."""

import json
import logging
import logging.config
import traceback
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, Union

from .types import LogLevel

# Context variable for correlation ID tracking
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

# Attributes every LogRecord carries; anything else was passed as extra
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord(
    'probe', logging.INFO, __file__, 0, '', (), None
))) | {'message', 'asctime', 'context', 'taskName'}


@dataclass
class LogContext:
    """Structured logging context."""
    correlation_id: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    operation_id: Optional[str] = None
    collection: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, filtering out None values."""
        data = asdict(self)
        extra = data.pop('extra_data') or {}
        data = {k: v for k, v in data.items() if v is not None}
        data.update(extra)
        return data

    def merged(self, **kwargs) -> 'LogContext':
        """Return a copy with known fields replaced and the rest kept in extra_data."""
        known = {f.name for f in fields(self)}
        current = asdict(self)
        extra = dict(current.pop('extra_data') or {})

        for key, value in kwargs.items():
            if key in known and key != 'extra_data':
                current[key] = value
            else:
                extra[key] = value

        return LogContext(**current, extra_data=extra or None)


class StructuredFormatter(logging.Formatter):
    """Formats log records as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        corr_id = correlation_id.get()
        if corr_id:
            log_data['correlation_id'] = corr_id

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith('_'):
                log_data[key] = value

        if hasattr(record, 'context'):
            context_data = record.context.to_dict() if isinstance(record.context, LogContext) else record.context
            log_data.update(context_data)

        return json.dumps(log_data, default=str)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that attaches a LogContext to every record."""

    def __init__(self, logger: logging.Logger, context: LogContext):
        super().__init__(logger, {})
        self.context = context

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if 'extra' not in kwargs:
            kwargs['extra'] = {}

        kwargs['extra']['context'] = self.context

        if 'correlation_id' not in kwargs['extra']:
            corr_id = correlation_id.get()
            if corr_id:
                kwargs['extra']['correlation_id'] = corr_id

        return msg, kwargs


class StoreLogger:
    """Logger used by every store component."""

    def __init__(self, name: str, context: Optional[LogContext] = None):
        self.logger = logging.getLogger(name)
        self.context = context or LogContext()
        self.adapter = ContextualLoggerAdapter(self.logger, self.context)

    def debug(self, msg: str, **kwargs) -> None:
        self.adapter.debug(msg, extra=kwargs)

    def info(self, msg: str, **kwargs) -> None:
        self.adapter.info(msg, extra=kwargs)

    def warning(self, msg: str, **kwargs) -> None:
        self.adapter.warning(msg, extra=kwargs)

    def error(self, msg: str, **kwargs) -> None:
        self.adapter.error(msg, extra=kwargs)

    def with_context(self, **kwargs) -> 'StoreLogger':
        """Create a new logger with updated context."""
        return StoreLogger(self.logger.name, self.context.merged(**kwargs))

    def start_operation(self, operation: str, **kwargs) -> 'OperationLogger':
        """Start a tracked operation."""
        return OperationLogger(self, operation, **kwargs)


class OperationLogger:
    """Tracks a single store operation from start to completion or failure."""

    def __init__(self, parent_logger: StoreLogger, operation: str, **context_kwargs):
        self.parent_logger = parent_logger
        self.operation = operation
        self.start_time = datetime.now()
        self.operation_id = context_kwargs.pop('operation_id', None) or str(uuid.uuid4())
        self.logger = parent_logger.with_context(
            operation=operation,
            operation_id=self.operation_id,
            **context_kwargs
        )

        self.logger.debug(f"Starting operation: {operation}")

    def error(self, msg: str, **kwargs) -> None:
        self.logger.error(f"Operation error: {msg}", **kwargs)

    def complete(self, msg: Optional[str] = None, **kwargs) -> None:
        """Mark operation as complete."""
        duration = (datetime.now() - self.start_time).total_seconds()
        complete_msg = msg or f"Operation completed: {self.operation}"

        self.logger.info(complete_msg,
                         duration_seconds=duration,
                         operation_status="completed",
                         **kwargs)

    def fail(self, msg: Optional[str] = None, exception: Optional[Exception] = None, **kwargs) -> None:
        """Mark operation as failed."""
        duration = (datetime.now() - self.start_time).total_seconds()
        fail_msg = msg or f"Operation failed: {self.operation}"

        if exception is not None:
            kwargs['error'] = str(exception)
            kwargs['error_type'] = type(exception).__name__

        self.logger.error(fail_msg,
                          duration_seconds=duration,
                          operation_status="failed",
                          **kwargs)


def setup_logging(
    level: Union[str, LogLevel] = LogLevel.INFO,
    log_file: Optional[str] = None,
    structured: bool = True,
    console: bool = True
) -> None:
    """Configure root logging for the store."""

    if isinstance(level, str):
        level = LogLevel(level.upper())

    handlers = {}

    if console:
        handlers['console'] = {
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stdout',
            'formatter': 'structured' if structured else 'simple',
            'level': level.value
        }

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(log_path),
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'formatter': 'structured' if structured else 'simple',
            'level': level.value
        }

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            },
            'structured': {
                '()': StructuredFormatter
            }
        },
        'handlers': handlers,
        'root': {
            'level': level.value,
            'handlers': list(handlers.keys())
        }
    }

    logging.config.dictConfig(config)


def get_logger(name: str, context: Optional[LogContext] = None) -> StoreLogger:
    """Get a store logger with optional context."""
    return StoreLogger(name, context)


def set_correlation_id(corr_id: str) -> None:
    correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id.get()


def generate_correlation_id() -> str:
    return str(uuid.uuid4())
