"""
Logging Configuration for the Regulatory Onboarding service.

Provides structured logging with:
- JSON formatting for production
- Human-readable formatting for development
- Write-cycle logging for onboarding audit trails
- Performance metrics tracking
"""

import asyncio
import logging
import json
import sys
import time
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable, List, Tuple
from functools import wraps
from pathlib import Path
from contextvars import ContextVar

# Context variables for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


def _context_fields() -> Dict[str, str]:
    fields = {}
    request_id = request_id_var.get()
    if request_id:
        fields["request_id"] = request_id
    return fields


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    One JSON object per line, including request context and any
    extra_data attached by ContextLogger or an explicit extra= argument.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        log_data.update(_context_fields())

        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            log_data.update(extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ReadableFormatter(logging.Formatter):
    """
    Human-readable log formatter for development.
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
        message = f"{timestamp} {color}{record.levelname:8s}{self.RESET} [{record.name}] {record.getMessage()}"

        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            message += " | " + ' | '.join(f"{k}={v}" for k, v in extra_data.items())

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that merges bound context into every record's extra_data.
    """

    def process(self, msg: str, kwargs: Dict) -> tuple:
        extra = dict(kwargs.get('extra') or {})
        extra_data = {**self.extra, **_context_fields()}
        extra_data.update(extra.get('extra_data') or {})
        extra['extra_data'] = extra_data
        kwargs['extra'] = extra
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON formatted logs
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonFormatter() if json_output else ReadableFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JsonFormatter())  # Always JSON for files
        root_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, **extra) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (typically __name__)
        **extra: Additional context to include in all logs

    Returns:
        ContextLogger instance
    """
    return ContextLogger(logging.getLogger(name), extra)


class OnboardingWriteLogger:
    """
    Audit logger for one step write.

    Records the write request, validation failures, the applied answer,
    status transitions and cross-form route decisions. Answers themselves
    are never logged, only the addressed question.
    """

    def __init__(self, client_id: str, form_code: str, step_number: int):
        self.logger = get_logger(
            "onboarding.write",
            client_id=client_id,
            form=form_code,
            step=step_number,
        )
        self._start_time: Optional[float] = None

    def start_write(self, question_id: str) -> None:
        self._start_time = time.time()
        self.logger.info(
            "Step write received",
            extra={'extra_data': {'question_id': question_id}}
        )

    def log_rejected(self, question_id: str, field_errors: Dict[str, str]) -> None:
        self.logger.info(
            "Step write rejected",
            extra={'extra_data': {
                'question_id': question_id,
                'error_paths': sorted(field_errors),
            }}
        )

    def log_inactive(self, question_id: str, visible_question_ids: List[str]) -> None:
        self.logger.warning(
            "Write to inactive question",
            extra={'extra_data': {
                'question_id': question_id,
                'visible_count': len(visible_question_ids),
            }}
        )

    def log_applied(self, question_id: str, next_question_id: Optional[str]) -> None:
        self.logger.info(
            "Answer applied",
            extra={'extra_data': {
                'question_id': question_id,
                'next_question_id': next_question_id,
                'duration_ms': self._elapsed_ms(),
            }}
        )

    def log_status(self, previous: str, current: str) -> None:
        if previous == current:
            return
        self.logger.info(
            "Form status changed",
            extra={'extra_data': {'from_status': previous, 'to_status': current}}
        )

    def log_route(self, route: Optional[str]) -> None:
        self.logger.info(
            "Next onboarding route decided",
            extra={'extra_data': {'route': route}}
        )

    def _elapsed_ms(self) -> int:
        if self._start_time is None:
            return 0
        return int((time.time() - self._start_time) * 1000)


def log_performance(name: Optional[str] = None, expected: Tuple[type, ...] = ()) -> Callable:
    """
    Decorator to log function performance.

    Args:
        name: Optional name override for the log entry
        expected: Exception types that are part of normal operation; logged
            at warning level instead of error

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        func_name = name or func.__name__
        logger = get_logger("performance")

        def report(start: float, error: Optional[Exception] = None) -> None:
            duration_ms = int((time.time() - start) * 1000)
            if error is None:
                logger.debug(f"{func_name} completed", extra={'extra_data': {'duration_ms': duration_ms}})
            elif isinstance(error, expected):
                logger.warning(
                    f"{func_name} rejected",
                    extra={'extra_data': {'duration_ms': duration_ms, 'error': str(error)}}
                )
            else:
                logger.error(
                    f"{func_name} failed",
                    extra={'extra_data': {'duration_ms': duration_ms, 'error': str(error)}}
                )

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                report(start, e)
                raise
            report(start)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(start, e)
                raise
            report(start)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
