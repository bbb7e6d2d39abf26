"""
Structured logging, operation timing and error tracking for the binding service.
"""
import json
import logging
import logging.handlers
import re
import sys
import threading
import time
import traceback
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Any, Optional, List


# Keys whose values never reach a log sink
SENSITIVE_KEYS = frozenset({
    'password', 'certificate_password', 'private_key', 'privkey',
    'token', 'access_token', 'dnsimple_token', 'authorization', 'pfx'
})

REDACTED = '***'

_PRIVATE_KEY_BLOCK = re.compile(
    r'-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----',
    re.DOTALL
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def redact(data: Any) -> Any:
    """
    Remove secrets from structured log data.

    Args:
        data: Mapping, sequence or scalar attached to a log record

    Returns:
        A copy of the data with sensitive values replaced
    """
    if isinstance(data, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else redact(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact(item) for item in data]
    if isinstance(data, str):
        return _PRIVATE_KEY_BLOCK.sub(REDACTED, data)
    return data


@dataclass
class LogEntry:
    """Structured log entry for JSON logging."""
    timestamp: str
    level: str
    logger_name: str
    message: str
    module: str
    function: str
    line_number: int
    thread_name: str
    extra_data: Optional[Dict[str, Any]] = None
    exception_info: Optional[Dict[str, Any]] = None


@dataclass
class OperationMetric:
    """Timing of a single measured operation."""
    operation: str
    duration_ms: float
    timestamp: datetime
    success: bool
    error_message: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None


@dataclass
class ErrorRecord:
    """A tracked error occurrence."""
    error_type: str
    error_message: str
    source: str
    timestamp: datetime
    extra_data: Optional[Dict[str, Any]] = None


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        extra_data = getattr(record, 'extra_data', None)

        log_entry = LogEntry(
            timestamp=datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            level=record.levelname,
            logger_name=record.name,
            message=redact(record.getMessage()),
            module=record.module,
            function=record.funcName,
            line_number=record.lineno,
            thread_name=record.threadName,
            extra_data=redact(extra_data) if extra_data else None
        )

        if record.exc_info and record.exc_info[0] is not None:
            log_entry.exception_info = {
                'type': record.exc_info[0].__name__,
                'message': redact(str(record.exc_info[1])),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(asdict(log_entry), default=str)


class OperationTimer:
    """Collects durations of named operations."""

    def __init__(self, max_entries: int = 10000):
        self.max_entries = max_entries
        self._metrics: List[OperationMetric] = []
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def measure(self, operation: str, extra_data: Optional[Dict[str, Any]] = None):
        """Time the enclosed block, recording whether it raised."""
        start = time.perf_counter()
        success = True
        error_message = None

        try:
            yield
        except Exception as e:
            success = False
            error_message = str(e)
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            metric = OperationMetric(
                operation=operation,
                duration_ms=duration_ms,
                timestamp=_utc_now(),
                success=success,
                error_message=error_message,
                extra_data=extra_data
            )

            with self._lock:
                self._metrics.append(metric)
                if len(self._metrics) > self.max_entries:
                    del self._metrics[:len(self._metrics) - self.max_entries]

            self.logger.debug(
                f"{operation} finished in {duration_ms:.1f} ms",
                extra={'extra_data': {
                    'operation': operation,
                    'duration_ms': round(duration_ms, 3),
                    'success': success,
                    **(extra_data or {})
                }}
            )

    def get_metrics(self, operation: Optional[str] = None,
                    since: Optional[datetime] = None) -> List[OperationMetric]:
        with self._lock:
            metrics = list(self._metrics)

        if operation:
            metrics = [m for m in metrics if m.operation == operation]
        if since:
            metrics = [m for m in metrics if m.timestamp >= since]

        return metrics

    def get_stats(self, operation: str) -> Dict[str, Any]:
        """Summarize the recorded timings of one operation."""
        metrics = self.get_metrics(operation=operation)
        if not metrics:
            return {}

        durations = [m.duration_ms for m in metrics]
        succeeded = sum(1 for m in metrics if m.success)

        return {
            'operation': operation,
            'total_calls': len(metrics),
            'success_count': succeeded,
            'failure_count': len(metrics) - succeeded,
            'success_rate': succeeded / len(metrics),
            'avg_duration_ms': sum(durations) / len(durations),
            'min_duration_ms': min(durations),
            'max_duration_ms': max(durations)
        }

    def prune(self, max_age: timedelta):
        cutoff = _utc_now() - max_age
        with self._lock:
            self._metrics = [m for m in self._metrics if m.timestamp >= cutoff]


class ErrorTracker:
    """Keeps a bounded history of errors raised while handling requests."""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._errors: List[ErrorRecord] = []
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def track(self, error: Exception, source: str = 'unknown',
              extra_data: Optional[Dict[str, Any]] = None):
        record = ErrorRecord(
            error_type=type(error).__name__,
            error_message=str(error),
            source=source,
            timestamp=_utc_now(),
            extra_data=extra_data
        )

        with self._lock:
            self._errors.append(record)
            if len(self._errors) > self.max_entries:
                del self._errors[:len(self._errors) - self.max_entries]

        self.logger.error(
            f"{record.error_type} in {source}: {record.error_message}",
            extra={'extra_data': {
                'error_type': record.error_type,
                'source': source,
                **(extra_data or {})
            }},
            exc_info=(type(error), error, error.__traceback__)
        )

    def get_errors(self, error_type: Optional[str] = None,
                   since: Optional[datetime] = None) -> List[ErrorRecord]:
        with self._lock:
            errors = list(self._errors)

        if error_type:
            errors = [e for e in errors if e.error_type == error_type]
        if since:
            errors = [e for e in errors if e.timestamp >= since]

        return errors

    def get_summary(self, since: Optional[datetime] = None) -> Dict[str, Any]:
        """Count errors by type."""
        errors = self.get_errors(since=since)
        if not errors:
            return {'total_errors': 0, 'error_types': {}, 'most_common_error': None}

        counts = Counter(e.error_type for e in errors)
        return {
            'total_errors': len(errors),
            'error_types': dict(counts),
            'most_common_error': counts.most_common(1)[0][0]
        }

    def prune(self, max_age: timedelta):
        cutoff = _utc_now() - max_age
        with self._lock:
            self._errors = [e for e in self._errors if e.timestamp >= cutoff]


class LoggingService:
    """Configures log sinks and exposes timing and error tracking."""

    def __init__(self, config, configure_handlers: bool = True):
        """
        Initialize the logging service.

        Args:
            config: Application configuration providing log_level and log_file_path
            configure_handlers: Whether to install handlers on the root logger
        """
        self.config = config
        self.timer = OperationTimer()
        self.error_tracker = ErrorTracker()
        if configure_handlers:
            self._setup_logging()
        self.logger = logging.getLogger(__name__)
        self.logger.info("Logging service initialized")

    def _setup_logging(self):
        """Install console, rotating JSON file and error file handlers."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        root_logger.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)

        if not self.config.log_file_path:
            return

        log_path = Path(self.config.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        json_formatter = JSONFormatter()

        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(json_formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path.with_suffix('.errors.log')),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding='utf-8'
        )
        error_handler.setFormatter(json_formatter)
        error_handler.setLevel(logging.ERROR)
        root_logger.addHandler(error_handler)

        # Azure SDK request logging includes SAS signatures at DEBUG
        logging.getLogger('azure').setLevel(max(log_level, logging.WARNING))

    def log_with_context(self, level: str, message: str, **context):
        """Log a message with structured context attached."""
        logger = logging.getLogger('certbinder')
        log_method = getattr(logger, level.lower(), logger.info)
        log_method(message, extra={'extra_data': context})

    def measure_performance(self, operation: str, extra_data: Optional[Dict[str, Any]] = None):
        """Get a context manager timing the named operation."""
        return self.timer.measure(operation, extra_data)

    def track_error(self, error: Exception, extra_data: Optional[Dict[str, Any]] = None):
        """Record an error raised by the caller."""
        source = sys._getframe(1).f_code.co_name
        self.error_tracker.track(error, source, extra_data)

    def get_performance_stats(self, operation: Optional[str] = None) -> Dict[str, Any]:
        if operation:
            return self.timer.get_stats(operation)

        operations = {m.operation for m in self.timer.get_metrics()}
        return {op: self.timer.get_stats(op) for op in sorted(operations)}

    def get_error_summary(self, since_hours: int = 24) -> Dict[str, Any]:
        return self.error_tracker.get_summary(since=_utc_now() - timedelta(hours=since_hours))

    def cleanup_old_data(self, metrics_max_age_hours: int = 24, errors_max_age_hours: int = 168):
        """Drop timings and errors older than the given ages."""
        self.timer.prune(timedelta(hours=metrics_max_age_hours))
        self.error_tracker.prune(timedelta(hours=errors_max_age_hours))
        self.logger.info("Cleaned up old monitoring data")

    def get_health_status(self) -> Dict[str, Any]:
        """Report recent activity of the service."""
        since = _utc_now() - timedelta(hours=1)
        recent_errors = self.error_tracker.get_summary(since=since)['total_errors']
        recent_operations = len(self.timer.get_metrics(since=since))

        return {
            'status': 'healthy',
            'recent_errors': recent_errors,
            'recent_operations': recent_operations,
            'timestamp': _utc_now().isoformat()
        }
