"""
Structured logging with credential and contact-data redaction.

Provides the correlation filter, the JSON formatter and helpers used by
every ledger module that logs.
"""
import logging
import json
from datetime import datetime, timezone
from .correlation import get_request_id, get_trace_id, get_user_id


# Values under these keys are replaced before a record leaves the process
SENSITIVE_FIELDS = {
    'password',
    'token',
    'access',
    'refresh',
    'secret',
    'api_key',
    'authorization',
    'phone',
    'address',
    'gst_number',
}

_STANDARD_RECORD_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
])


class CorrelationFilter(logging.Filter):
    """
    Logging filter that injects correlation context into log records.
    """
    
    def filter(self, record):
        """Add correlation fields to log record."""
        record.request_id = get_request_id() or '-'
        record.trace_id = get_trace_id() or '-'
        record.user_id = get_user_id() or '-'
        return True


class SanitizedJSONFormatter(logging.Formatter):
    """
    JSON formatter that redacts sensitive fields.
    """
    
    def format(self, record):
        """Format log record as JSON with sanitized fields."""
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'request_id': getattr(record, 'request_id', '-'),
            'trace_id': getattr(record, 'trace_id', '-'),
            'user_id': getattr(record, 'user_id', '-'),
        }
        
        # Fields passed through extra={}
        for key, value in record.__dict__.items():
            if key in log_data or key.startswith('_') or key in _STANDARD_RECORD_ATTRS:
                continue
            if key.lower() in SENSITIVE_FIELDS:
                log_data[key] = '[REDACTED]'
            else:
                log_data[key] = self._sanitize_value(value)
        
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        
        return json.dumps(log_data, default=str)
    
    def _sanitize_value(self, value):
        """Sanitize a value recursively."""
        if isinstance(value, dict):
            return sanitize_dict(value)
        elif isinstance(value, (list, tuple)):
            return [self._sanitize_value(v) for v in value]
        return value


def get_sanitized_logger(name):
    """
    Get a logger with correlation filter applied.
    
    Usage:
        logger = get_sanitized_logger(__name__)
        logger.info('Sale created', extra={'event': 'sale.created', 'invoice_id': str(invoice.id)})
    """
    logger = logging.getLogger(name)
    
    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())
    
    return logger


def sanitize_dict(data):
    """
    Return a copy of ``data`` with sensitive keys redacted at any depth.
    """
    if not isinstance(data, dict):
        return data
    
    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_FIELDS:
            sanitized[key] = '[REDACTED]'
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value)
        elif isinstance(value, (list, tuple)):
            sanitized[key] = [
                sanitize_dict(v) if isinstance(v, dict) else v
                for v in value
            ]
        else:
            sanitized[key] = value
    
    return sanitized
