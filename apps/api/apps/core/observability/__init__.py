"""
Observability module for the sales ledger.

Provides structured logging, metrics, tracing, and health checks
with credential redaction.
"""
from .metrics import metrics
from .events import log_domain_event
from .logging import get_sanitized_logger

__all__ = ['metrics', 'log_domain_event', 'get_sanitized_logger']
