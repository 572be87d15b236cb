"""
Tracing support on top of the OpenTelemetry API.

Without a configured SDK the API hands out non-recording spans, so these
helpers are safe to call from every ledger operation.
"""
from contextlib import contextmanager
from typing import Optional, Dict, Any

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

tracer = trace.get_tracer('sales_ledger')

_SPAN_KINDS = {
    'server': SpanKind.SERVER,
    'client': SpanKind.CLIENT,
    'internal': SpanKind.INTERNAL,
}


@contextmanager
def trace_span(
    name: str,
    kind: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None
):
    """
    Context manager for creating trace spans.
    
    Args:
        name: Span name
        kind: Span kind (server, client, internal)
        attributes: Span attributes
    
    Usage:
        with trace_span('sales.replace_lines', attributes={'invoice_id': str(invoice.id)}):
            # ... operation ...
    """
    span_kind = _SPAN_KINDS.get(kind, SpanKind.INTERNAL)
    
    with tracer.start_as_current_span(
        name, kind=span_kind, record_exception=False, set_status_on_exception=False
    ) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)
        
        try:
            yield span
        except Exception as e:
            span.set_attribute('error', True)
            span.set_attribute('error.type', e.__class__.__name__)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
