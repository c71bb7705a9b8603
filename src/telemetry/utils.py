"""
Span helpers for manual instrumentation

Every helper accepts span=None and does nothing in that case, so callers
never need to check whether telemetry is on.
"""

from typing import Any, Dict, Optional

from src.logging import get_logger

logger = get_logger('TELEMETRY_UTILS')

MAX_ATTRIBUTE_LENGTH = 1000


def get_current_span():
    """The active recording span, or None when telemetry is off."""
    from .config import get_tracer

    if get_tracer() is None:
        return None

    from opentelemetry import trace

    span = trace.get_current_span()
    return span if span.is_recording() else None


def _attribute_value(value: Any):
    if isinstance(value, (str, int, float, bool)):
        return value
    if value is None:
        return "null"
    return str(value)


def add_span_attributes(span, attributes: Dict[str, Any]):
    """Set attributes, stringifying non-scalars and summarizing oversized values."""
    if not span or not attributes:
        return

    for key, value in attributes.items():
        value = _attribute_value(value)
        try:
            if isinstance(value, str) and len(value) > MAX_ATTRIBUTE_LENGTH:
                span.set_attribute(f"{key}_size", len(value))
                span.set_attribute(f"{key}_truncated", value[:200] + "...")
            else:
                span.set_attribute(key, value)
        except Exception as e:
            logger.debug(f"failed to set span attribute | key:{key} | error:{e}")


def set_span_status(span, success: bool, message: Optional[str] = None):
    if not span:
        return

    from opentelemetry.trace import Status, StatusCode

    if success:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, message or "Operation failed"))


def record_exception(span, exception: Exception, escaped: bool = False):
    """Attach an exception, with its SigNoz status code when it has one."""
    if not span:
        return

    try:
        span.record_exception(exception, escaped=escaped)
        add_span_attributes(span, {
            "exception.type": type(exception).__name__,
            "exception.message": str(exception),
            "exception.escaped": escaped,
        })
        status_code = getattr(exception, 'status_code', None)
        if status_code is not None:
            span.set_attribute("signoz.api.status_code", status_code)
    except Exception as e:
        logger.debug(f"failed to record exception | error:{e}")


def add_signoz_context(span, data_source: Optional[str] = None, start_ms: Optional[int] = None,
                       end_ms: Optional[int] = None, filter_count: Optional[int] = None):
    """
    Describe the SigNoz query a span is about.

    Args:
        span: OpenTelemetry span
        data_source: logs, metrics or traces
        start_ms: Resolved range start
        end_ms: Resolved range end
        filter_count: Number of filter items sent
    """
    if not span:
        return

    attributes = {}
    if data_source:
        attributes["signoz.data_source"] = data_source
    if start_ms is not None and end_ms is not None:
        attributes["signoz.range.start_ms"] = start_ms
        attributes["signoz.range.end_ms"] = end_ms
        attributes["signoz.range.duration_ms"] = end_ms - start_ms
    if filter_count is not None:
        attributes["signoz.filter.count"] = filter_count
    add_span_attributes(span, attributes)
