"""
Tracing decorators for MCP tools and SigNoz API calls

Both decorators wrap coroutines and fall straight through to the wrapped
call when telemetry is off.
"""

import functools
import inspect
import time
from typing import Any, Callable, Dict, Optional

from src.logging import get_logger

from .config import get_tracer
from .metrics import record_tool_invocation
from .utils import add_span_attributes, record_exception, set_span_status

logger = get_logger('TELEMETRY_DECORATORS')

SENSITIVE_PARAMS = frozenset({
    'token', 'password', 'secret', 'key', 'auth', 'authorization', 'access_token', 'api_key'
})

# Tools answer failures with text instead of raising
ERROR_REPORT_PREFIXES = ("Error", "Invalid arguments", "Unknown tool", "❌")


def _tool_metric_attributes(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    attributes = {}
    if 'query' in kwargs:
        attributes['query_length'] = len(str(kwargs.get('query') or ''))
    if kwargs.get('metric'):
        attributes['metric_count'] = len(kwargs['metric'])
    return attributes


def trace_mcp_tool(tool_name: Optional[str] = None,
                   record_args: bool = True,
                   record_result: bool = False):
    """
    Trace an MCP tool and record its invocation metrics.

    Args:
        tool_name: Span name, defaults to the function name
        record_args: Put call arguments on the span (secrets redacted)
        record_result: Put the text result, or its size, on the span
    """
    def decorator(func: Callable) -> Callable:
        name = tool_name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            success = True
            try:
                tracer = get_tracer()
                if tracer is None:
                    return await func(*args, **kwargs)

                with tracer.start_as_current_span(f"mcp_tool.{name}") as span:
                    add_span_attributes(span, {"mcp.tool.name": name, "mcp.operation.type": "tool_execution"})
                    if record_args:
                        _record_function_args(span, func, args, kwargs)

                    try:
                        result = await func(*args, **kwargs)
                    except Exception as e:
                        record_exception(span, e, escaped=True)
                        set_span_status(span, False, str(e))
                        raise

                    if isinstance(result, str):
                        if record_result:
                            add_span_attributes(span, {"mcp.tool.result": result})
                        if result.startswith(ERROR_REPORT_PREFIXES):
                            span.set_attribute("mcp.tool.error_report", True)

                    set_span_status(span, True)
                    return result
            except Exception:
                success = False
                raise
            finally:
                record_tool_invocation(name, time.time() - start_time, success, **_tool_metric_attributes(kwargs))

        return wrapper
    return decorator


def trace_signoz_api_call(operation: Optional[str] = None):
    """
    Trace one SigNoz HTTP call.

    The wrapped coroutine must take ``endpoint`` and ``method`` as keyword
    arguments for them to appear on the span.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            tracer = get_tracer()
            if tracer is None:
                return await func(*args, **kwargs)

            with tracer.start_as_current_span(f"signoz_api.{operation or func.__name__}") as span:
                add_span_attributes(span, {
                    "signoz.operation.type": "api_call",
                    "signoz.api.endpoint": kwargs.get('endpoint'),
                    "signoz.api.method": kwargs.get('method'),
                })

                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    record_exception(span, e, escaped=True)
                    span.set_attribute("signoz.api.error_type", type(e).__name__)
                    set_span_status(span, False, str(e))
                    raise

                if isinstance(result, dict) and 'status' in result:
                    span.set_attribute("signoz.api.response_status", str(result['status']))

                set_span_status(span, True)
                return result

        return wrapper
    return decorator


def _record_function_args(span, func: Callable, args: tuple, kwargs: dict):
    """Bound call arguments as mcp.args.* attributes; the MCP context contributes its session id."""
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
        bound.apply_defaults()
    except TypeError as e:
        logger.debug(f"failed to bind function args | function:{func.__name__} | error:{e}")
        return

    for param_name, value in bound.arguments.items():
        if param_name == 'ctx':
            try:
                session_id = getattr(value, 'session_id', None)
            except (RuntimeError, ValueError):
                # Context outside of an active request
                session_id = None
            if session_id is not None:
                span.set_attribute("mcp.session.id", str(session_id))
        elif param_name.lower() in SENSITIVE_PARAMS:
            span.set_attribute(f"mcp.args.{param_name}", "[REDACTED]")
        else:
            value_str = str(value)
            if len(value_str) <= 200:
                span.set_attribute(f"mcp.args.{param_name}", value_str)
            else:
                span.set_attribute(f"mcp.args.{param_name}_size", len(value_str))
