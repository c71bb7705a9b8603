"""
Self-telemetry for the SigNoz MCP server

The server can export its own traces and metrics over OTLP, which makes it
observable from the very SigNoz instance it queries. Everything here is a
no-op unless OTEL_TELEMETRY_ENABLED is set.
"""

from .config import (
    TelemetrySettings,
    load_telemetry_settings,
    initialize_telemetry,
    shutdown_telemetry,
    get_telemetry_status
)
from .decorators import trace_mcp_tool, trace_signoz_api_call
from .metrics import initialize_metrics, record_api_request, record_error, get_metrics_status
from .utils import get_current_span, add_span_attributes, add_signoz_context, record_exception

__all__ = [
    # Setup
    'TelemetrySettings',
    'load_telemetry_settings',
    'initialize_telemetry',
    'shutdown_telemetry',
    'get_telemetry_status',

    # Tracing
    'trace_mcp_tool',
    'trace_signoz_api_call',
    'get_current_span',
    'add_span_attributes',
    'add_signoz_context',
    'record_exception',

    # Metrics
    'initialize_metrics',
    'record_api_request',
    'record_error',
    'get_metrics_status'
]
