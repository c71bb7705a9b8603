"""
Server metrics: tool invocations, SigNoz API requests and handled errors

Instruments are created once by initialize_metrics(). Until then, and
whenever telemetry is off, every record_* call is a no-op.
"""

from typing import Any, Dict

from src.logging import get_logger

logger = get_logger('TELEMETRY_METRICS')

# name -> (kind, description, unit)
INSTRUMENTS = {
    "mcp_tool_invocations_total": ("counter", "MCP tool invocations", "1"),
    "mcp_tool_duration_seconds": ("histogram", "MCP tool execution time", "s"),
    "signoz_api_requests_total": ("counter", "Requests sent to the SigNoz API", "1"),
    "signoz_api_duration_seconds": ("histogram", "SigNoz API request time", "s"),
    "mcp_errors_total": ("counter", "Errors turned into tool error reports", "1"),
}

_instruments: Dict[str, Any] = {}


def initialize_metrics() -> bool:
    """Create the metric instruments on the telemetry meter."""
    from src.telemetry.config import get_meter

    meter = get_meter()
    if meter is None:
        logger.debug("metrics not available | meter not initialized")
        return False

    try:
        for name, (kind, description, unit) in INSTRUMENTS.items():
            create = meter.create_counter if kind == "counter" else meter.create_histogram
            _instruments[name] = create(name=name, description=description, unit=unit)
    except Exception as e:
        _instruments.clear()
        logger.error(f"metrics initialization failed | error:{e}")
        return False

    logger.info(f"metrics initialization complete | instruments:{len(_instruments)}")
    return True


def _scalar_attributes(prefix: str, attributes: Dict[str, Any]) -> Dict[str, str]:
    return {
        f"{prefix}.{key}": str(value)
        for key, value in attributes.items()
        if isinstance(value, (str, int, float, bool))
    }


def _emit(counter: str, histogram: str, duration: float, attributes: Dict[str, str]) -> None:
    if counter not in _instruments:
        return
    try:
        _instruments[counter].add(1, attributes)
        _instruments[histogram].record(duration, attributes)
    except Exception as e:
        logger.debug(f"failed to record metric | instrument:{counter} | error:{e}")


def record_tool_invocation(tool_name: str, duration: float, success: bool, **attributes):
    """Count one tool call and its duration in seconds."""
    _emit("mcp_tool_invocations_total", "mcp_tool_duration_seconds", duration, {
        "tool_name": tool_name,
        "status": "success" if success else "error",
        **_scalar_attributes("tool", attributes),
    })


def record_api_request(endpoint: str, method: str, status_code: int, duration: float, **attributes):
    """
    Count one SigNoz request.

    Args:
        endpoint: API path, e.g. /api/v4/query_range
        method: HTTP method
        status_code: HTTP status, 0 when no response arrived
        duration: Seconds spent on the request
    """
    _emit("signoz_api_requests_total", "signoz_api_duration_seconds", duration, {
        "endpoint": endpoint,
        "method": method,
        "status_code": str(status_code),
        "status": "success" if 0 < status_code < 400 else "error",
        **_scalar_attributes("api", attributes),
    })


def record_error(error_type: str, tool_name: str):
    """Count an exception that a tool reported as text."""
    counter = _instruments.get("mcp_errors_total")
    if counter is None:
        return
    try:
        counter.add(1, {"error_type": error_type, "tool_name": tool_name})
    except Exception as e:
        logger.debug(f"failed to record error metric | error:{e}")


def get_metrics_status() -> dict:
    """Which instruments are live."""
    return {
        "enabled": bool(_instruments),
        "instruments": sorted(_instruments),
    }
