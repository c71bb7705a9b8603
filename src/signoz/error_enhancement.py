"""
Error Enhancement Module

Appends remediation hints to SigNoz error reports by pattern matching on the
error text. Each pattern applies to a set of tool kinds; the first match for
the kind wins.
"""

import re
from typing import Optional


# Error pattern catalog, checked in order
ERROR_PATTERNS = [
    {
        "name": "not_found",
        "pattern": r'\b404\b|Not Found',
        "kinds": ("metric_discovery", "metric_attributes", "metrics"),
        "description": "Endpoint or metric does not exist"
    },
    {
        "name": "timeout",
        "pattern": r'timeout|timed out|ETIMEDOUT',
        "kinds": ("log_discovery", "metric_discovery", "logs", "metrics"),
        "description": "SigNoz did not answer in time"
    },
    {
        "name": "bad_request",
        "pattern": r'\b400\b',
        "kinds": ("log_discovery", "metric_attributes", "logs", "metrics"),
        "description": "SigNoz rejected the request"
    },
    {
        "name": "unauthorized",
        "pattern": r'\b40[13]\b',
        "kinds": ("metric_discovery", "metric_attributes", "logs", "metrics", "log_discovery"),
        "description": "API key missing or rejected"
    },
]


def _not_found_hint(kind: str, metric_name: Optional[str] = None, **context) -> str:
    if kind == "metric_discovery":
        return "\n\nThe metrics discovery endpoint may not be available in this SigNoz version."
    if kind == "metric_attributes":
        return (
            f"\n\nThe metric \"{metric_name}\" may not exist or the internal endpoint may not be available."
            "\nTry running discover_metrics first to see available metrics."
        )
    return "\n\nOne of the requested metrics may not exist. Use discover_metrics to verify the metric names."


def _timeout_hint(kind: str, **context) -> str:
    if kind == "log_discovery":
        return (
            "\n\nTip: Try reducing the sample size or time range:"
            "\n- sample_size: 5"
            "\n- time_range: \"now-15m\""
        )
    if kind == "metric_discovery":
        return (
            "\n\nTip: Try reducing the time range or limit:"
            "\n- time_range: \"30m\""
            "\n- limit: 20"
        )
    if kind == "metrics":
        return "\n\nTip: Try a shorter time range (start: \"30m\") or a coarser step (step: \"5m\")."
    return "\n\nTip: Try a shorter time range (start: \"15m\") or a smaller limit."


def _bad_request_hint(kind: str, **context) -> str:
    if kind == "log_discovery":
        return "\n\nThis might indicate no logs are available in the specified time range."
    if kind == "metric_attributes":
        return "\n\nInvalid metric name format. Make sure to use the exact metric name from discover_metrics."
    if kind == "metrics":
        return "\n\nCheck the metric names with discover_metrics and the filter keys with discover_metric_attributes."
    return "\n\nCheck the filter syntax (key=value, key!=value, key~value joined with AND); use discover_log_attributes for valid keys."


def _unauthorized_hint(kind: str, **context) -> str:
    return "\n\nAuthentication issue. Please check your SIGNOZ_API_KEY."


ENHANCEMENT_FUNCTIONS = {
    "not_found": _not_found_hint,
    "timeout": _timeout_hint,
    "bad_request": _bad_request_hint,
    "unauthorized": _unauthorized_hint,
}


def enhance_error(kind: str, error_message: str, **context) -> str:
    """
    Append a remediation hint to an error report.

    Args:
        kind: Tool kind, e.g. "logs", "metric_discovery", "metric_attributes"
        error_message: Full error report text
        **context: Extra details used in hints (metric_name)

    Returns:
        The report with a hint appended, or unchanged if nothing matched

    Examples:
        >>> enhance_error("metric_discovery", "Error discovering metrics: Metrics discovery failed: 404 - ")
        'Error discovering metrics: Metrics discovery failed: 404 - \\n\\nThe metrics discovery endpoint ...'
    """
    for pattern_info in ERROR_PATTERNS:
        if kind not in pattern_info["kinds"]:
            continue
        if re.search(pattern_info["pattern"], error_message, re.IGNORECASE):
            hint = ENHANCEMENT_FUNCTIONS[pattern_info["name"]](kind, **context)
            return error_message + hint

    return error_message
