#!/usr/bin/env python3
"""
SigNoz MCP Server
A Model Context Protocol server that lets assistants query SigNoz logs and
metrics through a simplified filter syntax.
"""

import asyncio
import os
from typing import List, Optional, Union

from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

# Initialize OpenTelemetry instrumentation early
from src.telemetry import initialize_telemetry, initialize_metrics, get_telemetry_status, get_metrics_status
from src.telemetry.decorators import trace_mcp_tool
telemetry_enabled = initialize_telemetry()

# Initialize metrics if telemetry is enabled
if telemetry_enabled:
    metrics_enabled = initialize_metrics()
else:
    metrics_enabled = False

from src.signoz import SignozApi, get_signoz_config, validate_signoz_config

# Import standardized logging
from src.logging import log_tool_call, signoz_logger

from fastmcp import Context, FastMCP

mcp = FastMCP("signoz-mcp-server")

api = SignozApi(get_signoz_config())

TimeValue = Optional[Union[str, int]]


# Input validation utility to prevent oversized payloads
def validate_input_size(value: Optional[str], param_name: str, max_bytes: int) -> None:
    """
    Validate input parameter size.

    Args:
        value: Input string to validate
        param_name: Parameter name for error messages
        max_bytes: Maximum allowed size in bytes

    Raises:
        ValueError: If input exceeds maximum size
    """
    if value is None:
        return

    size_bytes = len(value.encode('utf-8'))
    if size_bytes > max_bytes:
        max_kb = max_bytes / 1024
        actual_kb = size_bytes / 1024
        raise ValueError(
            f"{param_name} exceeds maximum size limit. "
            f"Maximum: {max_kb:.1f}KB, Actual: {actual_kb:.1f}KB. "
            f"Please reduce the size of your input."
        )


@mcp.tool()
@trace_mcp_tool(tool_name="query_logs", record_args=True, record_result=False)
async def query_logs(
    ctx: Context,
    query: Optional[str] = None,
    start: TimeValue = None,
    end: TimeValue = None,
    limit: int = 100,
    verbose: bool = False,
    include_attributes: Optional[List[str]] = None,
    exclude_attributes: Optional[List[str]] = None,
    level: Optional[str] = None,
) -> str:
    """
    Query logs from SigNoz with a simple filter syntax.

    Filters are key=value (equals), key~value (contains), key!=value (not
    equals) and >, <, >=, <= comparisons, joined with AND. Examples:
    'k8s.deployment.name=stio-api', 'level=error AND service=api-gateway',
    'body~timeout'.

    Args:
        query: Filter expression
        start: Start time (ISO 8601, epoch milliseconds, or relative like '30m', '1h', 'now-2h'). Defaults to 1 hour ago
        end: End time, defaults to now. Use the timestamp from a pagination hint to get the next page of older results
        limit: Maximum number of results (default 100)
        verbose: Show all attributes (default false for compact output)
        include_attributes: Specific attributes to include in compact output
        exclude_attributes: Specific attributes to exclude from output
        level: Filter by log level: error, warn, info, debug, trace
    """
    validate_input_size(query, "query", 10 * 1024)
    log_tool_call("query_logs", query=query, start=start, end=end, limit=limit, level=level)

    return await api.handle_tool("query_logs", {
        "query": query,
        "start": start,
        "end": end,
        "limit": limit,
        "verbose": verbose,
        "include_attributes": include_attributes,
        "exclude_attributes": exclude_attributes,
        "level": level,
    })


@mcp.tool()
@trace_mcp_tool(tool_name="query_metrics", record_args=True, record_result=False)
async def query_metrics(
    ctx: Context,
    metric: Optional[List[str]] = None,
    query: Optional[str] = None,
    aggregation: str = "avg",
    group_by: Optional[List[str]] = None,
    start: TimeValue = "1h",
    end: TimeValue = "now",
    step: str = "1m",
) -> str:
    """
    Query metrics from SigNoz using builder queries with filtering and grouping.

    Args:
        metric: Metric names to query, e.g. ['k8s_pod_cpu_utilization', 'k8s_pod_memory_usage']
        query: Filter expression, e.g. 'k8s_namespace_name=default AND k8s_pod_name~stio-api'
        aggregation: avg, min, max, sum or count (default avg)
        group_by: Attributes to group results by, e.g. ['k8s_pod_name']
        start: Start time, defaults to '1h' (1 hour ago, not 1 hour from now)
        end: End time, defaults to 'now'. Must be after start
        step: Query resolution step, e.g. '1m', '5m'
    """
    validate_input_size(query, "query", 10 * 1024)
    log_tool_call("query_metrics", metric=metric, query=query, aggregation=aggregation, step=step)

    return await api.handle_tool("query_metrics", {
        "metric": metric,
        "query": query,
        "aggregation": aggregation,
        "group_by": group_by,
        "start": start,
        "end": end,
        "step": step,
    })


@mcp.tool()
@trace_mcp_tool(tool_name="query_traces", record_args=True, record_result=False)
async def query_traces(
    ctx: Context,
    query: str,
    start: TimeValue = None,
    end: TimeValue = None,
    limit: int = 100,
) -> str:
    """
    Query traces from SigNoz (coming soon).

    Args:
        query: Trace query string
        start: Start time (ISO 8601, epoch milliseconds, or relative like '30m', '1h')
        end: End time
        limit: Maximum number of results
    """
    validate_input_size(query, "query", 10 * 1024)
    log_tool_call("query_traces", query=query)

    return await api.handle_tool("query_traces", {
        "query": query,
        "start": start,
        "end": end,
        "limit": limit,
    })


@mcp.tool()
@trace_mcp_tool(tool_name="discover_log_attributes", record_args=True, record_result=False)
async def discover_log_attributes(ctx: Context, sample_size: int = 10, time_range: str = "now-1h") -> str:
    """
    RECOMMENDED FIRST STEP: Discover available log attributes by sampling recent logs.

    Helps understand what fields can be queried before using query_logs.
    Returns grouped attributes with sample values and example queries.

    Args:
        sample_size: Number of recent logs to sample (default 10, max 100)
        time_range: Time range to sample from (default 'now-1h'). Use shorter ranges if experiencing timeouts
    """
    log_tool_call("discover_log_attributes", sample_size=sample_size, time_range=time_range)

    return await api.handle_tool("discover_log_attributes", {
        "sample_size": sample_size,
        "time_range": time_range,
    })


@mcp.tool()
@trace_mcp_tool(tool_name="discover_metrics", record_args=True, record_result=False)
async def discover_metrics(ctx: Context, time_range: str = "1h", limit: int = 200, offset: int = 0) -> str:
    """
    Discover available metrics with activity statistics.

    Lists metrics sorted by sample count with type, unit and description.

    Args:
        time_range: Window to analyze metric activity (default '1h'), e.g. '30m', '2h', '1d'
        limit: Maximum number of metrics to return (default 200)
        offset: Number of metrics to skip, for pagination (default 0)
    """
    log_tool_call("discover_metrics", time_range=time_range, limit=limit, offset=offset)

    return await api.handle_tool("discover_metrics", {
        "time_range": time_range,
        "limit": limit,
        "offset": offset,
    })


@mcp.tool()
@trace_mcp_tool(tool_name="discover_metric_attributes", record_args=True, record_result=False)
async def discover_metric_attributes(ctx: Context, metric_name: str) -> str:
    """
    Discover labels/attributes for a specific metric.

    Shows all available labels with sample values, cardinality, and example queries.

    Args:
        metric_name: Name of the metric to analyze (use discover_metrics to find available metrics)
    """
    validate_input_size(metric_name, "metric_name", 1024)
    log_tool_call("discover_metric_attributes", metric_name=metric_name)

    return await api.handle_tool("discover_metric_attributes", {"metric_name": metric_name})


@mcp.tool()
@trace_mcp_tool(tool_name="test_connection", record_args=False, record_result=False)
async def test_connection(ctx: Context) -> str:
    """Test connectivity to the SigNoz server using the /api/v1/rules endpoint."""
    log_tool_call("test_connection")
    return await api.handle_tool("test_connection", {})


@mcp.tool(name="help")
@trace_mcp_tool(tool_name="help", record_args=True, record_result=False)
async def get_help(ctx: Context, topic: Optional[str] = None) -> str:
    """
    Get guidance on using the SigNoz tools effectively.

    Args:
        topic: 'workflow', 'queries' or 'examples'; defaults to the workflow overview
    """
    log_tool_call("help", topic=topic)
    return await api.handle_tool("help", {"topic": topic})


def log_startup_configuration() -> None:
    """Log the connection settings and probe SigNoz once."""
    config = api.get_config()
    signoz_logger.info(f"starting SigNoz MCP server | base_url:{config.base_url} | api_key:{config.masked_api_key()}")

    warning = validate_signoz_config(config)
    if warning:
        signoz_logger.warning(warning)

    telemetry = get_telemetry_status()
    if telemetry["initialized"]:
        signoz_logger.info(
            f"telemetry enabled | endpoint:{telemetry['endpoint']} | service:{telemetry['service_name']} | "
            f"metrics:{get_metrics_status()['enabled']}"
        )
    else:
        signoz_logger.info("telemetry disabled")

    if asyncio.run(api.check_connectivity()):
        signoz_logger.info("SigNoz connectivity check passed")
    else:
        signoz_logger.warning("SigNoz connectivity check failed | tools will report errors until it is reachable")


if __name__ == "__main__":
    import signal
    import atexit

    # Register shutdown handler for telemetry
    def shutdown_handler():
        if telemetry_enabled:
            from src.telemetry.config import shutdown_telemetry
            shutdown_telemetry()

    # Register shutdown on exit and signal
    atexit.register(shutdown_handler)
    signal.signal(signal.SIGTERM, lambda signum, frame: shutdown_handler())

    log_startup_configuration()

    # Run the MCP server
    transport = os.getenv("MCP_TRANSPORT", "stdio")
    if transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(
            transport=transport,
            host=os.getenv("MCP_HOST", "0.0.0.0"),
            port=int(os.getenv("MCP_PORT", "8000"))
        )
