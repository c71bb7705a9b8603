"""
Logging utilities for the SigNoz MCP server.
"""

from .mcp_logger import (
    get_logger,
    log_tool_call,
    signoz_logger,
    tools_logger
)

__all__ = [
    'get_logger',
    'log_tool_call',
    'signoz_logger',
    'tools_logger'
]
