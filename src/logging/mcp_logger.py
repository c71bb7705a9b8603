"""
Component logging for the SigNoz MCP server.

Each component (SIGNOZ, HTTP, QUERY, FORMAT, TOOLS, TELEMETRY...) gets its own
named logger writing "timestamp - COMPONENT - LEVEL - action | key:value"
lines to stderr. Stdout is reserved for the MCP stdio transport.

Environment:
    LOG_LEVEL   DEBUG, INFO, WARNING, ERROR (default INFO)
    LOG_COLORS  colorize level names on a terminal (default true)
"""

import logging
import os
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}
RESET = '\033[0m'

log_level_value = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)
use_colors = os.getenv('LOG_COLORS', 'true').lower() in ('true', '1', 'yes', 'on')


class ColoredFormatter(logging.Formatter):
    """Standard format with the level name colored when stderr is a terminal."""

    def __init__(self, use_colors=True):
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelname) if self.use_colors else None
        if not color:
            return super().format(record)

        plain = record.levelname
        record.levelname = f"{color}{plain}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


class ComponentHandler(logging.StreamHandler):
    """Stderr handler attached to each component logger."""

    def __init__(self, use_colors=True):
        super().__init__(sys.stderr)
        self.setFormatter(ColoredFormatter(use_colors=use_colors))


def _configure_third_party_logging():
    # Libraries (httpx, fastmcp, opentelemetry) only surface warnings, and only
    # if nobody configured the root logger before us
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(levelname)s:%(name)s:%(message)s'))
    root.addHandler(handler)
    root.setLevel(logging.WARNING)


_configure_third_party_logging()


def get_logger(name: str) -> logging.Logger:
    """Component logger; repeated calls return the same configured logger."""
    logger = logging.getLogger(name)
    if not any(isinstance(h, ComponentHandler) for h in logger.handlers):
        logger.addHandler(ComponentHandler(use_colors=use_colors))
        logger.propagate = False
        logger.setLevel(log_level_value)
    return logger


signoz_logger = get_logger('SIGNOZ')
tools_logger = get_logger('TOOLS')


def log_tool_call(tool_name: str, **params):
    """Log a tool invocation with its non-empty parameters, each cut to 50 characters."""
    details = " | ".join(f"{k}:{str(v)[:50]}" for k, v in params.items() if v is not None)
    tools_logger.info(f"executing {tool_name} | {details}" if details else f"executing {tool_name}")
