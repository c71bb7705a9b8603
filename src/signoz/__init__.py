"""
SigNoz API package

Translates the simplified tool syntax into SigNoz builder queries and renders
SigNoz responses as text.
"""

from .api import SignozApi
from .client import SignozClient, SignozAPIError, SignozResponseError
from .config import (
    SignozConfig,
    get_signoz_config,
    validate_signoz_config,
    get_signoz_headers
)
from .filters import AttributeClass, FilterOperator, FilterPredicate, classify_attribute, parse_filters
from .formatters import FormattingOptions, ResponseFormatter
from .query_builder import (
    InputValidationError,
    build_logs_request,
    build_metrics_request,
    build_traces_request
)
from .time_utils import TimeRange, TimeRangeError, resolve_range, resolve_step, resolve_time

__all__ = [
    # Facade
    'SignozApi',

    # Client
    'SignozClient',
    'SignozAPIError',
    'SignozResponseError',

    # Configuration
    'SignozConfig',
    'get_signoz_config',
    'validate_signoz_config',
    'get_signoz_headers',

    # Filters
    'AttributeClass',
    'FilterOperator',
    'FilterPredicate',
    'classify_attribute',
    'parse_filters',

    # Formatting
    'FormattingOptions',
    'ResponseFormatter',

    # Request building
    'InputValidationError',
    'build_logs_request',
    'build_metrics_request',
    'build_traces_request',

    # Time
    'TimeRange',
    'TimeRangeError',
    'resolve_range',
    'resolve_step',
    'resolve_time'
]
