"""
Pydantic models for SigNoz tool arguments and discovery responses

Tool arguments arrive as a loose JSON object. They are validated once, at
the boundary, into one typed model per tool; the ``tool`` field is the
discriminator.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

TimeParam = Optional[Union[int, str]]

MAX_SAMPLE_SIZE = 100

TOOL_NAMES = (
    "query_logs",
    "query_metrics",
    "query_traces",
    "discover_log_attributes",
    "discover_metrics",
    "discover_metric_attributes",
    "test_connection",
    "help",
)


class UnknownToolError(ValueError):
    """Tool name is not one this server exposes."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.tool_name = name


# ============================================
# Tool arguments
# ============================================

class QueryLogsArgs(BaseModel):
    """Arguments for query_logs"""
    tool: Literal["query_logs"] = "query_logs"
    query: Optional[str] = Field(None, description="Filter expression, e.g. 'service.name=api AND body~timeout'")
    start: TimeParam = Field(None, description="Start time, defaults to one hour ago")
    end: TimeParam = Field(None, description="End time, defaults to now")
    limit: int = Field(100, ge=1, description="Maximum number of log entries")
    verbose: bool = Field(False, description="Show every attribute")
    include_attributes: List[str] = Field(default_factory=list, description="Attributes to show in compact mode")
    exclude_attributes: List[str] = Field(default_factory=list, description="Attributes to hide")
    level: Optional[Literal["error", "warn", "info", "debug", "trace"]] = Field(None, description="Log level filter")


class QueryMetricsArgs(BaseModel):
    """Arguments for query_metrics"""
    tool: Literal["query_metrics"] = "query_metrics"
    # Emptiness is checked by the request builder so the caller gets a guided message
    metric: List[str] = Field(default_factory=list, description="Metric names to query")
    query: Optional[str] = Field(None, description="Filter expression")
    aggregation: Literal["avg", "min", "max", "sum", "count"] = Field("avg", description="Aggregation method")
    group_by: List[str] = Field(default_factory=list, description="Attributes to group by")
    start: TimeParam = Field("1h", description="Start time")
    end: TimeParam = Field("now", description="End time")
    step: str = Field("1m", description="Query resolution step")


class QueryTracesArgs(BaseModel):
    """Arguments for query_traces"""
    tool: Literal["query_traces"] = "query_traces"
    query: str = Field("", description="Trace query string")
    start: TimeParam = None
    end: TimeParam = None
    limit: int = Field(100, ge=1)


class DiscoverLogAttributesArgs(BaseModel):
    """Arguments for discover_log_attributes"""
    tool: Literal["discover_log_attributes"] = "discover_log_attributes"
    sample_size: int = Field(10, ge=1, description="Number of recent logs to sample, capped at 100")
    time_range: str = Field("now-1h", description="How far back to sample")

    @field_validator("sample_size")
    @classmethod
    def cap_sample_size(cls, value: int) -> int:
        return min(value, MAX_SAMPLE_SIZE)


class DiscoverMetricsArgs(BaseModel):
    """Arguments for discover_metrics"""
    tool: Literal["discover_metrics"] = "discover_metrics"
    time_range: str = Field("1h", description="Activity window, e.g. '30m', '2h', '1d'")
    limit: int = Field(200, ge=1)
    offset: int = Field(0, ge=0)


class DiscoverMetricAttributesArgs(BaseModel):
    """Arguments for discover_metric_attributes"""
    tool: Literal["discover_metric_attributes"] = "discover_metric_attributes"
    metric_name: str = Field(..., min_length=1, description="Metric to inspect")


class TestConnectionArgs(BaseModel):
    """Arguments for test_connection"""
    tool: Literal["test_connection"] = "test_connection"


class HelpArgs(BaseModel):
    """Arguments for help"""
    tool: Literal["help"] = "help"
    topic: Optional[Literal["workflow", "queries", "examples"]] = None


ToolArguments = Annotated[
    Union[
        QueryLogsArgs,
        QueryMetricsArgs,
        QueryTracesArgs,
        DiscoverLogAttributesArgs,
        DiscoverMetricsArgs,
        DiscoverMetricAttributesArgs,
        TestConnectionArgs,
        HelpArgs,
    ],
    Field(discriminator="tool"),
]

_tool_arguments_adapter = TypeAdapter(ToolArguments)


def describe_validation_error(error: ValidationError, max_items: int = 5) -> str:
    """One-line summary of a pydantic ValidationError."""
    parts = []
    for item in error.errors()[:max_items]:
        location = ".".join(str(loc) for loc in item.get("loc", ()) if loc not in TOOL_NAMES) or "<root>"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def parse_tool_arguments(name: str, arguments: Optional[Dict[str, Any]] = None):
    """
    Validate a raw argument bag for the named tool.

    Raises:
        UnknownToolError: If name is not a known tool
        pydantic.ValidationError: If the arguments do not fit the tool's model
    """
    if name not in TOOL_NAMES:
        raise UnknownToolError(name)

    payload = {k: v for k, v in (arguments or {}).items() if v is not None}
    payload["tool"] = name
    return _tool_arguments_adapter.validate_python(payload)


# ============================================
# Discovery responses
# ============================================

class MetricInfo(BaseModel):
    """One row of the metrics discovery listing"""
    metric_name: str
    description: Optional[str] = ""
    type: Literal["Sum", "Gauge", "Histogram", "Summary"]
    unit: Optional[str] = ""
    timeseries: int = 0
    samples: int = 0
    lastReceived: int = 0


class MetricsDiscoveryData(BaseModel):
    metrics: List[MetricInfo] = Field(default_factory=list)
    total: Optional[int] = None


class MetricsDiscoveryResponse(BaseModel):
    """Envelope of POST /api/v1/metrics"""
    status: Literal["success", "error"]
    data: MetricsDiscoveryData


class MetricAttribute(BaseModel):
    key: str
    value: List[str] = Field(default_factory=list)
    valueCount: int = 0


class MetricTypeInfo(BaseModel):
    metric_type: str = ""
    temporality: str = ""
    monotonic: bool = False


class MetricMetadata(BaseModel):
    """Detail for one metric, including its label cardinalities"""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = ""
    type: Optional[str] = ""
    unit: Optional[str] = ""
    samples: int = 0
    timeSeriesTotal: int = 0
    timeSeriesActive: int = 0
    lastReceived: int = 0
    attributes: Optional[List[MetricAttribute]] = None
    metadata: Optional[MetricTypeInfo] = None


class MetricMetadataResponse(BaseModel):
    """Envelope of GET /api/v1/metrics/<name>/metadata"""
    status: Literal["success", "error"]
    data: MetricMetadata


class ConnectionResult(BaseModel):
    """Outcome of a connectivity test against /api/v1/rules"""
    success: bool
    response_time_ms: int = 0
    status: Optional[str] = None
    rule_count: int = 0
    error: Optional[str] = None
