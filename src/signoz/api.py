"""
SigNoz tool facade

One entry point per tool. Each call validates its arguments, resolves the
time range, parses filters, builds the request, calls SigNoz and formats the
answer. Every failure comes back as text; nothing is raised to the caller.
"""

from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from src.logging import get_logger
from src.telemetry.metrics import record_error
from src.telemetry.utils import get_current_span, record_exception, set_span_status

from .client import SignozClient
from .config import SignozConfig, get_signoz_config
from .error_enhancement import enhance_error
from .filters import has_filter_on, parse_filters
from .formatters import FormattingOptions, ResponseFormatter
from .help import get_help_text
from .query_builder import (
    InputValidationError,
    build_logs_request,
    build_metrics_request,
    build_traces_request,
    validate_metric_names,
)
from .schemas import (
    DiscoverLogAttributesArgs,
    DiscoverMetricAttributesArgs,
    DiscoverMetricsArgs,
    HelpArgs,
    QueryLogsArgs,
    QueryMetricsArgs,
    QueryTracesArgs,
    TestConnectionArgs,
    UnknownToolError,
    describe_validation_error,
    parse_tool_arguments,
)
from .time_utils import current_time_ms, format_iso_millis, resolve_range, resolve_step

logger = get_logger('SIGNOZ')


def extract_log_list(response: Any) -> List[Dict[str, Any]]:
    """Rows of the first query result, or an empty list."""
    data = response.get('data') if isinstance(response, dict) else None
    results = data.get('result') if isinstance(data, dict) else None
    if not results or not isinstance(results[0], dict):
        return []
    return results[0].get('list') or []


def with_level_filter(query: Optional[str], level: Optional[str]) -> Optional[str]:
    """Append level=<level> unless the expression already filters on level."""
    if not level:
        return query
    if has_filter_on(parse_filters(query, context="logs"), "level"):
        return query
    if query and query.strip():
        return f"{query.strip()} AND level={level}"
    return f"level={level}"


class SignozApi:
    """
    Tool operations against one SigNoz instance.

    Args:
        config: Connection settings, read from the environment when omitted
        client: HTTP client, built from config when omitted
        formatter: Response formatter
        clock: Returns "now" in epoch milliseconds
    """

    def __init__(self, config: Optional[SignozConfig] = None, client: Optional[SignozClient] = None,
                 formatter: Optional[ResponseFormatter] = None,
                 clock: Callable[[], int] = current_time_ms):
        self.config = config or get_signoz_config()
        self.client = client or SignozClient(self.config)
        self.formatter = formatter or ResponseFormatter()
        self._clock = clock

        self._handlers = {
            "query_logs": self.query_logs,
            "query_metrics": self.query_metrics,
            "query_traces": self.query_traces,
            "discover_log_attributes": self.discover_log_attributes,
            "discover_metrics": self.discover_metrics,
            "discover_metric_attributes": self.discover_metric_attributes,
            "test_connection": self.test_connection,
            "help": self.help,
        }

    async def handle_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """
        Validate arguments for a tool and run it.

        Returns:
            The tool's text report, or an explanatory message for unknown
            tools and invalid arguments
        """
        try:
            args = parse_tool_arguments(name, arguments)
        except UnknownToolError as e:
            logger.warning(f"unknown tool requested | tool:{name}")
            return str(e)
        except ValidationError as e:
            logger.warning(f"invalid tool arguments | tool:{name} | errors:{e.error_count()}")
            record_error(type(e).__name__, name)
            return f"Invalid arguments for {name}: {describe_validation_error(e)}"

        return await self._handlers[args.tool](args)

    def _report_error(self, tool: str, kind: str, prefix: str, error: Exception, **context) -> str:
        """Turn an exception into the tool's error report."""
        record_error(type(error).__name__, tool)
        span = get_current_span()
        record_exception(span, error)
        set_span_status(span, False, prefix)

        if isinstance(error, InputValidationError):
            logger.warning(f"input rejected | tool:{tool} | error:{str(error).splitlines()[0]}")
            return str(error)

        logger.error(f"{tool} failed | error_type:{type(error).__name__} | error:{error}")
        return enhance_error(kind, f"{prefix}: {error}", **context)

    async def query_logs(self, args: QueryLogsArgs) -> str:
        try:
            time_range = resolve_range(args.start, args.end, default_start="1h", default_end="now",
                                       now_ms=self._clock())
            expression = with_level_filter(args.query, args.level)
            request = build_logs_request(expression, time_range, args.limit)

            logger.info(
                f"querying logs | filter:{expression or '(none)'} | "
                f"range:{format_iso_millis(time_range.start_ms)}..{format_iso_millis(time_range.end_ms)} | "
                f"limit:{args.limit} | verbose:{args.verbose}"
            )

            response = await self.client.query_range(request)
            entries = extract_log_list(response)

            return self.formatter.format_log_entries(entries, FormattingOptions(
                verbose=args.verbose,
                include_attributes=tuple(args.include_attributes),
                exclude_attributes=tuple(args.exclude_attributes),
                limit=args.limit,
            ))
        except Exception as e:
            return self._report_error("query_logs", "logs", "Error querying logs", e)

    async def query_metrics(self, args: QueryMetricsArgs) -> str:
        try:
            metric_names = validate_metric_names(args.metric)
            time_range = resolve_range(args.start, args.end, default_start="1h", default_end="now",
                                       now_ms=self._clock())
            step_seconds = resolve_step(args.step)
            request = build_metrics_request(metric_names, args.query, args.group_by, args.aggregation,
                                            time_range, step_seconds)

            logger.info(
                f"querying metrics | metrics:{','.join(metric_names)} | filter:{args.query or '(none)'} | "
                f"aggregation:{args.aggregation} | group_by:{args.group_by} | step:{step_seconds}s"
            )

            response = await self.client.query_range(request)

            return self.formatter.format_metrics_response(
                response, metric_names, time_range.start_ms, time_range.end_ms, args.step
            )
        except Exception as e:
            return self._report_error("query_metrics", "metrics", "Error querying metrics", e)

    async def query_traces(self, args: QueryTracesArgs) -> str:
        try:
            time_range = resolve_range(args.start, args.end, default_start="1h", default_end="now",
                                       now_ms=self._clock())
            # Not sent: traces are not translated to builder queries yet
            build_traces_request(args.query, time_range)
            return self.formatter.format_traces_response(args.query)
        except Exception as e:
            return self._report_error("query_traces", "traces", "Error querying traces", e)

    async def discover_log_attributes(self, args: DiscoverLogAttributesArgs) -> str:
        try:
            time_range = resolve_range(args.time_range, "now", now_ms=self._clock())
            request = build_logs_request("", time_range, args.sample_size)

            logger.info(f"discovering log attributes | sample_size:{args.sample_size} | window:{args.time_range}")

            response = await self.client.query_range(request)
            entries = extract_log_list(response)

            return self.formatter.format_log_attribute_discovery(entries, time_range.start_ms, time_range.end_ms)
        except Exception as e:
            return self._report_error("discover_log_attributes", "log_discovery", "Error discovering attributes", e)

    async def discover_metrics(self, args: DiscoverMetricsArgs) -> str:
        try:
            response = await self.client.discover_metrics(args.time_range, args.limit, args.offset,
                                                          now_ms=self._clock())
            return self.formatter.format_metrics_list(
                response.data.metrics, args.limit, response.data.total, args.offset
            )
        except Exception as e:
            return self._report_error("discover_metrics", "metric_discovery", "Error discovering metrics", e)

    async def discover_metric_attributes(self, args: DiscoverMetricAttributesArgs) -> str:
        try:
            response = await self.client.get_metric_metadata(args.metric_name)
            return self.formatter.format_metric_attributes(response.data)
        except Exception as e:
            return self._report_error("discover_metric_attributes", "metric_attributes",
                                      "Error discovering metric attributes", e,
                                      metric_name=args.metric_name)

    async def test_connection(self, args: Optional[TestConnectionArgs] = None) -> str:
        result = await self.client.test_connection()
        return self.formatter.format_connection_result(result, self.config.base_url)

    async def help(self, args: Optional[HelpArgs] = None) -> str:
        return get_help_text(args.topic if args else None)

    async def check_connectivity(self) -> bool:
        return await self.client.check_connectivity()

    def get_config(self) -> SignozConfig:
        return self.config
