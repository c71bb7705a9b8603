"""
Response formatting for SigNoz results

Turns SigNoz JSON (log lists, metric series, discovery metadata) into the
fixed-format text returned by the tools. All methods are pure: the same input
always renders the same text.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence
from urllib.parse import unquote

from src.logging import get_logger

from .schemas import ConnectionResult, MetricInfo, MetricMetadata
from .query_builder import QUERY_NAMES
from .time_utils import format_iso_millis, format_timestamp

logger = get_logger('FORMAT')

DEFAULT_VERBOSE_HIDDEN_KEYS: FrozenSet[str] = frozenset({
    'body',
    'level',
    'severity_text',
    'service.name',
    'k8s.deployment.name',
    'k8s.namespace.name',
})

COMMON_RESOURCE_KEYS = ('k8s.deployment.name', 'k8s.namespace.name', 'k8s.pod.name', 'service.name')

# Discovery ignores values this long, they are usually payloads rather than labels
MAX_SAMPLE_VALUE_LENGTH = 100


@dataclass(frozen=True)
class FormattingOptions:
    """How log entries are rendered."""
    verbose: bool = False
    include_attributes: Sequence[str] = field(default_factory=tuple)
    exclude_attributes: Sequence[str] = field(default_factory=tuple)
    limit: Optional[int] = None


def format_metric_value(value: Any) -> str:
    """Up to three decimals, integers without a decimal point, non-numbers as-is."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return str(value)

    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)

    if not math.isfinite(number):
        return str(value)
    if number.is_integer():
        return str(int(number))

    return f"{number:.3f}".rstrip('0').rstrip('.')


def format_number(num: float) -> str:
    """Compact counts: 1.5K, 2M."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}".replace('.0', '', 1) + 'M'
    if num >= 1000:
        return f"{num / 1000:.1f}".replace('.0', '', 1) + 'K'
    return str(num)


def _safe_iso(ms: Any) -> str:
    try:
        return format_iso_millis(ms)
    except (TypeError, ValueError, OverflowError):
        return f"<invalid timestamp: {ms}>"


def _labels_key(labels: Any, index: int) -> str:
    if labels is None:
        return f"series_{index}"
    return json.dumps(labels, separators=(',', ':'), ensure_ascii=False, sort_keys=True)


def _table_header(metric_names: Sequence[str]) -> str:
    header = f"|unix_millis|{'|'.join(metric_names)}|\n"
    header += f"|{'-' * 11}|{'|'.join('-' * 10 for _ in metric_names)}|\n"
    return header


def _normalize_series(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Lift the {metric, values: [[ts, v]]} shape into the series-list shape."""
    if result.get('series') is not None:
        return list(result['series'] or [])

    if result.get('metric') is not None and result.get('values') is not None:
        return [{
            'labels': result['metric'],
            'values': [{'timestamp': point[0], 'value': point[1]} for point in result['values']],
        }]

    return []


class ResponseFormatter:
    """
    Renders SigNoz responses as text.

    Args:
        verbose_hidden_keys: Attributes verbose log output leaves out because
            the entry header already shows them
    """

    def __init__(self, verbose_hidden_keys: FrozenSet[str] = DEFAULT_VERBOSE_HIDDEN_KEYS):
        self.verbose_hidden_keys = frozenset(verbose_hidden_keys)

    # ============================================
    # Logs
    # ============================================

    def format_log_entries(self, entries: Sequence[Dict[str, Any]],
                           options: Optional[FormattingOptions] = None) -> str:
        """
        Render log entries in the order received (newest first).

        A pagination block is appended when exactly ``options.limit`` entries
        came back. That cannot tell "exactly limit results exist" from
        "results were truncated", so it may suggest a page that turns out empty.
        """
        options = options or FormattingOptions()
        text = f"Found {len(entries)} log entries\n\n"

        if not entries:
            return text

        for entry in entries:
            if options.verbose:
                text += self._format_verbose_log(entry)
            else:
                text += self._format_compact_log(entry, options)
            text += '\n'

        if options.limit and options.limit > 0 and len(entries) == options.limit:
            oldest = self._extract_oldest_timestamp(entries)
            if oldest:
                text += "\n--- More Results Available ---\n"
                text += f"Oldest timestamp: {oldest}\n"
                text += f"To get next {options.limit} older results, use: end=\"{oldest}\"\n"

        return text

    def _entry_header(self, entry: Dict[str, Any]) -> str:
        data = entry.get('data') or {}
        attributes = data.get('attributes_string') or {}
        timestamp = format_timestamp(entry.get('timestamp') or entry.get('ts') or entry.get('time'))
        level = attributes.get('level') or data.get('severity_text') or 'INFO'
        service_context = self.build_service_context(data)
        body = data.get('body') or ''
        return f"[{timestamp}] [{level}] [{service_context}]\n{body}\n"

    def _format_compact_log(self, entry: Dict[str, Any], options: FormattingOptions) -> str:
        text = self._entry_header(entry)

        # Compact mode shows nothing extra unless asked; exclusions have nothing to act on
        if options.include_attributes:
            data = entry.get('data') or {}
            merged = {**(data.get('attributes_string') or {}), **(data.get('resources_string') or {})}
            included = [f"{key}={merged[key]}" for key in options.include_attributes if key in merged]
            if included:
                text += f"Attributes: {' '.join(included)}\n"

        return text

    def _format_verbose_log(self, entry: Dict[str, Any]) -> str:
        text = self._entry_header(entry)

        data = entry.get('data') or {}
        attributes = data.get('attributes_string') or {}
        resources = data.get('resources_string') or {}
        keys = [k for k in {**attributes, **resources} if k not in self.verbose_hidden_keys]

        if keys:
            pairs = [f"{key}={attributes.get(key) or resources.get(key, '')}" for key in keys]
            text += f"Attributes: {' '.join(pairs)}\n"

        return text

    @staticmethod
    def build_service_context(data: Dict[str, Any]) -> str:
        """Explicit service name first, then Kubernetes topology, then 'unknown'."""
        resources = (data or {}).get('resources_string') or {}

        if resources.get('service.name'):
            return resources['service.name']

        namespace = resources.get('k8s.namespace.name')
        deployment = resources.get('k8s.deployment.name')
        pod = resources.get('k8s.pod.name')
        container = resources.get('k8s.container.name')

        if namespace and deployment:
            return f"{namespace}/{deployment}"
        if namespace and pod:
            return f"{namespace}/{pod}"
        if namespace and container:
            return f"{namespace}/{container}"
        return deployment or pod or container or 'unknown'

    @staticmethod
    def _extract_oldest_timestamp(entries: Sequence[Dict[str, Any]]) -> Optional[str]:
        # Entries arrive newest first, so the last one is the oldest
        oldest = entries[-1] if entries else None
        if not oldest or not oldest.get('timestamp'):
            return None
        return format_timestamp(oldest['timestamp'])

    # ============================================
    # Metrics
    # ============================================

    def format_metrics_response(self, response: Any, metric_names: Sequence[str],
                                start_ms: int, end_ms: int, step: str) -> str:
        """
        Render query_range metric results as a table over one shared time axis.

        Missing or empty results render as diagnostics rather than raising.
        """
        data = response.get('data') if isinstance(response, dict) else None
        results = data.get('result') if isinstance(data, dict) else None

        if results is None:
            logger.info("metrics response has no data")
            return (
                "❌ No data returned from query.\n\n"
                "This could mean:\n"
                "• The metric doesn't exist - try discover_metrics to see available metrics\n"
                "• No data exists in the specified time range\n"
                "• The query filters are too restrictive\n"
                "• There's an issue with the SigNoz API\n\n"
                "Debugging suggestions:\n"
                "• Use discover_metrics to verify metric names\n"
                "• Try a longer time range (e.g., start=\"24h\", end=\"now\")\n"
                "• Remove query filters temporarily\n"
                "• Check if the metric has data in SigNoz UI\n"
            )

        if not results:
            return (
                "❌ Query executed successfully but returned no results.\n\n"
                "This means the metric exists but no data matches your filters.\n\n"
                "Try:\n"
                "• Expanding the time range\n"
                "• Removing or adjusting query filters\n"
                "• Using discover_metric_attributes to see available labels\n"
            )

        # labels key -> {timestamp: [value per metric]}
        series_data: Dict[str, Dict[Any, List[str]]] = {}
        timestamps = set()
        columns = {name: index for index, name in enumerate(QUERY_NAMES[:len(metric_names)])}

        for position, result in enumerate(results):
            if not isinstance(result, dict):
                continue

            # Results are matched to metrics by query name; position only when the name is missing
            query_name = result.get('queryName')
            column = columns.get(query_name) if query_name else position
            if column is None or column >= len(metric_names):
                logger.debug(f"skipping result without a matching metric | query:{query_name} | position:{position}")
                continue

            for series_index, series in enumerate(_normalize_series(result)):
                values = series.get('values') or []
                if not values:
                    continue

                points = series_data.setdefault(_labels_key(series.get('labels'), series_index), {})
                for point in values:
                    ts = point.get('timestamp') if isinstance(point, dict) else None
                    if ts is None:
                        continue
                    timestamps.add(ts)
                    row = points.setdefault(ts, [''] * len(metric_names))
                    row[column] = format_metric_value(point.get('value'))

        sorted_timestamps = sorted(timestamps)

        if not sorted_timestamps:
            return (
                "⚠️ No data points found in any series.\n\n"
                "The metrics exist but contain no data in the specified time range."
            )

        logger.debug(f"formatted metrics | series:{len(series_data)} | points:{len(sorted_timestamps)}")

        text = "# Metrics Query Result\n"
        text += f"# Time Range: {_safe_iso(start_ms)} to {_safe_iso(end_ms)}\n"
        text += f"# Step: {step}\n"
        text += f"# Data Points: {len(sorted_timestamps)}\n\n"

        if len(series_data) > 1:
            text += f"Found {len(series_data)} series across {len(metric_names)} metric(s)\n\n"

            for number, (labels_key, points) in enumerate(series_data.items(), start=1):
                text += f"## Series {number}\n"
                text += f"Labels: {labels_key}\n\n"
                text += _table_header(metric_names)
                for ts in sorted_timestamps:
                    if ts in points:
                        text += f"|{ts}|{'|'.join(points[ts])}|\n"
                text += '\n'
        else:
            points = next(iter(series_data.values()))
            text += _table_header(metric_names)
            for ts in sorted_timestamps:
                row = points.get(ts) or [''] * len(metric_names)
                text += f"|{ts}|{'|'.join(row)}|\n"

        return text

    # ============================================
    # Traces
    # ============================================

    @staticmethod
    def format_traces_response(query: Optional[str]) -> str:
        return f"Traces query functionality to be implemented. Query: {query or ''}"

    # ============================================
    # Discovery
    # ============================================

    def format_metrics_list(self, metrics: Sequence[MetricInfo], limit: Optional[int] = None,
                            total: Optional[int] = None, offset: int = 0) -> str:
        """Markdown table of metrics, most active first, with a continuation hint."""
        if not metrics:
            return "No metrics found in the specified time range."

        ordered = sorted(metrics, key=lambda m: m.samples or 0, reverse=True)
        count = len(ordered)
        offset = offset or 0
        has_total = total is not None
        was_limited = bool(limit) and count >= limit

        header = f"Found {count}"
        if has_total:
            header += f" of {total}"
        header += " metrics"

        if was_limited and has_total:
            header += f" (showing {offset + 1}-{offset + count})"
        elif was_limited:
            header += " (limit reached - more may exist)"

        text = f"{header}\n\n"
        text += "|Metric|Type|Unit|Samples|Series|Description|\n"
        text += "|------|----|----|----|------|-----------|\n"

        for metric in ordered:
            description = (metric.description or '').replace('|', '\\|')
            text += (
                f"|{metric.metric_name}|{metric.type}|{metric.unit or ''}|"
                f"{format_number(metric.samples or 0)}|{format_number(metric.timeseries or 0)}|{description}|\n"
            )

        first = ordered[0]
        text += "\n**Example queries:**\n"
        text += f"• metric: [\"{first.metric_name}\"], aggregation: \"avg\"\n"
        text += f"• discover_metric_attributes({{metric_name: \"{first.metric_name}\"}})\n"

        if was_limited:
            next_offset = offset + count
            text += "\n**More metrics available.** "
            if has_total:
                text += f"To see metrics {next_offset + 1}-{min(next_offset + limit, total)}, use:\n"
            else:
                text += "To see additional metrics, use:\n"
            text += f"discover_metrics({{limit: {limit}, offset: {next_offset}}})"

        return text

    def format_metric_attributes(self, metadata: Optional[MetricMetadata]) -> str:
        """Labels of one metric, highest cardinality first, with example queries."""
        if metadata is None:
            return (
                "Error: Unable to retrieve metric metadata.\n\n"
                "This could mean:\n"
                "- The metric name doesn't exist\n"
                "- The metric has no available metadata\n"
                "- The internal endpoint is not available\n\n"
                "Try running discover_metrics first to see available metrics."
            )

        if not metadata.name:
            return (
                "Error: Invalid or empty metric metadata received.\n\n"
                "The metric may not exist or may not have any associated metadata.\n"
                "Run discover_metrics to see available metrics."
            )

        name = unquote(metadata.name)

        text = f"# Metric: {name}\n\n"
        text += f"**Type:** {metadata.type or 'unknown'} | **Unit:** {metadata.unit or 'none'}\n"
        text += f"**Description:** {metadata.description or 'No description available'}\n"
        text += (
            f"**Activity:** {metadata.samples or 0:,} samples | "
            f"{metadata.timeSeriesTotal or 0:,} total series | "
            f"{metadata.timeSeriesActive or 0:,} active series\n\n"
        )

        if metadata.metadata:
            monotonic = str(bool(metadata.metadata.monotonic)).lower()
            text += (
                f"**Metadata:** Temporality: {metadata.metadata.temporality or 'unknown'} | "
                f"Monotonic: {monotonic}\n\n"
            )

        if not metadata.attributes:
            text += "## 🏷️ Labels (Attributes)\n\nNo attribute information available for this metric.\n\n"
            text += "## 🔍 Basic Queries\n\n"
            text += f"• metric: [\"{name}\"]\n"
            text += f"• metric: [\"{name}\"], aggregation: \"avg\"\n"
            if metadata.type == 'Histogram':
                text += f"• metric: [\"{name}\"], aggregation: \"max\"\n"
            return text

        attributes = sorted(metadata.attributes, key=lambda a: a.valueCount or 0, reverse=True)

        text += "## 🏷️ Labels (Attributes)\n\n"
        for attr in attributes:
            text += f"**{attr.key}** ({attr.valueCount or 0:,} unique values)\n"
            if attr.value:
                has_more = len(attr.value) > 5 or (attr.valueCount or 0) > len(attr.value)
                text += f"  Sample values: {', '.join(attr.value[:5])}{'...' if has_more else ''}\n"
            text += '\n'

        text += "## 🔍 Example Queries\n*Based on discovered labels:*\n\n"

        first = attributes[0]
        second = attributes[1] if len(attributes) > 1 else None

        if first.value:
            text += f"**Filter by {first.key}:**\n"
            text += f"• metric: [\"{name}\"], query: \"{first.key}={first.value[0]}\"\n\n"

        if second:
            text += "**Aggregate with grouping:**\n"
            text += f"• metric: [\"{name}\"], group_by: [\"{first.key}\", \"{second.key}\"], aggregation: \"sum\"\n"
            text += f"• metric: [\"{name}\"], group_by: [\"{first.key}\"], aggregation: \"avg\"\n\n"

        if metadata.type == 'Histogram':
            text += "**Histogram metrics:**\n"
            text += f"• metric: [\"{name}\"], aggregation: \"avg\" - Average values\n"
            text += f"• metric: [\"{name}\"], aggregation: \"max\" - Maximum values\n\n"

        text += "**Common aggregations:**\n"
        text += f"• metric: [\"{name}\"], aggregation: \"avg\" - Average over time\n"
        text += f"• metric: [\"{name}\"], aggregation: \"sum\" - Total/cumulative values\n"
        text += f"• metric: [\"{name}\"], aggregation: \"max\" - Peak values\n"
        text += f"• metric: [\"{name}\"], group_by: [\"{first.key}\"], aggregation: \"sum\"\n"

        return text

    def format_log_attribute_discovery(self, entries: Sequence[Dict[str, Any]],
                                       start_ms: int, end_ms: int) -> str:
        """Summarize the attribute and resource keys seen in a sample of logs."""
        attribute_values: Dict[str, Dict[str, None]] = {}
        resource_values: Dict[str, Dict[str, None]] = {}

        for entry in entries:
            data = entry.get('data') or {}
            for source, target in ((data.get('attributes_string'), attribute_values),
                                   (data.get('resources_string'), resource_values)):
                for key, value in (source or {}).items():
                    seen = target.setdefault(key, {})
                    if isinstance(value, str) and len(value) < MAX_SAMPLE_VALUE_LENGTH:
                        seen[value] = None

        resources = sorted(resource_values.items())
        attributes = sorted(attribute_values.items())

        text = "# Log Attribute Discovery Results\n\n"
        text += f"Analyzed {len(entries)} recent logs from {_safe_iso(start_ms)} to {_safe_iso(end_ms)}\n\n"
        text += "## 📦 Resource Attributes (Infrastructure/K8s)\n*These identify where logs come from*\n\n"

        common = [(k, v) for k, v in resources if k in COMMON_RESOURCE_KEYS]
        other = [(k, v) for k, v in resources if k not in COMMON_RESOURCE_KEYS]

        if common:
            text += "**Commonly Used:**\n"
            for key, values in common:
                unique = f" ({len(values)} unique values)" if len(values) > 5 else ''
                text += f"• {key}: {', '.join(list(values)[:5])}{unique}\n"
            text += '\n'

        if other:
            text += "**Other Resources:**\n"
            text += self._sample_lines(other, 3)

        text += "\n## 🏷️ Log Attributes (Application-specific)\n*These contain log-specific data*\n\n"

        http_attrs = [(k, v) for k, v in attributes if k.startswith('http.')]
        label_attrs = [(k, v) for k, v in attributes if k.startswith('labels.')]
        other_attrs = [(k, v) for k, v in attributes if not k.startswith(('http.', 'labels.'))]

        if http_attrs:
            text += "**HTTP Attributes:**\n" + self._sample_lines(http_attrs, 3) + '\n'
        if label_attrs:
            text += "**Labels:**\n" + self._sample_lines(label_attrs, 5) + '\n'
        if other_attrs:
            text += "**Other Attributes:**\n" + self._sample_lines(other_attrs, 3)

        severities = ', '.join(attribute_values['severityText']) if 'severityText' in attribute_values \
            else 'error, info, warn, debug'

        text += "\n## 📝 Special Fields\n"
        text += "• **body** - The main log message content (use ~ operator to search)\n"
        text += "• **timestamp** - Log timestamp (automatically included)\n"
        text += f"• **level/severityText** - Log level: {severities}\n"

        text += "\n## 🔍 Example Queries\n*Based on your actual data:*\n\n"

        deployment = _first_value(resource_values.get('k8s.deployment.name'))
        if 'k8s.deployment.name' in resource_values:
            text += f"**Filter by deployment:**\nk8s.deployment.name={deployment}\n\n"

        if 'k8s.namespace.name' in resource_values and 'severityText' in attribute_values:
            namespace = _first_value(resource_values['k8s.namespace.name'])
            text += f"**Errors in a namespace:**\nk8s.namespace.name={namespace} AND level=error\n\n"

        if label_attrs:
            label_key, label_values = label_attrs[0]
            text += f"**Filter by label:**\n{label_key}={_first_value(label_values)}\n\n"

        text += "**Search log content:**\n"
        text += "body~\"error message\"\n"
        text += "body~timeout AND level=error\n\n"

        text += "**Combine multiple filters:**\n"
        if 'k8s.deployment.name' in resource_values and http_attrs:
            text += f"k8s.deployment.name={deployment} AND http.request.method=POST\n"
        else:
            text += "level=error AND body~timeout\n"

        return text

    @staticmethod
    def _sample_lines(items: Sequence, max_samples: int) -> str:
        lines = ''
        for key, values in items:
            more = '...' if len(values) > max_samples else ''
            lines += f"• {key}: {', '.join(list(values)[:max_samples])}{more}\n"
        return lines

    # ============================================
    # Connection
    # ============================================

    @staticmethod
    def format_connection_result(result: ConnectionResult, base_url: str) -> str:
        if result.success:
            return (
                "✅ Connection successful!\n\n"
                f"Server: {base_url}\n"
                f"Response time: {result.response_time_ms}ms\n"
                f"Status: {result.status}\n"
                f"Alert rules found: {result.rule_count}\n\n"
                "The Signoz server is reachable and the API key is valid."
            )

        return (
            "❌ Connection failed!\n\n"
            f"Server: {base_url}\n"
            f"Error: {result.error}\n\n"
            "Please check your SIGNOZ_BASE_URL and SIGNOZ_API_KEY environment variables."
        )


def _first_value(values: Optional[Dict[str, None]]) -> str:
    return next(iter(values), '<value>') if values else '<value>'
