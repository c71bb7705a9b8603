"""
SigNoz builder-query request construction

Builds the ``/api/v4/query_range`` request bodies for logs, metrics and
traces from parsed filters, a resolved time range and per-tool options.
"""

import string
from typing import Any, Dict, List, Optional, Sequence

from src.logging import get_logger

from .filters import parse_filters, to_filter_items
from .time_utils import DEFAULT_STEP_SECONDS, TimeRange

logger = get_logger('QUERY')

DEFAULT_LOG_LIMIT = 100
DEFAULT_AGGREGATION = "avg"
LOGS_STEP_SECONDS = 60


class InputValidationError(ValueError):
    """Tool input rejected before any request is sent."""
    pass


# A..Z, more than 26 metrics in one call is not supported
QUERY_NAMES = string.ascii_uppercase


def build_logs_request(filter_expr: Optional[str], time_range: TimeRange,
                       limit: int = DEFAULT_LOG_LIMIT) -> Dict[str, Any]:
    """
    Build a logs list query.

    Args:
        filter_expr: Simplified filter expression, may be empty
        time_range: Resolved query window
        limit: Maximum rows to return

    Returns:
        query_range request body with a single builder query "A"
    """
    predicates = parse_filters(filter_expr, context="logs")

    logger.debug(f"building logs request | filters:{len(predicates)} | limit:{limit}")

    return {
        "start": time_range.start_ms,
        "end": time_range.end_ms,
        "step": LOGS_STEP_SECONDS,
        "compositeQuery": {
            "queryType": "builder",
            "panelType": "list",
            "builderQueries": {
                "A": {
                    "queryName": "A",
                    "dataSource": "logs",
                    "aggregateOperator": "noop",
                    "aggregateAttribute": {
                        "key": "",
                        "dataType": "",
                        "type": "",
                        "isColumn": False,
                        "isJSON": False,
                    },
                    "expression": "A",
                    "disabled": False,
                    "stepInterval": LOGS_STEP_SECONDS,
                    "filters": {
                        "op": "AND",
                        "items": to_filter_items(predicates, context="logs"),
                    },
                    "limit": limit,
                    "orderBy": [{"columnName": "timestamp", "order": "desc"}],
                }
            },
        },
        "variables": {},
        "dataSource": "logs",
    }


def validate_metric_names(metric_names: Optional[Sequence[Any]]) -> List[str]:
    """
    Check the requested metric list.

    Raises:
        InputValidationError: If the list is empty or holds blank names
    """
    if not metric_names:
        raise InputValidationError(
            "Error: No metrics specified for query.\n\n"
            "Please provide at least one metric to query:\n"
            "• metric: [\"metric_name\"]\n"
            "• metric: [\"metric1\", \"metric2\"]\n\n"
            "Use discover_metrics to see available metrics."
        )

    invalid = [m for m in metric_names if not isinstance(m, str) or not m.strip()]
    if invalid:
        raise InputValidationError(
            "Error: Empty or invalid metric names found.\n\n"
            "All metric names must be non-empty strings.\n"
            f"Invalid entries: {len(invalid)}\n\n"
            "Use discover_metrics to see available metrics."
        )

    return list(metric_names)


def build_group_by(attributes: Optional[Sequence[str]]) -> List[Dict[str, Any]]:
    """Group-by entries, always string tags."""
    return [
        {
            "dataType": "string",
            "id": f"{attr}--string--tag--false",
            "isColumn": False,
            "key": attr,
            "type": "tag",
        }
        for attr in (attributes or [])
    ]


def build_metrics_request(metric_names: Sequence[str], filter_expr: Optional[str],
                          group_by: Optional[Sequence[str]], aggregation: Optional[str],
                          time_range: TimeRange,
                          step_seconds: int = DEFAULT_STEP_SECONDS) -> Dict[str, Any]:
    """
    Build a metrics graph query with one builder query per metric.

    Queries are named A, B, C... in request order and share the same filters
    and group-by. A legend is set only when more than one metric is asked for.

    Raises:
        InputValidationError: If the metric list is empty or holds blank names
    """
    names = validate_metric_names(metric_names)
    aggregation = aggregation or DEFAULT_AGGREGATION

    filter_items = to_filter_items(parse_filters(filter_expr, context="metrics"), context="metrics")
    group_by_items = build_group_by(group_by)

    builder_queries: Dict[str, Dict[str, Any]] = {}
    for query_name, metric_name in zip(QUERY_NAMES, names):
        builder_queries[query_name] = {
            "dataSource": "metrics",
            "queryName": query_name,
            "aggregateOperator": aggregation,
            "aggregateAttribute": {
                "key": metric_name,
                "dataType": "float64",
                "type": "Gauge",
                "isColumn": True,
                "isJSON": False,
                "id": f"{metric_name}--float64--Gauge--true",
            },
            "timeAggregation": aggregation,
            "spaceAggregation": aggregation,
            "functions": [],
            "filters": {"items": filter_items, "op": "AND"},
            "expression": query_name,
            "disabled": False,
            "stepInterval": step_seconds,
            "having": [],
            "limit": None,
            "orderBy": [],
            "groupBy": group_by_items,
            "legend": metric_name if len(names) > 1 else "",
            "reduceTo": aggregation,
        }

    if len(names) > len(builder_queries):
        logger.warning(f"metric list truncated | requested:{len(names)} | sent:{len(builder_queries)}")

    logger.debug(
        f"building metrics request | metrics:{len(builder_queries)} | filters:{len(filter_items)} | "
        f"group_by:{len(group_by_items)} | aggregation:{aggregation} | step:{step_seconds}"
    )

    return {
        "start": time_range.start_ms,
        "end": time_range.end_ms,
        "step": step_seconds,
        "variables": {},
        "compositeQuery": {
            "queryType": "builder",
            "panelType": "graph",
            "fillGaps": False,
            "builderQueries": builder_queries,
        },
        "dataSource": "metrics",
    }


def build_traces_request(query: Optional[str], time_range: TimeRange) -> Dict[str, Any]:
    """Placeholder traces request; no filter translation."""
    return {
        "start": time_range.start_ms,
        "end": time_range.end_ms,
        "step": LOGS_STEP_SECONDS,
        "query": query or "",
        "compositeQuery": {
            "queryType": "builder",
            "panelType": "trace",
            "builderQueries": {},
        },
    }
