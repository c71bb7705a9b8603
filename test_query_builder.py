#!/usr/bin/env python3
"""
Tests for SigNoz query_range request construction.
"""

import pytest

from src.signoz.query_builder import (
    InputValidationError,
    build_group_by,
    build_logs_request,
    build_metrics_request,
    build_traces_request,
    validate_metric_names,
)
from src.signoz.time_utils import TimeRange

WINDOW = TimeRange(start_ms=1705311000000, end_ms=1705314600000)


def test_logs_request_shape():
    request = build_logs_request("service.name=api AND level=error", WINDOW, limit=50)

    assert request["start"] == WINDOW.start_ms
    assert request["end"] == WINDOW.end_ms
    assert request["step"] == 60
    assert request["variables"] == {}
    assert request["dataSource"] == "logs"

    composite = request["compositeQuery"]
    assert composite["queryType"] == "builder"
    assert composite["panelType"] == "list"
    assert list(composite["builderQueries"]) == ["A"]

    query = composite["builderQueries"]["A"]
    assert query["dataSource"] == "logs"
    assert query["aggregateOperator"] == "noop"
    assert query["expression"] == "A"
    assert query["disabled"] is False
    assert query["limit"] == 50
    assert query["orderBy"] == [{"columnName": "timestamp", "order": "desc"}]
    assert query["filters"]["op"] == "AND"
    assert [item["key"]["key"] for item in query["filters"]["items"]] == ["service.name", "level"]


def test_logs_request_without_filters():
    request = build_logs_request("", WINDOW)
    query = request["compositeQuery"]["builderQueries"]["A"]

    assert query["filters"]["items"] == []
    assert query["limit"] == 100


def test_one_query_per_metric():
    request = build_metrics_request(["cpu", "mem"], None, None, None, WINDOW)
    queries = request["compositeQuery"]["builderQueries"]

    assert list(queries) == ["A", "B"]
    assert queries["A"]["aggregateAttribute"]["key"] == "cpu"
    assert queries["B"]["aggregateAttribute"]["key"] == "mem"
    assert queries["A"]["legend"] == "cpu"
    assert queries["B"]["legend"] == "mem"

    for name, query in queries.items():
        assert query["queryName"] == name
        assert query["expression"] == name
        assert query["aggregateOperator"] == "avg"
        assert query["timeAggregation"] == "avg"
        assert query["spaceAggregation"] == "avg"
        assert query["reduceTo"] == "avg"


def test_single_metric_has_no_legend():
    request = build_metrics_request(["cpu"], None, None, "max", WINDOW)
    query = request["compositeQuery"]["builderQueries"]["A"]

    assert query["legend"] == ""
    assert query["aggregateOperator"] == "max"


def test_metrics_request_shape():
    request = build_metrics_request(
        ["k8s_pod_cpu_utilization"],
        "k8s_namespace_name=default AND k8s_pod_name~api",
        ["k8s_pod_name"],
        "sum",
        WINDOW,
        step_seconds=300,
    )

    assert request["step"] == 300
    assert request["dataSource"] == "metrics"
    assert request["compositeQuery"]["panelType"] == "graph"
    assert request["compositeQuery"]["fillGaps"] is False

    query = request["compositeQuery"]["builderQueries"]["A"]
    assert query["stepInterval"] == 300
    assert query["aggregateAttribute"]["id"] == "k8s_pod_cpu_utilization--float64--Gauge--true"
    assert [item["op"] for item in query["filters"]["items"]] == ["=", "contains"]
    assert query["groupBy"] == [{
        "dataType": "string",
        "id": "k8s_pod_name--string--tag--false",
        "isColumn": False,
        "key": "k8s_pod_name",
        "type": "tag",
    }]


def test_metrics_share_filters_and_group_by():
    request = build_metrics_request(["cpu", "mem"], "pod=api-1", ["pod"], "avg", WINDOW)
    queries = request["compositeQuery"]["builderQueries"]

    assert queries["A"]["filters"] == queries["B"]["filters"]
    assert queries["A"]["groupBy"] == queries["B"]["groupBy"]


def test_no_metrics_is_rejected():
    with pytest.raises(InputValidationError) as exc_info:
        build_metrics_request([], None, None, "avg", WINDOW)

    message = str(exc_info.value)
    assert message.startswith("Error: No metrics specified for query.")
    assert "discover_metrics" in message


def test_blank_metric_names_are_rejected():
    with pytest.raises(InputValidationError) as exc_info:
        validate_metric_names(["cpu", "", "  "])

    message = str(exc_info.value)
    assert message.startswith("Error: Empty or invalid metric names found.")
    assert "Invalid entries: 2" in message


def test_group_by_empty():
    assert build_group_by(None) == []
    assert build_group_by([]) == []


def test_traces_request():
    request = build_traces_request("service=checkout", WINDOW)

    assert request["query"] == "service=checkout"
    assert request["step"] == 60
    assert request["compositeQuery"]["panelType"] == "trace"
    assert request["compositeQuery"]["builderQueries"] == {}
