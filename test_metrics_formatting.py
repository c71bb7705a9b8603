#!/usr/bin/env python3
"""
Tests for metrics tables and metric discovery rendering.
"""

from src.signoz.formatters import ResponseFormatter, format_metric_value, format_number
from src.signoz.schemas import MetricAttribute, MetricInfo, MetricMetadata, MetricTypeInfo

START_MS = 1705311000000
END_MS = 1705314600000


def series(labels, points):
    return {"labels": labels, "values": [{"timestamp": ts, "value": v} for ts, v in points]}


def render(response, metric_names=("cpu",)):
    return ResponseFormatter().format_metrics_response(response, list(metric_names), START_MS, END_MS, "1m")


def test_missing_result_and_empty_result_differ():
    missing = render({"status": "success", "data": {}})
    empty = render({"status": "success", "data": {"result": []}})

    assert missing.startswith("❌ No data returned from query.")
    assert empty.startswith("❌ Query executed successfully but returned no results.")
    assert render(None).startswith("❌ No data returned from query.")


def test_series_without_points():
    text = render({"data": {"result": [{"queryName": "A", "series": [series({}, [])]}]}})
    assert text.startswith("⚠️ No data points found in any series.")


def test_header_lines():
    text = render({"data": {"result": [{"queryName": "A", "series": [series({}, [(1000, "1")])]}]}})

    assert text.startswith("# Metrics Query Result\n")
    assert "# Time Range: 2024-01-15T09:30:00.000Z to 2024-01-15T10:30:00.000Z\n" in text
    assert "# Step: 1m\n" in text
    assert "# Data Points: 1\n" in text


def test_shared_axis_leaves_blank_cells():
    response = {"data": {"result": [
        {"queryName": "A", "series": [series({}, [(1000, "1.5"), (2000, "2")])]},
        {"queryName": "B", "series": [series({}, [(2000, "0.25"), (3000, 7)])]},
    ]}}
    text = render(response, ("cpu", "mem"))

    assert "|unix_millis|cpu|mem|\n" in text
    assert "|1000|1.5||\n" in text
    assert "|2000|2|0.25|\n" in text
    assert "|3000||7|\n" in text
    assert "# Data Points: 3\n" in text
    # Rows sorted ascending
    assert text.index("|1000|") < text.index("|2000|") < text.index("|3000|")


def test_multiple_series_get_their_own_tables():
    response = {"data": {"result": [{"queryName": "A", "series": [
        series({"pod": "api-1"}, [(1000, "1"), (2000, "2")]),
        series({"pod": "api-2"}, [(2000, "3")]),
    ]}]}}
    text = render(response)

    assert "Found 2 series across 1 metric(s)\n" in text
    assert "## Series 1\nLabels: {\"pod\":\"api-1\"}\n" in text
    assert "## Series 2\nLabels: {\"pod\":\"api-2\"}\n" in text

    second_table = text.split("## Series 2")[1]
    # A series only lists the timestamps it has
    assert "|1000|" not in second_table
    assert "|2000|3|" in second_table


def test_prometheus_shape_is_accepted():
    response = {"data": {"result": [{"metric": {"pod": "api-1"}, "values": [[1000, "4.25"], [2000, "5"]]}]}}
    text = render(response)

    assert "|1000|4.25|\n" in text
    assert "|2000|5|\n" in text


def test_points_without_timestamp_are_skipped():
    response = {"data": {"result": [{"series": [
        {"labels": {}, "values": [{"timestamp": None, "value": "1"}, {"timestamp": 1000, "value": "2"}]},
    ]}]}}
    text = render(response)

    assert "# Data Points: 1\n" in text
    assert "|1000|2|\n" in text


def test_metric_value_formatting():
    assert format_metric_value("12.34567") == "12.346"
    assert format_metric_value(3.0) == "3"
    assert format_metric_value("2.500") == "2.5"
    assert format_metric_value(0.1 + 0.2) == "0.3"
    assert format_metric_value("NaN") == "NaN"
    assert format_metric_value("n/a") == "n/a"
    assert format_metric_value(None) == ""


def test_number_abbreviation():
    assert format_number(950) == "950"
    assert format_number(1500) == "1.5K"
    assert format_number(2000) == "2K"
    assert format_number(2_500_000) == "2.5M"


def make_metric(name, samples, **kwargs):
    return MetricInfo(metric_name=name, type=kwargs.pop("type", "Gauge"), samples=samples, **kwargs)


def test_metrics_list_is_sorted_by_samples():
    metrics = [make_metric("low", 10), make_metric("high", 5000, unit="By", timeseries=12)]
    text = ResponseFormatter().format_metrics_list(metrics, limit=50, total=2)

    assert text.startswith("Found 2 of 2 metrics\n\n")
    assert "|Metric|Type|Unit|Samples|Series|Description|\n" in text
    assert text.index("|high|") < text.index("|low|")
    assert "|high|Gauge|By|5K|12||\n" in text
    assert '• metric: ["high"], aggregation: "avg"' in text
    assert "More metrics available" not in text


def test_metrics_list_pagination_hint_with_total():
    metrics = [make_metric(f"m{i}", 100 - i) for i in range(2)]
    text = ResponseFormatter().format_metrics_list(metrics, limit=2, total=5, offset=2)

    assert text.startswith("Found 2 of 5 metrics (showing 3-4)\n")
    assert "To see metrics 5-5, use:\ndiscover_metrics({limit: 2, offset: 4})" in text


def test_metrics_list_pagination_hint_without_total():
    metrics = [make_metric(f"m{i}", 100 - i) for i in range(2)]
    text = ResponseFormatter().format_metrics_list(metrics, limit=2)

    assert text.startswith("Found 2 metrics (limit reached - more may exist)\n")
    assert "discover_metrics({limit: 2, offset: 2})" in text


def test_metrics_list_escapes_pipes():
    text = ResponseFormatter().format_metrics_list([make_metric("m", 1, description="a|b")])
    assert "|a\\|b|" in text


def test_empty_metrics_list():
    assert ResponseFormatter().format_metrics_list([]) == "No metrics found in the specified time range."


def test_metric_attributes_report():
    metadata = MetricMetadata(
        name="http_server_duration",
        type="Histogram",
        unit="ms",
        samples=12000,
        timeSeriesTotal=40,
        timeSeriesActive=12,
        metadata=MetricTypeInfo(metric_type="Histogram", temporality="Cumulative", monotonic=False),
        attributes=[
            MetricAttribute(key="http_method", value=["GET", "POST"], valueCount=2),
            MetricAttribute(key="service_name", value=["a", "b", "c", "d", "e", "f"], valueCount=9),
        ],
    )
    text = ResponseFormatter().format_metric_attributes(metadata)

    assert text.startswith("# Metric: http_server_duration\n\n")
    assert "**Type:** Histogram | **Unit:** ms\n" in text
    assert "**Activity:** 12,000 samples | 40 total series | 12 active series" in text
    assert "**Metadata:** Temporality: Cumulative | Monotonic: false" in text
    # Highest cardinality first
    assert text.index("**service_name**") < text.index("**http_method**")
    assert "Sample values: a, b, c, d, e...\n" in text
    assert "Sample values: GET, POST\n" in text
    assert 'query: "service_name=a"' in text
    assert "**Histogram metrics:**" in text


def test_metric_attributes_without_labels():
    text = ResponseFormatter().format_metric_attributes(MetricMetadata(name="up", type="Gauge"))

    assert "No attribute information available for this metric." in text
    assert '• metric: ["up"]\n' in text


def test_metric_attributes_without_metadata():
    formatter = ResponseFormatter()

    assert formatter.format_metric_attributes(None).startswith("Error: Unable to retrieve metric metadata.")
    assert formatter.format_metric_attributes(MetricMetadata()).startswith(
        "Error: Invalid or empty metric metadata received."
    )


def test_log_attribute_discovery():
    entries = [
        {"data": {
            "attributes_string": {"http.request.method": "POST", "labels.team": "payments", "severityText": "ERROR"},
            "resources_string": {"k8s.deployment.name": "checkout", "k8s.namespace.name": "prod", "host.arch": "amd64"},
        }},
        {"data": {
            "attributes_string": {"http.request.method": "GET", "payload": "x" * 200},
            "resources_string": {"k8s.deployment.name": "checkout"},
        }},
    ]
    text = ResponseFormatter().format_log_attribute_discovery(entries, START_MS, END_MS)

    assert text.startswith("# Log Attribute Discovery Results\n\n")
    assert "Analyzed 2 recent logs from 2024-01-15T09:30:00.000Z to 2024-01-15T10:30:00.000Z" in text
    assert "**Commonly Used:**\n• k8s.deployment.name: checkout\n• k8s.namespace.name: prod\n" in text
    assert "**Other Resources:**\n• host.arch: amd64\n" in text
    assert "**HTTP Attributes:**\n• http.request.method: POST, GET\n" in text
    assert "**Labels:**\n• labels.team: payments\n" in text
    # Long values are not shown as samples
    assert "• payload: \n" in text
    assert "Log level: ERROR" in text
    assert "k8s.deployment.name=checkout\n" in text
    assert "k8s.namespace.name=prod AND level=error" in text
    assert "labels.team=payments" in text
    assert "k8s.deployment.name=checkout AND http.request.method=POST" in text


def test_log_attribute_discovery_without_data():
    text = ResponseFormatter().format_log_attribute_discovery([], START_MS, END_MS)

    assert "Analyzed 0 recent logs" in text
    assert "Log level: error, info, warn, debug" in text
    assert "level=error AND body~timeout" in text


def test_columns_follow_query_names_not_result_order():
    response = {"data": {"result": [
        {"queryName": "B", "series": [series({}, [(1000, "2")])]},
        {"queryName": "A", "series": [series({}, [(1000, "1")])]},
    ]}}
    text = render(response, ("cpu", "mem"))

    assert "|unix_millis|cpu|mem|\n" in text
    assert "|1000|1|2|\n" in text


def test_rows_match_the_header_width():
    response = {"data": {"result": [
        {"queryName": "A", "series": [series({}, [(1000, "1")])]},
        {"queryName": "C", "series": [series({}, [(1000, "9")])]},
    ]}}
    text = render(response, ("cpu", "mem"))

    assert "|1000|1||\n" in text
    assert "|9|" not in text


def test_label_order_does_not_split_series():
    response = {"data": {"result": [
        {"queryName": "A", "series": [series({"pod": "api-1", "ns": "prod"}, [(1000, "1")])]},
        {"queryName": "B", "series": [series({"ns": "prod", "pod": "api-1"}, [(1000, "2")])]},
    ]}}
    text = render(response, ("cpu", "mem"))

    assert "Found 2 series" not in text
    assert "|1000|1|2|\n" in text
