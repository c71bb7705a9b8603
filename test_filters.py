#!/usr/bin/env python3
"""
Tests for the simplified filter syntax and its SigNoz filter items.
"""

import pytest

from src.signoz.filters import (
    AttributeClass,
    FilterOperator,
    classify_attribute,
    has_filter_on,
    parse_filters,
    to_filter_items,
)


def test_attribute_classification():
    assert classify_attribute("k8s.namespace.name") is AttributeClass.RESOURCE
    assert classify_attribute("k8s.pod.uid") is AttributeClass.RESOURCE
    assert classify_attribute("service.name") is AttributeClass.RESOURCE
    assert classify_attribute("host.name") is AttributeClass.RESOURCE
    assert classify_attribute("service") is AttributeClass.RESOURCE
    assert classify_attribute("body") is AttributeClass.COLUMN
    assert classify_attribute("timestamp") is AttributeClass.COLUMN
    assert classify_attribute("level") is AttributeClass.TAG
    assert classify_attribute("http.status_code") is AttributeClass.TAG


def test_single_predicate():
    predicates = parse_filters("status!=500")

    assert len(predicates) == 1
    predicate = predicates[0]
    assert predicate.attribute_name == "status"
    assert predicate.operator is FilterOperator.NOT_EQUALS
    assert predicate.value == "500"
    assert predicate.attribute_class is AttributeClass.TAG


def test_not_equals_maps_per_context():
    logs_item = parse_filters("status!=500", context="logs")[0].to_filter_item("logs")
    metrics_item = parse_filters("status!=500", context="metrics")[0].to_filter_item("metrics")

    assert logs_item["op"] == "nin"
    assert metrics_item["op"] == "!="
    assert logs_item["key"]["type"] == "tag"
    assert logs_item["key"]["isColumn"] is False


def test_operator_vocabulary():
    predicates = parse_filters("a=1 AND b~x AND c>1 AND d<2 AND e>=3 AND f<=4")

    assert [p.wire_operator("logs") for p in predicates] == ["in", "contains", ">", "<", ">=", "<="]
    assert [p.wire_operator("metrics") for p in predicates] == ["=", "contains", ">", "<", ">=", "<="]


def test_two_character_operators_win():
    predicates = parse_filters("latency>=250 AND retries<=3 AND code!=200")

    assert [(p.attribute_name, p.operator, p.value) for p in predicates] == [
        ("latency", FilterOperator.GTE, "250"),
        ("retries", FilterOperator.LTE, "3"),
        ("code", FilterOperator.NOT_EQUALS, "200"),
    ]


def test_order_and_classification_round_trip():
    predicates = parse_filters("level=error AND k8s.namespace.name=prod")

    assert [p.attribute_name for p in predicates] == ["level", "k8s.namespace.name"]
    assert [p.attribute_class for p in predicates] == [AttributeClass.TAG, AttributeClass.RESOURCE]
    assert [p.position for p in predicates] == [0, 1]

    items = to_filter_items(predicates, context="logs")
    assert [item["key"]["type"] for item in items] == ["tag", "resource"]
    assert [item["op"] for item in items] == ["in", "in"]
    assert [item["value"] for item in items] == ["error", "prod"]


def test_and_is_case_insensitive():
    predicates = parse_filters("service.name=api and level=error")
    assert [p.attribute_name for p in predicates] == ["service.name", "level"]


def test_quotes_are_stripped():
    predicates = parse_filters("body~\"connection refused\" AND pod='api-1'")
    assert [p.value for p in predicates] == ["connection refused", "api-1"]


def test_value_may_contain_operator_characters():
    predicates = parse_filters("url=/search?q=a")
    assert predicates[0].attribute_name == "url"
    assert predicates[0].value == "/search?q=a"


def test_column_items():
    item = parse_filters("body~timeout")[0].to_filter_item("logs")

    assert item["key"]["key"] == "body"
    assert item["key"]["type"] == ""
    assert item["key"]["isColumn"] is True
    assert item["op"] == "contains"


def test_metrics_items_are_always_tags():
    items = to_filter_items(
        parse_filters("k8s.namespace.name=default AND body~x", context="metrics"),
        context="metrics",
    )

    for item in items:
        assert item["key"]["type"] == "tag"
        assert item["key"]["isColumn"] is False


def test_item_shape_is_deterministic():
    first = to_filter_items(parse_filters("service.name=api AND level=error"))
    second = to_filter_items(parse_filters("service.name=api AND level=error"))

    assert first == second
    assert first[0] == {
        "id": "0-service.name",
        "key": {
            "key": "service.name",
            "dataType": "string",
            "type": "resource",
            "isColumn": False,
            "isJSON": False,
        },
        "op": "in",
        "value": "api",
    }


def test_malformed_segments_are_skipped():
    predicates = parse_filters("level=error AND garbage AND =nokey AND service.name=api")
    assert [p.attribute_name for p in predicates] == ["level", "service.name"]
    assert [p.position for p in predicates] == [0, 1]


def test_empty_expression():
    assert parse_filters(None) == []
    assert parse_filters("") == []
    assert parse_filters("   ") == []


def test_unknown_context_is_rejected():
    with pytest.raises(ValueError):
        parse_filters("a=b", context="traces")


def test_has_filter_on():
    predicates = parse_filters("service.name=api AND level!=debug")
    assert has_filter_on(predicates, "level")
    assert not has_filter_on(predicates, "body")
