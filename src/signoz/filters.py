"""
Filter expression parsing

Parses the simplified filter syntax accepted by the query tools, for example
``k8s.deployment.name=checkout AND level=error AND body~timeout``, into
ordered predicates, and renders those predicates as SigNoz builder-query
filter items.
"""

import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from src.logging import get_logger

logger = get_logger('QUERY')

# Two-character operators must be tried before their one-character prefixes
_SEGMENT_PATTERN = re.compile(r'^(.+?)(!=|>=|<=|=|~|>|<)(.+)$', re.DOTALL)
_AND_SEPARATOR = re.compile(r'\s+AND\s+', re.IGNORECASE)

COLUMN_ATTRIBUTES = frozenset({'body', 'timestamp'})
RESOURCE_EXACT_NAMES = frozenset({'service'})


class AttributeClass(enum.Enum):
    RESOURCE = "resource"
    TAG = "tag"
    COLUMN = "column"


class FilterOperator(enum.Enum):
    EQUALS = "="
    NOT_EQUALS = "!="
    CONTAINS = "~"
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="


# Logs and metrics use different operator vocabularies on the wire
LOGS_OPERATORS = {
    FilterOperator.EQUALS: "in",
    FilterOperator.NOT_EQUALS: "nin",
    FilterOperator.CONTAINS: "contains",
    FilterOperator.GT: ">",
    FilterOperator.LT: "<",
    FilterOperator.GTE: ">=",
    FilterOperator.LTE: "<=",
}

METRICS_OPERATORS = {
    FilterOperator.EQUALS: "=",
    FilterOperator.NOT_EQUALS: "!=",
    FilterOperator.CONTAINS: "contains",
    FilterOperator.GT: ">",
    FilterOperator.LT: "<",
    FilterOperator.GTE: ">=",
    FilterOperator.LTE: "<=",
}

_OPERATORS_BY_CONTEXT = {
    "logs": LOGS_OPERATORS,
    "metrics": METRICS_OPERATORS,
}


def classify_attribute(name: str) -> AttributeClass:
    """
    Classify an attribute key by name alone.

    ``k8s.*`` keys, keys containing ``.name`` and ``service`` live on the
    resource; ``body`` and ``timestamp`` are physical columns; everything
    else is a tag.
    """
    if name.startswith('k8s.') or '.name' in name or name in RESOURCE_EXACT_NAMES:
        return AttributeClass.RESOURCE
    if name in COLUMN_ATTRIBUTES:
        return AttributeClass.COLUMN
    return AttributeClass.TAG


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


@dataclass(frozen=True)
class FilterPredicate:
    """One parsed ``key<op>value`` condition."""
    attribute_name: str
    attribute_class: AttributeClass
    operator: FilterOperator
    value: str
    position: int = 0

    @property
    def is_column(self) -> bool:
        return self.attribute_class is AttributeClass.COLUMN

    def wire_operator(self, context: str = "logs") -> str:
        return _operators_for(context)[self.operator]

    def to_filter_item(self, context: str = "logs") -> Dict[str, Any]:
        """Render as a SigNoz builder-query filter item."""
        if context == "metrics":
            # Metric filters have no resource/column split
            key_type, is_column = "tag", False
        elif self.is_column:
            key_type, is_column = "", True
        else:
            key_type, is_column = self.attribute_class.value, False

        return {
            "id": f"{self.position}-{self.attribute_name}",
            "key": {
                "key": self.attribute_name,
                "dataType": "string",
                "type": key_type,
                "isColumn": is_column,
                "isJSON": False,
            },
            "op": self.wire_operator(context),
            "value": self.value,
        }


def _operators_for(context: str) -> Dict[FilterOperator, str]:
    try:
        return _OPERATORS_BY_CONTEXT[context]
    except KeyError:
        raise ValueError(f"Unknown filter context: {context}") from None


def parse_filters(expression: Optional[str], context: str = "logs") -> List[FilterPredicate]:
    """
    Parse an AND-joined filter expression.

    Segments that do not look like ``key<op>value`` are skipped.

    Args:
        expression: e.g. ``service.name=api AND status!=500``
        context: "logs" or "metrics", checked here so a bad context fails early

    Returns:
        Predicates in the order they appear in the expression
    """
    _operators_for(context)

    if not expression or not expression.strip():
        return []

    predicates: List[FilterPredicate] = []
    for segment in _AND_SEPARATOR.split(expression.strip()):
        match = _SEGMENT_PATTERN.match(segment.strip())
        if not match:
            logger.debug(f"skipping unparsable filter segment | segment:{segment}")
            continue

        raw_key, raw_op, raw_value = match.groups()
        key = raw_key.strip()
        if not key:
            logger.debug(f"skipping filter segment without key | segment:{segment}")
            continue

        predicates.append(FilterPredicate(
            attribute_name=key,
            attribute_class=classify_attribute(key),
            operator=FilterOperator(raw_op),
            value=_strip_quotes(raw_value.strip()),
            position=len(predicates),
        ))

    return predicates


def has_filter_on(predicates: List[FilterPredicate], attribute_name: str) -> bool:
    """True when any predicate targets the given key."""
    return any(p.attribute_name == attribute_name for p in predicates)


def to_filter_items(predicates: List[FilterPredicate], context: str = "logs") -> List[Dict[str, Any]]:
    return [p.to_filter_item(context) for p in predicates]
