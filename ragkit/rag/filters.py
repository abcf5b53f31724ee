"""Metadata filters for vector search.

A filter is a small tree: ``FieldFilter`` leaves compare one metadata field
against a value, ``AndFilter`` / ``OrFilter`` combine children. Evaluation is
permissive: heterogeneous metadata never raises, a comparison that cannot be
made simply does not match.
"""
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, List, Mapping
import structlog

from ragkit.errors import InvalidFilterError

logger = structlog.get_logger()

COMPARISON_OPERATORS = {"eq", "ne", "gt", "gte", "lt", "lte", "in", "nin"}
LOGICAL_OPERATORS = {"and", "or"}

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


class FilterNode:
    """Base class for filter tree nodes."""

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        return matches(metadata, self)


@dataclass
class FieldFilter(FilterNode):
    """Compare ``metadata[field]`` against ``value`` using ``operator``."""

    field: str
    operator: str
    value: Any = None

    def __post_init__(self):
        if self.operator in ("in", "nin") and not isinstance(self.value, _SEQUENCE_TYPES):
            raise InvalidFilterError(
                f"Operator '{self.operator}' requires a list of values, "
                f"got {type(self.value).__name__}"
            )
        if self.operator not in COMPARISON_OPERATORS:
            # Kept constructible; evaluates to False
            logger.warning(
                "unknown_filter_operator",
                field=self.field,
                operator=self.operator,
            )


@dataclass
class AndFilter(FilterNode):
    filters: List[FilterNode] = field(default_factory=list)


@dataclass
class OrFilter(FilterNode):
    filters: List[FilterNode] = field(default_factory=list)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _compare(stored: Any, operator: str, expected: Any) -> bool:
    if operator == "eq":
        return stored == expected
    if operator == "ne":
        return stored != expected

    if operator in ("gt", "gte", "lt", "lte"):
        if not (_is_number(stored) and _is_number(expected)):
            return False
        if operator == "gt":
            return stored > expected
        if operator == "gte":
            return stored >= expected
        if operator == "lt":
            return stored < expected
        return stored <= expected

    if operator in ("in", "nin"):
        if not isinstance(expected, _SEQUENCE_TYPES):
            return False
        try:
            found = stored in expected
        except TypeError:
            # Unhashable stored value against a set
            found = False
        return found if operator == "in" else not found

    return False


def matches(metadata: Mapping[str, Any], node: FilterNode) -> bool:
    """Evaluate a filter tree against a metadata mapping.

    Args:
        metadata: Chunk metadata
        node: Filter tree

    Returns:
        True if the metadata satisfies the filter
    """
    if isinstance(node, FieldFilter):
        return _compare(metadata.get(node.field), node.operator, node.value)

    if isinstance(node, AndFilter):
        return all(matches(metadata, child) for child in node.filters)

    if isinstance(node, OrFilter):
        return any(matches(metadata, child) for child in node.filters)

    return False


def parse_filter(definition: Dict[str, Any]) -> FilterNode:
    """Build a filter tree from its dict form.

    Accepts ``{"field": ..., "operator": ..., "value": ...}`` leaves and
    ``{"operator": "and" | "or", "filters": [...]}`` composites.

    Raises:
        InvalidFilterError: If the dict has neither shape
    """
    if not isinstance(definition, dict):
        raise InvalidFilterError(f"Filter must be a dict, got {type(definition).__name__}")

    operator = definition.get("operator")

    if operator in LOGICAL_OPERATORS:
        children = definition.get("filters")
        if not isinstance(children, list):
            raise InvalidFilterError(f"'{operator}' filter requires a 'filters' list")
        nodes = [parse_filter(child) for child in children]
        return AndFilter(nodes) if operator == "and" else OrFilter(nodes)

    if "field" not in definition or operator is None:
        raise InvalidFilterError(
            "Filter requires 'field' and 'operator' keys, "
            f"got {sorted(definition.keys())}"
        )

    return FieldFilter(
        field=definition["field"],
        operator=operator,
        value=definition.get("value"),
    )
