# src/alchemist/search/filters.py
"""
@brief
Structured filter engine and free-text search over the three collections.

@details
Filters arrive as SearchFilter models, plain mappings or raw JSON text from
the translation service. Whatever their origin, a bad filter is reported in
FilterResult.error and never raised.
"""

from __future__ import annotations

import json
import logging
import operator
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from alchemist.errors import DataError
from alchemist.schemas.models import (
    LIST_FIELDS,
    NUMERIC_FIELDS,
    EntityType,
    SearchFilter,
    as_record,
)
from alchemist.validator.structural import is_real_number

logger = logging.getLogger(__name__)

INVALID_ENTITY_TYPE = "Invalid entity type"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "=": operator.eq,
    "==": operator.eq,
}

_PHASE_OPERATORS: dict[str, Callable[[list[Any], Any], bool]] = {
    "includes": lambda phases, v: v in phases,
    "count": lambda phases, v: len(phases) == v,
    "count>": lambda phases, v: len(phases) > v,
    "count<": lambda phases, v: len(phases) < v,
}


@dataclass(slots=True)
class FilterResult:
    """Outcome of a search: matched records of one collection, or an error."""

    entity_type: str | None
    results: list[Any] = field(default_factory=list)
    error: str | None = None


# ----------------------------
# FILTER PARSING
# ----------------------------
def parse_filter_payload(payload: SearchFilter | Mapping[str, Any] | str) -> SearchFilter:
    """
    @brief
    Normalize a filter given as a model, a mapping or JSON text.

    @details
    Text that is not valid JSON as a whole is searched for its first
    "{...}" block, which tolerates translators that wrap the object in prose.

    @raises
        DataError
            If no filter object can be recovered or it has the wrong shape.
    """
    if isinstance(payload, SearchFilter):
        return payload

    # (1) Decode text payloads
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            match = _JSON_OBJECT.search(payload)
            if match is None:
                raise DataError(
                    "no JSON object found in filter text", source="search.parse_filter_payload"
                ) from None
            try:
                payload = json.loads(match.group(0))
            except ValueError as e:
                raise DataError(
                    f"filter text is not valid JSON: {e}", source="search.parse_filter_payload"
                ) from e

    if not isinstance(payload, Mapping):
        raise DataError(
            f"filter must be a JSON object, got {type(payload).__name__}",
            source="search.parse_filter_payload",
        )

    # (2) Validate shape
    try:
        return SearchFilter.model_validate(dict(payload))
    except PydanticValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ())) or "filter"
        raise DataError(
            f"{where}: {first.get('msg', 'invalid value')}", source="search.parse_filter_payload"
        ) from e


# ----------------------------
# CRITERION MATCHING
# ----------------------------
def _is_operator_object(criterion: Any) -> bool:
    return isinstance(criterion, Mapping) and "operator" in criterion


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _match_numeric(actual: Any, criterion: Mapping[str, Any]) -> bool:
    compare = _COMPARISONS.get(criterion.get("operator"))
    if compare is None:
        # Unknown operators do not restrict the result
        return True
    expected = criterion.get("value")
    if not (is_real_number(actual) and is_real_number(expected)):
        return False
    return compare(actual, expected)


def _match_list(actual: Any, criterion: Any) -> bool:
    elements = list(actual)
    if _is_sequence(criterion):
        return any(v in elements for v in criterion)
    return criterion in elements


def _match_phases(actual: Any, criterion: Mapping[str, Any]) -> bool:
    check = _PHASE_OPERATORS.get(criterion.get("operator"))
    if check is None:
        return True
    expected = criterion.get("value")
    if criterion["operator"] != "includes" and not is_real_number(expected):
        return False
    return check(list(actual), expected)


def _match_attributes(actual: Any, criterion: Mapping[str, Any]) -> bool:
    attributes = actual
    if isinstance(actual, str):
        try:
            attributes = json.loads(actual)
        except ValueError:
            return False
    if not isinstance(attributes, Mapping):
        return False
    return all(key in attributes and attributes[key] == value for key, value in criterion.items())


def _matches_criterion(record: Mapping[str, Any], field_name: str, criterion: Any) -> bool:
    actual = record.get(field_name)

    # (1) Numeric comparison
    if field_name in NUMERIC_FIELDS and _is_operator_object(criterion):
        return _match_numeric(actual, criterion)

    # (2) List membership and phase operators
    if field_name in LIST_FIELDS and _is_sequence(actual):
        if field_name == "PreferredPhases" and _is_operator_object(criterion):
            return _match_phases(actual, criterion)
        if not isinstance(criterion, Mapping):
            return _match_list(actual, criterion)

    # (3) Embedded attributes
    if field_name == "AttributesJSON" and isinstance(criterion, Mapping) and actual:
        return _match_attributes(actual, criterion)

    # (4) Direct equality
    return actual == criterion


def _filter_records(records: Iterable[Any], criteria: Mapping[str, Any]) -> list[Any]:
    """Records matching every criterion (AND), input order preserved."""
    matched = []
    for record in records:
        row = as_record(record)
        if all(_matches_criterion(row, name, crit) for name, crit in criteria.items()):
            matched.append(record)
    return matched


# ----------------------------
# PUBLIC API
# ----------------------------
def apply_filter(
    search_filter: SearchFilter | Mapping[str, Any] | str,
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
) -> FilterResult:
    """
    @brief
    Apply a structured filter to the selected collection.

    @details
    A record matches when every criterion matches. Criterion forms:
    operator objects {"operator", "value"} on numeric fields; scalar or
    any-of list on list fields; includes/count/count>/count< on
    PreferredPhases; key-by-key equality on AttributesJSON; plain equality
    otherwise. Unknown operators match every record.

    @returns
        FilterResult(entity_type, results, None), or an error result for an
        unparseable filter or an unknown entity type.
    """
    # (1) Normalize the filter
    try:
        parsed = parse_filter_payload(search_filter)
    except DataError as e:
        logger.warning("Rejected search filter: %s", e.message)
        return FilterResult(entity_type=None, results=[], error=f"Invalid search filter: {e.message}")

    # (2) Select the collection
    collections = {
        EntityType.CLIENTS.value: clients,
        EntityType.WORKERS.value: workers,
        EntityType.TASKS.value: tasks,
    }
    if not isinstance(parsed.entity_type, str) or parsed.entity_type not in collections:
        return FilterResult(entity_type=None, results=[], error=INVALID_ENTITY_TYPE)

    # (3) Filter
    results = _filter_records(collections[parsed.entity_type], parsed.criteria)
    logger.debug("Filter on %s matched %d record(s)", parsed.entity_type, len(results))
    return FilterResult(entity_type=parsed.entity_type, results=results, error=None)


def _text_of(value: Any) -> str | None:
    """Lower-cased searchable text of a scalar, None when not searchable."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        # 5.0 is searchable as "5"
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value).lower()
    if isinstance(value, Mapping):
        return json.dumps(value, separators=(",", ":"), default=str).lower()
    return str(value).lower()


def _scalar_matches(value: Any, needle: str) -> bool:
    text = _text_of(value)
    return text is not None and needle in text


def _value_matches(value: Any, needle: str) -> bool:
    if _is_sequence(value):
        return any(_scalar_matches(element, needle) for element in value)
    return _scalar_matches(value, needle)


def simple_text_search(query: str, records: Iterable[Any]) -> list[Any]:
    """
    @brief
    Case-insensitive substring search over every field of every record.

    @details
    An empty query returns all records. Strings are searched directly,
    numbers and booleans through their text form, sequences element by
    element, nested objects through their compact JSON text. Missing
    values never match.
    """
    items = list(records)
    if not query:
        return items

    needle = query.lower()
    return [
        record
        for record in items
        if any(_value_matches(value, needle) for value in as_record(record).values())
    ]


def search_all(
    query: str, clients: Iterable[Any], workers: Iterable[Any], tasks: Iterable[Any]
) -> FilterResult:
    """
    @brief
    Free-text search across all collections.

    @details
    The collection with the most matches wins; ties go to clients, then
    workers, then tasks. No match at all is an empty result, not an error.
    """
    if not query or not query.strip():
        return FilterResult(entity_type=None, results=[], error="Please enter a search query")

    # (1) Search each collection in tie-break order
    candidates = [
        (EntityType.CLIENTS.value, simple_text_search(query, clients)),
        (EntityType.WORKERS.value, simple_text_search(query, workers)),
        (EntityType.TASKS.value, simple_text_search(query, tasks)),
    ]

    # (2) max() keeps the first of equal counts
    entity_type, results = max(candidates, key=lambda c: len(c[1]))
    if not results:
        return FilterResult(entity_type=None, results=[], error=None)
    return FilterResult(entity_type=entity_type, results=results, error=None)


__all__ = [
    "FilterResult",
    "INVALID_ENTITY_TYPE",
    "parse_filter_payload",
    "apply_filter",
    "simple_text_search",
    "search_all",
]
