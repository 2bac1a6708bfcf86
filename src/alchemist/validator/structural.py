# src/alchemist/validator/structural.py
from __future__ import annotations

import json
import logging
import math
import numbers
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from alchemist.schemas.models import (
    ENTITY_MODELS,
    EntityType,
    ErrorType,
    ValidationError,
    as_record,
)

logger = logging.getLogger(__name__)


# ----------------------------
# AUXILIARY STRUCTURES / FUNCTIONS
# ----------------------------
@dataclass(frozen=True)
class RangeRule:
    """
    @brief
    Numeric bound for a single column.

    @details
    `accepts` receives an already verified real number; anything that is not
    a real number (text, booleans, NaN, None) is out of range by definition.
    """

    field: str
    accepts: Callable[[float], bool]
    requirement: str  # human-readable bound, e.g. "between 1 and 5"


@dataclass(frozen=True)
class ListRule:
    """Sequence-typed column and the element constraint it carries."""

    field: str
    numeric_elements: bool = False
    unordered_ok: bool = False  # skill sets may arrive as set/frozenset


RANGE_RULES: dict[EntityType, tuple[RangeRule, ...]] = {
    EntityType.CLIENTS: (RangeRule("PriorityLevel", lambda v: 1 <= v <= 5, "between 1 and 5"),),
    EntityType.WORKERS: (
        RangeRule("MaxLoadPerPhase", lambda v: v >= 0, "a non-negative number"),
        RangeRule("QualificationLevel", lambda v: v >= 0, "a non-negative number"),
    ),
    EntityType.TASKS: (
        RangeRule("Duration", lambda v: v > 0, "a positive number"),
        RangeRule("MaxConcurrent", lambda v: v >= 0, "a non-negative number"),
    ),
}

LIST_RULES: dict[EntityType, tuple[ListRule, ...]] = {
    EntityType.CLIENTS: (ListRule("RequestedTaskIDs"),),
    EntityType.WORKERS: (
        ListRule("Skills", unordered_ok=True),
        ListRule("AvailableSlots", numeric_elements=True),
    ),
    EntityType.TASKS: (
        ListRule("RequiredSkills", unordered_ok=True),
        ListRule("PreferredPhases", numeric_elements=True),
    ),
}

JSON_FIELDS: dict[EntityType, tuple[str, ...]] = {
    EntityType.CLIENTS: ("AttributesJSON",),
    EntityType.WORKERS: (),
    EntityType.TASKS: (),
}


def is_real_number(value: Any) -> bool:
    """True for int/float-like values; bool and NaN are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not math.isnan(float(value))


def is_blank(value: Any) -> bool:
    """An empty cell: None, empty string or NaN."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    return isinstance(value, float) and math.isnan(value)


def is_sequence(value: Any, unordered_ok: bool = False) -> bool:
    """Real sequence (not text); sets only when the column is a set."""
    if isinstance(value, (list, tuple)):
        return True
    return unordered_ok and isinstance(value, (set, frozenset))


def stable_elements(value: Any) -> list[Any]:
    """Elements of a sequence in a reproducible order (sets are sorted by repr)."""
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return list(value)


def id_key(value: Any) -> Any:
    """Hashable key for identifier comparison."""
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def resolve_entity_type(entity_type: EntityType | str) -> EntityType | None:
    """
    @brief
    Normalize an entity type selector.

    @returns
        The matching EntityType, or None when the selector is outside the
        closed clients/workers/tasks set.
    """
    try:
        return EntityType(entity_type)
    except ValueError:
        return None


# ----------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class StructuralValidator:
    """
    @brief
    Per-collection structural validator.

    @details
    Checks one entity collection in isolation: required columns, duplicate
    identifiers, numeric ranges, list-typed columns and embedded JSON.
    Every check is independent; a row can collect several errors and no
    check ever stops the pass. Malformed data never raises.
    """

    def __init__(self, entity_type: EntityType | str, records: Iterable[Any]) -> None:
        self.requested_type = entity_type
        self.entity_type = resolve_entity_type(entity_type)
        self.model = ENTITY_MODELS.get(self.entity_type)
        self.records: list[Mapping[str, Any]] = [as_record(r) for r in records]
        self.errors: list[ValidationError] = []

    # ---------- Public lifecycle API ----------
    def run_all_checks(self) -> list[ValidationError]:
        """
        @brief
        Execute every structural check over the collection.

        @details
        The missing-column check runs once, then rows are visited in input
        order so the returned list is ordered by row index.

        @returns
            Fresh list of ValidationError values (empty when the data is clean).
        """
        self.errors = []

        # (0) Unknown selector: nothing to check against
        if self.model is None:
            logger.error(
                "Structural pass skipped: unknown entity type %r (expected clients, workers or tasks)",
                self.requested_type,
            )
            return []

        # (1) Collection-level check
        self._check_missing_columns()

        # (2) Row-level checks in input order
        seen_ids: set[Any] = set()
        for index, record in enumerate(self.records):
            self._check_duplicate_id(index, record, seen_ids)
            self._check_ranges(index, record)
            self._check_lists(index, record)
            self._check_embedded_json(index, record)

        logger.debug(
            "Structural pass %s: %d row(s), %d error(s)",
            self.entity_type.value,
            len(self.records),
            len(self.errors),
        )
        return list(self.errors)

    # ---------- Checks ----------
    def _check_missing_columns(self) -> None:
        """Required columns are looked up on the first row only."""
        first = self.records[0] if self.records else {}
        missing = [col for col in self.model.REQUIRED_COLUMNS if col not in first]
        if missing:
            joined = ", ".join(missing)
            self._add_error(
                row_index=-1,
                field=joined,
                error_type=ErrorType.MISSING_COLUMN,
                message=f"Missing required columns: {joined}",
                suggestion=f"Add the missing columns to your {self.entity_type.value} data",
            )

    def _check_duplicate_id(
        self, index: int, record: Mapping[str, Any], seen_ids: set[Any]
    ) -> None:
        id_field = self.model.ID_FIELD
        value = record.get(id_field)
        if is_blank(value):
            return

        key = id_key(value)
        if key in seen_ids:
            self._add_error(
                row_index=index,
                field=id_field,
                error_type=ErrorType.DUPLICATE_ID,
                message=f"Duplicate {id_field}: {value}",
                suggestion=f"Ensure each {self.model.__name__.lower()} has a unique ID",
            )
        else:
            seen_ids.add(key)

    def _check_ranges(self, index: int, record: Mapping[str, Any]) -> None:
        for rule in RANGE_RULES[self.entity_type]:
            # Absent column is reported by the missing-column check
            if rule.field not in record:
                continue

            value = record[rule.field]
            if is_real_number(value) and rule.accepts(float(value)):
                continue

            self._add_error(
                row_index=index,
                field=rule.field,
                error_type=ErrorType.OUT_OF_RANGE,
                message=f"{rule.field} must be {rule.requirement}, got: {value!r}",
                suggestion=f"Set {rule.field} to {rule.requirement}",
            )

    def _check_lists(self, index: int, record: Mapping[str, Any]) -> None:
        for rule in LIST_RULES[self.entity_type]:
            value = record.get(rule.field)
            if is_blank(value):
                continue

            # (1) Column must hold an actual sequence, never delimited text
            if not is_sequence(value, unordered_ok=rule.unordered_ok):
                self._add_error(
                    row_index=index,
                    field=rule.field,
                    error_type=ErrorType.MALFORMED_LIST,
                    message=f"{rule.field} is not a list (got {type(value).__name__}: {value!r})",
                    suggestion=f"Format {rule.field} as a JSON array or comma-separated list",
                )
                continue

            # (2) Numeric lists: describe every offending element in one message
            if rule.numeric_elements:
                problems = [
                    f"{element!r} at position {pos}"
                    for pos, element in enumerate(value)
                    if not is_real_number(element)
                ]
                if problems:
                    self._add_error(
                        row_index=index,
                        field=rule.field,
                        error_type=ErrorType.MALFORMED_LIST,
                        message=f"{rule.field} contains non-numeric values: {', '.join(problems)}",
                        suggestion=f"Ensure all {rule.field} entries are numbers",
                    )

    def _check_embedded_json(self, index: int, record: Mapping[str, Any]) -> None:
        for field in JSON_FIELDS[self.entity_type]:
            value = record.get(field)
            # Pre-parsed objects are accepted as-is
            if not isinstance(value, str) or value == "":
                continue
            try:
                json.loads(value)
            except ValueError as e:
                self._add_error(
                    row_index=index,
                    field=field,
                    error_type=ErrorType.BROKEN_JSON,
                    message=f"{field} contains invalid JSON: {e}",
                    suggestion=f"Fix the JSON format in {field}",
                )

    # ---------- Utilities ----------
    def _add_error(
        self,
        row_index: int,
        field: str,
        error_type: ErrorType,
        message: str,
        suggestion: str | None = None,
    ) -> None:
        self.errors.append(
            ValidationError(
                entity_type=self.entity_type,
                row_index=row_index,
                field=field,
                error_type=error_type,
                message=message,
                suggestion=suggestion,
            )
        )


# ----------------------------
# THIN FACADE
# ----------------------------
def validate_entities(
    entity_type: EntityType | str, records: Iterable[Any]
) -> list[ValidationError]:
    """
    @brief
    Structurally validate one entity collection.

    @params
        entity_type : EntityType | str
            "clients", "workers" or "tasks".
        records : Iterable[Any]
            Raw rows (mappings) or typed entities.

    @details
    Total: an unknown entity type is logged at ERROR and yields [];
    malformed rows never raise.

    @returns
        ValidationError list ordered by row index (-1 first).
    """
    return StructuralValidator(entity_type, records).run_all_checks()


__all__ = ["StructuralValidator", "validate_entities", "RANGE_RULES", "LIST_RULES"]
