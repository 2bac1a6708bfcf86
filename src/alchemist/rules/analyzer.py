# src/alchemist/rules/analyzer.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from alchemist.schemas.models import (
    RULE_ADAPTER,
    RULE_TYPES,
    CoRunRule,
    EntityType,
    ErrorType,
    LoadLimitRule,
    PhaseWindowRule,
    Rule,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ----------------------------
# RESULT STRUCTURES
# ----------------------------
@dataclass(slots=True)
class RuleCheck:
    """Outcome of validate_rule(): authoring feedback, not tagged errors."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CycleReport:
    has_cycles: bool
    cycles: list[list[str]] = field(default_factory=list)


@dataclass(slots=True)
class RuleConflict:
    rule1: Any
    rule2: Any
    reason: str


@dataclass(slots=True)
class ConflictReport:
    has_conflicts: bool
    conflicts: list[RuleConflict] = field(default_factory=list)


@dataclass(slots=True)
class RuleAnalysis:
    """
    @brief
    Combined result of analyze_rules().

    @details
    `checks` is keyed by rule id in input order. to_validation_errors()
    maps cycles and conflicts onto the ValidationError taxonomy so they can
    be appended to a dataset validation report.
    """

    checks: dict[str, RuleCheck]
    cycles: CycleReport
    conflicts: ConflictReport

    @property
    def invalid_rules(self) -> dict[str, list[str]]:
        return {rid: c.errors for rid, c in self.checks.items() if not c.is_valid}

    def to_validation_errors(self) -> list[ValidationError]:
        errors: list[ValidationError] = []

        for cycle in self.cycles.cycles:
            errors.append(
                ValidationError(
                    entity_type=EntityType.TASKS,
                    row_index=-1,
                    field="taskIds",
                    error_type=ErrorType.CIRCULAR_DEPENDENCY,
                    message=f"Circular co-run dependency: {' -> '.join(cycle)}",
                    suggestion="Merge overlapping co-run groups into a single rule",
                )
            )

        for conflict in self.conflicts.conflicts:
            is_load_limit = conflict.rule1.type == "loadLimit"
            errors.append(
                ValidationError(
                    entity_type=EntityType.WORKERS if is_load_limit else EntityType.TASKS,
                    row_index=-1,
                    field="maxSlotsPerPhase" if is_load_limit else "allowedPhases",
                    error_type=ErrorType.CONFLICTING_RULES,
                    message=f"{conflict.reason} (rules {conflict.rule1.id}, {conflict.rule2.id})",
                    suggestion="Remove or merge one of the conflicting rules",
                )
            )
        return errors

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable view used by the rules report."""
        return {
            "invalidRules": self.invalid_rules,
            "hasCycles": self.cycles.has_cycles,
            "cycles": self.cycles.cycles,
            "hasConflicts": self.conflicts.has_conflicts,
            "conflicts": [
                {"rule1": c.rule1.id, "rule2": c.rule2.id, "reason": c.reason}
                for c in self.conflicts.conflicts
            ],
        }


# ----------------------------
# PER-VARIANT PARAMETER CHECKS
# ----------------------------
def _check_co_run(rule: Any) -> list[str]:
    if len(rule.parameters.task_ids) < 2:
        return ["Co-run rule requires at least two task IDs"]
    return []


def _check_slot_restriction(rule: Any) -> list[str]:
    errors = []
    if not rule.parameters.group:
        errors.append("Slot restriction rule requires a group")
    slots = rule.parameters.min_common_slots
    if slots is None or slots < 1:
        errors.append("Slot restriction rule requires a positive number of minimum common slots")
    return errors


def _check_load_limit(rule: Any) -> list[str]:
    errors = []
    if not rule.parameters.worker_group:
        errors.append("Load limit rule requires a worker group")
    limit = rule.parameters.max_slots_per_phase
    if limit is None or limit < 1:
        errors.append("Load limit rule requires a positive number of maximum slots per phase")
    return errors


def _check_phase_window(rule: Any) -> list[str]:
    errors = []
    if not rule.parameters.task_id:
        errors.append("Phase window rule requires a task ID")
    if len(rule.parameters.allowed_phases) < 1:
        errors.append("Phase window rule requires at least one allowed phase")
    return errors


def _check_pattern_match(rule: Any) -> list[str]:
    errors = []
    if not rule.parameters.pattern:
        errors.append("Pattern match rule requires a pattern")
    if not rule.parameters.target_field:
        errors.append("Pattern match rule requires a target field")
    return errors


def _check_priority_override(rule: Any) -> list[str]:
    priority = rule.parameters.priority
    if priority is None or not 1 <= priority <= 10:
        return ["Priority override rule requires a priority value between 1 and 10"]
    return []


_PARAMETER_CHECKS: dict[str, Callable[[Any], list[str]]] = {
    "coRun": _check_co_run,
    "slotRestriction": _check_slot_restriction,
    "loadLimit": _check_load_limit,
    "phaseWindow": _check_phase_window,
    "patternMatch": _check_pattern_match,
    "priorityOverride": _check_priority_override,
}


def _format_pydantic_errors(e: PydanticValidationError, rule_type: str) -> list[str]:
    messages = []
    for err in e.errors():
        loc = list(err.get("loc", ()))
        # Discriminated unions prefix the location with the tag
        if loc and loc[0] == rule_type:
            loc = loc[1:]
        where = ".".join(str(part) for part in loc) or "rule"
        messages.append(f"{where}: {err.get('msg', 'invalid value')}")
    return messages


def _as_rules(rules: Iterable[Any]) -> list[Any]:
    """Typed rules from models or raw mappings; unparseable mappings are skipped."""
    out = []
    for rule in rules:
        if isinstance(rule, Mapping):
            try:
                rule = RULE_ADAPTER.validate_python(rule)
            except PydanticValidationError:
                logger.debug("Skipping malformed rule payload: %r", rule.get("id"))
                continue
        out.append(rule)
    return out


# ----------------------------
# PUBLIC API
# ----------------------------
def validate_rule(rule: Rule | Mapping[str, Any]) -> RuleCheck:
    """
    @brief
    Check that a rule carries a description and the parameters its variant
    requires.

    @details
    Accepts a typed Rule or a raw mapping from an authoring tool. A mapping
    that does not parse (unknown type, wrongly typed field) is reported
    through the returned messages; nothing is raised.

    @params
        rule : Rule | Mapping[str, Any]
            Rule to check.

    @returns
        RuleCheck(is_valid, errors) with plain-text messages.
    """
    # (1) Checks shared by every variant
    description = rule.get("description") if isinstance(rule, Mapping) else rule.description
    errors = [] if description else ["Rule description is required"]

    # (2) Parse raw payloads
    if isinstance(rule, Mapping):
        rule_type = rule.get("type")
        if not rule_type:
            return RuleCheck(is_valid=False, errors=["Rule type is required", *errors])
        if rule_type not in RULE_TYPES:
            errors.append(f"Unknown rule type: {rule_type}")
            return RuleCheck(is_valid=False, errors=errors)
        try:
            rule = RULE_ADAPTER.validate_python(rule)
        except PydanticValidationError as e:
            errors.extend(_format_pydantic_errors(e, rule_type))
            return RuleCheck(is_valid=False, errors=errors)

    # (3) Per-variant parameter checks
    errors.extend(_PARAMETER_CHECKS[rule.type](rule))
    return RuleCheck(is_valid=not errors, errors=errors)


def detect_cycles(rules: Iterable[Any]) -> CycleReport:
    """
    @brief
    Detect cycles in the graph induced by co-run rules.

    @details
    Each pair of task IDs sharing a coRun rule becomes a bidirectional edge,
    so any co-run group of two or more tasks closes a cycle by construction.
    For every node (first-seen order) a depth-first search is run with a fresh
    visited set; the first time it reaches a node already on the current path
    the slice path[node:] plus the repeated node is recorded and the search
    for that start node stops. The walk is iterative.

    @params
        rules : Iterable[Any]
            Rules of any variant; only coRun rules are considered.

    @returns
        CycleReport(has_cycles, cycles) with at most one cycle per node.
    """
    # (1) Build adjacency lists in first-seen order
    graph: dict[str, list[str]] = {}
    for rule in _as_rules(rules):
        if not isinstance(rule, CoRunRule):
            continue
        task_ids = rule.parameters.task_ids
        for task_id in task_ids:
            neighbours = graph.setdefault(task_id, [])
            for other in task_ids:
                if other != task_id and other not in neighbours:
                    neighbours.append(other)

    # (2) One bounded DFS per start node
    cycles: list[list[str]] = []
    for start in graph:
        cycle = _first_cycle_from(graph, start)
        if cycle is not None:
            cycles.append(cycle)

    return CycleReport(has_cycles=bool(cycles), cycles=cycles)


def _first_cycle_from(graph: dict[str, list[str]], start: str) -> list[str] | None:
    visited = {start}
    path = [start]
    stack = [iter(graph.get(start, ()))]

    while stack:
        for dep in stack[-1]:
            if dep not in visited:
                visited.add(dep)
                path.append(dep)
                stack.append(iter(graph.get(dep, ())))
                break
            if dep in path:
                return path[path.index(dep) :] + [dep]
        else:
            # neighbours exhausted: backtrack
            stack.pop()
            path.pop()
    return None


def detect_conflicts(rules: Iterable[Any]) -> ConflictReport:
    """
    @brief
    Detect semantically contradictory rule pairs.

    @details
    - phaseWindow rules on the same taskId conflict when their allowedPhases
      share no phase;
    - loadLimit rules on the same workerGroup always conflict (no last-wins).
    Conflicts are reported pairwise in input order.
    """
    typed = _as_rules(rules)

    # (1) Group by the shared entity identifier
    by_task: dict[str, list[PhaseWindowRule]] = {}
    by_group: dict[str, list[LoadLimitRule]] = {}
    for rule in typed:
        if isinstance(rule, PhaseWindowRule):
            by_task.setdefault(rule.parameters.task_id, []).append(rule)
        elif isinstance(rule, LoadLimitRule):
            by_group.setdefault(rule.parameters.worker_group, []).append(rule)

    conflicts: list[RuleConflict] = []

    # (2) Disjoint phase windows
    for task_id, task_rules in by_task.items():
        for rule1, rule2 in combinations(task_rules, 2):
            if set(rule1.parameters.allowed_phases).isdisjoint(rule2.parameters.allowed_phases):
                conflicts.append(
                    RuleConflict(
                        rule1=rule1,
                        rule2=rule2,
                        reason=f"Conflicting phase windows for task {task_id}: no common allowed phases",
                    )
                )

    # (3) Competing load limits
    for group, group_rules in by_group.items():
        for rule1, rule2 in combinations(group_rules, 2):
            conflicts.append(
                RuleConflict(
                    rule1=rule1,
                    rule2=rule2,
                    reason=f"Multiple load limit rules for worker group {group}",
                )
            )

    return ConflictReport(has_conflicts=bool(conflicts), conflicts=conflicts)


def analyze_rules(rules: Iterable[Any]) -> RuleAnalysis:
    """
    @brief
    Run per-rule validation, cycle detection and conflict detection.

    @details
    Raw mappings that fail to parse still appear in `checks` (keyed by their
    id, or by position when the id is missing) but take no part in the graph
    and conflict scans.
    """
    items = list(rules)

    checks: dict[str, RuleCheck] = {}
    for pos, rule in enumerate(items):
        rule_id = rule.get("id") if isinstance(rule, Mapping) else rule.id
        checks[str(rule_id) if rule_id else f"#{pos}"] = validate_rule(rule)

    analysis = RuleAnalysis(
        checks=checks,
        cycles=detect_cycles(items),
        conflicts=detect_conflicts(items),
    )
    logger.info(
        "Rule analysis: %d rule(s), %d invalid, %d cycle(s), %d conflict(s)",
        len(items),
        len(analysis.invalid_rules),
        len(analysis.cycles.cycles),
        len(analysis.conflicts.conflicts),
    )
    return analysis


__all__ = [
    "RuleCheck",
    "CycleReport",
    "RuleConflict",
    "ConflictReport",
    "RuleAnalysis",
    "validate_rule",
    "detect_cycles",
    "detect_conflicts",
    "analyze_rules",
]
