# src/alchemist/validator/validator.py
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alchemist.errors import DataError
from alchemist.metrics.logger import write_json_atomic
from alchemist.rules.analyzer import RuleAnalysis, analyze_rules
from alchemist.schemas.models import Config, EntityType, ErrorType, ValidationError
from alchemist.validator.references import validate_circular_dependencies, validate_references
from alchemist.validator.structural import validate_entities

logger = logging.getLogger(__name__)

# Fixed merge order of the per-entity passes
ENTITY_ORDER: tuple[EntityType, ...] = (EntityType.CLIENTS, EntityType.WORKERS, EntityType.TASKS)

_STRUCTURAL_TYPES = frozenset(
    {
        ErrorType.MISSING_COLUMN,
        ErrorType.DUPLICATE_ID,
        ErrorType.MALFORMED_LIST,
        ErrorType.OUT_OF_RANGE,
        ErrorType.BROKEN_JSON,
    }
)
_REFERENCE_TYPES = frozenset({ErrorType.UNKNOWN_REFERENCE, ErrorType.SKILL_COVERAGE})
_RULE_TYPES = frozenset({ErrorType.CIRCULAR_DEPENDENCY, ErrorType.CONFLICTING_RULES})


def _structural_passes(
    collections: dict[EntityType, list[Any]], cfg: Config
) -> list[ValidationError]:
    """
    @brief
    Run the three per-entity structural passes, optionally in a thread pool.

    @details
    Results are merged in ENTITY_ORDER regardless of completion order and
    then stable-sorted by (entity, row index), so the parallel run returns
    exactly what the sequential run returns.
    """
    # (1) Execute passes
    if cfg.validation.parallel:
        with ThreadPoolExecutor(max_workers=cfg.validation.max_workers) as pool:
            futures = {
                et: pool.submit(validate_entities, et, collections[et]) for et in ENTITY_ORDER
            }
            per_entity = {et: futures[et].result() for et in ENTITY_ORDER}
    else:
        per_entity = {et: validate_entities(et, collections[et]) for et in ENTITY_ORDER}

    # (2) Deterministic merge
    merged = [err for et in ENTITY_ORDER for err in per_entity[et]]
    rank = {et.value: pos for pos, et in enumerate(ENTITY_ORDER)}
    return sorted(merged, key=lambda e: (rank[EntityType(e.entity_type).value], e.row_index))


def validate_all(
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
    cfg: Config | None = None,
) -> list[ValidationError]:
    """
    @brief
    Validate a whole dataset.

    @details
    Order of the result: structural errors for clients, workers, tasks, then
    cross-entity reference errors, then the circular-dependency extension
    point. Cross-entity checks run even when structural errors were found.

    @params
        clients, workers, tasks : Iterable[Any]
            Raw rows or typed entities.
        cfg : Config | None
            Runtime configuration (only validation.parallel/max_workers are
            read); defaults to Config().

    @returns
        Concatenated ValidationError list.
    """
    cfg = cfg or Config()
    collections = {
        EntityType.CLIENTS: list(clients),
        EntityType.WORKERS: list(workers),
        EntityType.TASKS: list(tasks),
    }

    errors = _structural_passes(collections, cfg)
    errors.extend(validate_references(*collections.values()))
    errors.extend(validate_circular_dependencies(*collections.values()))

    logger.info("Validation finished: %d error(s)", len(errors))
    return errors


# ----------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class Validator:
    """
    @brief
    Dataset validator producing a serializable report.

    @details
    Wraps validate_all() and, when rules are supplied and
    cfg.validation.include_rule_checks is on, appends rule cycle and
    conflict findings. Data problems are collected into the report;
    only report I/O raises.
    """

    def __init__(
        self,
        clients: Iterable[Any],
        workers: Iterable[Any],
        tasks: Iterable[Any],
        cfg: Config | None = None,
        rules: Sequence[Any] | None = None,
    ) -> None:
        self.clients = list(clients)
        self.workers = list(workers)
        self.tasks = list(tasks)
        self.cfg = cfg or Config()
        self.rules = list(rules) if rules is not None else None

        self.errors: list[ValidationError] = []
        self.checks: dict[str, bool] = {}
        self.rule_analysis: RuleAnalysis | None = None

    # ---------- Public lifecycle API ----------
    def run_all_checks(self) -> list[ValidationError]:
        """
        @brief
        Execute the full validation sequence.

        @details
        (1) structural and cross-entity checks via validate_all;
        (2) optional rule analysis;
        (3) per-group pass/fail flags for the report.
        """
        # (1) Dataset checks
        self.errors = validate_all(self.clients, self.workers, self.tasks, self.cfg)

        # (2) Rule findings
        if self.rules is not None and self.cfg.validation.include_rule_checks:
            self.rule_analysis = analyze_rules(self.rules)
            self.errors.extend(self.rule_analysis.to_validation_errors())

        # (3) Check flags
        found = {ErrorType(e.error_type) for e in self.errors}
        self.checks = {
            "Structure": found.isdisjoint(_STRUCTURAL_TYPES),
            "References": found.isdisjoint(_REFERENCE_TYPES),
        }
        if self.rule_analysis is not None:
            self.checks["Rules"] = found.isdisjoint(_RULE_TYPES) and not (
                self.rule_analysis.invalid_rules
            )
        return list(self.errors)

    def build_report(self) -> dict[str, Any]:
        """
        @brief
        Assemble validation results into a structured dictionary.

        @details
        Errors are dumped with their camelCase aliases. No files are written
        at this stage.
        """
        by_error_type = Counter(str(ErrorType(e.error_type).value) for e in self.errors)
        by_entity_type = Counter(str(EntityType(e.entity_type).value) for e in self.errors)

        report: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "valid": not self.errors and all(self.checks.values()),
            "errorCount": len(self.errors),
            "errors": [e.model_dump(by_alias=True, mode="json") for e in self.errors],
            "counts": {
                "byErrorType": dict(sorted(by_error_type.items())),
                "byEntityType": dict(sorted(by_entity_type.items())),
            },
            "checks": self.checks,
        }
        if self.rule_analysis is not None:
            report["invalidRules"] = self.rule_analysis.invalid_rules
        return report

    def save_report(
        self,
        report: dict[str, Any],
        out_dir: Path | None = None,
        filename: str = "validation_report.json",
    ) -> Path:
        """
        Writes the report atomically to disk.

        Args:
            report: Validation report dictionary.
            out_dir: Target directory (defaults to cfg.output_dir).
            filename: Target filename (default 'validation_report.json').

        Returns:
            Path to the written JSON file.
        """
        target_dir = Path(out_dir or self.cfg.output_dir or "data/output")
        try:
            final_path = write_json_atomic(report, target_dir / filename)
        except DataError as e:
            raise DataError(
                f"Failed to write validation report: {e.message}",
                source="Validator.save_report",
                suggested_action="Check disk permissions and free space.",
            ) from e

        logger.info("Validation report saved: %s", final_path)
        return final_path


# ----------------------------
# THIN FACADE
# ----------------------------
def validate_dataset(
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
    cfg: Config | None = None,
    *,
    rules: Sequence[Any] | None = None,
    write_report: bool | None = None,
    out_dir: Path | None = None,
    filename: str = "validation_report.json",
) -> dict[str, Any]:
    """
    @brief
    High-level convenience wrapper for dataset validation.

    @details
    Creates a Validator, executes the pipeline, builds the report and
    optionally writes it to disk. Always returns the in-memory report.

    @params
        write_report : bool | None
            Overrides cfg.validation.write_report when given.
        out_dir : Path | None
            Optional custom output directory for the saved report.
    """
    validator = Validator(clients, workers, tasks, cfg, rules=rules)
    validator.run_all_checks()
    report = validator.build_report()

    should_write = validator.cfg.validation.write_report if write_report is None else write_report
    if should_write:
        validator.save_report(report, out_dir=out_dir, filename=filename)

    return report


__all__ = ["ENTITY_ORDER", "Validator", "validate_all", "validate_dataset"]
