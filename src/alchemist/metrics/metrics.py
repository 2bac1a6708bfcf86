# src/alchemist/metrics/metrics.py
from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from alchemist.dataloader.types import Workspace
from alchemist.errors import DataError
from alchemist.rules.analyzer import RuleAnalysis
from alchemist.schemas.models import EntityType, ValidationError

_ERROR_COLUMNS = ["entityType", "rowIndex", "field", "errorType"]


def collect_metrics(
    workspace: Workspace,
    errors: Sequence[ValidationError],
    analysis: RuleAnalysis | None = None,
) -> dict[str, Any]:
    """
    @brief
    Builds a JSON-serializable summary of a validation run.

    @details
    Contents:
        - rows per collection;
        - error counts by entity type and by error type;
        - number of distinct rows carrying at least one error, per entity
          (collection-level findings with row index -1 are excluded);
        - rule counts by type, invalid rule count, cycles and conflicts.

    @raises
        DataError
            If the assembled metrics are not JSON-serializable.
    """
    # (1) Errors as a frame; empty frame keeps the columns for groupby
    df = _errors_frame(errors)

    # (2) Dataset size
    rows = {
        EntityType.CLIENTS.value: len(workspace.clients),
        EntityType.WORKERS.value: len(workspace.workers),
        EntityType.TASKS.value: len(workspace.tasks),
    }

    # (3) Error breakdowns
    by_entity = _count_by(df, "entityType")
    by_type = _count_by(df, "errorType")
    row_level = df[df["rowIndex"] >= 0]
    rows_with_errors = {
        str(k): int(v)
        for k, v in row_level.groupby("entityType")["rowIndex"].nunique().items()
    }

    # (4) Rules
    rules_by_type: dict[str, int] = {}
    if workspace.rules:
        rules_df = pd.DataFrame({"type": [r.type for r in workspace.rules]})
        rules_by_type = _count_by(rules_df, "type")

    metrics: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "rows": rows,
        "total_errors": int(len(df)),
        "errors_by_entity": by_entity,
        "errors_by_type": by_type,
        "rows_with_errors": rows_with_errors,
        "rules": {
            "total": len(workspace.rules),
            "by_type": rules_by_type,
            "invalid": len(analysis.invalid_rules) if analysis else 0,
            "cycles": len(analysis.cycles.cycles) if analysis else 0,
            "conflicts": len(analysis.conflicts.conflicts) if analysis else 0,
        },
    }

    # (5) Guard against non-serializable values leaking from pandas
    try:
        json.dumps(metrics, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"metrics not JSON-serializable: {e}",
            source="metrics.collect_metrics",
        ) from e
    return metrics


# ----------------- internal -----------------


def _errors_frame(errors: Sequence[ValidationError]) -> pd.DataFrame:
    records = [
        e.model_dump(by_alias=True, mode="json", include={"entity_type", "row_index", "field", "error_type"})
        for e in errors
    ]
    return pd.DataFrame.from_records(records, columns=_ERROR_COLUMNS)


def _count_by(df: pd.DataFrame, column: str) -> dict[str, int]:
    """Sorted {value: count} with plain Python ints."""
    if df.empty:
        return {}
    counts = df.groupby(column).size().sort_index()
    return {str(k): int(v) for k, v in counts.items()}


__all__ = ["collect_metrics"]
