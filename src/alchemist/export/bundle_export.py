# src/alchemist/export/bundle_export.py
from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from alchemist.dataloader.types import Workspace
from alchemist.errors import DataError
from alchemist.metrics.logger import write_json_atomic
from alchemist.rules.serialization import rules_to_payload
from alchemist.schemas.models import PrioritySettings, as_record

logger = logging.getLogger(__name__)


def _to_rows(records: Any, section: str) -> list[dict[str, Any]]:
    """
    @brief
    Converts an entity collection into a list of plain column-keyed dicts.

    @details
    Accepts raw mappings and typed entities alike. A plain dict is rejected
    to prevent accidental iteration over keys.

    @raises
        DataError if the collection or one of its items is unsupported.
    """
    if isinstance(records, Mapping) or not isinstance(records, Iterable):
        raise DataError(
            f"Unsupported {section} collection type: {type(records).__name__}",
            source="export.build_bundle",
            suggested_action=f"Pass {section} as a list of rows.",
        )

    rows = []
    for item in records:
        if not (isinstance(item, Mapping) or hasattr(item, "to_record")):
            raise DataError(
                f"Each {section} item must be a row mapping or an entity model.",
                source="export.build_bundle",
            )
        rows.append(dict(as_record(item)))
    return rows


def build_bundle(
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
    rules: Iterable[Any] = (),
    priority_settings: PrioritySettings | None = None,
) -> dict[str, Any]:
    """
    @brief
    Assemble the workspace bundle dictionary.

    @details
    Layout: {"clients", "workers", "tasks", "rules", "prioritySettings"}.
    Rules and priority settings are written with camelCase keys so the
    bundle can be read back by BundleLoader.
    """
    settings = priority_settings or PrioritySettings()
    return {
        "clients": _to_rows(clients, "clients"),
        "workers": _to_rows(workers, "workers"),
        "tasks": _to_rows(tasks, "tasks"),
        "rules": rules_to_payload(rules),
        "prioritySettings": settings.model_dump(by_alias=True, mode="json"),
    }


def bundle_from_workspace(workspace: Workspace) -> dict[str, Any]:
    return build_bundle(
        workspace.clients,
        workspace.workers,
        workspace.tasks,
        workspace.rules,
        workspace.priority_settings,
    )


def export_all_to_json(
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
    rules: Iterable[Any] = (),
    priority_settings: PrioritySettings | None = None,
) -> str:
    """Bundle as pretty-printed JSON text."""
    bundle = build_bundle(clients, workers, tasks, rules, priority_settings)
    try:
        return json.dumps(bundle, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"Workspace is not JSON-serializable: {e}",
            source="export.export_all_to_json",
            suggested_action="Ensure entity rows only hold primitives, lists and dicts.",
        ) from e


def write_bundle(
    path: Path,
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
    rules: Iterable[Any] = (),
    priority_settings: PrioritySettings | None = None,
) -> Path:
    """
    @brief
    Write the workspace bundle to disk atomically.

    @returns
        Path to the written file.

    @raises
        DataError on serialization or I/O failure.
    """
    bundle = build_bundle(clients, workers, tasks, rules, priority_settings)
    target = write_json_atomic(bundle, Path(path))
    logger.info(
        "Workspace bundle saved: %s (%d client(s), %d worker(s), %d task(s), %d rule(s))",
        target,
        len(bundle["clients"]),
        len(bundle["workers"]),
        len(bundle["tasks"]),
        len(bundle["rules"]),
    )
    return target


__all__ = ["build_bundle", "bundle_from_workspace", "export_all_to_json", "write_bundle"]
