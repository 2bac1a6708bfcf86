# src/alchemist/dataloader/bundle_loader.py
from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from alchemist.dataloader.types import LoadResult, Workspace
from alchemist.errors import DataError
from alchemist.schemas.models import RULE_ADAPTER, PrioritySettings

logger = logging.getLogger(__name__)

ENTITY_SECTIONS = ("clients", "workers", "tasks")
BUNDLE_KEYS = frozenset({*ENTITY_SECTIONS, "rules", "prioritySettings"})


class BundleLoader:
    """
    JSON workspace bundle -> LoadResult[Workspace].

    Bundle layout: {"clients": [...], "workers": [...], "tasks": [...],
    "rules": [...], "prioritySettings": {...}}, every key optional.

    Item-level issues (collected, loading continues):
      - entity item that is not a JSON object  -> invalid_row
      - rule that does not fit any rule variant -> invalid_rule
      - malformed prioritySettings              -> invalid_priority_settings
      - unknown top-level key                   -> unknown_section
    Entity rows are NOT validated here; that is the validator's job.

    Fatal errors (raise DataError immediately):
      - missing / unreadable file
      - invalid JSON
      - top-level value or a section of the wrong JSON type
    """

    def load(self, path: Path | str) -> LoadResult:
        path = Path(path)
        raw = self._read_json(path)
        result = self._bundle_to_result(raw)
        self._report_summary(path, result)
        return result

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read_json(self, path: Path) -> dict[str, Any]:
        if not path.is_file():
            raise DataError(
                message=f"Workspace bundle not found: {path}",
                source="BundleLoader._read_json",
                suggested_action="Verify the --input path.",
            )
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except ValueError as e:
            raise DataError(
                message=f"Workspace bundle is not valid JSON: {e}",
                source="BundleLoader._read_json",
                suggested_action="Re-export the workspace or fix the JSON syntax.",
            ) from e
        except OSError as e:
            raise DataError(
                message=f"Unable to read workspace bundle: {e}",
                source="BundleLoader._read_json",
                suggested_action="Check file permissions.",
            ) from e

        if not isinstance(raw, Mapping):
            raise DataError(
                message=f"Workspace bundle root must be an object, got {type(raw).__name__}",
                source="BundleLoader._read_json",
                suggested_action="Use the layout produced by the workspace export.",
            )
        return dict(raw)

    def _section(self, raw: dict[str, Any], key: str, expected: type) -> Any:
        value = raw.get(key)
        if value is None:
            return expected()
        if not isinstance(value, expected):
            raise DataError(
                message=f"Bundle section '{key}' must be a {expected.__name__}, got {type(value).__name__}",
                source="BundleLoader._section",
            )
        return value

    def _bundle_to_result(self, raw: dict[str, Any]) -> LoadResult:
        issues: list[dict[str, Any]] = []
        workspace = Workspace()

        # (1) Unknown top-level keys are reported, not fatal
        for key in raw:
            if key not in BUNDLE_KEYS:
                issues.append(
                    {
                        "kind": "unknown_section",
                        "section": key,
                        "index": None,
                        "message": f"Unknown bundle section '{key}'",
                    }
                )

        # (2) Entity sections: keep mapping rows as-is
        for section in ENTITY_SECTIONS:
            rows = getattr(workspace, section)
            for idx, item in enumerate(self._section(raw, section, list)):
                if isinstance(item, Mapping):
                    rows.append(dict(item))
                    continue
                issues.append(
                    {
                        "kind": "invalid_row",
                        "section": section,
                        "index": idx,
                        "message": f"Row must be a JSON object, got {type(item).__name__}",
                    }
                )

        # (3) Rules: parse each into the tagged union
        for idx, item in enumerate(self._section(raw, "rules", list)):
            try:
                workspace.rules.append(RULE_ADAPTER.validate_python(item))
            except ValidationError as e:
                issues.append(
                    {
                        "kind": "invalid_rule",
                        "section": "rules",
                        "index": idx,
                        "rule_id": item.get("id") if isinstance(item, Mapping) else None,
                        "message": f"Rule does not match any rule type: {e.errors()[0].get('msg')}",
                    }
                )

        # (4) Priority settings: defaults when absent
        settings = raw.get("prioritySettings")
        if settings is not None:
            try:
                workspace.priority_settings = PrioritySettings.model_validate(settings)
            except ValidationError as e:
                issues.append(
                    {
                        "kind": "invalid_priority_settings",
                        "section": "prioritySettings",
                        "index": None,
                        "message": f"Invalid priority settings: {e.errors()[0].get('msg')}",
                    }
                )

        return LoadResult(success=not issues, workspace=workspace, errors=issues)

    def _report_summary(self, path: Path, result: LoadResult) -> None:
        ws = result.workspace
        if result.success:
            logger.info(
                "BundleLoader OK: clients=%d workers=%d tasks=%d rules=%d from %s",
                len(ws.clients),
                len(ws.workers),
                len(ws.tasks),
                len(ws.rules),
                path,
            )
            return

        counts = Counter(issue["kind"] for issue in result.errors)
        summary = ", ".join(f"{k}={v}" for k, v in counts.items())
        logger.error(
            "BundleLoader failed: %d issue(s) in %s [%s]", len(result.errors), path, summary
        )


__all__ = ["BundleLoader", "BUNDLE_KEYS", "ENTITY_SECTIONS"]
