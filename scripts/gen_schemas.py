# scripts/gen_schemas.py
"""
Generate JSON Schemas for the Data Alchemist models.

Exports: client, worker, task, rule, validation_error, search_filter,
priority_settings and config.

Output directory: schemas/
"""

import json
from pathlib import Path
from typing import Any

from alchemist.schemas.models import (
    RULE_ADAPTER,
    Client,
    Config,
    PrioritySettings,
    SearchFilter,
    Task,
    ValidationError,
    Worker,
)

SCHEMAS: dict[str, Any] = {
    "client": Client,
    "worker": Worker,
    "task": Task,
    "validation_error": ValidationError,
    "search_filter": SearchFilter,
    "priority_settings": PrioritySettings,
    "config": Config,
}


def export_schema(schema: dict[str, Any], name: str, out_dir: Path) -> Path:
    """
    @brief
    Writes one JSON Schema document as "<name>.schema.json".

    @returns
        Path of the written file.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    schema_path = (out_dir / f"{name}.schema.json").resolve()

    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")

    try:
        rel = schema_path.relative_to(Path.cwd())
    except ValueError:
        rel = schema_path
    print(f"Generated {rel}")
    return schema_path


def main(out_dir: Path | None = None) -> list[Path]:
    """
    @brief
    Entry point for JSON Schema generation.

    @details
    Models are exported in by-alias mode so the schemas describe the wire
    format (column names, camelCase keys). The Rule tagged union has no
    model class and is exported through its TypeAdapter.
    """
    target = (out_dir or Path("schemas")).resolve()

    written = [
        export_schema(model.model_json_schema(by_alias=True), name, target)
        for name, model in SCHEMAS.items()
    ]
    written.append(export_schema(RULE_ADAPTER.json_schema(by_alias=True), "rule", target))
    return written


if __name__ == "__main__":
    main()
