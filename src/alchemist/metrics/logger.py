# src/alchemist/metrics/logger.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from alchemist.errors import DataError

logger = logging.getLogger(__name__)


def write_metrics(metrics: dict[str, Any], out_dir: Path) -> Path:
    """
    @brief
    Writes metrics.json atomically in UTF-8 encoding.

    @details
    Validates that the input is a serializable dictionary, dumps it with
    sorted keys and indentation, and replaces the target in one step so that
    repeated runs overwrite the same file cleanly.

    @params
        metrics : dict[str, Any]
            Dataset and validation summary (see collect_metrics).
        out_dir : Path
            Directory where metrics.json will be created.

    @returns
        Path to the created metrics.json file.

    @raises
        DataError
            If input is not a dict or JSON serialization fails.
    """
    if not isinstance(metrics, dict):
        raise DataError("metrics must be a dict", source="metrics.write_metrics")

    target = write_json_atomic(metrics, Path(out_dir) / "metrics.json", sort_keys=True)
    logger.info("Metrics saved: %s", target)
    return target


def write_json_atomic(payload: Any, path: Path, sort_keys: bool = False) -> Path:
    """
    @brief
    Serialize a JSON document and write it atomically.

    @details
    Shared by the validation report, the rules report, the bundle export and
    load_errors.json. Serialization happens before anything touches the disk,
    so an unserializable payload never leaves a partial file behind.

    @raises
        DataError
            On serialization or write failure.
    """
    path = Path(path)

    # (1) Validate JSON serializability first
    try:
        text = json.dumps(payload, ensure_ascii=False, sort_keys=sort_keys, indent=2)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"payload for {path.name} is not JSON-serializable: {e}",
            source="metrics.write_json_atomic",
            suggested_action="Ensure values are primitives, lists or dicts.",
        ) from e

    # (2) Swap into place
    _atomic_write_text(path, text, encoding="utf-8")
    return path


def _atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    @brief
    Replace `path` with `text` so readers never observe a half-written artifact.

    @details
    Missing parent directories are created. Any OSError, including a parent
    path that exists as a regular file, becomes a DataError and the
    temporary file is removed.
    """
    path = Path(path)
    tmp_path: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        # (1) Temporary file next to the target keeps the rename on one filesystem
        fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", dir=str(path.parent))
        with open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        # (2) Clean up temp file on error
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise DataError(
            f"atomic write failed for {path}: {e}",
            source="metrics._atomic_write_text",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


__all__ = ["write_metrics", "write_json_atomic"]
