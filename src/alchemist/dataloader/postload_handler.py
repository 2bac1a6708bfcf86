# src/alchemist/dataloader/postload_handler.py
from __future__ import annotations

import logging
from pathlib import Path

from alchemist.dataloader.types import LoadResult, Workspace
from alchemist.errors import DataError
from alchemist.metrics.logger import write_json_atomic

logger = logging.getLogger(__name__)


class LoadResultHandler:
    """
    @brief
    Gate between bundle loading and validation.

    @details
    On success the loaded Workspace is passed downstream. On failure the
    item-level issues are written to 'load_errors.json' in output_dir and
    None is returned so the caller stops the pipeline.
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def handle(self, result: LoadResult) -> Workspace | None:
        """
        @brief
        Return the workspace, or write the issue report and return None.

        @details
        A failure to write the report is logged and does not raise; the
        pipeline is stopped either way.
        """
        # (1) Success path
        if result.success:
            logger.info(
                "PostLoad: workspace ready (%d rule(s)).", len(result.workspace.rules)
            )
            return result.workspace

        # (2) Failure path: persist the issues
        out_path = self.output_dir / "load_errors.json"
        try:
            write_json_atomic(result.errors, out_path)
            logger.error(
                "PostLoad: bundle rejected, %d issue(s). See %s", len(result.errors), out_path
            )
        except DataError as e:
            logger.error("PostLoad: failed to write error report: %s", e)

        return None


__all__ = ["LoadResultHandler"]
