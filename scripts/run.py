# scripts/run.py
from __future__ import annotations

import argparse
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from alchemist.dataloader.bundle_loader import BundleLoader
from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.postload_handler import LoadResultHandler
from alchemist.errors import AlchemistError, DataError
from alchemist.metrics.logger import write_json_atomic, write_metrics
from alchemist.metrics.metrics import collect_metrics
from alchemist.rules.analyzer import analyze_rules
from alchemist.schemas.models import ValidationError
from alchemist.validator.validator import validate_dataset


def _setup_logging(level: str = "INFO") -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    Uses a simple console format; the level comes from Config.log_level.
    force=True lets the level be raised or lowered once the config is read.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(levelname)s] %(message)s",
        force=True,
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="alchemist-run",
        description="Validate a workspace bundle: load → validate → analyze rules → metrics",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml)",
    )
    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Path to the workspace bundle JSON (clients, workers, tasks, rules)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )
    return parser.parse_args(argv)


def run_pipeline(config_path: Path, input_path: Path, output_dir: Path | None = None) -> dict[str, Any]:
    """
    @brief
    Executes the full validation pipeline over a workspace bundle.

    @details
    Performs sequential steps:
    (1) Load configuration and the workspace bundle.
    (2) Validate entities, references and (optionally) rule findings;
        write validation_report.json.
    (3) Analyze rules; write rules_report.json.
    (4) Collect and write metrics.json.

    @returns
        Dictionary with the validity flag, error count and artifact paths.

    @raises
        AlchemistError
            On configuration, bundle or I/O problems.
    """
    t0 = time.perf_counter()

    # (1) Configuration and data
    logging.info("Loading config: %s", config_path)
    cfg = ConfigLoader().load(config_path)
    _setup_logging(cfg.log_level)

    out_dir = Path(output_dir or cfg.output_dir or "data/output")
    out_dir.mkdir(parents=True, exist_ok=True)

    logging.info("Loading workspace bundle: %s", input_path)
    load_result = BundleLoader().load(input_path)
    workspace = LoadResultHandler(output_dir=out_dir).handle(load_result)
    if workspace is None:
        load_errors_path = out_dir / "load_errors.json"
        raise DataError(
            message=f"Workspace load failed, see {load_errors_path.as_posix()}",
            source="scripts.run",
            suggested_action="Fix the issues reported in load_errors.json and rerun.",
        )

    # (2) Dataset validation
    logging.info("Validating dataset…")
    report = validate_dataset(
        workspace.clients,
        workspace.workers,
        workspace.tasks,
        cfg,
        rules=workspace.rules,
        write_report=True,
        out_dir=out_dir,
    )
    validation_report_path = out_dir / "validation_report.json"

    # (3) Rule analysis
    logging.info("Analyzing %d rule(s)…", len(workspace.rules))
    analysis = analyze_rules(workspace.rules)
    rules_report_path = write_json_atomic(analysis.to_dict(), out_dir / "rules_report.json")

    # (4) Metrics
    metrics_path: Path | None = None
    if cfg.metrics.save_metrics:
        logging.info("Collecting metrics…")
        errors = [ValidationError.model_validate(e) for e in report["errors"]]
        summary = collect_metrics(workspace, errors, analysis)
        metrics_path = write_metrics(summary, out_dir=out_dir)

    dt = time.perf_counter() - t0
    logging.info("Pipeline finished in %.2f s", dt)

    return {
        "valid": bool(report["valid"]),
        "error_count": int(report["errorCount"]),
        "artifacts": {
            "validation_report": validation_report_path,
            "rules_report": rules_report_path,
            "metrics": metrics_path,
        },
    }


def main(argv: list[str] | None = None) -> int:
    """
    @brief
    CLI entry point.

    @details
    Exit codes:
      0 - dataset valid
      1 - validation findings, or controlled failure (config/bundle/I-O)
      2 - unexpected crash
    """
    _setup_logging()
    args = _parse_args(argv)

    try:
        result = run_pipeline(
            Path(args.config),
            Path(args.input),
            Path(args.output) if args.output else None,
        )
        logging.info(
            "valid=%s, %d error(s); artifacts: %s",
            result["valid"],
            result["error_count"],
            ", ".join(p.name for p in result["artifacts"].values() if p is not None),
        )
        return 0 if result["valid"] else 1

    except AlchemistError as e:
        logging.error(str(e))
        logging.debug("Error details: %s", e.to_dict())
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
