import json
from pathlib import Path

import pytest
import yaml

from scripts import gen_schemas
from scripts.run import main, run_pipeline


@pytest.fixture()
def cfg_path(tmp_path: Path) -> Path:
    """Config pointing output_dir into the test sandbox."""
    path = tmp_path / "config.yaml"
    cfg = {"log_level": "INFO", "output_dir": str(tmp_path / "out")}
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


def _write_bundle(tmp_path: Path, bundle: dict) -> Path:
    path = tmp_path / "workspace.json"
    path.write_text(json.dumps(bundle), encoding="utf-8")
    return path


def test_run_pipeline_clean_bundle_writes_artifacts(tmp_path: Path, cfg_path: Path, bundle_dict):
    """
    @brief
    End-to-end run over a clean workspace bundle.

    @details
    Verifies the result structure and that the validation report, the rules
    report and metrics.json are written to the configured output directory.
    """
    # --- Arrange ---
    input_path = _write_bundle(tmp_path, bundle_dict)

    # --- Act ---
    result = run_pipeline(cfg_path, input_path)
    arts = result["artifacts"]

    # --- Assert ---
    assert result["valid"] is True
    assert result["error_count"] == 0
    assert arts["validation_report"] == tmp_path / "out" / "validation_report.json"
    for path in arts.values():
        assert path is not None and Path(path).exists()

    report = json.loads(arts["validation_report"].read_text(encoding="utf-8"))
    assert report["checks"] == {"Structure": True, "References": True, "Rules": True}

    rules_report = json.loads(arts["rules_report"].read_text(encoding="utf-8"))
    assert rules_report["hasCycles"] is False
    assert rules_report["invalidRules"] == {}

    metrics = json.loads(arts["metrics"].read_text(encoding="utf-8"))
    assert metrics["rows"] == {"clients": 2, "tasks": 2, "workers": 2}


def test_run_pipeline_reports_findings(tmp_path: Path, cfg_path: Path, bundle_dict):
    # --- Arrange ---
    bundle_dict["clients"][0]["PriorityLevel"] = 9
    bundle_dict["clients"][1]["RequestedTaskIDs"] = ["T1", "T9"]
    bundle_dict["rules"].append(
        {
            "id": "r2",
            "type": "phaseWindow",
            "description": "T1 late",
            "parameters": {"taskId": "T1", "allowedPhases": [4]},
        }
    )
    input_path = _write_bundle(tmp_path, bundle_dict)
    output_dir = tmp_path / "custom"

    # --- Act ---
    result = run_pipeline(cfg_path, input_path, output_dir)

    # --- Assert ---
    assert result["valid"] is False
    assert result["error_count"] == 3
    report = json.loads((output_dir / "validation_report.json").read_text(encoding="utf-8"))
    assert report["counts"]["byErrorType"] == {
        "conflictingRules": 1,
        "outOfRange": 1,
        "unknownReference": 1,
    }
    metrics = json.loads((output_dir / "metrics.json").read_text(encoding="utf-8"))
    assert metrics["rules"]["conflicts"] == 1


def test_main_exit_codes(tmp_path: Path, cfg_path: Path, bundle_dict):
    """
    @brief
    0 for a valid dataset, 1 for findings and for a rejected bundle.
    """
    # --- Arrange ---
    clean = _write_bundle(tmp_path, bundle_dict)
    args = ["--config", str(cfg_path), "--output", str(tmp_path / "cli")]

    # --- Act ---
    ok = main([*args, "--input", str(clean)])

    bundle_dict["tasks"].append("T3")
    rejected = _write_bundle(tmp_path, bundle_dict)
    failed = main([*args, "--input", str(rejected)])

    # --- Assert ---
    assert ok == 0
    assert failed == 1
    issues = json.loads((tmp_path / "cli" / "load_errors.json").read_text(encoding="utf-8"))
    assert issues[0]["kind"] == "invalid_row"


def test_main_missing_config_returns_one(tmp_path: Path, bundle_dict):
    # --- Arrange ---
    input_path = _write_bundle(tmp_path, bundle_dict)

    # --- Act ---
    code = main(["--config", str(tmp_path / "absent.yaml"), "--input", str(input_path)])

    # --- Assert ---
    assert code == 1


def test_gen_schemas_exports_every_model(tmp_path: Path):
    # --- Act ---
    written = gen_schemas.main(tmp_path / "schemas")

    # --- Assert ---
    names = sorted(p.name for p in written)
    assert "rule.schema.json" in names
    assert len(names) == len(gen_schemas.SCHEMAS) + 1
    client = json.loads((tmp_path / "schemas" / "client.schema.json").read_text(encoding="utf-8"))
    assert "ClientID" in client["properties"]
