import json
from pathlib import Path

import pytest

from alchemist.dataloader.bundle_loader import BundleLoader
from alchemist.errors import DataError
from alchemist.export.bundle_export import (
    build_bundle,
    bundle_from_workspace,
    export_all_to_json,
    write_bundle,
)
from alchemist.schemas.models import (
    CoRunParameters,
    CoRunRule,
    PrioritySettings,
    Worker,
)


def test_export_all_to_json_layout(clients, workers, tasks):
    """
    @brief
    Verifies the bundle layout and the camelCase keys of rules and settings.
    """
    # --- Arrange ---
    rules = [CoRunRule(id="r1", parameters=CoRunParameters(task_ids=["T1", "T2"]))]

    # --- Act ---
    text = export_all_to_json(clients, workers, tasks, rules, PrioritySettings.from_preset("fairness"))
    bundle = json.loads(text)

    # --- Assert ---
    assert list(bundle) == ["clients", "workers", "tasks", "rules", "prioritySettings"]
    assert bundle["clients"] == clients
    assert bundle["rules"][0]["parameters"] == {"taskIds": ["T1", "T2"]}
    assert bundle["prioritySettings"]["selectedPreset"] == "fairness"
    assert bundle["prioritySettings"]["weights"]["fairnessScore"] == 8
    assert text.startswith("{\n  ")


def test_typed_entities_are_flattened_with_extras(workers):
    # --- Arrange ---
    row = dict(workers[0], Notes="night shift")
    typed = [Worker.from_record(row)]

    # --- Act ---
    bundle = build_bundle([], typed, [])

    # --- Assert ---
    assert bundle["workers"] == [row]
    assert bundle["rules"] == []
    assert bundle["prioritySettings"]["selectedPreset"] == "custom"


@pytest.mark.parametrize("collection", [{"C1": {}}, 42, ["not-a-row"]])
def test_unsupported_collections_raise_dataerror(collection):
    # --- Act / Assert ---
    with pytest.raises(DataError):
        build_bundle(collection, [], [])


def test_write_bundle_can_be_loaded_back(tmp_path: Path, bundle_dict):
    """
    @brief
    A written bundle is accepted by BundleLoader and reproduces the workspace.
    """
    # --- Arrange ---
    src = tmp_path / "in.json"
    src.write_text(json.dumps(bundle_dict), encoding="utf-8")
    workspace = BundleLoader().load(src).workspace

    # --- Act ---
    target = write_bundle(
        tmp_path / "out" / "workspace.json",
        workspace.clients,
        workspace.workers,
        workspace.tasks,
        workspace.rules,
        workspace.priority_settings,
    )
    reloaded = BundleLoader().load(target)

    # --- Assert ---
    assert target.exists()
    assert reloaded.success is True
    assert reloaded.workspace.clients == workspace.clients
    assert reloaded.workspace.rules == workspace.rules
    assert reloaded.workspace.priority_settings == workspace.priority_settings
    assert bundle_from_workspace(reloaded.workspace) == bundle_from_workspace(workspace)
