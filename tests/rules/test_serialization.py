# tests/rules/test_serialization.py
import json

import pytest

from alchemist.errors import RuleError
from alchemist.rules.serialization import export_rules_to_json, import_rules_from_json
from alchemist.schemas.models import (
    RULE_ADAPTER,
    CoRunParameters,
    CoRunRule,
    LoadLimitParameters,
    LoadLimitRule,
)


def _sample_rules():
    return [
        CoRunRule(id="r1", description="pair", parameters=CoRunParameters(task_ids=["T1", "T2"])),
        LoadLimitRule(
            id="r2",
            priority=8,
            parameters=LoadLimitParameters(worker_group="GroupA", max_slots_per_phase=3),
        ),
        RULE_ADAPTER.validate_python(
            {
                "id": "r3",
                "type": "patternMatch",
                "parameters": {"pattern": "^T", "targetField": "TaskID", "note": "kept"},
            }
        ),
        RULE_ADAPTER.validate_python(
            {"id": "r4", "type": "priorityOverride", "parameters": {"priority": 9}}
        ),
    ]


def test_round_trip_reproduces_equal_rules_in_order():
    """
    @brief
    export followed by import yields a field-for-field equal rule list.
    """
    # --- Arrange ---
    rules = _sample_rules()

    # --- Act ---
    restored = import_rules_from_json(export_rules_to_json(rules))

    # --- Assert ---
    assert restored == rules
    assert [r.id for r in restored] == ["r1", "r2", "r3", "r4"]
    assert restored[2].parameters.model_extra == {"note": "kept"}


def test_export_uses_camel_case_parameter_keys():
    # --- Act ---
    payload = json.loads(export_rules_to_json(_sample_rules()))

    # --- Assert ---
    assert payload[0]["parameters"] == {"taskIds": ["T1", "T2"]}
    assert payload[1]["parameters"] == {"workerGroup": "GroupA", "maxSlotsPerPhase": 3}
    assert payload[1]["priority"] == 8
    assert payload[0]["priority"] == 5


def test_export_accepts_raw_mappings():
    # --- Arrange ---
    raw = [{"id": "x", "type": "coRun", "parameters": {"taskIds": ["A", "B"]}}]

    # --- Act ---
    payload = json.loads(export_rules_to_json(raw))

    # --- Assert ---
    assert payload[0]["type"] == "coRun"
    assert payload[0]["description"] == ""


def test_empty_list_round_trip():
    # --- Act / Assert ---
    assert import_rules_from_json(export_rules_to_json([])) == []


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        '{"id": "r1"}',
        '[{"id": "r1", "type": "teleport"}]',
        '[{"id": "r1", "type": "coRun", "parameters": {"taskIds": "T1"}}]',
    ],
)
def test_invalid_payload_raises_rule_error(text):
    """
    @brief
    Unimportable payloads raise RuleError with a source tag.
    """
    # --- Act / Assert ---
    with pytest.raises(RuleError) as e:
        import_rules_from_json(text)

    assert e.value.source == "rules.import_rules_from_json"
