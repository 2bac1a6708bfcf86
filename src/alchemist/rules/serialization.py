# src/alchemist/rules/serialization.py
from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from alchemist.errors import RuleError
from alchemist.schemas.models import RULE_ADAPTER, RULE_LIST_ADAPTER, Rule

logger = logging.getLogger(__name__)


def rules_to_payload(rules: Iterable[Any]) -> list[dict[str, Any]]:
    """Typed rules (or raw mappings) as plain camelCase dicts, order preserved."""
    payload = []
    for rule in rules:
        if not hasattr(rule, "model_dump"):
            try:
                rule = RULE_ADAPTER.validate_python(rule)
            except PydanticValidationError as e:
                raise RuleError(
                    f"Cannot export malformed rule: {rule!r}",
                    source="rules.rules_to_payload",
                ) from e
        payload.append(rule.model_dump(by_alias=True, mode="json"))
    return payload


def export_rules_to_json(rules: Iterable[Any]) -> str:
    """
    @brief
    Serialize a rule list to pretty-printed JSON.

    @details
    Parameter keys are written with their camelCase names (taskIds,
    maxSlotsPerPhase, ...). Extra parameter keys are kept.
    """
    payload = rules_to_payload(rules)
    logger.debug("Exporting %d rule(s)", len(payload))
    return json.dumps(payload, indent=2, ensure_ascii=False)


def import_rules_from_json(text: str) -> list[Rule]:
    """
    @brief
    Parse a rule list previously produced by export_rules_to_json().

    @details
    export followed by import yields an equal rule list in the same order.

    @raises
        RuleError
            If the text is not JSON, not a list, or holds an invalid rule.
    """
    # (1) Decode JSON
    try:
        raw = json.loads(text)
    except ValueError as e:
        raise RuleError(
            f"Rules payload is not valid JSON: {e}",
            source="rules.import_rules_from_json",
            suggested_action="Provide the JSON produced by the rules export.",
        ) from e

    if not isinstance(raw, list):
        raise RuleError(
            f"Rules payload must be a JSON array, got {type(raw).__name__}",
            source="rules.import_rules_from_json",
        )

    # (2) Validate every rule against the tagged union
    try:
        rules = RULE_LIST_ADAPTER.validate_python(raw)
    except PydanticValidationError as e:
        raise RuleError(
            f"Invalid rule in payload: {e.errors()[0].get('msg', 'invalid value')}",
            source="rules.import_rules_from_json",
            suggested_action="Check rule 'type' and parameter types.",
        ) from e

    logger.info("Imported %d rule(s)", len(rules))
    return rules


__all__ = ["rules_to_payload", "export_rules_to_json", "import_rules_from_json"]
