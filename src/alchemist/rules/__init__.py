from alchemist.rules.analyzer import analyze_rules, detect_conflicts, detect_cycles, validate_rule
from alchemist.rules.serialization import export_rules_to_json, import_rules_from_json

__all__ = [
    "validate_rule",
    "detect_cycles",
    "detect_conflicts",
    "analyze_rules",
    "export_rules_to_json",
    "import_rules_from_json",
]
