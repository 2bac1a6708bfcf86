"""Data Alchemist: dataset validation, rule consistency and search engine."""

from alchemist.rules.analyzer import detect_conflicts, detect_cycles, validate_rule
from alchemist.search.filters import apply_filter, simple_text_search
from alchemist.validator.references import validate_references
from alchemist.validator.structural import validate_entities
from alchemist.validator.validator import validate_all

__version__ = "0.1.0"

__all__ = [
    "validate_entities",
    "validate_all",
    "validate_references",
    "validate_rule",
    "detect_cycles",
    "detect_conflicts",
    "apply_filter",
    "simple_text_search",
]
