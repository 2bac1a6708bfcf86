from alchemist.validator.references import validate_circular_dependencies, validate_references
from alchemist.validator.structural import validate_entities
from alchemist.validator.validator import Validator, validate_all, validate_dataset

__all__ = [
    "validate_entities",
    "validate_references",
    "validate_circular_dependencies",
    "validate_all",
    "validate_dataset",
    "Validator",
]
