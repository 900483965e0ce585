"""Recipe record validation run before anything is sent to Mealie."""

from dataclasses import dataclass, field
from typing import Any, List


@dataclass
class ValidationResult:
    """Outcome of validating one recipe record."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _is_non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def validate_recipe(recipe: Any) -> ValidationResult:
    """
    Check a recipe record has the minimum required fields.

    Every violated rule adds one error; none is fatal on its own, so the
    caller decides whether to skip the record.
    """
    if not isinstance(recipe, dict):
        recipe = {}

    errors = []

    name = recipe.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append('Missing or invalid "name" field')

    if not _is_non_empty_list(recipe.get("ingredients")):
        errors.append('Missing or invalid "ingredients" field (must be non-empty array)')

    if not _is_non_empty_list(recipe.get("steps")):
        errors.append('Missing or invalid "steps" field (must be non-empty array)')

    return ValidationResult(is_valid=not errors, errors=errors)
