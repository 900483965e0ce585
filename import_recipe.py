"""
Import a Single Recipe Record
=============================

Maps one recipe record from the pending queue onto the recipe service's
creation schema, saves it, then files it into any listed collections.

Record fields:
    name, ingredients, steps                 (required, see utils/recipe_validation.py)
    description, notes, source               (folded into the note)
    servings, prepTime, cookTime, collections
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from recipe_collections import CollectionResult, add_recipe_to_collections
from recipe_service import IngredientLine, RecipeSchema, RecipeService
from tools.logging_utils import get_logger
from utils.time_parser import parse_time_to_seconds

logger = get_logger(__name__)

NOTES_SEPARATOR = "\n\n---\n\n"
SOURCE_SEPARATOR = "\n\n"


@dataclass
class ImportResult:
    """Outcome of importing one recipe record."""
    success: bool
    recipe_identifier: Optional[str] = None
    error: Optional[str] = None
    collection_results: List[CollectionResult] = field(default_factory=list)


def build_note(recipe: Dict[str, Any]) -> Optional[str]:
    """
    Combine description, notes and source into a single note.

    Layout: description, a horizontal rule, notes, a blank line, then
    "Source: ...". Separators only appear between present segments.
    """
    parts = []

    description = recipe.get("description")
    if description:
        parts.append(str(description))

    notes = recipe.get("notes")
    if notes:
        if parts:
            parts.append(NOTES_SEPARATOR)
        parts.append(str(notes))

    source = recipe.get("source")
    if source:
        if parts:
            parts.append(SOURCE_SEPARATOR)
        parts.append(f"Source: {source}")

    return "".join(parts) or None


def build_recipe_schema(recipe: Dict[str, Any], now: Optional[int] = None) -> RecipeSchema:
    """
    Map a validated recipe record to the creation schema.

    Args:
        recipe: Recipe record (already validated)
        now: Epoch seconds to stamp on the recipe (default: current time)
    """
    timestamp = int(time.time()) if now is None else int(now)

    # TODO: decide whether URL-shaped sources should populate source_url;
    # today the source only travels inside the note.
    return RecipeSchema(
        name=recipe["name"],
        note=build_note(recipe),
        preparation_steps=list(recipe["steps"]),
        ingredients=[IngredientLine(raw_ingredient=item) for item in recipe["ingredients"]],
        source_name=recipe.get("source") or None,
        source_url="",
        servings=recipe.get("servings") or None,
        prep_time=parse_time_to_seconds(recipe.get("prepTime")),
        cook_time=parse_time_to_seconds(recipe.get("cookTime")),
        creation_timestamp=timestamp,
        timestamp=timestamp,
    )


def collection_names(recipe: Dict[str, Any]) -> List[str]:
    """
    Collections listed on a record, as a list.

    A single string is one collection; any other non-list value is ignored
    with a warning so it can never fail a recipe that already saved.
    """
    names = recipe.get("collections")
    if not names:
        return []
    if isinstance(names, str):
        return [names]
    if isinstance(names, list):
        return names
    logger.warning(
        f"⚠️ Ignoring collections on '{recipe.get('name', 'Unnamed Recipe')}': "
        f"expected a list, got {type(names).__name__}"
    )
    return []


def import_recipe(service: RecipeService, recipe: Dict[str, Any]) -> ImportResult:
    """
    Import one recipe. Never raises - failures come back in the result.

    Nothing is rolled back: if the recipe saved but a collection could not
    be attached, the recipe stays and only that collection is reported.
    """
    try:
        schema = build_recipe_schema(recipe)
        names = collection_names(recipe)

        handle = service.new_recipe(schema)
        handle.save()
    except Exception as e:
        logger.debug(f"Import failed for '{recipe.get('name', 'Unnamed Recipe')}'", exc_info=True)
        return ImportResult(success=False, error=str(e) or type(e).__name__)

    collection_results = add_recipe_to_collections(service, handle.identifier, names)

    return ImportResult(
        success=True,
        recipe_identifier=handle.identifier,
        collection_results=collection_results,
    )
