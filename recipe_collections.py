"""Collection management: get-or-create by name and recipe assignment."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from recipe_service import CollectionExistsError, CollectionHandle, RecipeService, RecipeServiceError
from tools.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class CollectionResult:
    """Outcome of adding one recipe to one collection."""
    name: str
    success: bool
    error: Optional[str] = None


def find_collection(service: RecipeService, name: str) -> Optional[CollectionHandle]:
    """
    Look up an existing collection by case-insensitive name.

    Best-effort: returns None when the service cannot list collections or
    the listing fails.
    """
    try:
        collections = service.list_collections()
    except RecipeServiceError as e:
        logger.info(f"⚠️ Could not list collections, will try to create '{name}': {e}")
        return None

    if collections is None:
        return None

    wanted = name.lower()
    for collection in collections:
        if (collection.name or "").lower() == wanted:
            return collection
    return None


def ensure_collection(service: RecipeService, name: str) -> CollectionHandle:
    """
    Ensure a collection exists, creating it if necessary.

    If creation reports the name is taken (someone else created it in the
    meantime), the lookup is retried once before giving up.

    Raises:
        RecipeServiceError: If the collection can neither be found nor created
    """
    existing = find_collection(service, name)
    if existing is not None:
        return existing

    collection = service.new_collection(name)
    try:
        collection.save()
    except CollectionExistsError:
        existing = find_collection(service, name)
        if existing is not None:
            logger.debug(f"Collection '{name}' appeared concurrently, reusing it")
            return existing
        raise
    return collection


def add_recipe_to_collections(
    service: RecipeService,
    recipe_identifier: str,
    collection_names: Optional[Sequence[str]]
) -> List[CollectionResult]:
    """
    Add a recipe to each named collection, one at a time.

    A failure on one collection is recorded and never stops the rest.
    """
    if not collection_names:
        return []

    results = []
    for name in collection_names:
        try:
            collection = ensure_collection(service, name)
            collection.add_recipe(recipe_identifier)
            results.append(CollectionResult(name=name, success=True))
        except Exception as e:
            logger.info(f"⚠️ Failed to add {recipe_identifier} to collection '{name}': {e}")
            results.append(CollectionResult(name=name, success=False, error=str(e)))

    return results
