"""
Recipe Service Capabilities
===========================

The narrow set of operations the importer needs from a remote recipe
manager. Concrete backends (see mealie_service.py) subclass these and
translate their own failures into the error kinds defined here.

Capabilities:
    RecipeService.new_recipe(schema)    -> RecipeHandle      (.save(), .identifier)
    RecipeService.list_collections()    -> list | None       (optional, None = unsupported)
    RecipeService.new_collection(name)  -> CollectionHandle  (.save(), .add_recipe(id))
    RecipeService.teardown()
"""

from dataclasses import dataclass
from typing import Any, List, Optional


# =============================================================================
# EXCEPTIONS
# =============================================================================

class RecipeServiceError(Exception):
    """Base exception for recipe service failures."""


class AuthenticationError(RecipeServiceError):
    """Login to the recipe service failed."""


class CollectionExistsError(RecipeServiceError):
    """A collection with the requested name already exists remotely."""


# =============================================================================
# CREATION SCHEMA
# =============================================================================

@dataclass
class IngredientLine:
    """One ingredient kept as opaque text (no quantity/unit parsing)."""
    raw_ingredient: str


@dataclass
class RecipeSchema:
    """Service-neutral payload for creating a recipe."""
    name: str
    preparation_steps: List[str]
    ingredients: List[IngredientLine]
    creation_timestamp: int
    timestamp: int
    note: Optional[str] = None
    source_name: Optional[str] = None
    source_url: str = ""
    servings: Optional[Any] = None
    prep_time: Optional[int] = None  # seconds
    cook_time: Optional[int] = None  # seconds


# =============================================================================
# HANDLES
# =============================================================================

class RecipeHandle:
    """A recipe that can be persisted. `identifier` is set once saved."""

    def __init__(self, schema: RecipeSchema):
        self.schema = schema
        self.identifier: Optional[str] = None

    def save(self) -> None:
        raise NotImplementedError


class CollectionHandle:
    """A named collection of recipes."""

    def __init__(self, name: str, identifier: Optional[str] = None):
        self.name = name
        self.identifier = identifier

    def save(self) -> None:
        """Create the collection remotely. Raises CollectionExistsError on duplicates."""
        raise NotImplementedError

    def add_recipe(self, recipe_identifier: str) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, identifier={self.identifier!r})"


# =============================================================================
# SERVICE
# =============================================================================

class RecipeService:
    """Base class for an authenticated recipe service session."""

    def new_recipe(self, schema: RecipeSchema) -> RecipeHandle:
        raise NotImplementedError

    def list_collections(self) -> Optional[List[CollectionHandle]]:
        """
        Existing collections, or None when the backend cannot list them.

        Optional capability: backends without a listing endpoint keep this
        default and callers skip the lookup.
        """
        return None

    def new_collection(self, name: str) -> CollectionHandle:
        raise NotImplementedError

    def teardown(self) -> None:
        """Release the session. Safe to call more than once."""
