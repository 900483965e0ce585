"""
Mealie Recipe Service
=====================

Implements the recipe service capabilities (recipe_service.py) on top of
MealieClient. Collections are Mealie categories; a recipe's identifier is
its Mealie slug.

Usage:
    from config import load_settings
    from mealie_service import MealieRecipeService

    service = MealieRecipeService.authenticate(load_settings())
    try:
        recipe = service.new_recipe(schema)
        recipe.save()
    finally:
        service.teardown()
"""

from datetime import date
from typing import Any, Dict, List, Optional

from config import ImporterSettings
from mealie_client import MealieAPIError, MealieClient, MealieClientError
from recipe_service import (
    AuthenticationError,
    CollectionExistsError,
    CollectionHandle,
    RecipeHandle,
    RecipeSchema,
    RecipeService,
    RecipeServiceError,
)
from tools.logging_utils import get_logger
from utils.time_parser import format_duration

logger = get_logger(__name__)

# Response fragments Mealie uses when a unique organizer name is taken
_DUPLICATE_MARKERS = ("already exists", "unique")


def translate_api_error(error: Exception) -> RecipeServiceError:
    """
    Map a Mealie client failure onto a recipe service error kind.

    Contract:
        - MealieAPIError with HTTP 409 -> CollectionExistsError
        - MealieAPIError with HTTP 400 whose response body mentions
          "already exists" or "unique" (case-insensitive) -> CollectionExistsError
        - anything else -> RecipeServiceError carrying str(error)

    This is the only place duplicate detection looks at message text.
    """
    if isinstance(error, MealieAPIError):
        if error.status_code == 409:
            return CollectionExistsError(str(error))
        if error.status_code == 400:
            body = (error.response_body or "").lower()
            if any(marker in body for marker in _DUPLICATE_MARKERS):
                return CollectionExistsError(str(error))
    return RecipeServiceError(str(error))


def build_mealie_payload(schema: RecipeSchema) -> Dict[str, Any]:
    """Translate a RecipeSchema into Mealie's recipe fields."""
    payload: Dict[str, Any] = {
        "name": schema.name,
        "recipeIngredient": [
            {
                "note": line.raw_ingredient,
                "display": line.raw_ingredient,
                "originalText": line.raw_ingredient,
            }
            for line in schema.ingredients
        ],
        "recipeInstructions": [{"text": step} for step in schema.preparation_steps],
        "orgURL": schema.source_url,
        "dateAdded": date.fromtimestamp(schema.creation_timestamp).isoformat(),
    }

    if schema.note:
        payload["description"] = schema.note

    if schema.servings is not None:
        # Numeric servings fill the structured field; free text stays a yield string
        if isinstance(schema.servings, (int, float)) and not isinstance(schema.servings, bool):
            payload["recipeServings"] = schema.servings
        payload["recipeYield"] = str(schema.servings)

    prep_time = format_duration(schema.prep_time)
    if prep_time:
        payload["prepTime"] = prep_time

    cook_time = format_duration(schema.cook_time)
    if cook_time:
        payload["performTime"] = cook_time

    if schema.source_name:
        payload["extras"] = {"sourceName": str(schema.source_name)}

    return payload


class MealieRecipe(RecipeHandle):
    """Recipe handle persisted through Mealie's create + patch flow."""

    def __init__(self, client: MealieClient, schema: RecipeSchema):
        super().__init__(schema)
        self._client = client

    def save(self) -> None:
        try:
            self.identifier = self._client.create_recipe(build_mealie_payload(self.schema))
        except MealieClientError as e:
            raise translate_api_error(e) from e
        logger.debug(f"💾 Saved recipe '{self.schema.name}' as {self.identifier}")


class MealieCategory(CollectionHandle):
    """A Mealie category acting as a recipe collection."""

    def __init__(
        self,
        client: MealieClient,
        name: str,
        identifier: Optional[str] = None,
        slug: Optional[str] = None
    ):
        super().__init__(name, identifier)
        self.slug = slug
        self._client = client

    @classmethod
    def from_api(cls, client: MealieClient, data: Dict[str, Any]) -> "MealieCategory":
        return cls(client, data.get("name", ""), identifier=data.get("id"), slug=data.get("slug"))

    def as_organizer(self) -> Dict[str, Any]:
        return {"id": self.identifier, "name": self.name, "slug": self.slug}

    def save(self) -> None:
        try:
            data = self._client.create_category(self.name)
        except MealieClientError as e:
            raise translate_api_error(e) from e
        self.identifier = data.get("id")
        self.slug = data.get("slug")
        logger.info(f"📁 Created category '{self.name}'")

    def add_recipe(self, recipe_identifier: str) -> None:
        if not self.identifier:
            raise RecipeServiceError(f"Category '{self.name}' has not been saved")

        try:
            recipe = self._client.get_recipe(recipe_identifier)
            categories = list(recipe.get("recipeCategory") or [])

            for category in categories:
                if isinstance(category, dict) and category.get("id") == self.identifier:
                    logger.debug(f"Recipe {recipe_identifier} already in '{self.name}'")
                    return

            categories.append(self.as_organizer())
            self._client.update_recipe(recipe_identifier, {"recipeCategory": categories})
        except MealieClientError as e:
            raise translate_api_error(e) from e


class MealieRecipeService(RecipeService):
    """Authenticated Mealie session exposing the recipe service capabilities."""

    def __init__(self, client: MealieClient):
        self._client = client
        self._closed = False

    @classmethod
    def authenticate(cls, settings: ImporterSettings) -> "MealieRecipeService":
        """
        Open a session using a token when configured, else email/password.

        Raises:
            AuthenticationError: If Mealie rejects the credentials or is unreachable
        """
        if settings.mealie_token:
            client = MealieClient(settings.mealie_url, token=settings.mealie_token, timeout=settings.timeout)
            try:
                client.get_current_user()
            except MealieClientError as e:
                client.close()
                raise AuthenticationError(f"Mealie rejected the configured token: {e}") from e
            return cls(client)

        try:
            client = MealieClient.login(
                settings.mealie_url,
                settings.mealie_email,
                settings.mealie_password,
                timeout=settings.timeout,
            )
        except MealieClientError as e:
            raise AuthenticationError(f"Mealie login failed: {e}") from e
        return cls(client)

    def new_recipe(self, schema: RecipeSchema) -> MealieRecipe:
        return MealieRecipe(self._client, schema)

    def list_collections(self) -> List[MealieCategory]:
        try:
            items = self._client.get_all_categories()
        except MealieClientError as e:
            raise translate_api_error(e) from e
        return [MealieCategory.from_api(self._client, item) for item in items]

    def new_collection(self, name: str) -> MealieCategory:
        return MealieCategory(self._client, name)

    def teardown(self) -> None:
        if not self._closed:
            self._client.close()
            self._closed = True
