"""
Pytest Configuration and Fixtures
=================================

Provides shared fixtures for the test suite:
- In-memory recipe service fakes (no Mealie server needed)
- Isolated data directory and settings per test
- Environment scrubbed of Mealie credentials

SAFETY: Nothing here talks to a real Mealie instance.
"""

import logging
from typing import Dict, List, Optional

import pytest

from config import ImporterSettings
from tools import logging_utils
from recipe_service import (
    CollectionExistsError,
    CollectionHandle,
    RecipeHandle,
    RecipeSchema,
    RecipeService,
    RecipeServiceError,
)


# =============================================================================
# Fakes
# =============================================================================

class FakeRecipe(RecipeHandle):
    def __init__(self, service: "FakeRecipeService", schema: RecipeSchema):
        super().__init__(schema)
        self._service = service

    def save(self):
        self._service.calls.append(("save_recipe", self.schema.name))
        if self.schema.name in self._service.failing_recipes:
            raise RecipeServiceError(f"Cannot save {self.schema.name}")
        self.identifier = f"recipe-{len(self._service.saved_recipes) + 1}"
        self._service.saved_recipes.append(self.schema)


class FakeCollection(CollectionHandle):
    def __init__(self, service: "FakeRecipeService", name: str, identifier: Optional[str] = None):
        super().__init__(name, identifier)
        self._service = service
        self.recipes: List[str] = []

    def save(self):
        self._service.calls.append(("create_collection", self.name))
        if self.name.lower() in self._service.racing_collections:
            # Someone else created it between our lookup and our create
            self._service.racing_collections.discard(self.name.lower())
            self._service.collections.append(FakeCollection(self._service, self.name, "raced"))
            raise CollectionExistsError(f"Category '{self.name}' already exists")
        if self.name in self._service.failing_collections:
            raise RecipeServiceError(f"Cannot create {self.name}")
        self.identifier = f"col-{len(self._service.collections) + 1}"
        self._service.collections.append(self)

    def add_recipe(self, recipe_identifier: str):
        self._service.calls.append(("add_recipe", self.name, recipe_identifier))
        if self.name in self._service.failing_attach:
            raise RecipeServiceError(f"Cannot attach to {self.name}")
        self.recipes.append(recipe_identifier)


class FakeRecipeService(RecipeService):
    """In-memory service recording every call made against it."""

    def __init__(self, supports_listing: bool = True):
        self.supports_listing = supports_listing
        self.calls: List[tuple] = []
        self.saved_recipes: List[RecipeSchema] = []
        self.collections: List[FakeCollection] = []
        self.failing_recipes: set = set()
        self.failing_collections: set = set()
        self.failing_attach: set = set()
        self.racing_collections: set = set()
        self.listing_error: Optional[Exception] = None
        self.torn_down = 0

    def add_existing_collection(self, name: str) -> FakeCollection:
        collection = FakeCollection(self, name, f"existing-{len(self.collections) + 1}")
        self.collections.append(collection)
        return collection

    def collection_named(self, name: str) -> FakeCollection:
        return next(c for c in self.collections if c.name == name)

    def new_recipe(self, schema: RecipeSchema) -> FakeRecipe:
        return FakeRecipe(self, schema)

    def list_collections(self):
        if not self.supports_listing:
            return None
        self.calls.append(("list_collections",))
        if self.listing_error:
            raise self.listing_error
        return list(self.collections)

    def new_collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def teardown(self):
        self.torn_down += 1


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials and data dirs out of tests."""
    for name in ("MEALIE_URL", "MEALIE_TOKEN", "MEALIE_EMAIL", "MEALIE_PASSWORD", "RECIPE_IMPORT_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers a CLI run attached so they don't outlive the test."""
    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    logging_utils._configured_log_dir = None


@pytest.fixture
def fake_service():
    return FakeRecipeService()


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def settings(data_dir):
    return ImporterSettings(
        data_dir=data_dir,
        mealie_url="http://mealie.invalid",
        mealie_token="test-token",
    )


@pytest.fixture
def minimal_recipe() -> Dict:
    return {
        "name": "Toast",
        "ingredients": ["1 slice bread"],
        "steps": ["Toast the bread."],
    }


# =============================================================================
# Test Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "readonly: marks test as read-only (no file or service writes)"
    )
