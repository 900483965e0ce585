#!/usr/bin/env python3
"""
Bulk Recipe Importer for Mealie
===============================

Imports every recipe record queued in data/recipes.json into Mealie, one at
a time, then archives the results:

- data/imported.json  successful records (appended each run)
- data/errors.json    failed records with their error (appended each run)
- data/recipes.json   emptied after a run with at least one success

Failed records are NOT put back in the queue - they live only in
errors.json. Fix them there and copy them back to recipes.json to retry.

Usage:
    python bulk_import.py
    python bulk_import.py --dry-run       # validate only, no Mealie calls, no file changes
    python bulk_import.py --verbose       # also show collection failures and tracebacks
    python bulk_import.py --data-dir /srv/recipes
"""

import argparse
import json
import sys
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from config import ImporterSettings, load_settings
from import_recipe import import_recipe
from mealie_service import MealieRecipeService
from recipe_service import RecipeService
from tools.logging_utils import echo, get_logger, setup_logging
from utils.recipe_validation import validate_recipe

# Initialize logger for this module
logger = get_logger(__name__)

SUMMARY_RULE = "═" * 50

ServiceFactory = Callable[[ImporterSettings], RecipeService]


class RecipeFileError(Exception):
    """The pending recipe file is missing or unreadable."""


@dataclass
class BatchOutcome:
    """Records that succeeded and failed during one run."""
    successful: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False


# =============================================================================
# FILES
# =============================================================================

def load_recipes(path: Path) -> List[Any]:
    """
    Load recipes from a JSON file.

    Accepts a single recipe object or an array of recipes.

    Raises:
        RecipeFileError: If the file is missing, not JSON, or neither object nor array
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            parsed = json.load(f)
    except FileNotFoundError as e:
        raise RecipeFileError(f"File not found: {path}") from e
    except json.JSONDecodeError as e:
        raise RecipeFileError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise RecipeFileError(f"Cannot read {path}: {e}") from e

    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        return [parsed]
    raise RecipeFileError("Invalid JSON format: expected object or array")


def load_archive(path: Path) -> List[Any]:
    """Load an archive list, or an empty list if it is missing or unreadable."""
    path = Path(path)
    if not path.exists():
        return []

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"⚠️ Could not read archive {path}, starting a new one: {e}")
        return []

    if not isinstance(data, list):
        logger.warning(f"⚠️ Archive {path} is not a JSON array, starting a new one")
        return []
    return data


def save_json(path: Path, data: Any) -> None:
    """Write data as pretty-printed JSON (2-space indent)."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


# =============================================================================
# BATCH
# =============================================================================

def _recipe_label(recipe: Any) -> str:
    if isinstance(recipe, dict) and recipe.get("name"):
        return str(recipe["name"])
    return "Unnamed Recipe"


def process_recipes(
    recipes: Sequence[Any],
    service: Optional[RecipeService],
    dry_run: bool = False,
    verbose: bool = False
) -> BatchOutcome:
    """
    Validate and import recipes in file order, one at a time.

    In dry-run mode valid records count as would-succeed and the service is
    never touched (it may be None).
    """
    outcome = BatchOutcome(dry_run=dry_run)
    total = len(recipes)

    for index, recipe in enumerate(recipes, 1):
        echo(logger, f"[{index}/{total}] Importing: {_recipe_label(recipe)}")

        validation = validate_recipe(recipe)
        if not validation.is_valid:
            error_msg = f"Missing required fields: {', '.join(validation.errors)}"
            echo(logger, f"   ❌ Failed: {error_msg}")
            outcome.failed.append({"recipe": recipe, "error": error_msg})
            echo(logger)
            continue

        if dry_run:
            echo(logger, "   ✅ Would import (dry run)")
            outcome.successful.append(recipe)
            echo(logger)
            continue

        result = import_recipe(service, recipe)

        if result.success:
            echo(logger, "   ✅ Recipe saved")
            for collection_result in result.collection_results:
                if collection_result.success:
                    echo(logger, f"   📁 Added to: {collection_result.name}")
                elif verbose:
                    echo(
                        logger,
                        f"   ⚠️  Failed to add to collection \"{collection_result.name}\": "
                        f"{collection_result.error}"
                    )
            outcome.successful.append(recipe)
        else:
            echo(logger, f"   ❌ Failed: {result.error}")
            outcome.failed.append({"recipe": recipe, "error": result.error})

        echo(logger)

    return outcome


def archive_results(outcome: BatchOutcome, settings: ImporterSettings) -> None:
    """
    Append results to the archives and dequeue the pending file.

    Dry runs leave every file untouched. The pending file is emptied after
    any run with at least one success, whether or not other records failed.
    """
    if outcome.dry_run:
        return

    if outcome.successful:
        imported = load_archive(settings.imported_path)
        save_json(settings.imported_path, imported + outcome.successful)
        logger.debug(f"💾 Archived {len(outcome.successful)} recipe(s) to {settings.imported_path}")

    if outcome.failed:
        errors = load_archive(settings.errors_path)
        save_json(settings.errors_path, errors + outcome.failed)
        logger.debug(f"💾 Archived {len(outcome.failed)} failure(s) to {settings.errors_path}")

    if outcome.successful:
        save_json(settings.recipes_path, [])
        logger.info(f"🧹 Cleared pending queue {settings.recipes_path}")


def print_summary(outcome: BatchOutcome, settings: ImporterSettings) -> None:
    """Print final import summary."""
    echo(logger, SUMMARY_RULE)
    if outcome.dry_run:
        echo(logger, f"✅ Would import: {len(outcome.successful)}")
        if outcome.failed:
            echo(logger, f"❌ Invalid: {len(outcome.failed)}")
    else:
        echo(logger, f"✅ Successfully imported: {len(outcome.successful)}")
        if outcome.failed:
            echo(logger, f"❌ Failed: {len(outcome.failed)} (see {settings.errors_path})")
    echo(logger, SUMMARY_RULE)


def run_import(
    settings: ImporterSettings,
    dry_run: bool = False,
    verbose: bool = False,
    service_factory: ServiceFactory = MealieRecipeService.authenticate
) -> int:
    """
    Run one import over the pending queue.

    Returns:
        Process exit code (0 on completion, 1 if the queue could not be read)

    Raises:
        RecipeServiceError: If the service session cannot be opened
    """
    try:
        recipes = load_recipes(settings.recipes_path)
    except RecipeFileError as e:
        echo(logger, f"❌ Error loading recipes: {e}")
        return 1

    if not recipes:
        echo(logger, f"📖 No recipes found in {settings.recipes_path.name}")
        return 0

    echo(logger, f"📖 Found {len(recipes)} recipe(s) to import\n")

    service = None
    if dry_run:
        echo(logger, "🔍 DRY RUN MODE - No recipes will be imported\n")
    else:
        echo(logger, "🔐 Logging into Mealie...")
        service = service_factory(settings)
        echo(logger, "✅ Connected\n")

    try:
        outcome = process_recipes(recipes, service, dry_run=dry_run, verbose=verbose)
    finally:
        if service is not None:
            service.teardown()

    archive_results(outcome, settings)
    print_summary(outcome, settings)
    return 0


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser."""
    parser = argparse.ArgumentParser(
        description='Import queued recipe records from recipes.json into Mealie',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python bulk_import.py
  python bulk_import.py --dry-run
  python bulk_import.py --verbose --data-dir /srv/recipes
        """
    )
    parser.add_argument('--dry-run', action='store_true',
                        help='Validate recipes without contacting Mealie or changing any files')
    parser.add_argument('--verbose', action='store_true',
                        help='Show collection failures and full tracebacks')
    parser.add_argument('--data-dir', type=str, default=None,
                        help='Directory holding recipes.json and the archives (default: ./data)')
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    service_factory: ServiceFactory = MealieRecipeService.authenticate
) -> int:
    """Main execution function. Returns the process exit code."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.data_dir)
    except ValueError as e:
        print(f"❌ Error: Invalid configuration: {e}")
        return 1

    if not settings.has_credentials:
        print("❌ Error: Missing Mealie credentials")
        print("   Set MEALIE_TOKEN, or MEALIE_EMAIL and MEALIE_PASSWORD,")
        print(f"   in the environment or in {settings.data_dir / 'secrets.yaml'}")
        return 1

    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        setup_logging(settings.log_dir)
        return run_import(
            settings,
            dry_run=args.dry_run,
            verbose=args.verbose,
            service_factory=service_factory,
        )
    except Exception as e:
        logger.debug("Fatal error during import", exc_info=True)
        echo(logger, f"❌ Fatal error: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
