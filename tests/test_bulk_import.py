"""
Tests for the batch import run: file handling, archiving, dequeue and CLI exit codes.

Run: pytest tests/test_bulk_import.py -v
"""

import json

import pytest

import bulk_import
from bulk_import import (
    BatchOutcome,
    RecipeFileError,
    archive_results,
    load_archive,
    load_recipes,
    main,
    process_recipes,
    run_import,
    save_json,
)
from recipe_service import AuthenticationError
from tests.conftest import FakeRecipeService


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")


def _read(path):
    return json.loads(path.read_text(encoding="utf-8"))


GOOD = {"name": "Toast", "ingredients": ["bread"], "steps": ["Toast it."]}
BAD_REMOTE = {"name": "Cursed Soup", "ingredients": ["water"], "steps": ["Boil."]}
INVALID = {"name": "No Steps", "ingredients": ["air"]}


class TestLoadRecipes:
    """Tests for load_recipes()"""

    def test_array(self, tmp_path):
        path = tmp_path / "recipes.json"
        _write(path, [GOOD, INVALID])
        assert load_recipes(path) == [GOOD, INVALID]

    def test_single_object_is_wrapped(self, tmp_path):
        path = tmp_path / "recipes.json"
        _write(path, GOOD)
        assert load_recipes(path) == [GOOD]

    def test_missing_file(self, tmp_path):
        with pytest.raises(RecipeFileError, match="File not found"):
            load_recipes(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "recipes.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RecipeFileError, match="Invalid JSON in"):
            load_recipes(path)

    @pytest.mark.parametrize("content", ["42", '"toast"', "null", "true"])
    def test_scalar_content_rejected(self, tmp_path, content):
        path = tmp_path / "recipes.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(RecipeFileError, match="expected object or array"):
            load_recipes(path)


class TestArchiveFiles:
    """Tests for load_archive() and save_json()"""

    def test_missing_archive_is_empty(self, tmp_path):
        assert load_archive(tmp_path / "imported.json") == []

    def test_corrupt_archive_is_empty(self, tmp_path):
        path = tmp_path / "errors.json"
        path.write_text("[{broken", encoding="utf-8")
        assert load_archive(path) == []

    def test_non_list_archive_is_empty(self, tmp_path):
        path = tmp_path / "errors.json"
        _write(path, {"recipe": GOOD})
        assert load_archive(path) == []

    def test_save_json_pretty_prints(self, tmp_path):
        path = tmp_path / "out.json"
        save_json(path, [{"name": "Crème brûlée"}])
        text = path.read_text(encoding="utf-8")
        assert text.startswith("[\n  {\n    \"name\"")
        assert "Crème brûlée" in text


class TestProcessRecipes:
    """Tests for process_recipes()"""

    def test_mixed_batch(self, fake_service):
        fake_service.failing_recipes.add("Cursed Soup")

        outcome = process_recipes([GOOD, INVALID, BAD_REMOTE], fake_service)

        assert outcome.successful == [GOOD]
        assert [f["recipe"] for f in outcome.failed] == [INVALID, BAD_REMOTE]
        assert outcome.failed[0]["error"].startswith("Missing required fields: ")
        assert "steps" in outcome.failed[0]["error"]
        assert outcome.failed[1]["error"] == "Cannot save Cursed Soup"

    def test_invalid_record_never_reaches_service(self, fake_service):
        process_recipes([INVALID, "not a recipe"], fake_service)
        assert fake_service.calls == []

    def test_records_processed_in_file_order(self, fake_service):
        second = dict(GOOD, name="Jam")
        process_recipes([GOOD, second], fake_service)
        assert [s.name for s in fake_service.saved_recipes] == ["Toast", "Jam"]

    def test_dry_run_makes_no_calls(self):
        outcome = process_recipes([GOOD, INVALID], None, dry_run=True)
        assert outcome.dry_run is True
        assert outcome.successful == [GOOD]
        assert len(outcome.failed) == 1

    def test_collection_failures_only_shown_when_verbose(self, fake_service, capsys):
        fake_service.failing_attach.add("Locked")
        recipe = dict(GOOD, collections=["Locked"])

        process_recipes([recipe], fake_service)
        assert "Locked" not in capsys.readouterr().out

        process_recipes([recipe], fake_service, verbose=True)
        assert 'Failed to add to collection "Locked"' in capsys.readouterr().out


class TestArchiveResults:
    """Tests for archive_results()"""

    def test_appends_to_existing_archives(self, settings):
        _write(settings.imported_path, [{"name": "Old"}])
        _write(settings.errors_path, [{"recipe": {"name": "Older"}, "error": "x"}])
        _write(settings.recipes_path, [GOOD, INVALID])

        outcome = BatchOutcome(successful=[GOOD], failed=[{"recipe": INVALID, "error": "bad"}])
        archive_results(outcome, settings)

        assert _read(settings.imported_path) == [{"name": "Old"}, GOOD]
        assert _read(settings.errors_path)[-1] == {"recipe": INVALID, "error": "bad"}
        assert _read(settings.recipes_path) == []

    def test_all_failures_keep_pending_file(self, settings):
        _write(settings.recipes_path, [INVALID])

        archive_results(BatchOutcome(failed=[{"recipe": INVALID, "error": "bad"}]), settings)

        assert _read(settings.recipes_path) == [INVALID]
        assert not settings.imported_path.exists()
        assert len(_read(settings.errors_path)) == 1

    def test_dry_run_touches_nothing(self, settings):
        _write(settings.recipes_path, [GOOD])

        archive_results(BatchOutcome(successful=[GOOD], dry_run=True), settings)

        assert _read(settings.recipes_path) == [GOOD]
        assert not settings.imported_path.exists()
        assert not settings.errors_path.exists()


class TestRunImport:
    """Tests for run_import() end to end against a fake service."""

    def test_one_success_one_failure_dequeues_everything(self, settings, fake_service):
        fake_service.failing_recipes.add("Cursed Soup")
        _write(settings.recipes_path, [GOOD, BAD_REMOTE])

        code = run_import(settings, service_factory=lambda s: fake_service)

        assert code == 0
        assert _read(settings.recipes_path) == []
        assert _read(settings.imported_path) == [GOOD]
        errors = _read(settings.errors_path)
        assert errors == [{"recipe": BAD_REMOTE, "error": "Cannot save Cursed Soup"}]
        # Failed record is not re-queued
        assert BAD_REMOTE not in _read(settings.recipes_path)
        assert fake_service.torn_down == 1

    def test_dry_run_never_connects_or_writes(self, settings):
        _write(settings.recipes_path, [GOOD, INVALID])

        def factory(_settings):
            raise AssertionError("dry run must not connect")

        code = run_import(settings, dry_run=True, service_factory=factory)

        assert code == 0
        assert _read(settings.recipes_path) == [GOOD, INVALID]
        assert not settings.imported_path.exists()
        assert not settings.errors_path.exists()

    def test_empty_queue(self, settings, capsys):
        _write(settings.recipes_path, [])

        def factory(_settings):
            raise AssertionError("empty queue must not connect")

        assert run_import(settings, service_factory=factory) == 0
        assert "No recipes found" in capsys.readouterr().out

    def test_missing_queue_file(self, settings):
        assert run_import(settings, service_factory=lambda s: FakeRecipeService()) == 1

    def test_service_torn_down_when_processing_explodes(self, settings, fake_service, monkeypatch):
        _write(settings.recipes_path, [GOOD])

        def boom(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(bulk_import, "process_recipes", boom)

        with pytest.raises(RuntimeError):
            run_import(settings, service_factory=lambda s: fake_service)
        assert fake_service.torn_down == 1


class TestMain:
    """Tests for main() exit codes."""

    def test_missing_credentials(self, data_dir, capsys):
        _write(data_dir / "recipes.json", [GOOD])

        code = main(["--data-dir", str(data_dir)], service_factory=lambda s: FakeRecipeService())

        assert code == 1
        assert "Missing Mealie credentials" in capsys.readouterr().out
        assert _read(data_dir / "recipes.json") == [GOOD]

    def test_successful_run(self, data_dir, monkeypatch):
        monkeypatch.setenv("MEALIE_TOKEN", "abc")
        _write(data_dir / "recipes.json", [GOOD])
        service = FakeRecipeService()

        code = main(["--data-dir", str(data_dir)], service_factory=lambda s: service)

        assert code == 0
        assert _read(data_dir / "imported.json") == [GOOD]
        assert (data_dir / "logs").is_dir()

    def test_email_and_password_count_as_credentials(self, data_dir, monkeypatch):
        monkeypatch.setenv("MEALIE_EMAIL", "cook@example.com")
        monkeypatch.setenv("MEALIE_PASSWORD", "hunter2")
        _write(data_dir / "recipes.json", [])

        assert main(["--data-dir", str(data_dir)], service_factory=lambda s: FakeRecipeService()) == 0

    def test_invalid_input_file(self, data_dir, monkeypatch):
        monkeypatch.setenv("MEALIE_TOKEN", "abc")
        (data_dir / "recipes.json").write_text("nope", encoding="utf-8")

        def factory(_settings):
            raise AssertionError("bad input must not connect")

        assert main(["--data-dir", str(data_dir)], service_factory=factory) == 1

    def test_authentication_failure_is_fatal(self, data_dir, monkeypatch, capsys):
        monkeypatch.setenv("MEALIE_TOKEN", "abc")
        _write(data_dir / "recipes.json", [GOOD])

        def factory(_settings):
            raise AuthenticationError("Mealie rejected the configured token")

        code = main(["--data-dir", str(data_dir)], service_factory=factory)

        assert code == 1
        assert "Fatal error" in capsys.readouterr().out
        assert _read(data_dir / "recipes.json") == [GOOD]

    def test_invalid_config_yaml(self, data_dir, monkeypatch):
        monkeypatch.setenv("MEALIE_TOKEN", "abc")
        (data_dir / "config.yaml").write_text("connection: [unclosed", encoding="utf-8")

        assert main(["--data-dir", str(data_dir)], service_factory=lambda s: FakeRecipeService()) == 1
