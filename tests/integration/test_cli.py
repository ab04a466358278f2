import json
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from schemaforge.cli import cli
from schemaforge.core.config import Settings


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def test_settings():
    settings = Settings(_env_file=None, environment="testing", log_level="WARNING")
    with patch("schemaforge.cli.get_settings", return_value=settings):
        yield settings


def _write(path, definition):
    if path.suffix == ".json":
        path.write_text(json.dumps(definition), encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(definition), encoding="utf-8")
    return str(path)


class TestValidateCommand:

    def test_valid_collection_set(self, runner, tmp_path, users_collection, posts_collection):
        _write(tmp_path / "users.json", users_collection)
        _write(tmp_path / "posts.yaml", posts_collection)

        result = runner.invoke(cli, ["validate", str(tmp_path)])

        assert result.exit_code == 0
        assert "users.json: valid (0 errors, 0 warnings)" in result.stdout
        assert "posts.yaml: valid" in result.stdout

    def test_invalid_file_exits_with_error(self, runner, tmp_path, users_collection):
        users_collection["fields"]["tags"] = {"type": "array"}
        path = _write(tmp_path / "users.json", users_collection)

        result = runner.invoke(cli, ["validate", path])

        assert result.exit_code == 1
        assert "invalid (1 errors, 0 warnings)" in result.stdout
        assert "MISSING_ARRAY_ITEMS at fields.tags" in result.stdout
        assert "hint: Array fields must specify the type of their items" in result.stdout

    def test_json_output(self, runner, tmp_path, posts_collection):
        del posts_collection["relationships"]["author"]["foreignField"]
        path = _write(tmp_path / "posts.json", posts_collection)

        result = runner.invoke(
            cli, ["validate", path, "--format", "json", "--no-references"]
        )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert len(payload) == 1
        assert payload[0]["file"] == path
        assert payload[0]["valid"] is True
        assert [w["code"] for w in payload[0]["warnings"]] == ["MISSING_FOREIGN_KEY"]

    def test_references_checked_across_files(self, runner, tmp_path, posts_collection):
        path = _write(tmp_path / "posts.json", posts_collection)

        result = runner.invoke(cli, ["validate", path, "--format", "json"])

        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert [e["code"] for e in payload[0]["errors"]] == ["INVALID_COLLECTION_REFERENCE"]

    def test_cycle_reported_on_each_file(self, runner, tmp_path, users_collection, posts_collection):
        users_collection["relationships"] = {"posts": {"type": "hasMany", "collection": "posts"}}
        _write(tmp_path / "users.json", users_collection)
        _write(tmp_path / "posts.json", posts_collection)

        result = runner.invoke(cli, ["validate", str(tmp_path), "--format", "json"])

        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        for entry in payload:
            assert [e["code"] for e in entry["errors"]] == ["CIRCULAR_DEPENDENCY"]

    def test_duplicate_names_are_each_validated(self, runner, tmp_path, users_collection):
        _write(tmp_path / "a.json", users_collection)
        users_collection["fields"]["tags"] = {"type": "array"}
        _write(tmp_path / "b.yaml", users_collection)

        result = runner.invoke(cli, ["validate", str(tmp_path), "--format", "json"])

        assert result.exit_code == 1
        payload = {entry["file"].rsplit("/", 1)[-1]: entry for entry in json.loads(result.stdout)}
        assert payload["a.json"]["valid"] is True
        assert [e["code"] for e in payload["b.yaml"]["errors"]] == ["MISSING_ARRAY_ITEMS"]

    def test_yaml_integer_keys(self, runner, tmp_path):
        path = tmp_path / "users.yaml"
        path.write_text("collection: users\nfields:\n  123:\n    type: string\n", encoding="utf-8")

        result = runner.invoke(cli, ["validate", str(path), "--format", "json"])

        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert [(e["path"], e["code"]) for e in payload[0]["errors"]] == [
            ("fields.123", "PROPERTY_NAMES")
        ]

    def test_load_failure(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")

        result = runner.invoke(cli, ["validate", str(path), "--format", "json"])

        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert "Invalid JSON" in payload[0]["loadError"]

    def test_function_kind(self, runner, tmp_path, report_function):
        path = _write(tmp_path / "report.yaml", report_function)

        result = runner.invoke(cli, ["validate", path, "--kind", "function"])

        assert result.exit_code == 0
        assert "report.yaml: valid" in result.stdout

    def test_missing_path(self, runner, tmp_path):
        result = runner.invoke(cli, ["validate", str(tmp_path / "missing.json")])
        assert result.exit_code == 2


class TestSchemaCommand:

    def test_document_schema(self, runner, tmp_path, users_collection):
        path = _write(tmp_path / "users.json", users_collection)

        result = runner.invoke(cli, ["schema", path])

        assert result.exit_code == 0
        schema = json.loads(result.stdout)
        assert schema["required"] == ["email"]
        assert schema["additionalProperties"] is False

    def test_field_schema(self, runner, tmp_path, users_collection):
        path = _write(tmp_path / "users.json", users_collection)

        result = runner.invoke(cli, ["schema", path, "--field", "age"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"type": "integer", "minimum": 0, "maximum": 150}

    def test_unknown_field(self, runner, tmp_path, users_collection):
        path = _write(tmp_path / "users.json", users_collection)

        result = runner.invoke(cli, ["schema", path, "--field", "nickname"])

        assert result.exit_code == 2
        assert "has no field 'nickname'" in result.stderr

    def test_invalid_definition(self, runner, tmp_path, users_collection):
        users_collection["fields"]["tags"] = {"type": "array"}
        path = _write(tmp_path / "users.json", users_collection)

        result = runner.invoke(cli, ["schema", path])

        assert result.exit_code == 1
        assert "Error:" in result.stderr
        assert result.stdout == ""


def test_info(runner):
    result = runner.invoke(cli, ["--log-level", "debug", "info"])

    assert result.exit_code == 0
    assert "Max Depth:       32" in result.stdout
    assert "Level:           DEBUG" in result.stdout


def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.stdout
