"""CLI tests using click's CliRunner against a file-backed SQLite catalog."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from apps.cli.main import cli


@pytest.fixture
def invoke(tmp_path):
    config_file = tmp_path / "pazuzu.yaml"
    config_file.write_text(
        f"database:\n  url: sqlite:///{tmp_path / 'catalog.db'}\n"
        "compose:\n  base_image: ubuntu:22.04\n"
        "logging:\n  level: WARNING\n"
    )
    runner = CliRunner()

    def run(*args: str):
        return runner.invoke(cli, ["--config", str(config_file), *args])

    assert run("init-db").exit_code == 0
    return run


class TestCli:
    def test_create_get_list(self, invoke) -> None:
        result = invoke("create", "python", "--docker-data", "RUN apt-get install -y python3")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["name"] == "python"

        invoke("create", "flask", "--dependency", "python")
        got = json.loads(invoke("get", "flask").output)
        assert got["dependencies"] == ["python"]

        listed = json.loads(invoke("list", "PY").output)
        assert [f["name"] for f in listed] == ["python"]

    def test_compose_to_stdout_and_file(self, invoke, tmp_path) -> None:
        invoke("create", "base", "--docker-data", "RUN apt-get update")
        invoke("create", "git", "--docker-data", "RUN apt-get install -y git", "--dependency", "base")

        result = invoke("compose", "git")
        assert result.exit_code == 0, result.output
        assert result.output == (
            "FROM ubuntu:22.04\n\nRUN apt-get update\n\nRUN apt-get install -y git\n"
        )

        out = tmp_path / "Dockerfile"
        assert invoke("compose", "git", "--base-image", "", "--output", str(out)).exit_code == 0
        assert out.read_text() == "RUN apt-get update\n\nRUN apt-get install -y git\n"

    def test_update_and_clear_dependencies(self, invoke) -> None:
        invoke("create", "a")
        invoke("create", "b", "--dependency", "a")
        result = invoke("update", "b", "--clear-dependencies", "--new-name", "c")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["dependencies"] == []
        assert invoke("get", "b").exit_code == 1

    def test_update_metadata(self, invoke) -> None:
        invoke("create", "node", "--author", "ops", "--test-snippet", "node --version")
        result = invoke("update", "node", "--description", "Node.js runtime")
        assert result.exit_code == 0, result.output
        updated = json.loads(result.output)
        assert updated["description"] == "Node.js runtime"
        assert updated["author"] == "ops"
        assert updated["test_snippet"] == "node --version"

    def test_conflicting_dependency_flags(self, invoke) -> None:
        invoke("create", "a")
        result = invoke("update", "a", "--dependency", "a", "--clear-dependencies")
        assert result.exit_code == 2

    def test_validation_errors_exit_1(self, invoke) -> None:
        invoke("create", "x")
        invoke("create", "y", "--dependency", "x")

        result = invoke("update", "x", "--dependency", "y")
        assert result.exit_code == 1
        assert "Recursive dependencies found for x: y" in result.output

        result = invoke("delete", "x")
        assert result.exit_code == 1
        assert "references found: y" in result.output

        result = invoke("compose", "missing")
        assert result.exit_code == 1
        assert "missing" in result.output

    def test_delete_is_idempotent(self, invoke) -> None:
        invoke("create", "tmp")
        assert invoke("delete", "tmp").exit_code == 0
        assert invoke("delete", "tmp").exit_code == 0
        assert json.loads(invoke("list").output) == []
