"""
Integration tests for the command-line interface.

Tests cover:
- --version
- stages table, with and without the subscription option
- check outcomes and exit codes
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from authorguard import __version__
from authorguard.cli import EXIT_DENIED, EXIT_ERROR, app

runner = CliRunner()

FIXTURES = """
documents:
  - index: library
    collection: books
    id: b1
    author: u1
    source: {title: Dune}
  - index: library
    collection: books
    id: b2
    author: u2
    source: {title: Neuromancer}
"""


@pytest.fixture
def store_file(tmp_path: Path) -> Path:
    path = tmp_path / "store.yaml"
    path.write_text(FIXTURES)
    return path


def write_request(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "request.yaml"
    path.write_text(content)
    return path


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestStages:
    """Tests for the stages command."""

    def test_default_table(self) -> None:
        result = runner.invoke(app, ["stages"])
        assert result.exit_code == 0
        assert "document:beforeSearch" in result.output
        assert "pre_mutation_check" in result.output

    def test_config_enables_subscriptions(self, tmp_path: Path) -> None:
        config = tmp_path / "guard.yaml"
        config.write_text("filter_subscriptions: true\n")
        result = runner.invoke(app, ["stages", "--config", str(config)])
        assert result.exit_code == 0
        assert "rewrite_subscription" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        config = tmp_path / "guard.yaml"
        config.write_text("- not a mapping\n")
        result = runner.invoke(app, ["stages", "--config", str(config)])
        assert result.exit_code == EXIT_ERROR


class TestCheck:
    """Tests for the check command."""

    def test_allowed_search_json(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(
            tmp_path, "action: search\nindex: library\ncollection: books\nactor: {id: u1}\n"
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file), "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["allowed"] is True
        assert [doc["id"] for doc in payload["result"]] == ["b1"]

    def test_denied_update(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(
            tmp_path,
            "action: update\nindex: library\ncollection: books\nid: b1\n"
            "actor: {id: u2}\nbody: {title: Mine}\n",
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file)])

        assert result.exit_code == EXIT_DENIED
        assert "Denied" in result.stdout
        assert "for user u2" in result.stdout

    def test_denied_json(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(
            tmp_path,
            "action: delete\nindex: library\ncollection: books\nid: b1\nactor: {id: '-1'}\n",
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file), "--json"])

        assert result.exit_code == EXIT_DENIED
        payload = json.loads(result.stdout)
        assert payload["allowed"] is False
        assert payload["error"]["error_type"] == "UnauthenticatedError"

    def test_store_error(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(
            tmp_path,
            "action: get\nindex: library\ncollection: books\nid: nope\nactor: {id: u1}\n",
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file)])
        assert result.exit_code == EXIT_ERROR

    def test_invalid_request_file(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(tmp_path, "action: fly\n")
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file)])
        assert result.exit_code == EXIT_ERROR

    def test_store_error_json_reports_allowed(self, tmp_path: Path, store_file: Path) -> None:
        """The store only runs once the policy has allowed the request."""
        request = write_request(
            tmp_path,
            "action: get\nindex: library\ncollection: books\nid: nope\nactor: {id: u1}\n",
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file), "--json"])

        assert result.exit_code == EXIT_ERROR
        payload = json.loads(result.stdout)
        assert payload["allowed"] is True
        assert payload["error"]["error_type"] == "DocumentNotFoundError"

    def test_update_without_id_not_allowed(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(
            tmp_path,
            "action: update\nindex: library\ncollection: books\n"
            "actor: {id: u2}\nbody: {title: Mine}\n",
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file), "--json"])

        assert result.exit_code == EXIT_ERROR
        payload = json.loads(result.stdout)
        assert payload["allowed"] is False
        assert payload["error"]["error_type"] == "InvalidRequestError"

    def test_unsupported_query_operator(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(
            tmp_path,
            "action: search\nindex: library\ncollection: books\nactor: {id: u1}\n"
            "body: {query: {match: {title: Dune}}}\n",
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file)])

        assert result.exit_code == EXIT_ERROR
        assert "Unsupported query operator: match" in result.stdout

    def test_unsupported_query_operator_json(self, tmp_path: Path, store_file: Path) -> None:
        request = write_request(
            tmp_path,
            "action: count\nindex: library\ncollection: books\nactor: {id: u1}\n"
            "body: {query: {match: {title: Dune}}}\n",
        )
        result = runner.invoke(app, ["check", str(request), "--store", str(store_file), "--json"])

        assert result.exit_code == EXIT_ERROR
        payload = json.loads(result.stdout)
        assert "allowed" not in payload
        assert payload["error"]["error_type"] == "ValueError"
