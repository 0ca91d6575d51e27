"""
Tests for the persona-dispatch command line
"""

import json
import logging

import pytest

from persona_dispatch.cli.dispatch_cli import (
    DispatchCLI,
    EXIT_ERROR,
    EXIT_NO_MATCH,
    EXIT_OK,
)
from conftest import SAMPLE_CATALOG_DIR


@pytest.fixture(autouse=True)
def _restore_package_logger():
    yield
    logger = logging.getLogger("persona_dispatch")
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)


def run_cli(*argv):
    return DispatchCLI().run(["--catalog", str(SAMPLE_CATALOG_DIR), *argv])


class TestSelectCommand:
    """Test `persona-dispatch select`"""

    def test_match(self, capsys):
        code = run_cli("select", "Refactor this React component into smaller pieces")

        assert code == EXIT_OK
        assert capsys.readouterr().out.startswith("react-typescript-architect\t")

    def test_no_match(self, capsys):
        code = run_cli("select", "Unrelated cooking recipe question")

        assert code == EXIT_NO_MATCH
        assert "No persona matched: below_threshold" in capsys.readouterr().out

    def test_json_output(self, capsys):
        code = run_cli("select", "Add a Celery background job", "--hint", "celery", "--json")

        assert code == EXIT_OK
        record = json.loads(capsys.readouterr().out)
        assert record["persona_id"] == "python-engineer"
        assert record["matched_hints"] == ["celery"]
        assert record["catalog_version"] == 1

    def test_show_profile(self, capsys):
        run_cli("select", "Add a Rails migration and model for invoices", "--show-profile")
        out = capsys.readouterr().out
        assert out.startswith("rails-api-developer\t")
        assert "You are a Rails API developer." in out

    def test_min_confidence_override(self):
        assert run_cli("select", "Refactor this React component", "--min-confidence", "1.0") == EXIT_NO_MATCH


class TestOtherCommands:
    """Test rank, list-personas and validate"""

    def test_rank(self, capsys):
        code = run_cli("rank", "Write TypeScript API types", "--top-k", "2")

        lines = capsys.readouterr().out.splitlines()
        assert code == EXIT_OK
        assert len(lines) == 2
        assert lines[0].startswith(" 1. react-typescript-architect=")

    def test_list_personas(self, capsys):
        assert run_cli("list-personas") == EXIT_OK
        out = capsys.readouterr().out
        assert "python-engineer [green]:" in out
        assert "rails-api-developer [red]:" in out
        assert "react-typescript-architect [blue]:" in out

    def test_validate(self, capsys):
        assert run_cli("validate") == EXIT_OK
        assert "OK: 3 persona(s)" in capsys.readouterr().out

    def test_validate_reports_malformed_record(self, capsys, write_persona):
        write_persona("broken.md", "name: broken\ndescription: No triggers here")

        code = DispatchCLI().run(["--catalog", str(write_persona.directory), "validate"])

        assert code == EXIT_ERROR
        assert "Malformed persona definition" in capsys.readouterr().err


class TestErrors:
    """Test error exit codes"""

    def test_missing_catalog(self, capsys, tmp_path):
        code = DispatchCLI().run(["--catalog", str(tmp_path / "missing"), "list-personas"])

        assert code == EXIT_ERROR
        assert "Persona catalog source not found" in capsys.readouterr().err

    def test_missing_config_file(self, capsys, tmp_path):
        code = DispatchCLI().run(["--config", str(tmp_path / "missing.yaml"), "list-personas"])

        assert code == EXIT_ERROR
        assert "Configuration validation failed" in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert DispatchCLI().run([]) == EXIT_ERROR

    def test_config_file_with_catalog(self, capsys, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text(
            f"loading:\n  source: {SAMPLE_CATALOG_DIR}\nmatching:\n  min_confidence: 0.75\n",
            encoding="utf-8",
        )

        code = DispatchCLI().run(["--config", str(config), "select", "Write TypeScript API types for the orders endpoint"])

        assert code == EXIT_OK
        assert capsys.readouterr().out.startswith("react-typescript-architect\t")
