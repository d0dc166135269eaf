"""Tests for the filerouter command line."""

import json

import pytest
from loguru import logger
from rich.console import Console
from typer.testing import CliRunner

from filerouter.cli import main as cli_main
from filerouter.cli.main import app
from filerouter.config.loader import load_config
from filerouter.factory import create_router
from filerouter.router.models import FileDescriptor

runner = CliRunner()


@pytest.fixture(autouse=True)
def plain_console(monkeypatch):
    # Wide, colourless output so tables are not wrapped mid-word
    monkeypatch.setattr(cli_main, "console", Console(width=200, force_terminal=False))
    yield
    logger.remove()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "storage": {"backend": "sqlite", "dbPath": str(tmp_path / "routing.db")},
        "logging": {"level": "ERROR", "logFile": str(tmp_path / "filerouter.log")},
        "projects": {"P-001": "BREVE"},
    }))
    return path


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "Relazione tecnica.pdf"
    path.write_bytes(b"%PDF-1.4")
    return path


def invoke(config_path, *args):
    return runner.invoke(app, ["--config", str(config_path), *args])


class TestRouteCommand:
    """Test `filerouter route`."""

    def test_route_with_template(self, config_path, sample_file):
        result = invoke(config_path, "route", str(sample_file), "--template", "LUNGO")

        assert result.exit_code == 0, result.output
        assert "3_PROGETTO/REL/" in result.output
        assert "rule" in result.output

    def test_route_with_project(self, config_path, sample_file):
        result = invoke(config_path, "route", str(sample_file), "--project", "P-001")

        assert result.exit_code == 0, result.output
        assert "ELABORAZIONI/" in result.output

    def test_route_unknown_template(self, config_path, sample_file):
        result = invoke(config_path, "route", str(sample_file), "-t", "MEDIO")

        assert result.exit_code == 1
        assert "MEDIO" in result.output

    def test_route_skips_content_without_classifier(self, config_path, tmp_path, monkeypatch):
        """With the classifier disabled a large file's bytes are never loaded."""
        path = tmp_path / "Tavola piante.dwg"
        path.write_bytes(b"\0" * 200_000)
        seen = []
        original = FileDescriptor.from_path

        def spy(file, max_bytes=None):
            descriptor = original(file, max_bytes=max_bytes)
            seen.append(descriptor)
            return descriptor

        monkeypatch.setattr(FileDescriptor, "from_path", spy)

        result = invoke(config_path, "route", str(path), "-t", "LUNGO")

        assert result.exit_code == 0, result.output
        assert seen[0].content is None
        assert seen[0].size == 200_000

    def test_route_needs_template_or_project(self, config_path, sample_file):
        result = invoke(config_path, "route", str(sample_file))
        assert result.exit_code == 2


class TestFeedbackCommands:
    """Test report / history / patterns / forget."""

    def test_report_then_route_learned(self, config_path, sample_file):
        invoke(config_path, "route", str(sample_file), "-t", "LUNGO", "-p", "P-009")
        record = create_router(load_config(config_path)).list_by_project("P-009")[0]

        reported = invoke(config_path, "report", record.id, "3_PROGETTO/STR")
        routed = invoke(config_path, "route", str(sample_file), "-t", "LUNGO")

        assert reported.exit_code == 0, reported.output
        assert "Correction recorded" in reported.output
        assert "3_PROGETTO/STR/" in routed.output
        assert "learned" in routed.output

    def test_report_unknown_record(self, config_path):
        result = invoke(config_path, "report", "missing", "3_PROGETTO")

        assert result.exit_code == 1
        assert "missing" in result.output

    def test_history(self, config_path, sample_file):
        invoke(config_path, "route", str(sample_file), "-p", "P-001")

        result = invoke(config_path, "history", "P-001")

        assert result.exit_code == 0, result.output
        assert "ELABORAZIONI" in result.output

    def test_history_empty(self, config_path):
        result = invoke(config_path, "history", "P-404")
        assert "No routing records" in result.output

    def test_patterns_and_forget(self, config_path):
        router = create_router(load_config(config_path))
        router.patterns.confirm("document:fattura", ["9_PARCELLA"])

        listed = invoke(config_path, "patterns")
        forgotten = invoke(config_path, "forget", "document:fattura")
        empty = invoke(config_path, "patterns")

        assert "9_PARCELLA" in listed.output
        assert "Removed pattern" in forgotten.output
        assert "No learned patterns" in empty.output

    def test_forget_all(self, config_path):
        router = create_router(load_config(config_path))
        router.patterns.confirm("a", ["A"])
        router.patterns.confirm("b", ["B"])

        result = invoke(config_path, "forget", "--all", "--confirm")

        assert result.exit_code == 0, result.output
        assert "Removed 2 learned patterns" in result.output


class TestInfoCommands:
    """Test templates / stats / test-classifier."""

    def test_templates(self, config_path):
        result = invoke(config_path, "templates", "BREVE")

        assert result.exit_code == 0, result.output
        assert "ELABORAZIONI/" in result.output
        assert "00_DA_CLASSIFICARE/" in result.output

    def test_unknown_template(self, config_path):
        assert invoke(config_path, "templates", "MEDIO").exit_code == 1

    def test_stats(self, config_path, sample_file):
        invoke(config_path, "route", str(sample_file), "-t", "LUNGO")

        result = invoke(config_path, "stats")

        assert result.exit_code == 0, result.output
        assert "Routing records:  1" in result.output
        assert "disabled" in result.output

    def test_classifier_disabled(self, config_path):
        result = invoke(config_path, "test-classifier")

        assert result.exit_code == 1
        assert "disabled" in result.output
