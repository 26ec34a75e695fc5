"""Tests for the pulsegen CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from conftest import FakeAnalyzer, FakeLLM, fenced
from pulsegen.cli.main import cli
from pulsegen.session import Session

BAD = "candidate.c:1: error: null deref"


def _session_factory(llm: FakeLLM, analyzer: FakeAnalyzer):
    def factory(project_path, config, on_event=None):
        return Session(
            project_path,
            config,
            llm_factory=lambda language: llm,
            analyzer=analyzer,
            on_event=on_event,
        )

    return factory


class TestGenerateCommand:
    def test_converged_exits_zero(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        factory = _session_factory(FakeLLM([fenced("int ok;")]), FakeAnalyzer([""]))

        with patch("pulsegen.cli.generate_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["generate", "main.c"])

        assert result.exit_code == 0, result.output
        assert "Clean after 0 fix round(s)" in result.output
        assert (project / ".gitignore").read_text() == ".pulsegen/\n"

    def test_abandoned_exits_two(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        factory = _session_factory(FakeLLM([fenced("int a;")]), FakeAnalyzer([BAD]))

        with patch("pulsegen.cli.generate_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["generate", "main.c", "--max-rounds", "0", "--no-explain"])

        assert result.exit_code == 2, result.output
        assert "Abandoned" in result.output

    def test_json_summary_and_output_file(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        llm = FakeLLM([fenced("int a;"), fenced("int b;")])
        factory = _session_factory(llm, FakeAnalyzer([BAD, ""]))

        with patch("pulsegen.cli.generate_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["generate", "main.c", "--json", "-o", "out.c"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output[result.output.index("{"):])
        assert data["status"] == "converged"
        assert data["fix_rounds"] == 1
        assert data["analyses"] == 2
        assert data["code"] == "int b;"
        assert (project / "out.c").read_text() == "int b;\n"

    def test_build_failure_exits_one(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        factory = _session_factory(FakeLLM([fenced("int broken(")]), FakeAnalyzer([None]))

        with patch("pulsegen.cli.generate_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["generate", "main.c"])

        assert result.exit_code == 1
        assert "failed to build" in result.output

    def test_missing_prompt_exits_one(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "plain.c").write_text("int x;\n")
        factory = _session_factory(FakeLLM([]), FakeAnalyzer([""]))

        with patch("pulsegen.cli.generate_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["generate", "plain.c"])

        assert result.exit_code == 1
        assert "No 'LLM:' comment" in result.output

    def test_negative_max_rounds_rejected(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        analyzer = FakeAnalyzer([BAD])
        factory = _session_factory(FakeLLM([fenced("int a;")]), analyzer)

        with patch("pulsegen.cli.generate_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["generate", "main.c", "--max-rounds", "-1"])

        assert result.exit_code != 0
        assert "Invalid value" in result.output
        assert analyzer.calls == []

    def test_generation_failure_points_at_partial_artifacts(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        factory = _session_factory(FakeLLM(["I would rather not."]), FakeAnalyzer([""]))

        with patch("pulsegen.cli.generate_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["generate", "main.c"])

        assert result.exit_code == 1
        assert "Partial artifacts saved to" in result.output
        run_dirs = list((project / ".pulsegen" / "runs").iterdir())
        assert len(run_dirs) == 1
        assert (run_dirs[0] / "response-generation.md").read_text() == "I would rather not."


class TestCheckCommand:
    def test_clean(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        factory = _session_factory(FakeLLM([]), FakeAnalyzer([""]))

        with patch("pulsegen.cli.check_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["check", "main.c"])

        assert result.exit_code == 0
        assert "No violations" in result.output

    def test_findings_exit_two(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        factory = _session_factory(FakeLLM([]), FakeAnalyzer(["main.c:3: error: leak"]))

        with patch("pulsegen.cli.check_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["check", "main.c", "--show-code"])

        assert result.exit_code == 2
        assert "main.c:3" in result.output
        assert "leak" in result.output

    def test_explain(self, project: Path, monkeypatch):
        monkeypatch.chdir(project)
        factory = _session_factory(FakeLLM(["The buffer is never freed."]), FakeAnalyzer(["main.c:3: error: leak"]))

        with patch("pulsegen.cli.check_cmd.Session", factory):
            result = CliRunner().invoke(cli, ["explain", "main.c"])

        assert result.exit_code == 2
        assert "never freed" in result.output


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
