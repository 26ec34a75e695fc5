"""Tests for the infer subprocess wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pulsegen.analyzer.runner import AnalyzerRunner
from pulsegen.core.config import AnalyzerConfig
from pulsegen.core.errors import AnalyzerNotFound, AnalyzerTimeout, ReportUnavailable
from pulsegen.core.models import Language


def _completed(returncode: int = 0, stderr: str = ""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.stdout = ""
    proc.stderr = stderr
    return proc


@pytest.fixture
def source(tmp_path: Path) -> Path:
    path = tmp_path / "candidate.c"
    path.write_text("int main(void) { return 0; }\n")
    return path


class TestAnalyzerRunner:
    def test_command_for_c(self, source: Path):
        runner = AnalyzerRunner(AnalyzerConfig())
        assert runner.command(source, Language.C) == [
            "infer",
            "run",
            "--pulse-only",
            "--",
            "clang",
            "candidate.c",
        ]

    def test_command_for_cpp_with_args(self, tmp_path: Path):
        config = AnalyzerConfig(infer_path="/opt/infer", cpp_compiler="g++", compiler_args=["-c"])
        runner = AnalyzerRunner(config)
        cmd = runner.command(tmp_path / "x.cpp", Language.CPP)

        assert cmd == ["/opt/infer", "run", "--pulse-only", "--", "g++", "-c", "x.cpp"]

    def test_runs_in_source_directory(self, source: Path):
        runner = AnalyzerRunner(AnalyzerConfig())
        with patch("subprocess.run", return_value=_completed()) as run:
            report = runner.analyze(source, Language.C)

        assert run.call_args.kwargs["cwd"] == source.parent
        assert report == source.parent / "infer-out" / "report.txt"

    def test_nonzero_exit_still_returns_report_path(self, source: Path):
        runner = AnalyzerRunner(AnalyzerConfig())
        with patch("subprocess.run", return_value=_completed(2, "clang: error")):
            report = runner.analyze(source, Language.C)

        assert not report.exists()

    def test_missing_binary(self, source: Path):
        runner = AnalyzerRunner(AnalyzerConfig(infer_path="no-such-infer"))
        with patch("subprocess.run", side_effect=FileNotFoundError("no-such-infer")):
            with pytest.raises(AnalyzerNotFound, match="no-such-infer"):
                runner.analyze(source, Language.C)

    def test_timeout_is_its_own_error(self, source: Path):
        runner = AnalyzerRunner(AnalyzerConfig(timeout_seconds=1))
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("infer", 1)):
            with pytest.raises(AnalyzerTimeout, match="timed out") as exc_info:
                runner.analyze(source, Language.C)

        assert isinstance(exc_info.value, ReportUnavailable)

    def test_include_dirs_become_include_flags(self, tmp_path: Path):
        runner = AnalyzerRunner(AnalyzerConfig(compiler_args=["-std=c11"]))
        cmd = runner.command(tmp_path / "main.c", Language.C, [Path("/src/app"), Path("/src/common")])

        assert cmd[-4:] == ["-std=c11", "-I/src/app", "-I/src/common", "main.c"]

    def test_include_dirs_passed_through_analyze(self, source: Path):
        runner = AnalyzerRunner(AnalyzerConfig())
        with patch("subprocess.run", return_value=_completed()) as run:
            runner.analyze(source, Language.C, [Path("/src/app")])

        assert run.call_args.args[0][-2:] == ["-I/src/app", "candidate.c"]
