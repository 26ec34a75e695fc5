"""Shared fakes for the LLM endpoint and the analyzer."""

from __future__ import annotations

from pathlib import Path

import pytest

from pulsegen.core.errors import LlmError
from pulsegen.core.models import Language


def fenced(code: str, tag: str = "c") -> str:
    return f"Here you go:\n```{tag}\n{code}\n```\nLet me know if you need anything else."


class FakeLLM:
    """Returns scripted responses in order; an exception instance is raised instead."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[tuple[str, str, str]] = []

    def complete(self, system_instruction: str, user_prompt: str, source_code: str = "") -> str:
        self.calls.append((system_instruction, user_prompt, source_code))
        if not self.responses:
            raise LlmError("FakeLLM ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeAnalyzer:
    """Writes scripted report contents; ``None`` leaves no report behind.

    An exception instance is raised instead. When the script runs out the
    last entry is repeated.
    """

    def __init__(self, reports):
        self.reports = list(reports)
        self.calls: list[tuple[Path, Language, str]] = []
        self.include_dirs: list[tuple[Path, ...]] = []

    def analyze(self, source_path: Path, language: Language, include_dirs=()) -> Path:
        self.calls.append((source_path, language, source_path.read_text()))
        self.include_dirs.append(tuple(include_dirs))
        content = self.reports.pop(0) if len(self.reports) > 1 else self.reports[0]
        if isinstance(content, Exception):
            raise content
        report = source_path.parent / "infer-out" / "report.txt"
        if content is not None:
            report.parent.mkdir(parents=True, exist_ok=True)
            report.write_text(content)
        return report


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory with one C file holding a trigger comment."""
    (tmp_path / "main.c").write_text(
        "#include <stdlib.h>\n"
        "\n"
        "// LLM: write a function that duplicates a string\n"
        "int main(void) { return 0; }\n"
    )
    return tmp_path
