"""Tests for run artifact storage."""

from __future__ import annotations

from pathlib import Path

import pytest

from pulsegen.core.models import Language
from pulsegen.store import ArtifactStore


@pytest.fixture
def store(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(project_path=tmp_path)


class TestArtifactStore:
    def test_run_dir_under_pulsegen(self, store: ArtifactStore, tmp_path: Path):
        assert store.run_dir.parent == tmp_path / ".pulsegen" / "runs"
        assert store.run_dir.is_dir()

    def test_two_runs_get_separate_dirs(self, tmp_path: Path):
        first = ArtifactStore(tmp_path)
        second = ArtifactStore(tmp_path)
        assert first.run_dir != second.run_dir

    def test_candidate_uses_language_suffix(self, store: ArtifactStore):
        path = store.save_candidate(2, "int x;", Language.CPP)
        assert path.name == "candidate-2.cpp"
        assert path.read_text() == "int x;"

    def test_report_copied(self, store: ArtifactStore, tmp_path: Path):
        report = tmp_path / "report.txt"
        report.write_text("a.c:1: error: leak")

        copied = store.save_report(0, report)

        assert copied is not None
        assert copied.read_text() == "a.c:1: error: leak"

    def test_missing_report_recorded(self, store: ArtifactStore, tmp_path: Path):
        assert store.save_report(1, tmp_path / "nope.txt") is None
        assert store.manifest()[-1] == {
            "kind": "report",
            "iteration": 1,
            "file": None,
            "written_at": store.manifest()[-1]["written_at"],
        }

    def test_manifest_lists_artifacts_in_order(self, store: ArtifactStore):
        store.save_prompt("write a list")
        store.save_candidate(0, "int x;", Language.C)
        store.save_response("fix-1", "```c\nint y;\n```")
        store.save_explanation("p may be null")
        store.save_final("int y;", Language.C, "abandoned")

        kinds = [entry["kind"] for entry in store.manifest()]
        assert kinds == ["prompt", "candidate", "response", "explanation", "final"]
        assert store.manifest()[-1]["status"] == "abandoned"
        assert (store.run_dir / "explanation.md").read_text() == "p may be null"
