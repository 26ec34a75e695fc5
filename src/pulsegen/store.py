"""Run artifacts: every candidate, report and explanation kept for inspection."""

from __future__ import annotations

import json
import shutil
from datetime import datetime
from pathlib import Path

from pulsegen.core.config import get_pulsegen_dir
from pulsegen.core.models import Language


class ArtifactStore:
    """Writes a run's artifacts under .pulsegen/runs/<timestamp>/."""

    def __init__(self, project_path: Path):
        self.project_path = project_path
        self.pulsegen_dir = get_pulsegen_dir(project_path)
        self.runs_dir = self.pulsegen_dir / "runs"
        self.run_dir = self._new_run_dir()

    def save_prompt(self, prompt: str) -> Path:
        return self._write("prompt.txt", prompt, kind="prompt")

    def save_candidate(self, iteration: int, code: str, language: Language) -> Path:
        return self._write(
            f"candidate-{iteration}{language.default_suffix}", code, kind="candidate", iteration=iteration
        )

    def save_report(self, iteration: int, report_path: Path) -> Path | None:
        """Copy the analyzer report if there is one."""
        if not report_path.is_file():
            self._record(kind="report", iteration=iteration, file=None)
            return None
        target = self.run_dir / f"report-{iteration}.txt"
        shutil.copyfile(report_path, target)
        self._record(kind="report", iteration=iteration, file=target.name)
        return target

    def save_response(self, name: str, text: str) -> Path:
        """Raw LLM output, kept so failed extractions can be inspected."""
        return self._write(f"response-{name}.md", text, kind="response")

    def save_explanation(self, text: str) -> Path:
        return self._write("explanation.md", text, kind="explanation")

    def save_final(self, code: str, language: Language, status: str) -> Path:
        return self._write(f"final{language.default_suffix}", code, kind="final", status=status)

    def manifest(self) -> list[dict]:
        manifest_file = self.run_dir / "manifest.json"
        if not manifest_file.exists():
            return []
        return json.loads(manifest_file.read_text())

    def _new_run_dir(self) -> Path:
        timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
        run_dir = self.runs_dir / timestamp
        counter = 1
        while run_dir.exists():
            run_dir = self.runs_dir / f"{timestamp}.{counter}"
            counter += 1
        run_dir.mkdir(parents=True)
        return run_dir

    def _write(self, name: str, content: str, **entry) -> Path:
        target = self.run_dir / name
        target.write_text(content)
        self._record(file=name, **entry)
        return target

    def _record(self, **entry) -> None:
        manifest_file = self.run_dir / "manifest.json"
        manifest = self.manifest()
        entry["written_at"] = datetime.now().isoformat(timespec="seconds")
        manifest.append(entry)
        manifest_file.write_text(json.dumps(manifest, indent=2))
