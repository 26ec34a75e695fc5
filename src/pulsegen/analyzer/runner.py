"""Runs Infer's Pulse analyzer against a source file."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from pulsegen.core.config import AnalyzerConfig
from pulsegen.core.errors import AnalyzerNotFound, AnalyzerTimeout
from pulsegen.core.models import Language

logger = logging.getLogger(__name__)


class AnalyzerRunner:
    """Invokes ``infer run --pulse-only -- <compiler> <file>``."""

    def __init__(self, config: AnalyzerConfig):
        self.config = config

    def compiler_for(self, language: Language) -> str:
        if language == Language.CPP:
            return self.config.cpp_compiler
        return self.config.c_compiler

    def command(self, source_path: Path, language: Language, include_dirs: Sequence[Path] = ()) -> list[str]:
        # Candidates are compiled away from the user's tree; -I keeps their
        # quoted includes resolvable.
        return [
            self.config.infer_path,
            "run",
            "--pulse-only",
            "--",
            self.compiler_for(language),
            *self.config.compiler_args,
            *(f"-I{d}" for d in include_dirs),
            source_path.name,
        ]

    def report_path(self, source_path: Path) -> Path:
        return source_path.parent / self.config.report_relpath

    def analyze(self, source_path: Path, language: Language, include_dirs: Sequence[Path] = ()) -> Path:
        """Run the analyzer and return where its report should be.

        The returned path may not exist: a candidate that does not compile
        leaves no report behind, and callers must check.
        """
        cmd = self.command(source_path, language, include_dirs)
        logger.debug("Running %s in %s", " ".join(cmd), source_path.parent)

        try:
            proc = subprocess.run(
                cmd,
                cwd=source_path.parent,
                capture_output=True,
                text=True,
                timeout=self.config.timeout_seconds,
            )
        except FileNotFoundError as e:
            raise AnalyzerNotFound(
                f"Analyzer executable '{self.config.infer_path}' not found. "
                "Install Infer or set [analyzer] infer_path in pulsegen.toml."
            ) from e
        except subprocess.TimeoutExpired as e:
            raise AnalyzerTimeout(
                f"Analyzer timed out after {self.config.timeout_seconds:.0f}s on {source_path.name}"
            ) from e

        if proc.returncode != 0:
            logger.warning(
                "Analyzer exited with status %s on %s: %s",
                proc.returncode,
                source_path.name,
                (proc.stderr or "").strip()[-2000:],
            )

        return self.report_path(source_path)
