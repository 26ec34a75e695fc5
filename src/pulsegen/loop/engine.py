"""Fix loop: drives a candidate toward a report with no violations."""

from __future__ import annotations

import hashlib
import logging
import shutil
import tempfile
import time
from pathlib import Path
from typing import Callable, Protocol, Sequence

from pulsegen.analyzer.report import RECORD_DELIMITER, parse_report
from pulsegen.core.config import LoopConfig
from pulsegen.core.errors import (
    CodeExtractionFailed,
    LlmError,
    ReportMalformed,
    ReportUnavailable,
)
from pulsegen.core.models import (
    AbandonReason,
    Abandoned,
    AnalysisResult,
    Converged,
    Failed,
    FixAttempt,
    Language,
    LoopEvent,
    LoopOutcome,
    LoopState,
    is_clean,
)
from pulsegen.llm.codeblock import extract_code
from pulsegen.llm.prompts import build_fix_prompt, fix_system

logger = logging.getLogger(__name__)


class Completer(Protocol):
    def complete(self, system_instruction: str, user_prompt: str, source_code: str = "") -> str: ...


class Analyzer(Protocol):
    def analyze(self, source_path: Path, language: Language, include_dirs: Sequence[Path] = ()) -> Path: ...


class CandidateSink(Protocol):
    def save_candidate(self, iteration: int, code: str, language: Language) -> Path: ...

    def save_report(self, iteration: int, report_path: Path) -> Path | None: ...

    def save_response(self, name: str, text: str) -> Path: ...


def fingerprint(code: str) -> str:
    """Hash of the code with surrounding whitespace and blank lines ignored."""
    lines = [line.strip() for line in code.splitlines() if line.strip()]
    return hashlib.sha256("\n".join(lines).encode()).hexdigest()


class FixLoop:
    """Bounded analyze -> fix -> re-analyze state machine.

    Every run ends in exactly one of ``Converged``, ``Abandoned`` or
    ``Failed``. Failures of the analyzer or the LLM are returned, never
    raised, so the last candidate is always available to the caller.
    """

    def __init__(
        self,
        llm: Completer,
        analyzer: Analyzer,
        config: LoopConfig | None = None,
        *,
        store: CandidateSink | None = None,
        on_event: Callable[[LoopEvent], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        record_delimiter: str = RECORD_DELIMITER,
        include_dirs: Sequence[Path] = (),
    ):
        self.llm = llm
        self.analyzer = analyzer
        self.config = config or LoopConfig()
        self.store = store
        self.on_event = on_event
        self.clock = clock
        self.record_delimiter = record_delimiter
        self.include_dirs = tuple(include_dirs)
        self.state = LoopState.GENERATING
        self.fix_rounds = 0
        self.analyses = 0

    def run(self, initial_code: str, language: Language) -> LoopOutcome:
        self.state = LoopState.GENERATING
        self.fix_rounds = 0
        self.analyses = 0
        started = self.clock()
        deadline = started + self.config.timeout_seconds if self.config.timeout_seconds else None

        attempt = FixAttempt(code=initial_code, iteration=0)
        seen = {fingerprint(attempt.code)}
        self._emit("candidate", attempt.iteration, code=attempt.code)

        while True:
            self._transition(LoopState.ANALYZING, attempt.iteration)
            try:
                attempt.result = self._analyze(attempt, language)
            except (ReportUnavailable, ReportMalformed) as e:
                logger.info("Analysis of candidate %d failed: %s", attempt.iteration, e)
                return self._finish(
                    Failed(error=e, last_code=attempt.code, stage="analyze"),
                    LoopState.FAILED,
                    attempt.iteration,
                )

            if is_clean(attempt.result):
                return self._finish(Converged(code=attempt.code), LoopState.CONVERGED, attempt.iteration)

            findings = attempt.findings
            self._emit("findings", attempt.iteration, findings=findings)

            if self.fix_rounds >= self.config.max_fix_rounds:
                return self._abandon(attempt, AbandonReason.STEP_BUDGET)
            if deadline is not None and self.clock() >= deadline:
                return self._abandon(attempt, AbandonReason.DEADLINE)

            self._transition(LoopState.REQUESTING_FIX, attempt.iteration)
            self.fix_rounds += 1
            try:
                raw = self.llm.complete(fix_system(language), build_fix_prompt(findings), attempt.code)
            except LlmError as e:
                return self._finish(
                    Failed(error=e, last_code=attempt.code, stage="fix"),
                    LoopState.FAILED,
                    attempt.iteration,
                )
            if self.store is not None:
                self.store.save_response(f"fix-{self.fix_rounds}", raw)

            try:
                new_code = extract_code(raw)
            except CodeExtractionFailed as e:
                return self._finish(
                    Failed(error=e, last_code=attempt.code, stage="extract"),
                    LoopState.FAILED,
                    attempt.iteration,
                )

            key = fingerprint(new_code)
            if key in seen:
                logger.info("LLM returned an already analyzed candidate after round %d", self.fix_rounds)
                return self._abandon(attempt, AbandonReason.NO_PROGRESS)
            seen.add(key)

            attempt = FixAttempt(code=new_code, iteration=attempt.iteration + 1)
            self._emit("candidate", attempt.iteration, code=attempt.code)

    def _analyze(self, attempt: FixAttempt, language: Language) -> AnalysisResult:
        """Write the candidate to a fresh directory, run the analyzer, parse its report."""
        work_dir = Path(tempfile.mkdtemp(prefix="pulsegen_"))
        try:
            source = work_dir / f"candidate{language.default_suffix}"
            source.write_text(attempt.code if attempt.code.endswith("\n") else attempt.code + "\n")
            if self.store is not None:
                self.store.save_candidate(attempt.iteration, attempt.code, language)

            self.analyses += 1
            report_path = self.analyzer.analyze(source, language, self.include_dirs)
            if self.store is not None:
                self.store.save_report(attempt.iteration, report_path)
            return parse_report(report_path, self.record_delimiter)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    def _abandon(self, attempt: FixAttempt, reason: AbandonReason) -> Abandoned:
        logger.info("Abandoning after %d fix round(s): %s", self.fix_rounds, reason.value)
        return self._finish(
            Abandoned(last_code=attempt.code, reason=reason, findings=attempt.findings),
            LoopState.ABANDONED,
            attempt.iteration,
        )

    def _finish(self, outcome, state: LoopState, iteration: int):
        outcome.fix_rounds = self.fix_rounds
        outcome.analyses = self.analyses
        self._transition(state, iteration)
        self._emit("outcome", iteration, outcome=outcome)
        return outcome

    def _transition(self, state: LoopState, iteration: int) -> None:
        logger.debug("Fix loop: %s -> %s (candidate %d)", self.state.value, state.value, iteration)
        self.state = state
        self._emit("state", iteration)

    def _emit(self, kind: str, iteration: int, **payload) -> None:
        if self.on_event is not None:
            self.on_event(LoopEvent(kind=kind, state=self.state, iteration=iteration, payload=payload))
