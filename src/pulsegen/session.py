"""Generate, check and explain operations over a source buffer."""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from pulsegen.analyzer.report import parse_report
from pulsegen.analyzer.runner import AnalyzerRunner
from pulsegen.core.buffer import detect_language, extract_prompt, read_buffer
from pulsegen.core.config import PulseGenConfig, load_config
from pulsegen.core.errors import LlmError
from pulsegen.core.models import (
    Abandoned,
    AnalysisResult,
    Finding,
    Language,
    LoopEvent,
    LoopOutcome,
    LoopState,
    is_clean,
)
from pulsegen.llm.client import LLMClient
from pulsegen.llm.codeblock import extract_code
from pulsegen.llm.prompts import build_explain_prompt, explain_system, generate_system
from pulsegen.loop.engine import FixLoop
from pulsegen.store import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    """Everything a generate run produced."""

    prompt: str
    language: Language
    initial_code: str
    outcome: LoopOutcome
    explanation: str = ""
    explanation_error: str = ""
    run_dir: Path | None = None


class Session:
    """Wires configuration, LLM client, analyzer and fix loop together."""

    def __init__(
        self,
        project_path: Path | None = None,
        config: PulseGenConfig | None = None,
        *,
        llm_factory: Callable[[Language], object] | None = None,
        analyzer: object | None = None,
        on_event: Callable[[LoopEvent], None] | None = None,
    ):
        self.project_path = (project_path or Path.cwd()).resolve()
        self.config = config or load_config(self.project_path)
        self.llm_factory = llm_factory or self._default_llm
        self.analyzer = analyzer or AnalyzerRunner(self.config.analyzer)
        self.on_event = on_event
        self.run_dir: Path | None = None

    def generate(self, path: Path) -> GenerationReport:
        """Generate code for the trigger comment in ``path`` and fix it until clean."""
        language = detect_language(path)
        request = extract_prompt(read_buffer(path), self.config.prompt_marker)
        llm = self.llm_factory(language)
        store = self._store()
        if store is not None:
            self.run_dir = store.run_dir
            store.save_prompt(request.prompt)

        self._emit(LoopEvent(kind="state", state=LoopState.GENERATING))
        logger.info("Requesting %s code for prompt on line %d", language.value, request.line)
        raw = llm.complete(generate_system(language), request.prompt, request.context)
        if store is not None:
            store.save_response("generation", raw)
        initial_code = extract_code(raw)

        loop = FixLoop(
            llm,
            self.analyzer,
            self.config.loop,
            store=store,
            on_event=self.on_event,
            record_delimiter=self.config.analyzer.record_delimiter,
            include_dirs=_include_dirs(path),
        )
        outcome = loop.run(initial_code, language)

        report = GenerationReport(
            prompt=request.prompt,
            language=language,
            initial_code=initial_code,
            outcome=outcome,
            run_dir=store.run_dir if store is not None else None,
        )

        if store is not None:
            store.save_final(outcome.final_code, language, type(outcome).__name__.lower())

        if isinstance(outcome, Abandoned) and outcome.findings and self.config.loop.explain_on_abandon:
            try:
                report.explanation = self._explain(llm, outcome.last_code, outcome.findings, language)
            except LlmError as e:
                logger.warning("Could not explain remaining findings: %s", e)
                report.explanation_error = str(e)
            else:
                if store is not None:
                    store.save_explanation(report.explanation)

        return report

    def check(self, path: Path) -> AnalysisResult:
        """Run the analyzer on an existing file."""
        language = detect_language(path)
        return self._analyze_copy(read_buffer(path), language, path)

    def explain(self, path: Path) -> tuple[AnalysisResult, str]:
        """Analyze an existing file and ask the LLM to explain what it found."""
        language = detect_language(path)
        code = read_buffer(path)
        result = self._analyze_copy(code, language, path)
        if is_clean(result):
            return result, ""
        llm = self.llm_factory(language)
        explanation = self._explain(llm, code, result, language)
        store = self._store()
        if store is not None:
            self.run_dir = store.run_dir
            store.save_explanation(explanation)
        return result, explanation

    def _explain(self, llm, code: str, findings: tuple[Finding, ...], language: Language) -> str:
        self._emit(LoopEvent(kind="state", state=LoopState.EXPLAINING))
        text = llm.complete(explain_system(language), build_explain_prompt(findings), code)
        if not text.strip():
            raise LlmError("LLM returned an empty explanation", raw=text)
        return text.strip()

    def _analyze_copy(self, code: str, language: Language, path: Path) -> AnalysisResult:
        # Analyze in a scratch directory so infer-out/ never lands in the user's tree.
        work_dir = Path(tempfile.mkdtemp(prefix="pulsegen_"))
        try:
            source = work_dir / path.name
            source.write_text(code)
            self._emit(LoopEvent(kind="state", state=LoopState.ANALYZING))
            report_path = self.analyzer.analyze(source, language, _include_dirs(path))
            return parse_report(report_path, self.config.analyzer.record_delimiter)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    def _store(self) -> ArtifactStore | None:
        if not self.config.loop.keep_artifacts:
            return None
        return ArtifactStore(self.project_path)

    def _default_llm(self, language: Language) -> LLMClient:
        return LLMClient(
            self.config.llm,
            api_key=self.config.resolve_api_key(),
            language_tag=language.fence_tag,
        )

    def _emit(self, event: LoopEvent) -> None:
        if self.on_event is not None:
            self.on_event(event)



def _include_dirs(path: Path) -> tuple[Path, ...]:
    """The directory a buffer lives in, so its local headers resolve from a scratch copy."""
    return (path.resolve().parent,)
