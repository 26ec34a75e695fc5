"""Shared data models used across pulsegen modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union

from pulsegen.core.errors import AnalyzerTimeout, PulseGenError, ReportUnavailable, UnsupportedLanguage


class Language(enum.Enum):
    C = "c"
    CPP = "cpp"

    @property
    def extensions(self) -> tuple[str, ...]:
        return _EXTENSIONS[self]

    @property
    def default_suffix(self) -> str:
        return self.extensions[0]

    @property
    def fence_tag(self) -> str:
        return self.value

    @classmethod
    def from_suffix(cls, suffix: str) -> "Language":
        suffix = suffix.lower()
        for language, extensions in _EXTENSIONS.items():
            if suffix in extensions:
                return language
        raise UnsupportedLanguage(
            f"Unsupported file extension '{suffix or '(none)'}'. "
            "Expected one of: " + ", ".join(e for exts in _EXTENSIONS.values() for e in exts)
        )


_EXTENSIONS = {
    Language.C: (".c",),
    Language.CPP: (".cpp", ".cc", ".cxx", ".c++"),
}


@dataclass(frozen=True)
class Finding:
    """A single issue reported by the analyzer."""

    description: str
    file: str | None = None
    line: int | None = None
    raw: str = ""

    @property
    def is_structured(self) -> bool:
        return self.file is not None and self.line is not None

    @property
    def location(self) -> str:
        if not self.is_structured:
            return "?:?"
        return f"{self.file}:{self.line}"


class NoViolations:
    """Marker: the analyzer ran and found nothing to report."""

    _instance: NoViolations | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_VIOLATIONS"

    def __bool__(self) -> bool:
        return False


NO_VIOLATIONS = NoViolations()

# Either the marker or a non-empty tuple of findings in report order.
AnalysisResult = Union[NoViolations, tuple[Finding, ...]]


def is_clean(result: AnalysisResult) -> bool:
    return isinstance(result, NoViolations)


@dataclass
class FixAttempt:
    """The live candidate of the fix loop."""

    code: str
    iteration: int = 0
    result: AnalysisResult | None = None

    @property
    def findings(self) -> tuple[Finding, ...]:
        if self.result is None or is_clean(self.result):
            return ()
        return self.result


class LoopState(enum.Enum):
    GENERATING = "generating"
    ANALYZING = "analyzing"
    REQUESTING_FIX = "requesting_fix"
    EXPLAINING = "explaining"
    CONVERGED = "converged"
    ABANDONED = "abandoned"
    FAILED = "failed"


class AbandonReason(enum.Enum):
    STEP_BUDGET = "step_budget"
    DEADLINE = "deadline"
    NO_PROGRESS = "no_progress"


@dataclass
class Converged:
    code: str
    fix_rounds: int = 0
    analyses: int = 0

    @property
    def final_code(self) -> str:
        return self.code


@dataclass
class Abandoned:
    last_code: str
    reason: AbandonReason
    findings: tuple[Finding, ...] = ()
    fix_rounds: int = 0
    analyses: int = 0

    @property
    def final_code(self) -> str:
        return self.last_code


@dataclass
class Failed:
    error: PulseGenError
    last_code: str
    stage: str  # "analyze", "fix", "extract"
    fix_rounds: int = 0
    analyses: int = 0

    @property
    def final_code(self) -> str:
        return self.last_code

    @property
    def candidate_failed_to_build(self) -> bool:
        return isinstance(self.error, ReportUnavailable) and not isinstance(self.error, AnalyzerTimeout)


LoopOutcome = Union[Converged, Abandoned, Failed]


@dataclass
class LoopEvent:
    """Progress notification emitted by the fix loop."""

    kind: str
    state: LoopState
    iteration: int = 0
    payload: dict[str, Any] = field(default_factory=dict)
