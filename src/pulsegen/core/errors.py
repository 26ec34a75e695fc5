"""Error taxonomy shared across pulsegen modules."""

from __future__ import annotations


class PulseGenError(Exception):
    """Base class for every error pulsegen surfaces to the user."""


class ConfigError(PulseGenError):
    """pulsegen.toml could not be loaded or holds invalid values."""


class PromptMissing(PulseGenError):
    """No trigger comment was found in the source buffer."""


class UnsupportedLanguage(PulseGenError):
    """The source file's extension is outside the supported set."""


class LlmError(PulseGenError):
    """Transport failure, non-2xx response, or a response without content."""

    def __init__(self, message: str, status_code: int | None = None, raw: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw


class CodeExtractionFailed(PulseGenError):
    """The LLM response holds no usable fenced code block."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class AnalyzerNotFound(PulseGenError):
    """The infer executable could not be started."""


class ReportUnavailable(PulseGenError):
    """The analyzer produced no report, usually because the candidate failed to build."""


class ReportMalformed(PulseGenError):
    """A report exists but cannot be interpreted at all."""


class AnalyzerTimeout(ReportUnavailable):
    """The analyzer was killed before it finished, so no report was written."""
