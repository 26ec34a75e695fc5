"""Configuration management for pulsegen (pulsegen.toml parsing + defaults)."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from pulsegen.core.errors import ConfigError


@dataclass
class LLMConfig:
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-4o"
    temperature: float = 0.2
    max_tokens: int = 2048
    timeout_seconds: float = 60.0
    api_key: str | None = None
    api_key_env: str = "OPENAI_API_KEY"


@dataclass
class AnalyzerConfig:
    infer_path: str = "infer"
    c_compiler: str = "clang"
    cpp_compiler: str = "clang++"
    compiler_args: list[str] = field(default_factory=list)
    timeout_seconds: float = 300.0
    report_relpath: str = "infer-out/report.txt"
    record_delimiter: str = "#"


@dataclass
class LoopConfig:
    max_fix_rounds: int = 5
    timeout_seconds: float | None = None
    explain_on_abandon: bool = True
    keep_artifacts: bool = True


@dataclass
class PulseGenConfig:
    """Complete pulsegen configuration."""

    prompt_marker: str = "LLM:"
    llm: LLMConfig = field(default_factory=LLMConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)

    def resolve_api_key(self) -> str | None:
        """Explicit key first, then the configured environment variable."""
        if self.llm.api_key:
            return self.llm.api_key
        return os.environ.get(self.llm.api_key_env) or None


def load_config(project_path: Path | None = None) -> PulseGenConfig:
    """Load configuration from pulsegen.toml if present, otherwise return defaults."""
    config = PulseGenConfig()

    if project_path is None:
        project_path = Path.cwd()

    config_file = project_path / "pulsegen.toml"
    if not config_file.exists():
        return config

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid {config_file.name}: {e}") from e

    if "general" in data:
        gen = data["general"]
        if "prompt_marker" in gen:
            config.prompt_marker = gen["prompt_marker"]

    if "llm" in data:
        llm = data["llm"]
        for attr in (
            "endpoint",
            "model",
            "temperature",
            "max_tokens",
            "timeout_seconds",
            "api_key",
            "api_key_env",
        ):
            if attr in llm:
                setattr(config.llm, attr, llm[attr])

    if "analyzer" in data:
        a = data["analyzer"]
        for attr in (
            "infer_path",
            "c_compiler",
            "cpp_compiler",
            "compiler_args",
            "timeout_seconds",
            "report_relpath",
            "record_delimiter",
        ):
            if attr in a:
                setattr(config.analyzer, attr, a[attr])

    if "loop" in data:
        lp = data["loop"]
        for attr in ("max_fix_rounds", "timeout_seconds", "explain_on_abandon", "keep_artifacts"):
            if attr in lp:
                setattr(config.loop, attr, lp[attr])

    if config.loop.max_fix_rounds < 0:
        raise ConfigError("loop.max_fix_rounds must be >= 0")
    if not config.prompt_marker.strip():
        raise ConfigError("general.prompt_marker must not be empty")

    return config


def get_pulsegen_dir(project_path: Path | None = None) -> Path:
    """Get or create the .pulsegen directory."""
    if project_path is None:
        project_path = Path.cwd()
    pulsegen_dir = project_path / ".pulsegen"
    pulsegen_dir.mkdir(exist_ok=True)
    return pulsegen_dir


def ensure_gitignore(project_path: Path | None = None) -> None:
    """Add .pulsegen/ to .gitignore if not already present."""
    if project_path is None:
        project_path = Path.cwd()
    gitignore = project_path / ".gitignore"
    entry = ".pulsegen/"

    if gitignore.exists():
        content = gitignore.read_text()
        if entry in content:
            return
        if not content.endswith("\n"):
            content += "\n"
        content += f"{entry}\n"
        gitignore.write_text(content)
    else:
        gitignore.write_text(f"{entry}\n")
