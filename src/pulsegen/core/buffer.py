"""Trigger-comment extraction and language detection for source buffers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from pulsegen.core.errors import PromptMissing
from pulsegen.core.models import Language


@dataclass
class PromptRequest:
    """What the user asked for, and the buffer it was asked in."""

    prompt: str
    context: str
    line: int


def _marker_pattern(marker: str) -> re.Pattern[str]:
    # `// LLM: ...` or `/* LLM: ... */` on a single line
    return re.compile(
        r"^(?P<indent>[ \t]*)(?://+|/\*+)[ \t]*" + re.escape(marker) + r"(?P<prompt>.*?)(?:\*+/)?[ \t]*$",
        re.MULTILINE,
    )


def extract_prompt(buffer: str, marker: str = "LLM:") -> PromptRequest:
    """Find the first trigger comment in ``buffer``.

    The prompt is the comment text after the marker. The context is the
    buffer with the trigger line removed, handed to the LLM as surrounding
    code.
    """
    match = _marker_pattern(marker).search(buffer)
    if not match:
        raise PromptMissing(f"No '{marker}' comment found in buffer")

    prompt = match.group("prompt").strip()
    if not prompt:
        raise PromptMissing(f"'{marker}' comment has no prompt text")

    line = buffer.count("\n", 0, match.start()) + 1
    end = match.end()
    if end < len(buffer) and buffer[end] == "\n":
        end += 1
    context = buffer[: match.start()] + buffer[end:]

    return PromptRequest(prompt=prompt, context=context, line=line)


def detect_language(path: Path) -> Language:
    """Map a file name to one of the supported languages."""
    return Language.from_suffix(path.suffix)


def read_buffer(path: Path) -> str:
    return path.read_text(errors="replace")
