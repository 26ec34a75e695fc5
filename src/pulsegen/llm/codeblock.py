"""Fenced code extraction from LLM free text."""

from __future__ import annotations

import re

from pulsegen.core.errors import CodeExtractionFailed

_FENCE_RE = re.compile(r"```[ \t]*(?P<tag>[\w+#.-]*)[ \t]*\r?\n(?P<body>.*?)```", re.DOTALL)


def extract_code(text: str) -> str:
    """Return the body of the first fenced block in ``text``.

    Prose around the fence is discarded. A response without a fence, or
    with an empty one, raises ``CodeExtractionFailed`` carrying the raw text.
    """
    match = _FENCE_RE.search(text)
    if not match:
        raise CodeExtractionFailed("No fenced code block found in LLM response", raw=text)

    code = match.group("body").strip("\r\n")
    if not code.strip():
        raise CodeExtractionFailed("Fenced code block in LLM response is empty", raw=text)
    return code


def fence(code: str, tag: str = "") -> str:
    """Wrap ``code`` in a fenced block."""
    if not code.endswith("\n"):
        code += "\n"
    return f"```{tag}\n{code}```"
