"""System instructions and prompt builders for the LLM calls."""

from __future__ import annotations

from pulsegen.core.models import Finding, Language

LANGUAGE_NAMES = {
    Language.C: "C",
    Language.CPP: "C++",
}

GENERATE_SYSTEM = """You are a careful {language} programmer. Write code that does what the user asks.

CONSTRAINTS:
- Return one complete, compilable {language} translation unit.
- Keep the existing code from the context unless the request says otherwise.
- Check every pointer, allocation and index before use.
- Release every resource you acquire.

Respond with the code in a single fenced block:
```{tag}
<code>
```
"""

FIX_SYSTEM = """You are a careful {language} programmer. A static analyzer (Infer Pulse) reported the
violations listed by the user in the code that follows.

CONSTRAINTS:
- Fix every reported violation.
- Make minimal changes. Keep the behaviour and the public functions.
- Do not silence the analyzer with casts or dead code.

Respond with the full corrected code in a single fenced block:
```{tag}
<code>
```
"""

EXPLAIN_SYSTEM = """You are a code reviewer. A static analyzer (Infer Pulse) reported the violations
listed by the user in the {language} code that follows. For each violation explain in plain
language what can go wrong at runtime and which line causes it, then suggest a fix.
Answer in Markdown. Do not rewrite the whole program."""


def _fill(template: str, language: Language) -> str:
    return template.format(language=LANGUAGE_NAMES[language], tag=language.fence_tag)


def generate_system(language: Language) -> str:
    return _fill(GENERATE_SYSTEM, language)


def fix_system(language: Language) -> str:
    return _fill(FIX_SYSTEM, language)


def explain_system(language: Language) -> str:
    return _fill(EXPLAIN_SYSTEM, language)


def format_finding(finding: Finding) -> str:
    """Render one finding as ``file:line: description``; unknown parts become ``?``."""
    if finding.is_structured:
        return f"{finding.file}:{finding.line}: {finding.description}"
    return f"?:?: {finding.raw or finding.description}"


def format_findings(findings: tuple[Finding, ...] | list[Finding]) -> str:
    lines = [f"{i}. {format_finding(f)}" for i, f in enumerate(findings, 1)]
    return "\n".join(lines)


def build_fix_prompt(findings: tuple[Finding, ...] | list[Finding]) -> str:
    return (
        f"The analyzer reported {len(findings)} violation(s):\n"
        f"{format_findings(findings)}\n\n"
        "Return the corrected code."
    )


def build_explain_prompt(findings: tuple[Finding, ...] | list[Finding]) -> str:
    return (
        f"The analyzer reported {len(findings)} violation(s):\n"
        f"{format_findings(findings)}\n\n"
        "Explain each of them."
    )
