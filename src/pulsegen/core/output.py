"""Rich terminal formatting for pulsegen output."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from pulsegen.core.errors import CodeExtractionFailed, LlmError, PulseGenError
from pulsegen.core.models import (
    Abandoned,
    AbandonReason,
    AnalysisResult,
    Converged,
    Failed,
    Finding,
    Language,
    LoopEvent,
    LoopOutcome,
    LoopState,
    is_clean,
)

console = Console()
error_console = Console(stderr=True)


STATE_LABELS = {
    LoopState.GENERATING: "Generating code",
    LoopState.ANALYZING: "Running Pulse",
    LoopState.REQUESTING_FIX: "Asking for a fix",
    LoopState.EXPLAINING: "Asking for an explanation",
    LoopState.CONVERGED: "Clean",
    LoopState.ABANDONED: "Abandoned",
    LoopState.FAILED: "Failed",
}

ABANDON_MESSAGES = {
    AbandonReason.STEP_BUDGET: "fix round budget used up",
    AbandonReason.DEADLINE: "deadline reached",
    AbandonReason.NO_PROGRESS: "the LLM returned code it had already produced",
}


def offending_lines(findings: tuple[Finding, ...] | list[Finding]) -> set[int]:
    """Line numbers of structured findings."""
    return {f.line for f in findings if f.is_structured and f.line}


def print_code(code: str, language: Language, findings=(), title: str = "Candidate") -> None:
    """Print code with the lines findings point at highlighted."""
    syntax = Syntax(
        code,
        language.value,
        line_numbers=True,
        highlight_lines=offending_lines(findings),
        word_wrap=True,
    )
    border = "red" if findings else "green"
    console.print(Panel(syntax, title=f"[bold]{escape(title)}[/bold]", border_style=border, padding=(0, 1)))


def print_findings(result: AnalysisResult) -> None:
    """Print an analysis result as a table."""
    if is_clean(result):
        console.print("\n  [green]✅ No violations found.[/green]\n")
        return

    table = Table(title=f"{len(result)} violation(s)", show_lines=False, title_justify="left")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Location", style="cyan", no_wrap=True)
    table.add_column("Description")
    for i, finding in enumerate(result, 1):
        table.add_row(str(i), escape(finding.location), escape(finding.description))
    console.print(table)


def print_explanation(text: str) -> None:
    console.print(Panel(Markdown(text), title="[bold]Explanation[/bold]", border_style="cyan", padding=(0, 1)))


def print_event(event: LoopEvent) -> None:
    """One line per interesting loop event."""
    if event.kind == "findings":
        count = len(event.payload.get("findings", ()))
        console.print(f"  [yellow]●[/yellow] candidate {event.iteration}: {count} violation(s)")
    elif event.kind == "candidate" and event.iteration > 0:
        console.print(f"  [blue]●[/blue] candidate {event.iteration} received")


def print_outcome(outcome: LoopOutcome, language: Language) -> None:
    """Print the final candidate and a summary panel for the outcome."""
    if isinstance(outcome, Converged):
        print_code(outcome.code, language, title="Final code")
        console.print(
            f"  [green]Clean after {outcome.fix_rounds} fix round(s), "
            f"{outcome.analyses} analysis run(s).[/green]\n"
        )
    elif isinstance(outcome, Abandoned):
        print_code(outcome.last_code, language, outcome.findings, title="Last candidate")
        print_findings(outcome.findings)
        console.print(
            f"  [yellow]Abandoned: {ABANDON_MESSAGES[outcome.reason]} "
            f"({outcome.fix_rounds} fix round(s), {outcome.analyses} analysis run(s)).[/yellow]\n"
        )
    elif isinstance(outcome, Failed):
        print_code(outcome.last_code, language, title="Last candidate")
        if outcome.candidate_failed_to_build:
            console.print("  [red]Candidate failed to build: the analyzer produced no report.[/red]")
        print_error(outcome.error, stage=outcome.stage)


def print_error(error: PulseGenError, stage: str | None = None) -> None:
    prefix = f"[{stage}] " if stage else ""
    error_console.print(f"\n  [red]Error: {escape(prefix + str(error))}[/red]")
    raw = getattr(error, "raw", "")
    if raw and isinstance(error, (LlmError, CodeExtractionFailed)):
        error_console.print(Panel(Text(raw[:4000]), title="Raw response", border_style="red", padding=(0, 1)))
    error_console.print()


def get_progress() -> Progress:
    """Create a progress instance for long-running steps."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    )
