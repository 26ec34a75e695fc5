"""pulsegen generate command."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from pulsegen.core.config import ensure_gitignore, load_config
from pulsegen.core.errors import PulseGenError
from pulsegen.core.models import Abandoned, Converged, Failed, LoopState
from pulsegen.core.output import (
    STATE_LABELS,
    console,
    get_progress,
    print_error,
    print_event,
    print_explanation,
    print_outcome,
)
from pulsegen.loop.worker import LoopWorker
from pulsegen.session import GenerationReport, Session


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--max-rounds", type=click.IntRange(min=0), default=None, help="Maximum fix rounds before giving up")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Give up after this many seconds")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the final code here")
@click.option("--no-explain", is_flag=True, help="Don't ask for an explanation when abandoning")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON summary instead of the report")
def generate(
    file: Path,
    max_rounds: int | None,
    timeout: float | None,
    output: Path | None,
    no_explain: bool,
    as_json: bool,
):
    """Generate code for the `// LLM:` comment in FILE and fix it until Pulse is clean.

    Exit status: 0 when clean, 2 when abandoned, 1 on failure.
    """
    project_path = Path.cwd()
    try:
        config = load_config(project_path)
    except PulseGenError as e:
        print_error(e)
        sys.exit(1)

    if max_rounds is not None:
        config.loop.max_fix_rounds = max_rounds
    if timeout is not None:
        config.loop.timeout_seconds = timeout
    if no_explain:
        config.loop.explain_on_abandon = False
    if config.loop.keep_artifacts:
        ensure_gitignore(project_path)

    session = Session(project_path, config)

    def run(on_event):
        session.on_event = on_event
        return session.generate(file)

    worker = LoopWorker(run).start()
    with get_progress() as progress:
        task = progress.add_task(f"{STATE_LABELS[LoopState.GENERATING]}...", total=None)
        for event in worker.events():
            if event.kind == "state":
                progress.update(task, description=f"{STATE_LABELS[event.state]}...")
            elif not as_json:
                print_event(event)

    try:
        report = worker.result()
    except PulseGenError as e:
        print_error(e)
        if session.run_dir is not None:
            console.print(f"  [dim]Partial artifacts saved to {session.run_dir}[/dim]\n")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(_report_to_dict(report), indent=2))
    else:
        print_outcome(report.outcome, report.language)
        if report.explanation:
            print_explanation(report.explanation)
        elif report.explanation_error:
            console.print(f"  [dim]No explanation: {report.explanation_error}[/dim]")
        if report.run_dir is not None:
            console.print(f"  [dim]Artifacts saved to {report.run_dir}[/dim]\n")

    if output is not None:
        output.write_text(report.outcome.final_code + "\n")
        if not as_json:
            console.print(f"  [dim]Final code written to {output}[/dim]\n")

    sys.exit(_exit_code(report))


def _exit_code(report: GenerationReport) -> int:
    if isinstance(report.outcome, Converged):
        return 0
    if isinstance(report.outcome, Abandoned):
        return 2
    return 1


def _report_to_dict(report: GenerationReport) -> dict:
    """Convert a GenerationReport to a JSON-serializable dict."""
    outcome = report.outcome
    data = {
        "prompt": report.prompt,
        "language": report.language.value,
        "status": type(outcome).__name__.lower(),
        "fix_rounds": outcome.fix_rounds,
        "analyses": outcome.analyses,
        "code": outcome.final_code,
        "run_dir": str(report.run_dir) if report.run_dir else None,
    }
    if isinstance(outcome, Abandoned):
        data["reason"] = outcome.reason.value
        data["findings"] = [
            {"file": f.file, "line": f.line, "description": f.description} for f in outcome.findings
        ]
        data["explanation"] = report.explanation
    elif isinstance(outcome, Failed):
        data["stage"] = outcome.stage
        data["error"] = str(outcome.error)
        data["candidate_failed_to_build"] = outcome.candidate_failed_to_build
    return data
