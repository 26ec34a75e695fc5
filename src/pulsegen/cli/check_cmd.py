"""pulsegen check / explain commands."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from pulsegen.core.buffer import detect_language
from pulsegen.core.config import load_config
from pulsegen.core.errors import PulseGenError
from pulsegen.core.models import LoopState, is_clean
from pulsegen.core.output import (
    STATE_LABELS,
    get_progress,
    print_code,
    print_error,
    print_explanation,
    print_findings,
)
from pulsegen.loop.worker import LoopWorker
from pulsegen.session import Session


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--show-code", is_flag=True, help="Print the file with offending lines highlighted")
def check(file: Path, show_code: bool):
    """Run Pulse on FILE and list the violations.

    Exit status: 0 when clean, 2 when violations were found, 1 on failure.
    """
    result = _run_in_worker(lambda session: session.check(file), LoopState.ANALYZING)

    if show_code and not is_clean(result):
        language = detect_language(file)
        print_code(file.read_text(errors="replace"), language, result, title=str(file))
    print_findings(result)
    sys.exit(0 if is_clean(result) else 2)


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def explain(file: Path):
    """Run Pulse on FILE and ask the LLM to explain the violations."""
    result, explanation = _run_in_worker(lambda session: session.explain(file), LoopState.ANALYZING)

    if is_clean(result):
        print_findings(result)
        sys.exit(0)

    print_code(file.read_text(errors="replace"), detect_language(file), result, title=str(file))
    print_findings(result)
    print_explanation(explanation)
    sys.exit(2)


def _run_in_worker(operation, first_state: LoopState):
    """Run ``operation(session)`` on a worker thread behind a spinner."""
    project_path = Path.cwd()
    try:
        config = load_config(project_path)
    except PulseGenError as e:
        print_error(e)
        sys.exit(1)

    def run(on_event):
        return operation(Session(project_path, config, on_event=on_event))

    worker = LoopWorker(run).start()
    with get_progress() as progress:
        task = progress.add_task(f"{STATE_LABELS[first_state]}...", total=None)
        for event in worker.events():
            if event.kind == "state":
                progress.update(task, description=f"{STATE_LABELS[event.state]}...")

    try:
        return worker.result()
    except PulseGenError as e:
        print_error(e)
        sys.exit(1)
