"""Click CLI entry point for pulsegen."""

from __future__ import annotations

import logging

import click

from pulsegen._version import __version__


@click.group()
@click.version_option(version=__version__, prog_name="pulsegen")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
def cli(verbose: bool):
    """pulsegen - LLM code generation checked by Infer Pulse.

    Write a `// LLM: <what you want>` comment in a C or C++ file, then run
    `pulsegen generate FILE`.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Import and register subcommands
from pulsegen.cli.generate_cmd import generate  # noqa: E402
from pulsegen.cli.check_cmd import check, explain  # noqa: E402

cli.add_command(generate)
cli.add_command(check)
cli.add_command(explain)


if __name__ == "__main__":
    cli()
