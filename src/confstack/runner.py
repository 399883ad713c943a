"""Process-level helpers for programs using confstack.

The library itself only raises. These helpers turn errors and reserved
arguments into output and an exit status.
"""

import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import click

from .context import LoadContext
from .exceptions import ConfigError, ExitRequest, RegistrationError
from .node import ConfigNode
from .pipeline import load


@contextmanager
def registration_guard() -> Iterator[None]:
    """Abort the process if option registration fails.

    Example:
        with registration_guard():
            cfg = ConfigNode("demo", "1.0.0")
            port = cfg.int32_option("port", "port to listen on", required=True)
    """
    try:
        yield
    except RegistrationError as e:
        click.echo(f"Error: invalid option setup: {e}", err=True)
        sys.exit(1)


def run(
    node: ConfigNode,
    help_intro: str = "",
    validator: Callable[[ConfigNode], None] | None = None,
    ctx: LoadContext | None = None,
) -> None:
    """Load node from the current process and exit on errors.

    Reserved arguments (`--help`, `--version`, ...) print their output and
    exit with status 0. Configuration errors are printed to stderr and exit
    with status 1.

    Args:
        node: The root node.
        help_intro: First paragraph of the `--help` output.
        validator: Extra checks run after a successful load; may raise
            ConfigError.
        ctx: Load inputs, captured from the process if not given.
    """
    if ctx is None:
        ctx = LoadContext.from_process()
    try:
        load(node, ctx, help_intro)
        if validator is not None:
            validator(node)
    except ExitRequest as e:
        click.echo(e.output)
        sys.exit(e.code)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
