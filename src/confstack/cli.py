"""CLI for confstack using Click.

Inspects and changes the configuration of another program that uses
confstack. The program must answer `--version` and `--config-spec`.
"""

import json
import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Any

import click

from confstack.codec import write_config_file
from confstack.context import ConfigDirs, LoadContext
from confstack.exceptions import ConfigError
from confstack.grammar import OptionType, arg_to_key
from confstack.node import ConfigNode
from confstack.pipeline import load, load_globals, load_locals, load_user
from confstack.settings import ConfstackSettings
from confstack.values import format_datetime, format_value

PATH_TYPES = ("global", "user", "local")


def _run_program(path: str, *args: str) -> str:
    try:
        result = subprocess.run(
            [path, *args], capture_output=True, text=True, check=True
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise ConfigError(f"running {path} {' '.join(args)} failed: {e}") from e
    return result.stdout


def fetch_config(command: str) -> ConfigNode:
    """Build a node for command from its `--version` and `--config-spec` output.

    Raises:
        ConfigError: If the command can't be found or run, or reports an
            invalid option spec.
    """
    path = shutil.which(command)
    if path is None:
        raise ConfigError(f"{command} not found in PATH")
    version = _run_program(path, "--version").strip()
    node = ConfigNode(Path(command).name, version)
    node.load_spec_json(_run_program(path, "--config-spec"))
    return node


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _json_value(node: ConfigNode, key: str) -> Any:
    value = node.values[key]
    spec = node.spec[key]
    if spec.type is OptionType.DATETIME:
        return format_datetime(value)
    if spec.type is OptionType.JSON:
        return json.loads(value)
    return value


def _file_for(dirs: ConfigDirs, node: ConfigNode, path_type: str) -> Path | None:
    if path_type == "global":
        return dirs.first_global_file(node)
    if path_type == "user":
        return dirs.user_file(node)
    return dirs.local_file(node)


@click.group()
@click.option(
    "-c",
    "--command",
    "command",
    required=True,
    help="Program whose configuration is managed",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Log which files are read and written",
)
@click.pass_context
def cli(ctx: click.Context, command: str, verbose: bool) -> None:
    """confstack - inspect and change the configuration of a program."""
    ctx.ensure_object(dict)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        node = fetch_config(command)
    except ConfigError as e:
        _fail(e)

    environ = dict(os.environ)
    dirs = ConfigDirs.discover(environ, sys.platform, settings=ConfstackSettings())

    # Store in context for subcommands
    ctx.obj["node"] = node
    ctx.obj["load_context"] = LoadContext(environ=environ, dirs=dirs)


@cli.command()
@click.pass_context
def locations(ctx: click.Context) -> None:
    """Print where each option of the program is set, as JSON.

    Examples:

        \b
        confstack -c mytool locations
    """
    node: ConfigNode = ctx.obj["node"]
    try:
        load(node, ctx.obj["load_context"], with_args=False)
    except ConfigError as e:
        _fail(e)
    click.echo(json.dumps({key: node.locations(key) for key, _ in node.each_value()}))


@cli.command()
@click.option("-o", "--option", "option", default=None, help="Option to print")
@click.pass_context
def get(ctx: click.Context, option: str | None) -> None:
    """Print the resolved option values of the program.

    Without --option all set values are printed as JSON.

    Examples:

        \b
        confstack -c mytool get
        confstack -c mytool get -o port
    """
    node: ConfigNode = ctx.obj["node"]
    try:
        load(node, ctx.obj["load_context"], with_args=False)
    except ConfigError as e:
        _fail(e)

    if option is None:
        click.echo(json.dumps({key: _json_value(node, key) for key, _ in node.each_value()}))
        return

    key = arg_to_key(option)
    if not node.is_option(key):
        _fail(ConfigError(f"unknown option {key}"))
    if key in node.values:
        click.echo(format_value(node.spec[key].type, node.values[key]))


@cli.command(name="set")
@click.option("-o", "--option", "option", required=True, help="Option to set")
@click.option("-v", "--value", "value", required=True, help="New value of the option")
@click.option(
    "-p",
    "--type",
    "path_type",
    type=click.Choice(PATH_TYPES),
    required=True,
    help="Config file to change",
)
@click.pass_context
def set_option(ctx: click.Context, option: str, value: str, path_type: str) -> None:
    """Set an option in the global, user or local config file.

    Only the chosen file is read and rewritten.

    Examples:

        \b
        confstack -c mytool set -o port -v 8080 -p user
    """
    node: ConfigNode = ctx.obj["node"]
    dirs: ConfigDirs = ctx.obj["load_context"].dirs

    path = _file_for(dirs, node, path_type)
    if path is None:
        _fail(ConfigError(f"{path_type} config directory not set"))

    node.reset()
    loaders = {"global": load_globals, "user": load_user, "local": load_locals}
    try:
        loaders[path_type](node, dirs)
        node.set(arg_to_key(option), value, str(path))
        write_config_file(node, path, 0o644 if path_type == "global" else 0o640)
    except ConfigError as e:
        _fail(e)

    click.echo(f"Set {arg_to_key(option)} in {path}")


@cli.command()
@click.option(
    "-p",
    "--type",
    "path_type",
    type=click.Choice(PATH_TYPES + ("all",)),
    default="all",
    help="Which config file path to print",
)
@click.pass_context
def path(ctx: click.Context, path_type: str) -> None:
    """Print the config file path(s) of the program.

    Examples:

        \b
        confstack -c mytool path -p user
        confstack -c mytool path
    """
    node: ConfigNode = ctx.obj["node"]
    dirs: ConfigDirs = ctx.obj["load_context"].dirs

    if path_type != "all":
        file = _file_for(dirs, node, path_type)
        click.echo("" if file is None else str(file))
        return

    paths = {t: _file_for(dirs, node, t) for t in PATH_TYPES}
    click.echo(json.dumps({t: str(p) for t, p in paths.items() if p is not None}))


if __name__ == "__main__":
    cli()
