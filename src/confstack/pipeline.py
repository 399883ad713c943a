"""Merging all configuration sources into a node.

Sources are applied in this order, each one overwriting the keys set by
the ones before:

1. defaults
2. the first global config file found
3. the user config file
4. the local config file
5. environment variables `<APP>_CONFIG_<KEY>`
6. command line arguments `--key=value`

The first error stops the load. Values set by earlier stages stay in place.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from . import codec
from .context import ConfigDirs, LoadContext
from .exceptions import (
    ConfigError,
    DoubleOptionError,
    EmptyValueError,
    ExitRequest,
    InvalidArgumentError,
    InvalidConfigFileError,
    InvalidEnvError,
    UnknownOptionError,
)
from .grammar import arg_to_key
from .node import ConfigNode
from .values import format_value

logger = logging.getLogger(__name__)

# argument keys that print information instead of setting an option
CONFIG_SPEC = "CONFIG_SPEC"
CONFIG_LOCATIONS = "CONFIG_LOCATIONS"
CONFIG_FILES = "CONFIG_FILES"
VERSION = "VERSION"
HELP = "HELP"
RESERVED_KEYS = frozenset({CONFIG_SPEC, CONFIG_LOCATIONS, CONFIG_FILES, VERSION, HELP})


def load_defaults(node: ConfigNode) -> None:
    """Set every option that has a default, tracked by the printed default."""
    for key, spec in node.spec.items():
        if spec.default is not None:
            node.store(key, spec.default, format_value(spec.type, spec.default))


def load_file(node: ConfigNode, path: Path) -> bool:
    """Merge a config file into node.

    Returns:
        True if the file exists, False if there is nothing to load.

    Raises:
        InvalidConfigFileError: If the file can't be read or is invalid.
        VersionSkewError: If a value of a file for another version is invalid.
    """
    if not path.is_file():
        return False
    logger.debug("loading %s for %s", path, node.app)
    try:
        with open(path, encoding="utf-8") as f:
            codec.merge(node, f, str(path))
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidConfigFileError(str(path), node.version, e) from e
    return True


def load_globals(node: ConfigNode, dirs: ConfigDirs) -> None:
    """Load the first global config file that exists."""
    for path in dirs.global_files(node):
        if load_file(node, path):
            return


def load_user(node: ConfigNode, dirs: ConfigDirs) -> None:
    if (path := dirs.user_file(node)) is not None:
        load_file(node, path)


def load_locals(node: ConfigNode, dirs: ConfigDirs) -> None:
    if (path := dirs.local_file(node)) is not None:
        load_file(node, path)


def merge_env(node: ConfigNode, environ: Mapping[str, str]) -> None:
    """Set options from `<APP>_CONFIG_<KEY>` environment variables.

    Values are tracked by the variable name.

    Raises:
        InvalidEnvError: If a variable is empty, unknown or has an invalid value.
    """
    prefix = node.env_prefix
    for name, value in environ.items():
        if not name.startswith(prefix):
            continue
        key = name[len(prefix) :]
        value = value.strip()
        if not value:
            raise InvalidEnvError(node.version, name, EmptyValueError(key))
        try:
            node.set(key, value, name)
        except ConfigError as e:
            raise InvalidEnvError(node.version, name, e) from e


def reserved_output(node: ConfigNode, key: str, dirs: ConfigDirs, help_intro: str = "") -> str:
    """Build what a reserved argument prints."""
    if key == CONFIG_SPEC:
        return node.spec_json()
    if key == CONFIG_LOCATIONS:
        return json.dumps(node.provenance)
    if key == CONFIG_FILES:
        files = {
            "global": dirs.first_global_file(node),
            "user": dirs.user_file(node),
            "local": dirs.local_file(node),
        }
        return json.dumps({k: str(v) for k, v in files.items() if v is not None})
    if key == VERSION:
        return node.version
    if key == HELP:
        return node.help_text(help_intro)
    raise ValueError(f"{key} is not a reserved argument")


def merge_args(
    node: ConfigNode,
    args: Iterable[str],
    dirs: ConfigDirs | None = None,
    help_intro: str = "",
    ignore_unknown: bool = False,
) -> set[str]:
    """Set options from command line arguments.

    `--log-level=debug` sets LOG_LEVEL to "debug", a bare `--verbose` sets
    VERBOSE to "true", `-p=80` sets the option with shortflag p. Values are
    trimmed like environment and file values and are tracked by the
    argument as given.

    Args:
        node: The node to set the options on.
        args: The arguments, without the program name or subcommand.
        dirs: Directories reported by `--config-files`.
        help_intro: First paragraph of the `--help` output.
        ignore_unknown: Skip arguments that are not options of node.

    Returns:
        The arguments that set an option of node.

    Raises:
        ExitRequest: For `--config-spec`, `--config-locations`,
            `--config-files`, `--version` and `--help`.
        DoubleOptionError: If an option is given twice.
        UnknownOptionError: If an option is unknown and not ignored.
        InvalidArgumentError: If an argument is malformed or has an invalid value.
    """
    if dirs is None:
        dirs = ConfigDirs()
    used: set[str] = set()
    seen: set[str] = set()
    for arg in args:
        name, sep, value = arg.partition("=")
        if not name.startswith("-") or not name.strip("-"):
            raise InvalidArgumentError(node.version, arg, "expected -flag or --key[=value]")
        key = arg_to_key(name)
        value = value.strip()
        if sep and not value:
            raise InvalidArgumentError(node.version, arg, EmptyValueError(key))
        if not sep:
            value = "true"

        if key in RESERVED_KEYS:
            raise ExitRequest(reserved_output(node, key, dirs, help_intro))

        if full := node.shortflags.get(key.lower()):
            key = full

        if key in seen:
            raise DoubleOptionError(key)
        if key not in node.spec:
            if ignore_unknown:
                continue
            raise UnknownOptionError(node.version, arg)
        try:
            node.set(key, value, arg)
        except ConfigError as e:
            raise InvalidArgumentError(node.version, arg, e) from e
        seen.add(key)
        used.add(arg)
    return used


def load(
    node: ConfigNode,
    ctx: LoadContext,
    help_intro: str = "",
    with_args: bool = True,
) -> None:
    """Reset node and load all sources into it.

    If the first argument names a subcommand (ignoring case), that
    subcommand becomes `node.current_sub`: its defaults, own config files
    and environment variables are loaded after the parent's at each stage,
    and the remaining arguments are merged into both nodes.

    Args:
        node: The root node.
        ctx: Environment, arguments and directories to load from.
        help_intro: First paragraph of the `--help` output.
        with_args: If False, command line arguments are not merged.

    Raises:
        ConfigError: On the first invalid, unknown or missing option.
        ExitRequest: If a reserved argument was given.
    """
    node.reset()
    for child in node.subcommands.values():
        child.reset()

    args = list(ctx.args)
    sub = None
    if with_args and args:
        sub = node.find_sub(args[0])
    nodes = [node] if sub is None else [node, sub]
    logger.debug("loading %s", " + ".join(n.app for n in nodes))

    for n in nodes:
        load_defaults(n)
    for n in nodes:
        load_globals(n, ctx.dirs)
    for n in nodes:
        load_user(n, ctx.dirs)
    for n in nodes:
        load_locals(n, ctx.dirs)
    for n in nodes:
        merge_env(n, ctx.environ)

    if with_args:
        if sub is None:
            merge_args(node, args, ctx.dirs, help_intro)
        else:
            node.current_sub = sub
            rest = args[1:]
            used = merge_args(node, rest, ctx.dirs, help_intro, ignore_unknown=True)
            used |= merge_args(sub, rest, ctx.dirs, help_intro, ignore_unknown=True)
            for arg in rest:
                if arg not in used:
                    raise UnknownOptionError(node.version, arg)

    for n in nodes:
        n.validate_values()
    for n in nodes:
        n.check_missing()


def _require(path: Path | None, what: str) -> Path:
    if path is None:
        raise ConfigError(f"{what} config directory not set")
    return path


def save_to_globals(node: ConfigNode, dirs: ConfigDirs) -> Path:
    """Write node to the global file in the first global directory.

    Global files are readable by everyone: don't keep secrets in them.
    """
    path = _require(dirs.first_global_file(node), "global")
    codec.write_config_file(node, path, 0o644)
    return path


def save_to_user(node: ConfigNode, dirs: ConfigDirs) -> Path:
    path = _require(dirs.user_file(node), "user")
    codec.write_config_file(node, path, 0o640)
    return path


def save_to_local(node: ConfigNode, dirs: ConfigDirs) -> Path:
    path = _require(dirs.local_file(node), "local")
    codec.write_config_file(node, path, 0o640)
    return path


def set_global_options(node: ConfigNode, dirs: ConfigDirs, options: Mapping[str, str]) -> Path:
    """Replace the global file with the given options."""
    node.reset()
    node.set_map(options, str(_require(dirs.first_global_file(node), "global")))
    return save_to_globals(node, dirs)


def set_user_options(node: ConfigNode, dirs: ConfigDirs, options: Mapping[str, str]) -> Path:
    node.reset()
    node.set_map(options, str(_require(dirs.user_file(node), "user")))
    return save_to_user(node, dirs)


def set_local_options(node: ConfigNode, dirs: ConfigDirs, options: Mapping[str, str]) -> Path:
    node.reset()
    node.set_map(options, str(_require(dirs.local_file(node), "local")))
    return save_to_local(node, dirs)
