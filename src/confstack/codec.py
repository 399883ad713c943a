"""Reading and writing the confstack config file format.

A config file looks like this:

    demo 1.0.0
    # a comment
    $PORT=8080
    $GREETING=
    a value spanning
    several lines
    $SERVE_ROOT=/srv/www

The first line names the app and the version the file was written for.
Lines starting with `$` begin an option; its value is everything after the
first `=` plus every following line up to the next `$` line. Comment lines
inside a value are skipped. Keys
whose first word names a subcommand (`SERVE_` above) belong to that
subcommand.
"""

import logging
import os
import stat
import tempfile
from collections.abc import Iterable
from pathlib import Path

from .exceptions import (
    ConfigError,
    ConfigWriteError,
    DoubleOptionError,
    EmptyValueError,
    InvalidConfigFileError,
    InvalidValueError,
    UnknownOptionError,
    UnwritableValueError,
    VersionSkewError,
)
from .grammar import OptionType
from .node import ConfigNode
from .values import format_value

logger = logging.getLogger(__name__)

# strings longer than this start on the line after the key
INLINE_LIMIT = 15

PREAMBLE = """\
# Keep the first line: it names the app and the version this file was written for.
#
# This is a configuration file for {app} (version {version} and compatible versions).
# Run `{app} --help` to list all available options.
#
# ------------ FILE FORMAT ------------
#
# - lines starting with '#' are comments
# - lines starting with '$' set an option: '$NAME=value'
# - a value may start on the line after '$NAME=' and may span several lines;
#   every line not starting with '#' or '$' belongs to the value above it
# - no line of a multi-line value may start with '#' or '$'
# - surrounding whitespace of a value is ignored, empty values are not allowed
# - options of a subcommand are prefixed with the subcommand name: '$SUB_NAME=value'
#
# ------------ CONFIGURATION ------------"""


def parse_header(line: str) -> tuple[str, str]:
    """Split the first line of a config file into app and version.

    Raises:
        ValueError: If the line does not consist of exactly two words.
    """
    words = line.rstrip("\r\n").split(" ")
    if len(words) != 2 or not all(words):
        raise ValueError(f"invalid config header {line.rstrip()!r}")
    return words[0], words[1]


def merge(node: ConfigNode, lines: Iterable[str], location: str) -> None:
    """Merge config file lines into node.

    Args:
        node: The node the file belongs to. Keys prefixed with a subcommand
            name are set on that subcommand.
        lines: The file content, line by line (e.g. an open text file).
        location: Recorded as the location of every value, usually the path.

    Raises:
        InvalidConfigFileError: If the file is malformed or holds an invalid
            or unknown option.
        VersionSkewError: If the file was written for another version and
            one of its values is no longer valid.
    """

    def wrap(cause: Exception | str) -> InvalidConfigFileError:
        if isinstance(cause, str):
            cause = ValueError(cause)
        return InvalidConfigFileError(location, node.version, cause)

    it = iter(lines)
    header = next(it, None)
    if header is None:
        raise wrap("can't read config header (app and version)")
    try:
        app, file_version = parse_header(header)
    except ValueError as e:
        raise wrap(e) from e
    if app != node.app:
        raise wrap(f"config is for app {app!r}, running app is {node.app!r}")

    skewed = file_version != node.version
    if skewed:
        logger.warning(
            "%s was written for version %s, running version %s",
            location,
            file_version,
            node.version,
        )

    seen: set[str] = set()
    key: str | None = None
    target = node
    target_key = ""
    chunks: list[str] = []

    def flush() -> None:
        raw = "".join(chunks).strip()
        if not raw:
            raise wrap(EmptyValueError(key))
        try:
            target.set(target_key, raw, location)
        except (InvalidValueError, UnknownOptionError) as e:
            if skewed:
                raise VersionSkewError(
                    location, key, raw, file_version, node.version
                ) from e
            raise wrap(e) from e
        except ConfigError as e:
            raise wrap(e) from e

    for line in it:
        line = line.rstrip("\r\n")
        if line.startswith("#"):
            continue
        if line.startswith("$"):
            if key is not None:
                flush()
            idx = line.find("=")
            if idx == -1:
                raise wrap(f"missing '=' in {line!r}")
            key = line[1:idx].strip()
            if key in seen:
                raise wrap(DoubleOptionError(key))
            seen.add(key)
            target, target_key = _resolve(node, key)
            chunks = [line[idx + 1 :]]
            continue
        if key is None:
            if line.strip():
                raise wrap(f"value {line!r} without option")
            continue
        chunks.append("\n" + line)

    if key is not None:
        flush()


def _resolve(node: ConfigNode, key: str) -> tuple[ConfigNode, str]:
    prefix, sep, rest = key.partition("_")
    if sep and rest:
        sub = node.find_sub(prefix)
        if sub is not None:
            return sub, rest
    return node, key


def _value_lines(node: ConfigNode, prefix: str) -> list[str]:
    lines: list[str] = []
    for key, value in node.each_value():
        spec = node.spec[key]
        text = format_value(spec.type, value)
        if not text.strip():
            # an empty value reads as "not set"
            continue
        write_key = prefix + key
        first, *rest = text.split("\n")
        for line in rest:
            if line.startswith(("#", "$")):
                raise UnwritableValueError(write_key, line)
        lines.append("")
        lines.append(f"# --- {write_key} ({spec.type}) ---")
        lines.extend("#     " + h.strip() for h in spec.help.splitlines())
        # a first line starting with '#' or '$' only reads back inline
        on_next_line = not first.startswith(("#", "$")) and (
            spec.type is OptionType.JSON
            or (
                spec.type is OptionType.STRING
                and (len(text) > INLINE_LIMIT or bool(rest))
            )
        )
        if on_next_line:
            lines.append(f"${write_key}=")
            lines.append(text)
        else:
            lines.append(f"${write_key}={text}")
    return lines


def _body_lines(node: ConfigNode) -> list[str]:
    lines = _value_lines(node, "")
    for sub in node.subcommands.values():
        sub_lines = _value_lines(sub, sub.name.upper() + "_")
        if sub_lines:
            lines.append("")
            lines.append(f"# ------------ SUBCOMMAND {sub.name} ------------")
            lines.extend(sub_lines)
    return lines


def dumps(node: ConfigNode) -> str:
    """Serialize the set values of node and its subcommands.

    Raises:
        UnwritableValueError: If a continuation line of a value starts with
            `#` or `$` and would not read back.
    """
    header = [
        f"{node.app} {node.version}",
        PREAMBLE.format(app=node.app, version=node.version),
    ]
    return "\n".join(header + _body_lines(node)) + "\n"


def write_config_file(node: ConfigNode, path: Path | str, mode: int = 0o640) -> None:
    """Write the values of node to path.

    The content goes to a temporary file in the same directory which is
    synced and then moved over path. The previous content is kept in memory
    and restored if anything fails. An existing file keeps its permission
    bits; mode only applies to new files. If there are no values to write,
    an existing file is deleted.

    Raises:
        ConfigError: If a value is invalid or can't be written in the
            file format.
        ConfigWriteError: If the file can't be written.
    """
    node.validate_values()
    for sub in node.subcommands.values():
        sub.validate_values()

    path = Path(path)
    if path.parent.exists() and not path.parent.is_dir():
        raise ConfigWriteError(str(path), f"{path.parent} is no directory")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        backup = path.read_bytes() if path.is_file() else None
    except OSError as e:
        raise ConfigWriteError(str(path), e) from e

    body = _body_lines(node)
    if not body:
        if backup is not None:
            logger.debug("no values for %s, removing %s", node.app, path)
            try:
                path.unlink()
            except OSError as e:
                raise ConfigWriteError(str(path), e) from e
        return

    content = dumps(node)

    try:
        if backup is not None:
            mode = stat.S_IMODE(path.stat().st_mode)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
    except OSError as e:
        raise ConfigWriteError(str(path), e) from e
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        _restore(path, backup)
        raise ConfigWriteError(str(path), e) from e
    logger.debug("wrote %s", path)


def _restore(path: Path, backup: bytes | None) -> None:
    if backup is None:
        return
    try:
        if path.is_file() and path.read_bytes() == backup:
            return
        path.write_bytes(backup)
    except OSError:
        logger.exception("could not restore %s from backup", path)
