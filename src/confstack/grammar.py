"""Naming rules for apps, options, versions, types and shortflags.

All validators are pure and raise on failure, returning None otherwise.
"""

import re
from enum import Enum

from .exceptions import (
    InvalidNameError,
    InvalidShortflagError,
    InvalidTypeError,
    InvalidVersionError,
)

WORD_RE = re.compile(r"[A-Z][A-Z0-9]+")
VERSION_RE = re.compile(r"[a-z0-9\-.]+")
SHORTFLAG_RE = re.compile(r"[a-z]")


class OptionType(str, Enum):
    """The six value kinds an option can hold."""

    BOOL = "bool"
    INT32 = "int32"
    FLOAT32 = "float32"
    STRING = "string"
    DATETIME = "datetime"
    JSON = "json"

    def __str__(self) -> str:
        return self.value


TYPE_NAMES = tuple(t.value for t in OptionType)


def validate_name(name: str) -> None:
    """Check that name is one or more `_`-joined words of `[A-Z][A-Z0-9]+`.

    Raises:
        InvalidNameError: If the name is empty or any word is malformed.
    """
    if not name:
        raise InvalidNameError(name)
    for word in name.split("_"):
        if not WORD_RE.fullmatch(word):
            raise InvalidNameError(name)


def validate_version(version: str) -> None:
    if not VERSION_RE.fullmatch(version):
        raise InvalidVersionError(version)


def validate_type(type_name: str) -> None:
    if type_name not in TYPE_NAMES:
        raise InvalidTypeError(type_name)


def validate_shortflag(shortflag: str) -> None:
    """A shortflag is either empty or a single lowercase ascii letter."""
    if shortflag and not SHORTFLAG_RE.fullmatch(shortflag):
        raise InvalidShortflagError(shortflag)


def is_valid_name(name: str) -> bool:
    try:
        validate_name(name)
    except InvalidNameError:
        return False
    return True


def arg_to_key(arg: str) -> str:
    """Map a command line key to an option name.

    Examples:
        >>> arg_to_key("--log-level")
        'LOG_LEVEL'
        >>> arg_to_key("-p")
        'P'
    """
    return arg.lstrip("-").upper().replace("-", "_")


def key_to_arg(key: str) -> str:
    """Map an option name to its long command line form.

    Examples:
        >>> key_to_arg("LOG_LEVEL")
        '--log-level'
    """
    return "--" + key.replace("_", "-").lower()
