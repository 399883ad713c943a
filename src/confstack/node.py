"""The option registry of one app or one subcommand.

A `ConfigNode` holds the registered option specs, the currently resolved
values and, for every value, the list of locations that set it in the order
they were applied. Specs, shortflags and subcommands only grow after
registration; values, locations and the selected subcommand are rebuilt on
every load.
"""

import inspect
import json
from collections.abc import Iterator, Mapping
from typing import Any

from .exceptions import (
    AmbiguousNameError,
    DuplicateOptionError,
    DuplicateShortflagError,
    DuplicateSubcommandError,
    InvalidAppNameError,
    InvalidNameError,
    InvalidValueError,
    MissingOptionError,
    RegistrationError,
    SubSubcommandError,
    UnknownOptionError,
)
from .grammar import OptionType, key_to_arg, validate_name, validate_version
from .option import OptionSpec, spec_from_dict, spec_to_dict
from .values import Value, coerce_string, format_value, zero_value


def _caller_location(frame: Any) -> str:
    caller = frame.f_back if frame is not None else None
    if caller is None:
        return "<unknown>"
    return f"{caller.f_code.co_filename}:{caller.f_lineno}"


class OptionHandle:
    """Typed access to one registered option."""

    def __init__(self, node: "ConfigNode", spec: OptionSpec) -> None:
        self.node = node
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    def get(self) -> Any:
        """Return the current value, or the type's zero value when unset.

        JSON options return the decoded JSON data.
        """
        if self.spec.type is OptionType.JSON:
            return self.node.get_json(self.spec.name)
        return self.node._get(self.spec.name, self.spec.type)

    def is_set(self) -> bool:
        return self.node.is_set(self.spec.name)

    def locations(self) -> list[str]:
        return self.node.locations(self.spec.name)

    def __repr__(self) -> str:
        return f"OptionHandle({self.node.app}:{self.spec.name})"


class ConfigNode:
    """Configuration namespace of an app or of one of its subcommands.

    Args:
        app: App name. Validated in upper case form and stored in lower case,
            since it also names config directories and files.
        version: Version of the running app, e.g. `1.0.0`.

    Raises:
        InvalidAppNameError: If the app name does not follow the name grammar.
        InvalidVersionError: If the version is invalid.
    """

    def __init__(self, app: str, version: str) -> None:
        try:
            validate_name(app.upper())
        except InvalidNameError as e:
            raise InvalidAppNameError(app) from e
        validate_version(version)

        self.name = app.lower()
        self.version = version
        self.parent: ConfigNode | None = None

        self.spec: dict[str, OptionSpec] = {}
        # maps shortflag to option name
        self.shortflags: dict[str, str] = {}
        self.subcommands: dict[str, ConfigNode] = {}

        self.values: dict[str, Value] = {}
        self.provenance: dict[str, list[str]] = {}
        self.current_sub: ConfigNode | None = None

    def __repr__(self) -> str:
        return f"ConfigNode({self.app!r}, {self.version!r})"

    # identity

    @property
    def is_sub(self) -> bool:
        return self.parent is not None

    @property
    def app(self) -> str:
        """Full identity, `parent_child` for subcommands."""
        if self.parent is not None:
            return f"{self.parent.app}_{self.name}"
        return self.name

    @property
    def app_name(self) -> str:
        """Name of the root app."""
        if self.parent is not None:
            return self.parent.app_name
        return self.name

    @property
    def sub_name(self) -> str:
        return self.name if self.parent is not None else ""

    @property
    def env_prefix(self) -> str:
        return self.app.upper() + "_CONFIG_"

    # registration

    def add_option(self, spec: OptionSpec) -> None:
        """Insert an already validated spec.

        Raises:
            DuplicateOptionError: If an option with that name exists.
            DuplicateShortflagError: If the shortflag is taken.
            AmbiguousNameError: If the name starts with a subcommand name.
        """
        if spec.name in self.spec:
            raise DuplicateOptionError(spec.name)
        if spec.shortflag and spec.shortflag in self.shortflags:
            raise DuplicateShortflagError(spec.shortflag)
        if "_" in spec.name:
            prefix = spec.name.split("_", 1)[0].lower()
            if prefix in self.subcommands:
                raise AmbiguousNameError(spec.name, prefix)
        self.spec[spec.name] = spec
        if spec.shortflag:
            self.shortflags[spec.shortflag] = spec.name

    def register_option(
        self,
        name: str,
        type_: OptionType | str,
        help: str,
        *,
        required: bool = False,
        default: Value | None = None,
        shortflag: str = "",
    ) -> OptionSpec:
        """Register a new option on this node.

        The name is upper-cased before validation.

        Raises:
            RegistrationError: If the option is invalid or clashes with an
                existing option or shortflag.
        """
        spec = OptionSpec.create(
            name.upper(),
            type_,
            help,
            required=required,
            default=default,
            shortflag=shortflag,
        )
        self.add_option(spec)
        return spec

    def _handle(self, name: str, type_: OptionType, help: str, **kwargs: Any) -> OptionHandle:
        return OptionHandle(self, self.register_option(name, type_, help, **kwargs))

    def bool_option(self, name: str, help: str, **kwargs: Any) -> OptionHandle:
        return self._handle(name, OptionType.BOOL, help, **kwargs)

    def int32_option(self, name: str, help: str, **kwargs: Any) -> OptionHandle:
        return self._handle(name, OptionType.INT32, help, **kwargs)

    def float32_option(self, name: str, help: str, **kwargs: Any) -> OptionHandle:
        return self._handle(name, OptionType.FLOAT32, help, **kwargs)

    def string_option(self, name: str, help: str, **kwargs: Any) -> OptionHandle:
        return self._handle(name, OptionType.STRING, help, **kwargs)

    def datetime_option(self, name: str, help: str, **kwargs: Any) -> OptionHandle:
        return self._handle(name, OptionType.DATETIME, help, **kwargs)

    def json_option(self, name: str, help: str, **kwargs: Any) -> OptionHandle:
        return self._handle(name, OptionType.JSON, help, **kwargs)

    def sub(self, name: str) -> "ConfigNode":
        """Create the node of a subcommand.

        The subcommand shares the version of this node and is identified
        as `<app>_<name>`.

        Raises:
            SubSubcommandError: If this node is itself a subcommand.
            InvalidAppNameError: If the name is invalid.
            DuplicateSubcommandError: If the subcommand already exists.
            AmbiguousNameError: If an option of this node starts with `NAME_`.
        """
        if self.is_sub:
            raise SubSubcommandError(self.app, name)
        child = ConfigNode(name, self.version)
        if child.name in self.subcommands:
            raise DuplicateSubcommandError(child.name)
        prefix = child.name.upper() + "_"
        for option in self.spec:
            if option.startswith(prefix):
                raise AmbiguousNameError(option, child.name)
        child.parent = self
        self.subcommands[child.name] = child
        return child

    def find_sub(self, name: str) -> "ConfigNode | None":
        """Look up a subcommand, ignoring case."""
        return self.subcommands.get(name.lower())

    # values

    def reset(self) -> None:
        """Clear values, locations and the selected subcommand."""
        self.values = {}
        self.provenance = {}
        self.current_sub = None

    def set(self, key: str, raw: str, location: str = "") -> None:
        """Set an option from its raw text.

        Args:
            key: Option name.
            raw: Raw value, converted according to the option's type.
            location: Where the setting came from. When empty, the file and
                line of the caller are recorded.

        Raises:
            InvalidNameError: If key is not a valid name.
            UnknownOptionError: If no such option is registered.
            InvalidValueError: If raw can't be converted. Nothing is stored.
        """
        if not location:
            location = _caller_location(inspect.currentframe())
        validate_name(key)
        spec = self.spec.get(key)
        if spec is None:
            raise UnknownOptionError(self.version, key)
        value = coerce_string(spec.type, raw, key)
        self.values[key] = value
        self.provenance.setdefault(key, []).append(location)

    def set_map(self, options: Mapping[str, str], location: str = "") -> None:
        """Set several options, stopping at the first error."""
        if not location:
            location = _caller_location(inspect.currentframe())
        for key, raw in options.items():
            self.set(key, raw, location)

    def store(self, key: str, value: Value, location: str) -> None:
        """Set an option from an already typed value.

        Raises:
            UnknownOptionError: If no such option is registered.
            InvalidValueError: If the value does not match the option type.
        """
        spec = self.spec.get(key)
        if spec is None:
            raise UnknownOptionError(self.version, key)
        if value is None or not spec.accepts(value):
            raise InvalidValueError(key, repr(value))
        self.values[key] = value
        self.provenance.setdefault(key, []).append(location)

    def is_option(self, key: str) -> bool:
        return key in self.spec

    def is_set(self, key: str) -> bool:
        validate_name(key)
        return key in self.values

    def locations(self, key: str) -> list[str]:
        """Return where the option was set, in the order of setting.

        - defaults are tracked by their printed value
        - config files by their path
        - environment variables by their name
        - command line arguments as given
        """
        validate_name(key)
        return list(self.provenance.get(key, []))

    def each_value(self) -> Iterator[tuple[str, Value]]:
        """Yield the set values in registration order."""
        for key in self.spec:
            if key in self.values:
                yield key, self.values[key]

    def _get(self, key: str, type_: OptionType) -> Any:
        validate_name(key)
        spec = self.spec.get(key)
        if spec is not None and spec.type is not type_:
            raise TypeError(f"option {key} is of type {spec.type}, not {type_}")
        value = self.values.get(key)
        if value is None:
            return zero_value(type_)
        return value

    def get_value(self, key: str) -> Value | None:
        validate_name(key)
        return self.values.get(key)

    def get_bool(self, key: str) -> bool:
        return self._get(key, OptionType.BOOL)

    def get_int32(self, key: str) -> int:
        return self._get(key, OptionType.INT32)

    def get_float32(self, key: str) -> float:
        return self._get(key, OptionType.FLOAT32)

    def get_string(self, key: str) -> str:
        return self._get(key, OptionType.STRING)

    def get_datetime(self, key: str) -> Any:
        return self._get(key, OptionType.DATETIME)

    def get_json(self, key: str) -> Any:
        """Return the decoded JSON value, None if unset."""
        text = self._get(key, OptionType.JSON)
        if text is None:
            return None
        return json.loads(text)

    def format(self, key: str) -> str:
        """Return the current value of key as config file text."""
        return format_value(self.spec[key].type, self.values[key])

    # checks

    def check_missing(self) -> None:
        """Raise MissingOptionError for the first required option without value."""
        for key, spec in self.spec.items():
            if spec.required and spec.default is None and key not in self.values:
                raise MissingOptionError(self.version, key)

    def validate_values(self) -> None:
        """Check every non-None value against its spec, stopping at the first error."""
        for key, value in self.values.items():
            if value is None:
                continue
            spec = self.spec.get(key)
            if spec is None:
                raise UnknownOptionError(self.version, key)
            if not spec.accepts(value):
                raise InvalidValueError(key, repr(value))

    # schema exchange

    def spec_dict(self) -> dict[str, dict[str, Any]]:
        return {name: spec_to_dict(spec) for name, spec in self.spec.items()}

    def spec_json(self) -> str:
        return json.dumps(self.spec_dict())

    def load_spec_json(self, text: str) -> None:
        """Register the options described by `spec_json()` output.

        Raises:
            RegistrationError: If the text is not valid JSON or describes an
                invalid option.
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise RegistrationError(f"invalid option spec JSON: {e}") from e
        if not isinstance(data, dict):
            raise RegistrationError("option spec JSON must be an object")
        for name, item in data.items():
            if not isinstance(item, dict):
                raise RegistrationError(f"invalid option spec for {name}")
            self.add_option(spec_from_dict(name, item))

    def help_text(self, intro: str = "") -> str:
        """Build the help message from the options' help texts."""
        lines = [intro] if intro else []
        lines.extend(self._option_help())
        for sub in self.subcommands.values():
            lines.append("")
            lines.append(f"{sub.name}:")
            lines.extend(sub._option_help())
        return "\n".join(lines)

    def _option_help(self) -> list[str]:
        lines = []
        for key, spec in self.spec.items():
            flag = key_to_arg(key)
            if spec.shortflag:
                flag = f"-{spec.shortflag}, {flag}"
            details = spec.type.value
            if spec.required:
                details += ", required"
            elif spec.default is not None:
                details += f", default {format_value(spec.type, spec.default)}"
            lines.append(f"{flag} ({details})")
            for line in spec.help.splitlines():
                lines.append("\t" + line.strip())
        return lines
