"""Configuration exceptions for confstack."""


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class RegistrationError(ConfigError):
    """Raised when an option or node is declared incorrectly.

    These are programming mistakes discovered at process start, not
    runtime conditions caused by user data.
    """

    pass


class InvalidNameError(ConfigError):
    """Raised when a name does not follow the naming convention.

    A name consists of one or more words joined by `_`, each word being
    an uppercase letter followed by one or more uppercase letters or digits.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid name {name!r}")


class InvalidOptionNameError(RegistrationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid option name {name!r}")


class InvalidAppNameError(RegistrationError):
    """Raised when an app or subcommand name is invalid."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid app name {name!r}")


class InvalidVersionError(RegistrationError):
    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"invalid version {version!r}")


class InvalidTypeError(RegistrationError):
    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"invalid type {type_name!r}")


class InvalidDefaultError(RegistrationError):
    def __init__(
        self, name: str, default: object, reason: str = "does not match the option type"
    ) -> None:
        self.name = name
        self.default = default
        super().__init__(f"invalid default {default!r} for option {name}: {reason}")


class MissingHelpError(RegistrationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"missing help text for option {name}")


class InvalidShortflagError(RegistrationError):
    def __init__(self, shortflag: str) -> None:
        self.shortflag = shortflag
        super().__init__(f"invalid shortflag {shortflag!r}")


class DuplicateOptionError(RegistrationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"option {name} is registered twice")


class DuplicateShortflagError(RegistrationError):
    def __init__(self, shortflag: str) -> None:
        self.shortflag = shortflag
        super().__init__(f"shortflag {shortflag} is registered twice")


class DuplicateSubcommandError(RegistrationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"subcommand {name} is registered twice")


class SubSubcommandError(RegistrationError):
    """Raised when a subcommand is created below another subcommand."""

    def __init__(self, app: str, name: str) -> None:
        self.app = app
        self.name = name
        super().__init__(
            f"can't create subcommand {name!r} of {app!r}: "
            "subcommands can't have subcommands"
        )


class AmbiguousNameError(RegistrationError):
    """Raised when an option name starts with the name of a subcommand.

    In a config file `$SUB_KEY` would then refer to both the parent option
    and the subcommand option `KEY`.
    """

    def __init__(self, option: str, subcommand: str) -> None:
        self.option = option
        self.subcommand = subcommand
        super().__init__(
            f"option {option} clashes with subcommand {subcommand}"
        )


class InvalidValueError(ConfigError):
    """Raised when a raw value can't be converted to the option's type."""

    def __init__(self, key: str, raw: str) -> None:
        self.key = key
        self.raw = raw
        super().__init__(f"invalid value {raw!r} for option {key}")


class UnknownOptionError(ConfigError):
    def __init__(self, version: str, key: str) -> None:
        self.version = version
        self.key = key
        super().__init__(f"unknown option {key} (version {version})")


class DoubleOptionError(ConfigError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"option {key} is set twice")


class EmptyValueError(ConfigError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"empty value for option {key}")


class MissingOptionError(ConfigError):
    """Raised when a required option has no value after loading."""

    def __init__(self, version: str, key: str) -> None:
        self.version = version
        self.key = key
        super().__init__(f"missing required option {key} (version {version})")


class InvalidConfigFileError(ConfigError):
    """Raised when a config file can't be merged.

    Wraps the underlying error together with the file location.
    """

    def __init__(self, location: str, version: str, cause: Exception) -> None:
        self.location = location
        self.version = version
        self.cause = cause
        super().__init__(
            f"invalid config file {location} (version {version}): {cause}"
        )


class VersionSkewError(ConfigError):
    """Raised when a file written for another version holds a bad value."""

    def __init__(
        self,
        location: str,
        key: str,
        raw: str,
        file_version: str,
        running_version: str,
    ) -> None:
        self.location = location
        self.key = key
        self.raw = raw
        self.file_version = file_version
        self.running_version = running_version
        super().__init__(
            f"{location}: value {raw!r} of option {key}, defined for version "
            f"{file_version}, is not valid for running version {running_version}"
        )


class InvalidEnvError(ConfigError):
    def __init__(self, version: str, variable: str, cause: Exception) -> None:
        self.version = version
        self.variable = variable
        self.cause = cause
        super().__init__(
            f"invalid environment variable {variable} (version {version}): {cause}"
        )


class InvalidArgumentError(ConfigError):
    def __init__(self, version: str, argument: str, cause: Exception | str) -> None:
        self.version = version
        self.argument = argument
        self.cause = cause
        super().__init__(
            f"invalid argument {argument!r} (version {version}): {cause}"
        )


class UnwritableValueError(ConfigError):
    """Raised when a value has a line the config file format can't hold.

    A continuation line starting with `#` or `$` would read back as a
    comment or as a new option.
    """

    def __init__(self, key: str, line: str) -> None:
        self.key = key
        self.line = line
        super().__init__(
            f"can't write option {key}: value line {line!r} starts with '#' or '$'"
        )


class ConfigWriteError(ConfigError):
    """Raised when a config file can't be written.

    The previous file content has been restored when this is raised.
    """

    def __init__(self, path: str, cause: Exception | str) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"can't write config file {path}: {cause}")


class ExitRequest(Exception):
    """Raised when a reserved argument asks to print something and stop.

    This is not an error: the caller is expected to print `output` to
    stdout and exit with `code`.
    """

    def __init__(self, output: str, code: int = 0) -> None:
        self.output = output
        self.code = code
        super().__init__(output)
