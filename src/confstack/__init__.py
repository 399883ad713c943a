"""confstack - layered, type-checked program configuration.

Options are registered on a `ConfigNode`, then `load()` merges defaults,
global/user/local config files, environment variables and command line
arguments into it, remembering where every value came from.
"""

from confstack.codec import dumps, merge, write_config_file
from confstack.context import ConfigDirs, LoadContext
from confstack.exceptions import (
    ConfigError,
    DoubleOptionError,
    EmptyValueError,
    ExitRequest,
    InvalidArgumentError,
    InvalidConfigFileError,
    InvalidEnvError,
    InvalidNameError,
    InvalidValueError,
    MissingOptionError,
    RegistrationError,
    UnknownOptionError,
    UnwritableValueError,
    VersionSkewError,
)
from confstack.grammar import (
    OptionType,
    validate_name,
    validate_shortflag,
    validate_type,
    validate_version,
)
from confstack.node import ConfigNode, OptionHandle
from confstack.option import OptionSpec, spec_from_dict, spec_to_dict
from confstack.pipeline import (
    load,
    save_to_globals,
    save_to_local,
    save_to_user,
    set_global_options,
    set_local_options,
    set_user_options,
)
from confstack.runner import registration_guard, run
from confstack.settings import ConfstackSettings
from confstack.values import coerce_string, format_value

__all__ = [
    # Registry
    "ConfigNode",
    "OptionHandle",
    "OptionSpec",
    "OptionType",
    "spec_from_dict",
    "spec_to_dict",
    # Grammar and values
    "validate_name",
    "validate_shortflag",
    "validate_type",
    "validate_version",
    "coerce_string",
    "format_value",
    # Loading and saving
    "ConfigDirs",
    "ConfstackSettings",
    "LoadContext",
    "load",
    "save_to_globals",
    "save_to_local",
    "save_to_user",
    "set_global_options",
    "set_local_options",
    "set_user_options",
    # File format
    "dumps",
    "merge",
    "write_config_file",
    # Process helpers
    "registration_guard",
    "run",
    # Exceptions
    "ConfigError",
    "DoubleOptionError",
    "EmptyValueError",
    "ExitRequest",
    "InvalidArgumentError",
    "InvalidConfigFileError",
    "InvalidEnvError",
    "InvalidNameError",
    "InvalidValueError",
    "MissingOptionError",
    "RegistrationError",
    "UnknownOptionError",
    "UnwritableValueError",
    "VersionSkewError",
]
