"""Option specifications and their structured (JSON) form."""

from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator

from .exceptions import (
    InvalidDefaultError,
    InvalidNameError,
    InvalidOptionNameError,
    InvalidValueError,
    MissingHelpError,
    RegistrationError,
)
from .grammar import OptionType, validate_name, validate_shortflag, validate_type
from .values import Value, check_value, coerce_string, format_datetime, to_float32


class OptionSpec(BaseModel):
    """Immutable description of one configurable value.

    Use `OptionSpec.create()` to build a validated spec; it raises
    `RegistrationError` subclasses instead of pydantic errors.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    name: str
    type: OptionType
    help: str
    required: bool = False
    default: Any = None
    shortflag: str = ""

    @field_validator("default")
    @classmethod
    def round_float32_default(cls, value: Any, info: ValidationInfo) -> Any:
        # defaults must compare equal to the same value read back from a file
        if info.data.get("type") is OptionType.FLOAT32 and type(value) is float:
            try:
                return to_float32(value)
            except OverflowError:
                return value
        return value

    @classmethod
    def create(
        cls,
        name: str,
        type_: OptionType | str,
        help: str,
        *,
        required: bool = False,
        default: Value | None = None,
        shortflag: str = "",
    ) -> "OptionSpec":
        """Build and validate a spec.

        Raises:
            RegistrationError: If any field is invalid.
        """
        try:
            validate_name(name)
        except InvalidNameError as e:
            raise InvalidOptionNameError(name) from e
        validate_type(type_)
        validate_shortflag(shortflag)
        try:
            spec = cls(
                name=name,
                type=OptionType(type_),
                help=help,
                required=required,
                default=default,
                shortflag=shortflag,
            )
        except ValidationError as e:
            raise RegistrationError(f"invalid option {name}: {e}") from e
        spec.validate_spec()
        return spec

    def validate_spec(self) -> None:
        """Check the invariants between the fields of the spec."""
        if self.default is not None:
            if self.required:
                raise InvalidDefaultError(
                    self.name, self.default, "required options can't have a default"
                )
            if not check_value(self.type, self.default):
                raise InvalidDefaultError(self.name, self.default)
        if not self.help.strip():
            raise MissingHelpError(self.name)

    def accepts(self, value: Any) -> bool:
        """Return True if value may be stored for this option.

        None is only accepted for optional options.
        """
        if value is None:
            return not self.required
        return check_value(self.type, value)


def spec_to_dict(spec: OptionSpec) -> dict[str, Any]:
    """Map a spec to JSON compatible data.

    Datetime defaults are written as RFC 3339 text, JSON defaults as the
    JSON text itself.
    """
    data: dict[str, Any] = {
        "name": spec.name,
        "type": spec.type.value,
        "required": spec.required,
        "help": spec.help,
    }
    if spec.default is not None:
        if spec.type is OptionType.DATETIME:
            data["default"] = format_datetime(spec.default)
        else:
            data["default"] = spec.default
    if spec.shortflag:
        data["shortflag"] = spec.shortflag
    return data


def spec_from_dict(name: str, data: dict[str, Any]) -> OptionSpec:
    """Inverse of `spec_to_dict`.

    Args:
        name: The option name the data was keyed by.
        data: Mapping as produced by `spec_to_dict`.

    Raises:
        RegistrationError: If the data does not describe a valid option.
    """
    type_ = data.get("type", "")
    validate_type(type_)
    default = data.get("default")
    if default is not None:
        if type_ == OptionType.DATETIME and isinstance(default, str):
            try:
                default = coerce_string(OptionType.DATETIME, default, name)
            except InvalidValueError as e:
                raise InvalidDefaultError(name, default) from e
        elif type_ == OptionType.FLOAT32 and type(default) is int:
            default = float(default)
    return OptionSpec.create(
        name,
        type_,
        data.get("help", ""),
        required=data.get("required", False),
        default=default,
        shortflag=data.get("shortflag", ""),
    )
