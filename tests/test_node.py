"""Tests for node.py ConfigNode registration, values and schema."""

import pytest

from confstack.exceptions import (
    AmbiguousNameError,
    DuplicateOptionError,
    DuplicateShortflagError,
    DuplicateSubcommandError,
    InvalidAppNameError,
    InvalidNameError,
    InvalidValueError,
    InvalidVersionError,
    MissingOptionError,
    RegistrationError,
    SubSubcommandError,
    UnknownOptionError,
)
from confstack.node import ConfigNode


class TestNodeIdentity:
    """Tests for app names, versions and subcommand identity."""

    def test_app_name_lowercased(self) -> None:
        """App names are stored in lower case."""
        node = ConfigNode("Demo", "1.0.0")
        assert node.name == "demo"
        assert node.app == "demo"
        assert node.env_prefix == "DEMO_CONFIG_"
        assert not node.is_sub

    @pytest.mark.parametrize("app", ["d", "de-mo", "_demo", ""])
    def test_invalid_app_name(self, app: str) -> None:
        """App names follow the name grammar."""
        with pytest.raises(InvalidAppNameError):
            ConfigNode(app, "1.0.0")

    def test_invalid_version(self) -> None:
        """Versions follow the version grammar."""
        with pytest.raises(InvalidVersionError):
            ConfigNode("demo", "1.0.0 beta")

    def test_sub_identity(self, demo: ConfigNode) -> None:
        """Subcommands are identified as parent_child."""
        serve = demo.sub("serve")
        assert serve.is_sub
        assert serve.parent is demo
        assert serve.app == "demo_serve"
        assert serve.app_name == "demo"
        assert serve.sub_name == "serve"
        assert serve.version == demo.version
        assert serve.env_prefix == "DEMO_SERVE_CONFIG_"

    def test_find_sub_ignores_case(self, demo_with_sub: ConfigNode) -> None:
        """Subcommands are found regardless of case."""
        assert demo_with_sub.find_sub("SERVE") is demo_with_sub.subcommands["serve"]
        assert demo_with_sub.find_sub("serve") is demo_with_sub.subcommands["serve"]
        assert demo_with_sub.find_sub("other") is None


class TestRegistration:
    """Tests for option and subcommand registration."""

    def test_name_uppercased(self) -> None:
        """Option names are upper-cased before validation."""
        node = ConfigNode("demo", "1.0.0")
        handle = node.string_option("log_level", "log level")
        assert handle.name == "LOG_LEVEL"
        assert node.is_option("LOG_LEVEL")

    def test_duplicate_option(self, demo: ConfigNode) -> None:
        """An option name can only be registered once."""
        with pytest.raises(DuplicateOptionError):
            demo.string_option("port", "again")

    def test_duplicate_shortflag(self, demo: ConfigNode) -> None:
        """Two options can't share a shortflag."""
        with pytest.raises(DuplicateShortflagError):
            demo.int32_option("processes", "number of processes", shortflag="p")
        assert not demo.is_option("PROCESSES")

    def test_invalid_option_is_registration_error(self, demo: ConfigNode) -> None:
        """Invalid option setups raise RegistrationError subclasses."""
        with pytest.raises(RegistrationError):
            demo.register_option("timeout", "duration", "timeout")

    def test_duplicate_sub(self, demo_with_sub: ConfigNode) -> None:
        """A subcommand can only be created once."""
        with pytest.raises(DuplicateSubcommandError):
            demo_with_sub.sub("Serve")

    def test_no_nested_subs(self, demo_with_sub: ConfigNode) -> None:
        """Subcommands can't have subcommands."""
        with pytest.raises(SubSubcommandError):
            demo_with_sub.subcommands["serve"].sub("deep")

    def test_option_clashing_with_existing_sub(self, demo_with_sub: ConfigNode) -> None:
        """Options can't start with the name of a subcommand."""
        with pytest.raises(AmbiguousNameError):
            demo_with_sub.string_option("serve_mode", "mode")

    def test_sub_clashing_with_existing_option(self, demo: ConfigNode) -> None:
        """Subcommands can't be named after the first word of an option."""
        demo.string_option("cache_dir", "cache directory")
        with pytest.raises(AmbiguousNameError):
            demo.sub("cache")


class TestValues:
    """Tests for setting and reading values."""

    def test_set_and_get(self, demo: ConfigNode) -> None:
        """Raw text is converted to the option type."""
        demo.set("PORT", "8080", "test")
        demo.set("VERBOSE", "true", "test")
        demo.set("RATIO", "0.5", "test")
        assert demo.get_int32("PORT") == 8080
        assert demo.get_bool("VERBOSE") is True
        assert demo.get_float32("RATIO") == 0.5
        assert demo.is_set("PORT")

    def test_invalid_value_not_stored(self, demo: ConfigNode) -> None:
        """A value failing conversion leaves the option untouched."""
        with pytest.raises(InvalidValueError):
            demo.set("VERBOSE", "notabool", "test")
        assert not demo.is_set("VERBOSE")
        assert demo.locations("VERBOSE") == []

    def test_unknown_option(self, demo: ConfigNode) -> None:
        """Only registered options can be set."""
        with pytest.raises(UnknownOptionError):
            demo.set("COLOR", "red", "test")

    def test_invalid_key(self, demo: ConfigNode) -> None:
        """Keys must be valid names."""
        with pytest.raises(InvalidNameError):
            demo.set("port", "80", "test")

    def test_locations_in_order(self, demo: ConfigNode) -> None:
        """Every setting is recorded, later ones last."""
        demo.set("PORT", "80", "first")
        demo.set("PORT", "81", "second")
        assert demo.get_int32("PORT") == 81
        assert demo.locations("PORT") == ["first", "second"]

    def test_locations_is_a_copy(self, demo: ConfigNode) -> None:
        """Changing the returned list doesn't change the node."""
        demo.set("PORT", "80", "first")
        demo.locations("PORT").append("other")
        assert demo.locations("PORT") == ["first"]

    def test_caller_location(self, demo: ConfigNode) -> None:
        """Without a location the calling file and line are recorded."""
        demo.set("PORT", "80")
        (location,) = demo.locations("PORT")
        assert "test_node.py:" in location

    def test_set_map(self, demo: ConfigNode) -> None:
        """Several options can be set at once."""
        demo.set_map({"PORT": "80", "NAME": "web"}, "map")
        assert demo.get_string("NAME") == "web"
        assert demo.locations("NAME") == ["map"]

    def test_store_checks_type(self, demo: ConfigNode) -> None:
        """Typed values must match the option type."""
        demo.store("PORT", 80, "typed")
        assert demo.get_int32("PORT") == 80
        with pytest.raises(InvalidValueError):
            demo.store("PORT", "80", "typed")

    def test_zero_values_when_unset(self, demo: ConfigNode) -> None:
        """Unset options read as the zero value of their type."""
        assert demo.get_int32("PORT") == 0
        assert demo.get_string("NAME") == ""
        assert demo.get_bool("VERBOSE") is False
        assert demo.get_value("PORT") is None

    def test_getter_type_mismatch(self, demo: ConfigNode) -> None:
        """Reading an option as another type is a programming error."""
        with pytest.raises(TypeError):
            demo.get_string("PORT")

    def test_json_getter_decodes(self) -> None:
        """JSON options are read as decoded data."""
        node = ConfigNode("demo", "1.0.0")
        handle = node.json_option("hosts", "known hosts")
        assert handle.get() is None
        node.set("HOSTS", '["a", "b"]', "test")
        assert handle.get() == ["a", "b"]
        assert node.get_json("HOSTS") == ["a", "b"]

    def test_handle(self, demo: ConfigNode) -> None:
        """Handles read their own option."""
        handle = demo.float32_option("timeout", "seconds to wait", default=1.5)
        assert not handle.is_set()
        demo.store("TIMEOUT", 2.5, "typed")
        assert handle.get() == 2.5
        assert handle.locations() == ["typed"]

    def test_each_value_registration_order(self, demo: ConfigNode) -> None:
        """Values are listed in registration order."""
        demo.set("VERBOSE", "1", "test")
        demo.set("PORT", "80", "test")
        assert [key for key, _ in demo.each_value()] == ["PORT", "VERBOSE"]

    def test_reset(self, demo_with_sub: ConfigNode) -> None:
        """Reset clears values, locations and the selected subcommand."""
        demo_with_sub.set("PORT", "80", "test")
        demo_with_sub.current_sub = demo_with_sub.subcommands["serve"]
        demo_with_sub.reset()
        assert not demo_with_sub.is_set("PORT")
        assert demo_with_sub.locations("PORT") == []
        assert demo_with_sub.current_sub is None
        assert demo_with_sub.is_option("PORT")


class TestChecks:
    """Tests for check_missing and validate_values."""

    def test_missing_required(self, demo: ConfigNode) -> None:
        """Required options without value are reported by name."""
        with pytest.raises(MissingOptionError) as exc_info:
            demo.check_missing()
        assert exc_info.value.key == "PORT"

    def test_required_set(self, demo: ConfigNode) -> None:
        """Nothing is missing once required options are set."""
        demo.set("PORT", "80", "test")
        demo.check_missing()

    def test_validate_values(self, demo: ConfigNode) -> None:
        """Values not matching their spec are reported."""
        demo.set("PORT", "80", "test")
        demo.validate_values()
        demo.values["PORT"] = "80"
        with pytest.raises(InvalidValueError):
            demo.validate_values()


class TestSchema:
    """Tests for spec_json, load_spec_json and help_text."""

    def test_spec_json_round_trip(self, demo: ConfigNode) -> None:
        """A node rebuilt from spec JSON has the same options."""
        demo.datetime_option("start", "start time")
        demo.json_option("extra", "extra settings", default='{"a": 1}')
        other = ConfigNode("demo", "1.0.0")
        other.load_spec_json(demo.spec_json())
        assert other.spec == demo.spec
        assert other.shortflags == demo.shortflags

    def test_invalid_spec_json(self) -> None:
        """Malformed spec JSON is a registration error."""
        node = ConfigNode("demo", "1.0.0")
        with pytest.raises(RegistrationError):
            node.load_spec_json("{not json")
        with pytest.raises(RegistrationError):
            node.load_spec_json("[]")
        with pytest.raises(RegistrationError):
            node.load_spec_json('{"PORT": {"type": "int32"}}')

    def test_help_text(self, demo_with_sub: ConfigNode) -> None:
        """Help lists flags, types, defaults and subcommand options."""
        text = demo_with_sub.help_text("demo - serves things")
        lines = text.splitlines()
        assert lines[0] == "demo - serves things"
        assert "-p, --port (int32, required)" in lines
        assert "\tport to listen on" in lines
        assert "--name (string, default demo server)" in lines
        assert "serve:" in lines
        assert "-w, --workers (int32)" in lines
