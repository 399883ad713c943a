"""Overrides for confstack's own directory discovery.

Uses Pydantic v2 BaseSettings so the overrides can be given as `CONFSTACK_*`
environment variables or as constructor kwargs.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfstackSettings(BaseSettings):
    """Directory overrides applied on top of the platform defaults.

    Settings are loaded with the following priority (highest to lowest):
    1. Constructor kwargs
    2. Environment variables with CONFSTACK_ prefix
    3. Field defaults (None, meaning "use the platform default")
    """

    model_config = SettingsConfigDict(
        env_prefix="CONFSTACK_",
        case_sensitive=False,
        extra="ignore",
    )

    user_dir: Path | None = Field(
        default=None,
        description="Directory holding the per-user config files",
    )

    global_dirs: str | None = Field(
        default=None,
        description="os.pathsep separated list of global config directories",
    )

    working_dir: Path | None = Field(
        default=None,
        description="Directory whose .config subdirectory holds local config files",
    )

    config_ext: str | None = Field(
        default=None,
        description="Extension of config files, including the dot",
    )
