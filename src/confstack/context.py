"""Explicit inputs of a load: environment, arguments and directories.

Everything the merge pipeline would otherwise read from the process
(`os.environ`, `sys.argv`, platform directories) is captured once in a
`LoadContext` and passed in, so loads can be run with synthetic inputs.
"""

import os
import sys
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .node import ConfigNode
from .settings import ConfstackSettings


class ConfigDirs(BaseModel):
    """Where global, user and local config files live."""

    model_config = ConfigDict(frozen=True)

    user_dir: Path | None = None
    global_dirs: tuple[Path, ...] = ()
    working_dir: Path | None = None
    ext: str = ".conf"

    @classmethod
    def discover(
        cls,
        environ: Mapping[str, str],
        platform: str = sys.platform,
        cwd: Path | None = None,
        settings: ConfstackSettings | None = None,
    ) -> "ConfigDirs":
        """Determine the config directories for a platform.

        Priority for each directory:
        1. The matching field of settings (CONFSTACK_* variables)
        2. The platform default derived from environ

        Platform defaults:
        - linux: $XDG_CONFIG_HOME or ~/.config; $XDG_CONFIG_DIRS or /etc/xdg
        - darwin: ~/.config; /etc/config
        - windows: %LOCALAPPDATA%; %ALLUSERSPROFILE% or %ProgramData%

        Args:
            environ: Environment snapshot to read platform variables from.
            platform: A `sys.platform` value.
            cwd: Working directory, defaults to `os.getcwd()`.
            settings: Explicit overrides.

        Returns:
            The discovered directories.
        """
        if platform.startswith("win"):
            user, globals_, ext = _windows_dirs(environ)
        elif platform == "darwin":
            user, globals_, ext = _darwin_dirs(environ)
        else:
            user, globals_, ext = _xdg_dirs(environ)

        working = cwd if cwd is not None else Path(os.getcwd())

        if settings is not None:
            if settings.user_dir is not None:
                user = settings.user_dir
            if settings.global_dirs:
                globals_ = _split_dirs(settings.global_dirs, os.pathsep)
            if settings.working_dir is not None:
                working = settings.working_dir
            if settings.config_ext:
                ext = settings.config_ext

        return cls(user_dir=user, global_dirs=globals_, working_dir=working, ext=ext)

    def _file_in(self, directory: Path, node: ConfigNode) -> Path:
        return directory / node.app / (node.app + self.ext)

    def global_files(self, node: ConfigNode) -> list[Path]:
        """Candidate global files, in lookup order."""
        return [self._file_in(d, node) for d in self.global_dirs]

    def first_global_file(self, node: ConfigNode) -> Path | None:
        if not self.global_dirs:
            return None
        return self._file_in(self.global_dirs[0], node)

    def user_file(self, node: ConfigNode) -> Path | None:
        if self.user_dir is None:
            return None
        return self._file_in(self.user_dir, node)

    def local_file(self, node: ConfigNode) -> Path | None:
        """The local file, inside the .config subdir of the working dir."""
        if self.working_dir is None:
            return None
        return self._file_in(self.working_dir / ".config", node)


def _split_dirs(value: str, sep: str) -> tuple[Path, ...]:
    return tuple(Path(part) for part in value.split(sep) if part)


def _home(environ: Mapping[str, str]) -> Path:
    if home := environ.get("HOME"):
        return Path(home)
    return Path.home()


def _xdg_dirs(environ: Mapping[str, str]) -> tuple[Path, tuple[Path, ...], str]:
    # http://standards.freedesktop.org/basedir-spec/basedir-spec-latest.html
    if xdg_config_home := environ.get("XDG_CONFIG_HOME"):
        user = Path(xdg_config_home)
    else:
        user = _home(environ) / ".config"
    globals_ = _split_dirs(environ.get("XDG_CONFIG_DIRS") or "/etc/xdg", ":")
    return user, globals_, ".conf"


def _darwin_dirs(environ: Mapping[str, str]) -> tuple[Path, tuple[Path, ...], str]:
    return _home(environ) / ".config", (Path("/etc/config"),), ".conf"


def _windows_dirs(environ: Mapping[str, str]) -> tuple[Path, tuple[Path, ...], str]:
    if local_app_data := environ.get("LOCALAPPDATA"):
        user = Path(local_app_data)
    else:
        user = Path(environ.get("HOMEPATH", "")) / "AppData" / "Local"
    program_data = environ.get("ALLUSERSPROFILE") or environ.get("ProgramData") or ""
    return user, _split_dirs(program_data, ";"), ".cfg"


class LoadContext(BaseModel):
    """Inputs of one load cycle.

    Attributes:
        environ: Environment snapshot.
        args: Command line arguments without the program name.
        dirs: Config file directories.
    """

    model_config = ConfigDict(frozen=True)

    environ: dict[str, str] = {}
    args: tuple[str, ...] = ()
    dirs: ConfigDirs = ConfigDirs()

    @classmethod
    def from_process(cls, settings: ConfstackSettings | None = None) -> "LoadContext":
        """Capture the current process' environment, arguments and directories."""
        environ = dict(os.environ)
        if settings is None:
            settings = ConfstackSettings()
        return cls(
            environ=environ,
            args=tuple(sys.argv[1:]),
            dirs=ConfigDirs.discover(environ, sys.platform, settings=settings),
        )

    def with_args(self, *args: str) -> "LoadContext":
        return self.model_copy(update={"args": tuple(args)})
