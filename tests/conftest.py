"""Pytest fixtures for confstack tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from confstack import ConfigDirs, ConfigNode, LoadContext


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove confstack-related environment variables."""
    env_vars = [
        "CONFSTACK_USER_DIR",
        "CONFSTACK_GLOBAL_DIRS",
        "CONFSTACK_WORKING_DIR",
        "CONFSTACK_CONFIG_EXT",
        "XDG_CONFIG_HOME",
        "XDG_CONFIG_DIRS",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def dirs(tmp_path: Path) -> ConfigDirs:
    """Provide config directories below tmp_path.

    Only the directories exist, no config files.
    """
    global_dir = tmp_path / "etc"
    user_dir = tmp_path / "user"
    working_dir = tmp_path / "work"
    for d in (global_dir, user_dir, working_dir):
        d.mkdir()
    return ConfigDirs(
        user_dir=user_dir,
        global_dirs=(global_dir,),
        working_dir=working_dir,
    )


@pytest.fixture
def load_ctx(dirs: ConfigDirs) -> LoadContext:
    """Provide a load context with an empty environment and no arguments."""
    return LoadContext(environ={}, args=(), dirs=dirs)


@pytest.fixture
def demo() -> ConfigNode:
    """Provide the demo app: a required port and a few optional options."""
    node = ConfigNode("demo", "1.0.0")
    node.int32_option("port", "port to listen on", required=True, shortflag="p")
    node.string_option("name", "name of the server", default="demo server")
    node.bool_option("verbose", "log more", shortflag="v")
    node.float32_option("ratio", "share of requests to sample")
    return node


@pytest.fixture
def demo_with_sub(demo: ConfigNode) -> ConfigNode:
    """Provide the demo app with a `serve` subcommand."""
    serve = demo.sub("serve")
    serve.string_option("root", "directory to serve", default="/srv")
    serve.int32_option("workers", "number of workers", shortflag="w")
    return demo


@pytest.fixture
def write_config() -> Callable[[Path, str], Path]:
    """Provide a helper writing a config file and its parent directories."""

    def write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return write
