"""Tests for configuration loading."""

import os
import tempfile
from pathlib import Path

import pytest

from wikiblocks.config import load_config
from wikiblocks.core.errors import ConfigError
from wikiblocks.core.syntax import Syntax


def test_load_config_defaults():
    """Test loading config with defaults when no file exists."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config = load_config(base_path=Path(tmpdir))

    assert config.rendering.syntax == Syntax("xwiki", "2.0")
    assert config.macros.max_recursions == 1000
    assert config.macros.max_executions == 10000
    assert config.macros.definitions == []
    assert config.logging.level == "WARNING"


def test_load_config_from_file():
    """Test loading config from a file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "wikiblocks.toml"
        config_path.write_text("""
[rendering]
syntax = "XWiki/2.0"

[macros]
max_recursions = 50
max_executions = 200
definitions = ["macros.yaml"]

[logging]
level = "debug"
""")

        config = load_config(config_path=config_path)

        assert config.rendering.syntax == Syntax("xwiki", "2.0")
        assert config.macros.max_recursions == 50
        assert config.macros.max_executions == 200
        assert config.macros.definitions == [Path(tmpdir) / "macros.yaml"]
        assert config.logging.level == "DEBUG"
        assert config.logging.level_number == 10
        assert config.path == config_path


def test_load_config_search_base_path():
    """Test config search in the base directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "wikiblocks.toml").write_text("""
[macros]
max_recursions = 7
""")
        orig_cwd = os.getcwd()
        with tempfile.TemporaryDirectory() as other:
            try:
                os.chdir(other)
                config = load_config(base_path=Path(tmpdir))
            finally:
                os.chdir(orig_cwd)

        assert config.macros.max_recursions == 7


def test_load_config_missing_explicit_path():
    with pytest.raises(FileNotFoundError):
        load_config(config_path=Path("/nonexistent/wikiblocks.toml"))


@pytest.mark.parametrize(
    "body",
    [
        "[macros]\nmax_recursions = 0\n",
        "[macros]\nmax_executions = \"many\"\n",
        "[macros]\ndefinitions = \"macros.yaml\"\n",
        "[logging]\nlevel = \"LOUD\"\n",
        "[rendering]\nsyntax = \"xwiki\"\n",
        "not toml at all [",
    ],
)
def test_load_config_invalid_values(body):
    """Invalid values raise ConfigError."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "wikiblocks.toml"
        config_path.write_text(body)

        with pytest.raises(ConfigError):
            load_config(config_path=config_path)
