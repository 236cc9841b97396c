"""
Unit tests for configuration loader.

Tests multi-layer config merging, environment variable overrides,
caching, and XDG directory handling.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from tm2bd.core.config import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
)
from tm2bd.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_default_config,
    get_xdg_config_home,
    load_json_file,
)
from tm2bd.core.config.models import Tm2bdConfig

# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_override_wins(self):
        assert deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_dicts_merge(self):
        result = deep_merge({"x": {"a": 1}}, {"x": {"b": 2}})
        assert result == {"x": {"a": 1, "b": 2}}

    def test_base_not_mutated(self):
        base = {"a": 1}
        deep_merge(base, {"a": 2})
        assert base == {"a": 1}


class TestPaths:
    """Test config path helpers."""

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_xdg_config_home() == tmp_path
        assert get_user_config_path() == tmp_path / "tm2bd" / "config.json"

    def test_xdg_default(self, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        assert get_xdg_config_home() == Path.home() / ".config"

    def test_project_config_path(self, tmp_path):
        assert get_project_config_path(tmp_path) == tmp_path / ".tm2bd.json"


class TestLoadJsonFile:
    """Test load_json_file."""

    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "missing.json") is None

    def test_valid_file(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"tag": "dev"}))
        assert load_json_file(path) == {"tag": "dev"}

    def test_invalid_json_is_ignored(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("{bad")
        assert load_json_file(path) is None

    def test_non_object_is_ignored(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("[1, 2]")
        assert load_json_file(path) is None


class TestEnvOverrides:
    """Test apply_env_overrides."""

    def test_string_overrides(self, monkeypatch):
        monkeypatch.setenv("TM2BD_TAG", "feature-x")
        monkeypatch.setenv("TM2BD_BD_COMMAND", "/opt/bd")
        result = apply_env_overrides({"tag": "master"})
        assert result["tag"] == "feature-x"
        assert result["bd_command"] == "/opt/bd"

    def test_timeout(self, monkeypatch):
        monkeypatch.setenv("TM2BD_COMMAND_TIMEOUT", "12.5")
        assert apply_env_overrides({})["command_timeout"] == 12.5

    @pytest.mark.parametrize("value", ["abc", "0", "-3"])
    def test_bad_timeout_ignored(self, monkeypatch, value):
        monkeypatch.setenv("TM2BD_COMMAND_TIMEOUT", value)
        assert "command_timeout" not in apply_env_overrides({})

    @pytest.mark.parametrize(
        "value, expected", [("false", False), ("0", False), ("NO", False), ("true", True)]
    )
    def test_checkpoint(self, monkeypatch, value, expected):
        monkeypatch.setenv("TM2BD_CHECKPOINT", value)
        assert apply_env_overrides({})["checkpoint"] is expected


# ==============================================================================
# load_config Tests
# ==============================================================================


class TestLoadConfig:
    """Test layered configuration loading."""

    def test_defaults(self, tmp_path):
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config == Tm2bdConfig()
        assert get_default_config()["map_file"] == "tm2bd-map.json"

    def test_precedence(self, tmp_path, monkeypatch):
        user_path = get_user_config_path()
        user_path.parent.mkdir(parents=True)
        user_path.write_text(json.dumps({"tag": "user", "map_file": "user-map.json"}))
        (tmp_path / ".tm2bd.json").write_text(json.dumps({"tag": "project"}))
        monkeypatch.setenv("TM2BD_MAP_FILE", "env-map.json")

        config = load_config(project_dir=tmp_path, use_cache=False)

        assert config.tag == "project"
        assert config.map_file == "env-map.json"

    def test_cache(self, tmp_path):
        first = load_config(project_dir=tmp_path)
        (tmp_path / ".tm2bd.json").write_text(json.dumps({"tag": "changed"}))
        assert load_config(project_dir=tmp_path) is first

        clear_cache()
        assert load_config(project_dir=tmp_path).tag == "changed"

    def test_invalid_values_raise(self, tmp_path):
        (tmp_path / ".tm2bd.json").write_text(json.dumps({"command_timeout": -1}))
        with pytest.raises(ValidationError):
            load_config(project_dir=tmp_path, use_cache=False)
