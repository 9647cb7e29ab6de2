import os
from pathlib import Path

import pytest
import yaml

from hybridexp.config import (
    DEFAULT_IMAGE_REGISTRY,
    SystemSettings,
    ToolConfig,
    get_hybridexp_home,
    load_config,
)
from hybridexp.errors import ConfigurationError


def test_get_hybridexp_home_default(monkeypatch):
    monkeypatch.delenv("HYBRIDEXP_HOME", raising=False)
    assert get_hybridexp_home() == Path("~/.config/hybridexp").expanduser()


def test_get_hybridexp_home_env(tmp_path, monkeypatch):
    monkeypatch.setenv("HYBRIDEXP_HOME", str(tmp_path))
    assert get_hybridexp_home() == tmp_path


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="hybridexp init"):
        load_config(tmp_path / "non_existent.yaml")


def test_load_config_success(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({
        "persistent_dir": str(tmp_path / "persistent"),
        "nopriv": True,
        "image_registry": "oras://registry.example.org/mpi/",
        "results_dir": str(tmp_path / "results"),
        "log_level": "debug",
        "tool": {"build_privilege": True, "sudo": True},
    }))

    settings = load_config(config_path)
    assert settings.persistent_dir == tmp_path / "persistent"
    assert settings.is_persistent is True
    assert settings.nopriv is True
    assert settings.image_registry == "oras://registry.example.org/mpi"
    assert settings.results_dir == tmp_path / "results"
    assert settings.log_level == "DEBUG"
    assert settings.tool == ToolConfig(build_privilege=True, sudo=True)


def test_load_config_empty_file(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("")
    settings = load_config(config_path)
    assert settings.image_registry == DEFAULT_IMAGE_REGISTRY
    assert settings.is_persistent is False


def test_load_config_invalid_yaml(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("tool: [unclosed")
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_config(config_path)


def test_load_config_not_a_mapping(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        load_config(config_path)


def test_invalid_log_format():
    with pytest.raises(ConfigurationError, match="log_format"):
        SystemSettings.from_dict({"log_format": "xml"})


def test_invalid_log_level():
    with pytest.raises(ConfigurationError, match="log_level"):
        SystemSettings.from_dict({"log_level": "verbose"})


def test_log_level_case_insensitive():
    assert SystemSettings.from_dict({"log_level": "debug"}).log_level == "DEBUG"


def test_invalid_tool_section():
    with pytest.raises(ConfigurationError, match="tool"):
        SystemSettings.from_dict({"tool": "sudo"})


def test_load_config_env_file(tmp_path, monkeypatch):
    monkeypatch.delenv("HYBRIDEXP_TEST_VAR", raising=False)
    env_path = tmp_path / ".env"
    env_path.write_text("HYBRIDEXP_TEST_VAR=loaded\n")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"env_file": str(env_path)}))

    load_config(config_path)
    assert os.environ["HYBRIDEXP_TEST_VAR"] == "loaded"
    monkeypatch.delenv("HYBRIDEXP_TEST_VAR")


def test_settings_are_immutable(settings):
    with pytest.raises(AttributeError):
        settings.nopriv = True


def test_with_overrides(settings):
    updated = settings.with_overrides(netpipe=True)
    assert updated.netpipe is True
    assert settings.netpipe is False


def test_log_file_relative_to_results(tmp_path):
    settings = SystemSettings(results_dir=tmp_path, log_file="logs/run-{date}.log")
    path = settings.get_log_file_path()
    assert path.parent == tmp_path / "logs"
    assert "{date}" not in path.name


def test_to_dict_round_trip(tmp_path):
    settings = SystemSettings(results_dir=tmp_path, imb=True, tool=ToolConfig(sudo=True))
    assert SystemSettings.from_dict(settings.to_dict()) == settings
