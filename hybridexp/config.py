"""
Configuration management for hybridexp.

Loads config.yaml from the hybridexp home directory into an immutable
SystemSettings value that is passed explicitly through every pipeline stage.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from hybridexp.errors import ConfigurationError

DEFAULT_IMAGE_REGISTRY = "library://hybridexp/default"
LOG_FORMATS = ("structured", "pretty")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_hybridexp_home() -> Path:
    """Return the hybridexp home directory ($HYBRIDEXP_HOME or ~/.config/hybridexp)."""
    home = os.environ.get("HYBRIDEXP_HOME")
    if home:
        return Path(home)
    return Path("~/.config/hybridexp").expanduser()


@dataclass(frozen=True)
class ToolConfig:
    """
    Container tool configuration.

    Attributes:
        build_privilege: The user may build images (root, sudo or fakeroot)
        sudo: Prefix privileged container commands with sudo
    """
    build_privilege: bool = False
    sudo: bool = False


@dataclass(frozen=True)
class SystemSettings:
    """System-wide settings shared by every experiment of a batch."""

    persistent_dir: Optional[Path] = None
    nopriv: bool = False
    netpipe: bool = False
    imb: bool = False
    image_registry: str = DEFAULT_IMAGE_REGISTRY
    results_dir: Path = field(default_factory=Path.cwd)
    singularity_bin: str = "singularity"
    log_level: str = "INFO"
    log_file: str = "logs/hybridexp-{date}.log"
    log_format: str = "structured"
    console_log: bool = True
    tool: ToolConfig = field(default_factory=ToolConfig)

    @property
    def is_persistent(self) -> bool:
        """Host installs are kept after the run when a persistent directory is set."""
        return self.persistent_dir is not None

    def with_overrides(self, **overrides: Any) -> "SystemSettings":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **overrides)

    def get_log_file_path(self) -> Path:
        """Get log file path with date interpolation."""
        log_output = self.log_file.replace("{date}", datetime.now().strftime("%Y-%m-%d"))
        path = Path(log_output).expanduser()
        if not path.is_absolute():
            path = self.results_dir / path
        return path

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemSettings":
        """
        Build settings from a parsed config.yaml mapping.

        Raises:
            ConfigurationError: If a value has the wrong type
        """
        tool_data = data.get("tool") or {}
        if not isinstance(tool_data, dict):
            raise ConfigurationError("'tool' must be a mapping")

        log_format = data.get("log_format", "structured")
        if log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Invalid log_format '{log_format}', expected one of {', '.join(LOG_FORMATS)}"
            )

        log_level = str(data.get("log_level", "INFO")).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log_level '{log_level}', expected one of {', '.join(LOG_LEVELS)}"
            )

        persistent_dir = data.get("persistent_dir")
        results_dir = data.get("results_dir")

        return cls(
            persistent_dir=Path(persistent_dir).expanduser() if persistent_dir else None,
            nopriv=bool(data.get("nopriv", False)),
            netpipe=bool(data.get("netpipe", False)),
            imb=bool(data.get("imb", False)),
            image_registry=str(data.get("image_registry", DEFAULT_IMAGE_REGISTRY)).rstrip("/"),
            results_dir=Path(results_dir).expanduser() if results_dir else Path.cwd(),
            singularity_bin=data.get("singularity_bin", "singularity"),
            log_level=log_level,
            log_file=data.get("log_file", "logs/hybridexp-{date}.log"),
            log_format=log_format,
            console_log=bool(data.get("console_log", True)),
            tool=ToolConfig(
                build_privilege=bool(tool_data.get("build_privilege", False)),
                sudo=bool(tool_data.get("sudo", False)),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the config.yaml mapping."""
        return {
            "persistent_dir": str(self.persistent_dir) if self.persistent_dir else None,
            "nopriv": self.nopriv,
            "netpipe": self.netpipe,
            "imb": self.imb,
            "image_registry": self.image_registry,
            "results_dir": str(self.results_dir),
            "singularity_bin": self.singularity_bin,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "log_format": self.log_format,
            "console_log": self.console_log,
            "tool": {
                "build_privilege": self.tool.build_privilege,
                "sudo": self.tool.sudo,
            },
        }


def load_config(config_path: Optional[Path] = None) -> SystemSettings:
    """
    Load hybridexp settings from YAML.

    Args:
        config_path: Path to config file. Defaults to $HYBRIDEXP_HOME/config.yaml

    Returns:
        SystemSettings instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigurationError: If the config file is invalid
    """
    if config_path is None:
        config_path = get_hybridexp_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"hybridexp config.yaml not found at {config_path}. Run 'hybridexp init' first."
        )

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    env_file = data.get("env_file")
    if env_file:
        env_path = Path(env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    return SystemSettings.from_dict(data)
