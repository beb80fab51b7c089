"""Configuration file loading and validation."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from .project import GITHUB_NAME

DEFAULT_REGISTRY_HOST = "https://rubygems.org"
DEFAULT_ENVIRONMENT_NAME = "rubygems.org"
DEFAULT_WORKFLOW_FILENAME = "push_gem.yml"

CONFIG_DIR = ".trusted-publisher"
CONFIG_FILENAME = "config.yaml"


class ConfigError(Exception):
    """Configuration validation error."""
    pass


class PublisherConfig:
    """Configuration for trusted publisher setup."""

    def __init__(self, data: Dict[str, Any]):
        """
        Initialize configuration from dictionary.

        Args:
            data: Configuration dictionary from YAML
        """
        self.data = data
        self._validate()

    def _validate(self) -> None:
        """Validate configuration schema."""
        for section in ("registry", "environment", "workflow"):
            if section not in self.data:
                continue
            if not isinstance(self.data[section], dict):
                raise ConfigError(f"{section} must be a dictionary")

        for section, key in (
            ("registry", "host"),
            ("environment", "name"),
            ("workflow", "filename"),
        ):
            value = self.data.get(section, {}).get(key)
            if value is not None and (not isinstance(value, str) or not value):
                raise ConfigError(f"{section}.{key} must be a non-empty string")

        host = self.data.get("registry", {}).get("host")
        if host and not host.startswith(("http://", "https://")):
            raise ConfigError("registry.host must be an http(s) URL")

        environment = self.data.get("environment", {}).get("name")
        if environment and not GITHUB_NAME.match(environment):
            raise ConfigError(
                "environment.name may only contain letters, digits, '.', '-' and '_'"
            )

        filename = self.data.get("workflow", {}).get("filename")
        if filename:
            if "/" in filename:
                raise ConfigError("workflow.filename must be a bare file name")
            if not filename.endswith((".yml", ".yaml")):
                raise ConfigError("workflow.filename must end in .yml or .yaml")

    @property
    def registry_host(self) -> str:
        """Registry base URL, without trailing slash."""
        host = self.data.get("registry", {}).get("host") or DEFAULT_REGISTRY_HOST
        return host.rstrip("/")

    @property
    def environment_name(self) -> str:
        """Name of the GitHub environment guarding the release job."""
        return self.data.get("environment", {}).get("name") or DEFAULT_ENVIRONMENT_NAME

    @property
    def workflow_filename(self) -> str:
        """File name of the release workflow under .github/workflows."""
        return self.data.get("workflow", {}).get("filename") or DEFAULT_WORKFLOW_FILENAME

    def apply_environment_overrides(self) -> "PublisherConfig":
        """
        Apply environment variable overrides.

        Environment variables:
        - RUBYGEMS_HOST: Override registry host
        - TRUSTED_PUBLISHER_ENVIRONMENT: Override GitHub environment name
        - TRUSTED_PUBLISHER_WORKFLOW: Override workflow file name

        Returns:
            New PublisherConfig with environment overrides applied
        """
        merged = {
            section: dict(values) if isinstance(values, dict) else values
            for section, values in self.data.items()
        }

        for env_var, section, key in (
            ("RUBYGEMS_HOST", "registry", "host"),
            ("TRUSTED_PUBLISHER_ENVIRONMENT", "environment", "name"),
            ("TRUSTED_PUBLISHER_WORKFLOW", "workflow", "filename"),
        ):
            value = os.getenv(env_var)
            if value:
                merged.setdefault(section, {})[key] = value

        return PublisherConfig(merged)


def load_config(config_path: str) -> PublisherConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        PublisherConfig instance

    Raises:
        ConfigError: If config file is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")

    return PublisherConfig(data)


def find_default_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Find default configuration file.

    Searches for .trusted-publisher/config.yaml in:
    1. The start directory (default: current directory)
    2. Parent directories up to git root
    3. Home directory

    Returns:
        Path to config file, or None if not found
    """
    current = (start or Path.cwd()).resolve()
    while True:
        config_path = current / CONFIG_DIR / CONFIG_FILENAME
        if config_path.exists():
            return config_path

        if (current / ".git").exists():
            break

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    home_config = Path.home() / CONFIG_DIR / CONFIG_FILENAME
    if home_config.exists():
        return home_config

    return None


def load_default_config(start: Optional[Path] = None) -> PublisherConfig:
    """
    Load configuration from default location.

    Returns:
        PublisherConfig from the default file, or built-in defaults if none exists
    """
    config_path = find_default_config(start)
    if config_path:
        return load_config(str(config_path))
    return PublisherConfig({})
