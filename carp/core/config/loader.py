"""
Configuration loader — reads carp.yml into a StackConfig.

The file is optional.  Without one, carp runs the stock stack with
the built-in defaults, so ``carp`` with no arguments always does the
same thing.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from carp.core.models.stack import StackConfig

logger = logging.getLogger(__name__)

# Default config filename
STACK_CONFIG_FILE = "carp.yml"


class ConfigError(Exception):
    """Raised when carp.yml is unreadable or invalid."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for carp.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to carp.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / STACK_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None) -> StackConfig:
    """Load and validate the stack configuration.

    Args:
        path: Explicit path to carp.yml.  If None, searches upward and
            falls back to defaults when nothing is found.

    Returns:
        Validated StackConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found, using built-in defaults", STACK_CONFIG_FILE)
            return StackConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading stack config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return StackConfig()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "carp" key or be flat
    stack_data = data["carp"] if isinstance(data.get("carp"), dict) else data

    try:
        config = StackConfig.model_validate(stack_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid stack configuration: {e}") from e

    logger.info(
        "Loaded stack config from %s with %d dependencies",
        path,
        len(config.dependencies),
    )
    return config


def stack_root(config_path: Path | None) -> Path:
    """Directory the stack runs in: the config file's parent, or cwd."""
    return config_path.parent.resolve() if config_path else Path.cwd()
