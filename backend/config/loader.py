"""
Configuration loader
Reads the project TOML defaults and overlays an optional user configuration file
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from core.logger import get_logger

logger = get_logger(__name__)

PROJECT_CONFIG_FILE = Path(__file__).parent / "config.toml"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, section by section"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """TOML configuration loader

    Project defaults always come from ``config/config.toml``. When a user
    config file is given it is layered on top; a missing user file is
    created from the project defaults so it can be edited later.
    """

    def __init__(self, config_file: Optional[str] = None):
        self.config_file: Path = (
            Path(config_file).expanduser() if config_file else PROJECT_CONFIG_FILE
        )
        self._data: Dict[str, Any] = {}
        self._loaded = False

    def _read(self, path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)

    def _create_default(self) -> None:
        """Create user config file from project defaults"""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(PROJECT_CONFIG_FILE, "r", encoding="utf-8") as src:
            content = src.read()
        with open(self.config_file, "w", encoding="utf-8") as dst:
            dst.write(content)
        logger.info(f"Created default config file: {self.config_file}")

    def load(self) -> Dict[str, Any]:
        """Load (or reload) configuration"""
        if not PROJECT_CONFIG_FILE.exists():
            raise FileNotFoundError(f"Project config file not found: {PROJECT_CONFIG_FILE}")

        data = self._read(PROJECT_CONFIG_FILE)

        if self.config_file != PROJECT_CONFIG_FILE:
            if not self.config_file.exists():
                self._create_default()
            try:
                data = _deep_merge(data, self._read(self.config_file))
            except toml.TomlDecodeError as e:
                raise ValueError(f"Invalid config file {self.config_file}: {e}") from e

        self._data = data
        self._loaded = True
        logger.debug(f"Configuration loaded from {self.config_file}")
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        if not self._loaded:
            self.load()
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dotted key, e.g. ``runner.tick_ms``"""
        node: Any = self.data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def section(self, name: str) -> Dict[str, Any]:
        """Get a whole configuration section (empty dict if absent)"""
        value = self.data.get(name, {})
        return dict(value) if isinstance(value, dict) else {}


_config: Optional[ConfigLoader] = None


def get_config(config_file: Optional[str] = None) -> ConfigLoader:
    """Get global config loader

    Passing a different config file replaces the global instance.
    """
    global _config
    if _config is None or (
        config_file is not None and Path(config_file).expanduser() != _config.config_file
    ):
        _config = ConfigLoader(config_file)
    return _config


def reset_config() -> None:
    """Drop the global config loader (used by tests)"""
    global _config
    _config = None
