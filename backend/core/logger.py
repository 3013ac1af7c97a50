"""
Logging for the timer engine

Console output plus two rotating files under ``logs_dir``: the main log and
an errors-only log. Settings come from the ``[logging]`` section of the
project config, never the user file, so a user config cannot silence the
engine's own logging.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, Optional

import toml

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"

_SIZE_UNITS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}

# Marks handlers installed here so a re-setup leaves foreign ones (pytest caplog) alone
_HANDLER_TAG = "_blocktimer"


def _project_config_path() -> Path:
    config_file = Path(__file__).parent.parent / "config" / "config.toml"
    if not config_file.exists():
        raise FileNotFoundError(f"Project config file not found: {config_file}")
    return config_file


def _logging_section() -> Dict[str, Any]:
    with open(_project_config_path(), "r", encoding="utf-8") as f:
        return toml.load(f).get("logging", {})


def parse_size(size_str: str) -> int:
    """Parse "10MB" style sizes into bytes; a bare number is bytes"""
    size_str = size_str.strip().upper()
    for unit, factor in _SIZE_UNITS.items():
        if size_str.endswith(unit):
            return int(size_str[: -len(unit)]) * factor
    return int(size_str)


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


# Set the root level on import so nothing logs at DEBUG before setup runs
try:
    logging.getLogger().setLevel(_level(_logging_section().get("level", "INFO")))
except Exception:
    logging.getLogger().setLevel(logging.INFO)


class LoggerManager:
    """Installs the engine's handlers on the root logger"""

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        self._loggers: Dict[str, logging.Logger] = {}
        self._settings = settings
        self._setup_root_logger()

    def _setup_root_logger(self):
        settings = self._settings if self._settings is not None else _logging_section()
        logs_dir = Path(settings.get("logs_dir", "./logs"))
        max_bytes = parse_size(settings.get("max_file_size", "10MB"))
        backup_count = settings.get("backup_count", 5)

        logs_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(_level(settings.get("level", "INFO")))
        for handler in list(root_logger.handlers):
            if getattr(handler, _HANDLER_TAG, False):
                root_logger.removeHandler(handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        self._install(root_logger, console_handler)

        file_format = logging.Formatter(FILE_FORMAT)
        for file_name, level in (
            (settings.get("file_name", "blocktimer.log"), logging.DEBUG),
            ("error.log", logging.ERROR),
        ):
            handler = logging.handlers.RotatingFileHandler(
                logs_dir / file_name,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            handler.setLevel(level)
            handler.setFormatter(file_format)
            self._install(root_logger, handler)

        # Countdown ticks log at debug; keep the runner quieter than the rest if asked
        runner_level = settings.get("runner_level")
        if runner_level:
            logging.getLogger("runner").setLevel(_level(runner_level))

    @staticmethod
    def _install(root_logger: logging.Logger, handler: logging.Handler) -> None:
        setattr(handler, _HANDLER_TAG, True)
        root_logger.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]


# Created lazily so importing this module never touches the filesystem
_logger_manager: Optional[LoggerManager] = None


def get_logger(name: str) -> logging.Logger:
    """Module loggers: ``logger = get_logger(__name__)``"""
    global _logger_manager

    if _logger_manager is None:
        _logger_manager = LoggerManager()
    return _logger_manager.get_logger(name)


def setup_logging(settings: Optional[Dict[str, Any]] = None):
    """(Re)install handlers, from ``settings`` or the project config"""
    global _logger_manager

    if _logger_manager is None or settings is not None:
        _logger_manager = LoggerManager(settings)
    else:
        _logger_manager._setup_root_logger()
