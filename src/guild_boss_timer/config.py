"""Engine configuration stored as a JSON file in the user data directory."""
import json
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

APP_NAME = "guild boss timer"
CONFIG_FILE = "engine_settings.json"


def user_data_dir() -> Path:
    """
    Get the user data directory for the store, logs and engine settings.
    Uses OS-specific application data directories.

    Returns:
        Path to user data directory
    """
    if sys.platform == 'win32':
        # Windows: %APPDATA%/guild boss timer
        appdata = os.getenv('APPDATA')
        if appdata:
            return Path(appdata) / APP_NAME
        return Path.home() / "AppData" / "Roaming" / APP_NAME
    elif sys.platform == 'darwin':
        return Path.home() / "Library" / "Application Support" / APP_NAME
    else:
        xdg_config = os.getenv('XDG_CONFIG_HOME')
        if xdg_config:
            return Path(xdg_config) / APP_NAME
        return Path.home() / ".config" / APP_NAME


@dataclass
class EngineConfig:
    data_dir: str = ''
    store_file: str = "boss_timer_store.json"
    log_level: str = "INFO"
    promotion_interval_seconds: float = 5.0
    notification_poll_seconds: float = 60.0
    retry_after_error_seconds: float = 300.0
    send_lock_ttl_seconds: float = 120.0
    webhook_timeout_seconds: float = 10.0
    beacon_fallback: bool = True
    promotion_workers: int = 8

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir) if self.data_dir else user_data_dir()

    @property
    def store_path(self) -> Path:
        return self.data_path / self.store_file

    @property
    def log_dir(self) -> Path:
        return self.data_path / "logs"


def _coerce(name: str, value, default):
    """Convert a loaded value to the type of its default."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    if isinstance(default, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{name} must be a number, got {value!r}")
        if value <= 0:
            raise ConfigError(f"{name} must be positive, got {value!r}")
        return type(default)(value)
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string, got {value!r}")
    return value


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load engine settings, merged over the defaults.

    Missing or unreadable files give the defaults; unknown keys and
    invalid values are logged and ignored.
    """
    config = EngineConfig()
    path = Path(path) if path else user_data_dir() / CONFIG_FILE
    logger.debug(f"[CONFIG] Load: path={path!s}, exists={path.exists()}")
    if not path.exists():
        logger.info(f"[CONFIG] File not found: {path!s}, using defaults")
        return config

    try:
        with open(path, 'r', encoding='utf-8') as f:
            loaded = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.error(f"[CONFIG] Error loading settings from {path!s}: {e}")
        return config
    if not isinstance(loaded, dict):
        logger.error(f"[CONFIG] Settings file {path!s} does not hold an object, using defaults")
        return config

    defaults = {f.name: getattr(config, f.name) for f in fields(EngineConfig)}
    unknown = sorted(k for k in loaded if k not in defaults)
    if unknown:
        logger.warning(f"[CONFIG] Ignoring unknown settings: {unknown}")

    for name, default in defaults.items():
        if name not in loaded:
            continue
        try:
            setattr(config, name, _coerce(name, loaded[name], default))
        except ConfigError as e:
            logger.warning(f"[CONFIG] {e}; keeping {default!r}")

    logger.info(f"[CONFIG] Loaded from {path!s}")
    return config


def save_config(config: EngineConfig, path: Optional[Union[str, Path]] = None) -> None:
    """
    Write engine settings to disk.

    Raises:
        ConfigError: the file could not be written
    """
    path = Path(path) if path else user_data_dir() / CONFIG_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(asdict(config), f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise ConfigError(f"Could not save settings to {path!s}: {e}") from e
    logger.info(f"[CONFIG] Settings saved to {path!s}")
