"""
Configuration management for MyTabs
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger


def get_data_dir() -> Path:
    """Get the data directory path.

    MYTABS_DATA_DIR wins, then DATA_DIR (kept for existing deployments),
    then the XDG data directory.
    """
    for var in ("MYTABS_DATA_DIR", "DATA_DIR"):
        value = os.environ.get(var)
        if value:
            return Path(value).expanduser()
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "mytabs"
    return Path.home() / ".local" / "share" / "mytabs"


@dataclass
class StorageConfig:
    """Configuration for where tabs and the counter database live."""

    data_dir: str = field(default_factory=lambda: str(get_data_dir()))

    @property
    def tabs_dir(self) -> Path:
        return Path(self.data_dir) / "tabs"

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir) / "mytabs.db"


@dataclass
class AudioConfig:
    """Configuration for audio uploads."""

    ffmpeg_path: str = "ffmpeg"
    ogg_quality: int = 6  # libvorbis -q:a, 0-10

    def validate(self) -> None:
        """Validate audio configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 0 <= self.ogg_quality <= 10:
            raise ValueError(
                f"Invalid ogg_quality: {self.ogg_quality}. Must be between 0 and 10"
            )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # default: <data_dir>/mytabs.log
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def log_file_path(self) -> Path:
        if self.logging.log_file:
            return Path(self.logging.log_file)
        return Path(self.storage.data_dir) / "mytabs.log"


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "mytabs"
    return Path.home() / ".config" / "mytabs"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Lets a development checkout pick up its own config.toml regardless of
    the working directory.
    """
    try:
        current = Path(__file__).resolve().parent
        for parent in [current] + list(current.parents):
            if (parent / "pyproject.toml").exists():
                config_path = parent / "config.toml"
                if config_path.exists():
                    return config_path
                return None
    except OSError:
        pass
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/mytabs (or ~/.config/mytabs)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# MyTabs Configuration

[storage]
# Where tabs/ and mytabs.db are kept (MYTABS_DATA_DIR overrides this)
# data_dir = "~/.local/share/mytabs"

[audio]
# ffmpeg binary used to convert uploaded FLAC files to Ogg Vorbis
ffmpeg_path = "ffmpeg"

# libvorbis quality (0-10)
ogg_quality = 6

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: <data_dir>/mytabs.log)
# log_file = "/path/to/custom/mytabs.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to console (useful for debugging)
console_output = false
""".strip()


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - MYTABS_DATA_DIR / DATA_DIR
    - MYTABS_LOG_LEVEL
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            config = _parse_config(toml_data)
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Error loading configuration from {config_path}: {e}")
            logger.warning("Using default configuration.")
            config = Config()

    # Environment wins over the file
    for var in ("MYTABS_DATA_DIR", "DATA_DIR"):
        value = os.environ.get(var)
        if value:
            config.storage.data_dir = str(Path(value).expanduser())
            break

    log_level = os.environ.get("MYTABS_LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()

    return config


def _parse_config(toml_data: dict) -> Config:
    config = Config()

    if "storage" in toml_data:
        storage_data = toml_data["storage"]
        data_dir = storage_data.get("data_dir")
        if data_dir:
            config.storage = StorageConfig(data_dir=str(Path(data_dir).expanduser()))

    if "audio" in toml_data:
        audio_data = toml_data["audio"]
        config.audio = AudioConfig(
            ffmpeg_path=audio_data.get("ffmpeg_path", config.audio.ffmpeg_path),
            ogg_quality=int(audio_data.get("ogg_quality", config.audio.ogg_quality)),
        )
        try:
            config.audio.validate()
        except ValueError as e:
            logger.warning(f"Invalid audio configuration: {e}")
            logger.warning("Using default audio configuration.")
            config.audio = AudioConfig()

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def ensure_directories(config: Config) -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    config.storage.tabs_dir.mkdir(parents=True, exist_ok=True)
