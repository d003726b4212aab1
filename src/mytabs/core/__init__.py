"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Durable counter storage (SQLite)
- Logging (Loguru)
- Path safety checks

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    ensure_directories,
)

# Database
from .database import (
    CounterValue,
    SqliteCounter,
    VersionedCounter,
    get_db_connection,
    init_database,
)

# Output
from .output import log, setup_loguru

# Path security
from .path_security import (
    InvalidFilenameError,
    check_filename,
    is_safe_filename,
    sanitize_filename,
)

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "ensure_directories",
    # Database
    "CounterValue",
    "SqliteCounter",
    "VersionedCounter",
    "get_db_connection",
    "init_database",
    # Output
    "log",
    "setup_loguru",
    # Path security
    "InvalidFilenameError",
    "check_filename",
    "is_safe_filename",
    "sanitize_filename",
]
