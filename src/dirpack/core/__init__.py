"""dirpack core: configuration, logging and the error hierarchy."""

from dirpack.core.config import ConfigResolver, ConfigSource, LoggingPolicy
from dirpack.core.errors import (
    ConfigError,
    DirpackError,
    DiskFullError,
    FileError,
    InvalidOptionsError,
)
from dirpack.core.logging import (
    LogRecord,
    VerbosityLevel,
    add_log_listener,
    apply_logging_policy,
    clear_log_listeners,
    get_logger,
    get_verbosity,
    remove_log_listener,
    set_colors,
    set_verbosity,
)

__all__ = [
    # Config
    "ConfigResolver",
    "ConfigSource",
    "LoggingPolicy",
    # Errors
    "DirpackError",
    "ConfigError",
    "InvalidOptionsError",
    "FileError",
    "DiskFullError",
    # Logging
    "LogRecord",
    "VerbosityLevel",
    "add_log_listener",
    "apply_logging_policy",
    "clear_log_listeners",
    "get_logger",
    "remove_log_listener",
    "get_verbosity",
    "set_colors",
    "set_verbosity",
]
