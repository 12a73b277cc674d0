"""Common utilities and shared functionality."""

from .exceptions import (
    BinaryNotFoundError,
    ConfigExistsError,
    ConfigWriteError,
    ProvisionError,
    RequestValidationError,
    TunnelProvisionerError,
    VHostPatchError,
)
from .files import atomic_write_text, path_lock
from .logging import get_logger, setup_logging
from .utils import (
    MAX_PORT,
    MIN_PORT,
    has_path_separator,
    has_unquotable_char,
    has_whitespace,
    parse_port,
)

__all__ = [
    # Exceptions
    "TunnelProvisionerError",
    "RequestValidationError",
    "ProvisionError",
    "BinaryNotFoundError",
    "ConfigWriteError",
    "ConfigExistsError",
    "VHostPatchError",
    # Files
    "atomic_write_text",
    "path_lock",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "parse_port",
    "has_whitespace",
    "has_path_separator",
    "has_unquotable_char",
    "MIN_PORT",
    "MAX_PORT",
]
