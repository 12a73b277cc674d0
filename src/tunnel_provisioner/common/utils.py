"""Utility functions for the tunnel provisioner."""

from typing import Any

# Port range constants
MIN_PORT = 1
MAX_PORT = 65535

# Characters that would turn a config name into a path
PATH_SEPARATORS = frozenset("/\\:")


def parse_port(value: Any, port_name: str = "Port") -> int:
    """Parse and range-check a port number.

    Args:
        value: Port as an int or a string of ASCII digits
        port_name: Name of the port for error messages

    Returns:
        The port as an int

    Raises:
        ValueError: If the value is not an integer in the valid range (1-65535)
    """
    if isinstance(value, bool):
        raise ValueError(f"{port_name} must be an integer")

    if isinstance(value, int):
        port = value
    else:
        text = str(value)
        if not (text.isascii() and text.isdigit()):
            raise ValueError(f"{port_name} must be an integer")
        port = int(text)

    if not (MIN_PORT <= port <= MAX_PORT):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")
    return port


def has_whitespace(value: str) -> bool:
    """Return True if the string contains any whitespace character."""
    return any(char.isspace() for char in value)


def has_unquotable_char(value: str) -> bool:
    """Return True if the string cannot sit inside an Apache quoted argument.

    Covers '"' and control characters such as newlines.
    """
    return any(char == '"' or not char.isprintable() for char in value)


def has_path_separator(value: str) -> bool:
    """Return True if the string contains '/', '\\' or ':'."""
    return any(char in PATH_SEPARATORS for char in value)
