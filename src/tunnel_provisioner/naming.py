"""Derive filesystem-safe identifiers from human-readable names."""

import re

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9_-]")


def sanitize_name(text: str) -> str:
    """Turn arbitrary text into a config-name-safe identifier.

    Lowercases, collapses each whitespace run into a single hyphen and drops
    every character outside ``[a-z0-9_-]``. Never fails.

    Examples:
        >>> sanitize_name("My Site  Tunnel!")
        'my-site-tunnel'
    """
    lowered = _WHITESPACE.sub("-", text.strip().lower())
    return _DISALLOWED.sub("", lowered)


def suggest_config_name(tunnel_name: str, current: str = "") -> str:
    """Pre-populate a config name from the tunnel name.

    A non-empty ``current`` value always wins.
    """
    if current:
        return current
    return sanitize_name(tunnel_name)
