"""Idempotent patching of an Apache ``httpd-vhosts.conf``.

Blocks are only ever appended. Whether a hostname is already served is decided
by its ``ServerName``/``ServerAlias`` lines, not by comparing whole blocks, so
a hand-edited entry for the same hostname is left alone.
"""

import os
import re
from pathlib import Path

from .common.exceptions import VHostPatchError
from .common.files import atomic_write_text, path_lock
from .common.logging import get_logger
from .common.utils import has_unquotable_char
from .models import VHostEntry
from .settings import ProvisionerSettings

logger = get_logger(__name__)

_SERVER_NAME_RE = re.compile(
    r"^\s*Server(?:Name|Alias)\s+(?P<names>.+?)\s*$", re.IGNORECASE | re.MULTILINE
)


def served_hostnames(text: str) -> set[str]:
    """Return every hostname named by ServerName/ServerAlias in ``text``.

    Commented-out lines are ignored; ports and schemes are stripped.
    """
    hostnames: set[str] = set()
    for match in _SERVER_NAME_RE.finditer(text):
        for name in match.group("names").split():
            if name.startswith("#"):
                break
            name = name.split("://", 1)[-1].split(":", 1)[0]
            hostnames.add(name.lower())
    return hostnames


def has_entry(text: str, hostname: str) -> bool:
    return hostname.lower() in served_hostnames(text)


class VHostPatcher:
    """Appends virtual host blocks to a single shared vhost file."""

    def __init__(self, settings: ProvisionerSettings | None = None):
        self.settings = settings or ProvisionerSettings()

    @property
    def vhost_file(self) -> Path:
        return self.settings.vhost_file

    def patch_vhost(
        self, hostname: str, document_root: str, port: int | None = None
    ) -> bool:
        """Add a block serving ``document_root`` for ``hostname`` if absent.

        Args:
            hostname: Hostname to serve
            document_root: Directory to serve; re-checked here
            port: Listen port for the block (default: settings.vhost_port,
                then settings.default_port)

        Returns:
            True if a block was appended, False if the hostname was present

        Raises:
            VHostPatchError: If the document root or vhost file is unusable
        """
        if has_unquotable_char(document_root):
            raise VHostPatchError(
                f"Document root cannot be quoted for Apache: {document_root!r}"
            )
        if not os.path.isdir(document_root):
            raise VHostPatchError(
                "Document root no longer exists or is not a directory: "
                f"{document_root}"
            )

        listen_port = port or self.settings.vhost_port or self.settings.default_port
        entry = VHostEntry(
            hostname=hostname, document_root=document_root, port=listen_port
        )
        path = self.vhost_file

        with path_lock(path):
            if not path.is_file():
                raise VHostPatchError(f"vhost file not found: {path}")

            try:
                original = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise VHostPatchError(f"Failed to read {path}: {e}") from e

            if has_entry(original, hostname):
                logger.info(
                    "vhost entry already present", hostname=hostname, path=str(path)
                )
                return False

            separator = "" if not original or original.endswith("\n") else "\n"
            patched = f"{original}{separator}\n{entry.render()}"

            try:
                atomic_write_text(path, patched)
            except OSError as e:
                logger.error("Failed to write vhost file", path=str(path), error=str(e))
                raise VHostPatchError(f"Failed to write {path}: {e}") from e

        logger.info(
            "vhost entry added",
            hostname=hostname,
            document_root=document_root,
            port=listen_port,
            path=str(path),
        )
        return True
