"""Remote tunnel creation through the cloudflared CLI."""

import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from .common.exceptions import BinaryNotFoundError, ProvisionError
from .common.logging import get_logger
from .models import TunnelIdentity
from .settings import ProvisionerSettings

logger = get_logger(__name__)

_CREATED_RE = re.compile(
    r"Created tunnel (?P<name>\S+) with id (?P<uuid>[0-9a-fA-F-]{8,})"
)
_CREDENTIALS_RE = re.compile(r"Tunnel credentials written to (?P<path>.+?\.json)")


class TunnelProvisioner(Protocol):
    """Creates a named tunnel on the remote side."""

    def provision(self, name: str) -> TunnelIdentity:
        """Create the tunnel.

        Raises:
            ProvisionError: With the remote diagnostic verbatim
        """
        ...


def parse_create_output(
    output: str, credentials_dir: Path, credentials_file: Path | None = None
) -> TunnelIdentity:
    """Extract the tunnel identity from ``cloudflared tunnel create`` output.

    Only called for a zero exit status, so a missing id means the tunnel was
    probably created anyway: the error is marked ambiguous.

    Args:
        output: Combined stdout/stderr of the command
        credentials_dir: Fallback directory for ``<uuid>.json``
        credentials_file: Path passed as ``--credentials-file``; preferred
            over ``credentials_dir`` when the output names no file

    Raises:
        ProvisionError: If no tunnel id can be found
    """
    created = _CREATED_RE.search(output)
    if created is None:
        raise ProvisionError(
            "Could not find the tunnel id in cloudflared output; the tunnel "
            f"may exist remotely: {output.strip()}",
            ambiguous=True,
        )
    uuid = created.group("uuid")

    credentials = _CREDENTIALS_RE.search(output)
    if credentials is not None:
        credentials_path = credentials.group("path").strip()
    elif credentials_file is not None:
        credentials_path = str(credentials_file)
    else:
        credentials_path = str(credentials_dir / f"{uuid}.json")

    return TunnelIdentity(uuid=uuid, credentials_path=credentials_path)


class CloudflaredProvisioner:
    """Runs ``cloudflared tunnel create <name>`` exactly once per call.

    There is no retry: a timed-out create may still have succeeded remotely,
    and a second attempt under the same name would fail or duplicate it.
    """

    def __init__(self, settings: ProvisionerSettings | None = None):
        self.settings = settings or ProvisionerSettings()

    def _resolve_binary(self) -> str:
        configured = self.settings.cloudflared_path
        binary = shutil.which(configured) if os.sep not in configured else configured

        if binary is None or not Path(binary).exists():
            raise BinaryNotFoundError(f"cloudflared binary not found: {configured}")

        if not Path(binary).is_file():
            raise BinaryNotFoundError(f"cloudflared path is not a file: {binary}")

        if not os.access(binary, os.X_OK):
            raise BinaryNotFoundError(f"cloudflared binary is not executable: {binary}")

        return binary

    def credentials_file_for(self, name: str) -> Path | None:
        """Return the ``--credentials-file`` target, if one is forced."""
        if self.settings.credentials_dir is None:
            return None
        return self.settings.credentials_dir / f"{name}.json"

    def build_command(self, binary: str, name: str) -> list[str]:
        command = [binary, "tunnel"]
        if self.settings.origin_cert is not None:
            command += ["--origincert", str(self.settings.origin_cert)]
        credentials_file = self.credentials_file_for(name)
        if credentials_file is not None:
            command += ["create", "--credentials-file", str(credentials_file), name]
        else:
            command += ["create", name]
        return command

    def provision(self, name: str) -> TunnelIdentity:
        """Create the tunnel and return its identity.

        Raises:
            BinaryNotFoundError: If cloudflared cannot be run
            ProvisionError: If cloudflared fails, times out or prints no id
        """
        binary = self._resolve_binary()
        command = self.build_command(binary, name)

        logger.info("Creating remote tunnel", name=name, binary=binary)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.settings.create_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.error(
                "Tunnel creation timed out", name=name, timeout=e.timeout
            )
            raise ProvisionError(
                f"cloudflared did not finish within {e.timeout} seconds; "
                f"tunnel '{name}' may or may not exist remotely",
                ambiguous=True,
            ) from e
        except OSError as e:
            logger.error("Failed to run cloudflared", name=name, error=str(e))
            raise ProvisionError(f"Failed to run cloudflared: {e}") from e

        output = f"{completed.stdout or ''}\n{completed.stderr or ''}"
        if completed.returncode != 0:
            message = (completed.stderr or completed.stdout or "").strip()
            logger.error(
                "cloudflared tunnel create failed",
                name=name,
                returncode=completed.returncode,
                stderr=message,
            )
            raise ProvisionError(
                message or f"cloudflared exited with status {completed.returncode}"
            )

        identity = parse_create_output(
            output,
            self.settings.effective_credentials_dir,
            self.credentials_file_for(name),
        )
        logger.info(
            "Remote tunnel created",
            name=name,
            uuid=identity.uuid,
            credentials_path=identity.credentials_path,
        )
        return identity
