"""Shared pytest fixtures for tunnel provisioner tests."""

from pathlib import Path

import pytest

from tunnel_provisioner.common.exceptions import ProvisionError
from tunnel_provisioner.models import TunnelIdentity
from tunnel_provisioner.settings import ProvisionerSettings

SAMPLE_VHOSTS = """\
# Virtual Hosts
NameVirtualHost *:8888

<VirtualHost *:8888>
    ServerName localhost
    DocumentRoot "/Applications/MAMP/htdocs"
</VirtualHost>
"""


class SpyProvisioner:
    """Provisioner double that records calls instead of reaching cloudflared."""

    def __init__(
        self,
        uuid: str = "abc-123",
        credentials_path: str | None = None,
        error: Exception | None = None,
    ):
        self.uuid = uuid
        self.credentials_path = credentials_path or f"/tmp/creds/{uuid}.json"
        self.error = error
        self.calls: list[str] = []

    def provision(self, name: str) -> TunnelIdentity:
        self.calls.append(name)
        if self.error is not None:
            raise self.error
        return TunnelIdentity(uuid=self.uuid, credentials_path=self.credentials_path)


@pytest.fixture
def vhost_file(tmp_path: Path) -> Path:
    """Create a MAMP-like httpd-vhosts.conf.

    Returns:
        Path: The vhost file
    """
    path = tmp_path / "httpd-vhosts.conf"
    path.write_text(SAMPLE_VHOSTS)
    return path


@pytest.fixture
def document_root(tmp_path: Path) -> Path:
    """Create an existing site directory."""
    root = tmp_path / "sites" / "my-site"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def settings(tmp_path: Path, vhost_file: Path) -> ProvisionerSettings:
    """Settings pointing every path into tmp_path."""
    return ProvisionerSettings(
        config_dir=tmp_path / "cloudflared",
        vhost_file=vhost_file,
    )


@pytest.fixture
def spy_provisioner() -> SpyProvisioner:
    """Provisioner that succeeds with uuid 'abc-123'."""
    return SpyProvisioner()


@pytest.fixture
def failing_provisioner() -> SpyProvisioner:
    """Provisioner that fails like cloudflared does for a taken name."""
    return SpyProvisioner(error=ProvisionError("name already in use"))
