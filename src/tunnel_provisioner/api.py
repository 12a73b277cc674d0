"""High-level API for the tunnel provisioner.

This module provides simple, user-friendly functions for the common case of
creating one managed tunnel.
"""

from .common.logging import get_logger
from .models import ProvisionDraft, WorkflowResult
from .naming import suggest_config_name
from .settings import ProvisionerSettings
from .workflow import ProgressCallback, WorkflowOrchestrator

logger = get_logger(__name__)


def create_draft(
    tunnel_name: str,
    hostname: str,
    port: int | str | None = None,
    *,
    config_name: str = "",
    document_root: str | None = None,
    update_vhost: bool = False,
    overwrite: bool = False,
    settings: ProvisionerSettings | None = None,
) -> ProvisionDraft:
    """Build a request draft, deriving the config name from the tunnel name.

    Example:
        >>> create_draft("My Site", "my-site.example.com").config_name
        'my-site'
    """
    settings = settings or ProvisionerSettings()
    return ProvisionDraft(
        tunnel_name=tunnel_name,
        config_name=suggest_config_name(tunnel_name, config_name),
        hostname=hostname,
        port=settings.default_port if port is None else port,
        document_root=document_root,
        update_vhost=update_vhost,
        overwrite=overwrite,
    )


def provision_tunnel(
    tunnel_name: str,
    hostname: str,
    port: int | str | None = None,
    *,
    config_name: str = "",
    document_root: str | None = None,
    update_vhost: bool = False,
    overwrite: bool = False,
    settings: ProvisionerSettings | None = None,
    on_progress: ProgressCallback | None = None,
) -> WorkflowResult:
    """Create a named tunnel, write its config and optionally add a vhost.

    Args:
        tunnel_name: Remote tunnel name (no whitespace)
        hostname: Public hostname routed to the local port
        port: Local port (default: settings.default_port)
        config_name: Config file stem (default: sanitized tunnel name)
        document_root: Directory for the vhost entry
        update_vhost: Patch the web server's vhost file
        overwrite: Replace an existing config file
        settings: Provisioner settings (default: from environment)
        on_progress: Receives a ``ProgressEvent`` on every transition

    Returns:
        The terminal ``WorkflowResult``

    Example:
        >>> result = provision_tunnel("my-site", "my-site.example.com", 8888)
        >>> print(result.message)
        Tunnel and configuration 'my-site.yml' created.
    """
    settings = settings or ProvisionerSettings.from_env()
    draft = create_draft(
        tunnel_name,
        hostname,
        port,
        config_name=config_name,
        document_root=document_root,
        update_vhost=update_vhost,
        overwrite=overwrite,
        settings=settings,
    )
    logger.info(
        "Provisioning managed tunnel",
        tunnel_name=draft.tunnel_name,
        config_name=draft.config_name,
        hostname=hostname,
    )
    return WorkflowOrchestrator(settings=settings).run(draft, on_progress=on_progress)
