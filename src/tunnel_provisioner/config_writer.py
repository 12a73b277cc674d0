"""Render and persist cloudflared routing configs."""

from pathlib import Path

from .common.exceptions import ConfigExistsError, ConfigWriteError
from .common.files import atomic_write_text, path_lock
from .common.logging import get_logger
from .models import RoutingConfig, TunnelIdentity
from .settings import ProvisionerSettings

logger = get_logger(__name__)

CONFIG_SUFFIX = ".yml"


class ConfigWriter:
    """Writes ``<config_dir>/<config_name>.yml`` for a provisioned tunnel."""

    def __init__(self, settings: ProvisionerSettings | None = None):
        self.settings = settings or ProvisionerSettings()

    @property
    def config_dir(self) -> Path:
        return self.settings.config_dir

    def config_path_for(self, config_name: str) -> Path:
        """Return the absolute config path derived from ``config_name``."""
        return (self.config_dir / f"{config_name}{CONFIG_SUFFIX}").absolute()

    def exists(self, config_name: str) -> bool:
        return self.config_path_for(config_name).exists()

    def render(self, tunnel: TunnelIdentity, hostname: str, port: int) -> str:
        return RoutingConfig.for_tunnel(tunnel, hostname, port).to_yaml()

    def write_config(
        self,
        config_name: str,
        tunnel: TunnelIdentity,
        hostname: str,
        port: int,
        *,
        overwrite: bool | None = None,
    ) -> Path:
        """Render the routing config and move it into place atomically.

        Args:
            config_name: File stem for the config
            tunnel: Identity returned by the provisioner
            hostname: Public hostname to route
            port: Local port the hostname routes to
            overwrite: Replace an existing file (default: settings policy)

        Returns:
            Absolute path of the written config

        Raises:
            ConfigExistsError: If the file exists and overwrite is disabled
            ConfigWriteError: If rendering or writing fails
        """
        if overwrite is None:
            overwrite = self.settings.overwrite_config

        path = self.config_path_for(config_name)
        try:
            content = self.render(tunnel, hostname, port)
        except Exception as e:
            raise ConfigWriteError(
                f"Failed to render config for {hostname}: {e}"
            ) from e

        with path_lock(path):
            if path.exists() and not overwrite:
                raise ConfigExistsError(str(path))
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                atomic_write_text(path, content, mode=0o600)
            except OSError as e:
                logger.error("Failed to write config", path=str(path), error=str(e))
                raise ConfigWriteError(f"Failed to write {path}: {e}") from e

        logger.info(
            "Config written",
            path=str(path),
            tunnel=tunnel.uuid,
            hostname=hostname,
            port=port,
        )
        return path
