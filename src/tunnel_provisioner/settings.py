"""Runtime settings for the tunnel provisioner."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common.logging import setup_logging
from .models import DEFAULT_LOCAL_PORT

ENV_PREFIX = "TUNNEL_PROVISIONER_"

DEFAULT_CLOUDFLARED_DIR = Path.home() / ".cloudflared"
DEFAULT_VHOST_FILE = Path("/Applications/MAMP/conf/apache/extra/httpd-vhosts.conf")


class ProvisionerSettings(BaseModel):
    """Paths, binaries and policies used by the workflow stages."""

    model_config = ConfigDict(
        str_strip_whitespace=True, validate_assignment=True, extra="forbid"
    )

    cloudflared_path: str = Field(
        default="cloudflared", description="cloudflared binary name or path"
    )
    config_dir: Path = Field(
        default=DEFAULT_CLOUDFLARED_DIR, description="Where <name>.yml files go"
    )
    credentials_dir: Path | None = Field(
        default=None,
        description="Where cloudflared writes credentials (default: config_dir)",
    )
    origin_cert: Path | None = Field(
        default=None, description="Account certificate passed as --origincert"
    )
    vhost_file: Path = Field(
        default=DEFAULT_VHOST_FILE, description="Apache httpd-vhosts.conf to patch"
    )
    vhost_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="Port for <VirtualHost *:port> (default: the tunnel's local port)",
    )
    default_port: int = Field(
        default=DEFAULT_LOCAL_PORT, ge=1, le=65535, description="Default local port"
    )
    create_timeout: float = Field(
        default=60.0, gt=0, le=600, description="Timeout for tunnel creation (s)"
    )
    overwrite_config: bool = Field(
        default=False, description="Allow replacing existing config files"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    hide_credentials_in_logs: bool = Field(
        default=False, description="Mask credentials paths in log events"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("config_dir", "credentials_dir", "origin_cert", "vhost_file")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        """Expand '~' in configured paths."""
        return v.expanduser() if v is not None else None

    @property
    def effective_credentials_dir(self) -> Path:
        return self.credentials_dir or self.config_dir

    def configure_logging(self) -> None:
        """Apply ``log_level`` and credential masking to the global logging.

        Call once at startup, before any provisioning runs.
        """
        setup_logging(
            level=self.log_level, hide_credentials=self.hide_credentials_in_logs
        )

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> "ProvisionerSettings":
        """Build settings from ``TUNNEL_PROVISIONER_*`` environment variables.

        Example:
            TUNNEL_PROVISIONER_CONFIG_DIR=/etc/cloudflared
            TUNNEL_PROVISIONER_OVERWRITE_CONFIG=true
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            key = f"{ENV_PREFIX}{name.upper()}"
            if key in environ:
                values[name] = environ[key]
        return cls(**values)
