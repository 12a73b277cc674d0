"""Data models for the tunnel provisioning workflow.

Requests flow in as an unvalidated ``ProvisionDraft``, become a frozen
``ProvisionRequest`` once validation passes, and the workflow ends with
exactly one ``WorkflowResult`` variant.
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .common.utils import MAX_PORT, MIN_PORT

DEFAULT_LOCAL_PORT = 8888
CATCH_ALL_SERVICE = "http_status:404"


class WorkflowStage(str, Enum):
    """Stage a workflow result is attributed to."""

    VALIDATION = "validation"
    TUNNEL = "tunnel"
    CONFIG = "config"
    VHOST = "vhost"


class WorkflowState(str, Enum):
    """Orchestrator state machine."""

    IDLE = "idle"
    VALIDATING = "validating"
    PROVISIONING_TUNNEL = "provisioning_tunnel"
    WRITING_CONFIG = "writing_config"
    PATCHING_VHOST = "patching_vhost"
    DONE = "done"
    FAILED = "failed"


class FieldViolation(BaseModel):
    """A single field-level validation failure."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ProvisionDraft(BaseModel):
    """Raw request input as collected by a caller, not yet validated."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    tunnel_name: str = ""
    config_name: str = ""
    hostname: str = ""
    port: int | str = DEFAULT_LOCAL_PORT
    document_root: str | None = None
    update_vhost: bool = False
    overwrite: bool = False


class ProvisionRequest(BaseModel):
    """A validated provisioning request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tunnel_name: str = Field(min_length=1, description="Remote tunnel name")
    config_name: str = Field(min_length=1, description="Local config file stem")
    hostname: str = Field(min_length=1, description="Public hostname to route")
    port: int = Field(ge=MIN_PORT, le=MAX_PORT, description="Local service port")
    document_root: str | None = Field(
        default=None, description="Web server document root for the vhost entry"
    )
    update_vhost: bool = Field(default=False, description="Patch the vhost file")
    overwrite: bool = Field(
        default=False, description="Replace an existing config file"
    )

    @property
    def wants_vhost(self) -> bool:
        """True if a vhost entry was requested and a document root is known."""
        return self.update_vhost and bool(self.document_root)


class TunnelIdentity(BaseModel):
    """Identity of a remotely created tunnel. Never mutated."""

    model_config = ConfigDict(frozen=True)

    uuid: str = Field(min_length=1, description="Tunnel UUID")
    credentials_path: str = Field(
        min_length=1, description="Path to the tunnel credentials JSON"
    )


class IngressRule(BaseModel):
    """One cloudflared ingress rule."""

    model_config = ConfigDict(frozen=True)

    hostname: str | None = None
    service: str

    def to_dict(self) -> dict[str, str]:
        rule = {}
        if self.hostname is not None:
            rule["hostname"] = self.hostname
        rule["service"] = self.service
        return rule


class RoutingConfig(BaseModel):
    """The cloudflared config file for a single named tunnel."""

    model_config = ConfigDict(frozen=True)

    tunnel: str = Field(min_length=1, description="Tunnel UUID")
    credentials_file: str = Field(min_length=1, description="Credentials JSON path")
    ingress: list[IngressRule] = Field(min_length=1)

    @classmethod
    def for_tunnel(
        cls, identity: TunnelIdentity, hostname: str, port: int
    ) -> "RoutingConfig":
        """Build the config routing ``hostname`` to the local port.

        cloudflared requires the last ingress rule to be a catch-all, so a
        404 rule is always appended.
        """
        return cls(
            tunnel=identity.uuid,
            credentials_file=identity.credentials_path,
            ingress=[
                IngressRule(hostname=hostname, service=f"http://127.0.0.1:{port}"),
                IngressRule(service=CATCH_ALL_SERVICE),
            ],
        )

    def to_document(self) -> dict[str, Any]:
        """Return the config as cloudflared's YAML document structure."""
        return {
            "tunnel": self.tunnel,
            "credentials-file": self.credentials_file,
            "ingress": [rule.to_dict() for rule in self.ingress],
        }

    def to_yaml(self) -> str:
        """Render the cloudflared YAML config."""
        return yaml.safe_dump(
            self.to_document(), sort_keys=False, default_flow_style=False
        )


class VHostEntry(BaseModel):
    """An Apache virtual host block keyed by hostname."""

    model_config = ConfigDict(frozen=True)

    hostname: str = Field(min_length=1)
    document_root: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_LOCAL_PORT, ge=MIN_PORT, le=MAX_PORT)

    def render(self) -> str:
        """Render the block, preceded by a marker comment."""
        root = Path(self.document_root).as_posix()
        lines = [
            f"# Added by tunnel-provisioner for {self.hostname}",
            f"<VirtualHost *:{self.port}>",
            f"    ServerName {self.hostname}",
            f'    DocumentRoot "{root}"',
            f'    <Directory "{root}">',
            "        Options Indexes FollowSymLinks",
            "        AllowOverride All",
            "        Require all granted",
            "    </Directory>",
            "</VirtualHost>",
        ]
        return "\n".join(lines) + "\n"


class ProgressEvent(BaseModel):
    """Human-readable progress notice emitted on every state transition."""

    model_config = ConfigDict(frozen=True)

    state: WorkflowState
    message: str


class Success(BaseModel):
    """Tunnel, config and (optionally) vhost entry are all in place."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    config_path: str
    vhost_updated: bool = False
    tunnel: TunnelIdentity | None = None

    @property
    def ok(self) -> bool:
        return True

    @property
    def message(self) -> str:
        text = f"Tunnel and configuration '{Path(self.config_path).name}' created."
        if self.vhost_updated:
            text += " The vhost file was updated; restart the web server to apply it."
        return text


class PartialFailure(BaseModel):
    """The remote tunnel exists but a later local stage failed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["partial_failure"] = "partial_failure"
    tunnel: TunnelIdentity
    stage: Literal[WorkflowStage.CONFIG, WorkflowStage.VHOST]
    cause: str
    config_path: str | None = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        if self.stage == WorkflowStage.CONFIG:
            return (
                f"Tunnel {self.tunnel.uuid} was created but writing its "
                f"configuration failed: {self.cause}. The remote tunnel is now "
                "orphaned and must be cleaned up or configured manually."
            )
        return (
            f"Tunnel {self.tunnel.uuid} and its configuration were created but "
            f"updating the vhost file failed: {self.cause}. A manual vhost edit "
            "and web server restart may be required."
        )


class Failure(BaseModel):
    """Nothing was created; the workflow stopped at ``stage``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    stage: Literal[WorkflowStage.VALIDATION, WorkflowStage.TUNNEL]
    cause: str
    violations: list[FieldViolation] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        if self.stage == WorkflowStage.VALIDATION:
            return f"Request rejected: {self.cause}"
        return f"Creating the tunnel failed: {self.cause}"


WorkflowResult = Annotated[
    Success | PartialFailure | Failure, Field(discriminator="kind")
]
