"""Exception hierarchy for the tunnel provisioner.

Components raise these; only the workflow orchestrator turns them into
``WorkflowResult`` values.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import FieldViolation


class TunnelProvisionerError(Exception):
    """Base exception for all provisioner errors."""

    pass


class RequestValidationError(TunnelProvisionerError):
    """Raised when a provision request violates one or more field rules."""

    def __init__(self, violations: "list[FieldViolation]"):
        self.violations = list(violations)
        details = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        super().__init__(f"Invalid request: {details}")


class ProvisionError(TunnelProvisionerError):
    """Raised when the remote tunnel could not be created.

    The message is the remote side's diagnostic, passed through verbatim.
    ``ambiguous`` is set when the outcome is unknown (e.g. a timeout) and the
    tunnel may or may not exist remotely.
    """

    def __init__(self, message: str, *, ambiguous: bool = False):
        self.ambiguous = ambiguous
        super().__init__(message)


class BinaryNotFoundError(ProvisionError):
    """Raised when the cloudflared binary is missing or not executable."""

    pass


class ConfigWriteError(TunnelProvisionerError):
    """Raised when the routing config could not be rendered or persisted."""

    pass


class ConfigExistsError(ConfigWriteError):
    """Raised when the target config file exists and overwrite is disabled."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Config file already exists: {path}")


class VHostPatchError(TunnelProvisionerError):
    """Raised when the web server's vhost file could not be patched."""

    pass
