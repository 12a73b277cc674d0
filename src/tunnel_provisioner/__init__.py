"""Tunnel Provisioner - create managed cloudflared tunnels and wire them up."""

# High-level API
from .api import create_draft, provision_tunnel

# Common utilities
from .common.exceptions import (
    BinaryNotFoundError,
    ConfigExistsError,
    ConfigWriteError,
    ProvisionError,
    RequestValidationError,
    TunnelProvisionerError,
    VHostPatchError,
)
from .common.logging import get_logger, setup_logging

# Workflow components
from .config_writer import ConfigWriter
from .models import (
    Failure,
    FieldViolation,
    IngressRule,
    PartialFailure,
    ProgressEvent,
    ProvisionDraft,
    ProvisionRequest,
    RoutingConfig,
    Success,
    TunnelIdentity,
    VHostEntry,
    WorkflowResult,
    WorkflowStage,
    WorkflowState,
)
from .naming import sanitize_name, suggest_config_name
from .provisioner import CloudflaredProvisioner, TunnelProvisioner
from .settings import ProvisionerSettings
from .validation import build_request, validate_draft
from .vhost import VHostPatcher
from .workflow import WorkflowOrchestrator, run_workflow

# Setup logging on package initialization
setup_logging(level="INFO")

# Package level logger
logger = get_logger(__name__)

__version__ = "0.1.0"


__all__ = [
    # High-level API
    "provision_tunnel",
    "create_draft",
    "run_workflow",
    # Workflow
    "WorkflowOrchestrator",
    "CloudflaredProvisioner",
    "TunnelProvisioner",
    "ConfigWriter",
    "VHostPatcher",
    "ProvisionerSettings",
    # Validation and naming
    "validate_draft",
    "build_request",
    "sanitize_name",
    "suggest_config_name",
    # Models
    "ProvisionDraft",
    "ProvisionRequest",
    "FieldViolation",
    "TunnelIdentity",
    "RoutingConfig",
    "IngressRule",
    "VHostEntry",
    "ProgressEvent",
    "WorkflowResult",
    "Success",
    "PartialFailure",
    "Failure",
    "WorkflowStage",
    "WorkflowState",
    # Exceptions
    "TunnelProvisionerError",
    "RequestValidationError",
    "ProvisionError",
    "BinaryNotFoundError",
    "ConfigWriteError",
    "ConfigExistsError",
    "VHostPatchError",
    # Logging
    "get_logger",
    "setup_logging",
]
