"""Field validation for provisioning requests.

Every rule runs independently so callers get the full list of problems in one
pass. Nothing here has side effects; the document root check only reads the
filesystem, and its answer is advisory since the directory can disappear
before the vhost stage runs.
"""

import os
from typing import Any

from pydantic import ValidationError

from .common.exceptions import RequestValidationError
from .common.utils import (
    has_path_separator,
    has_unquotable_char,
    has_whitespace,
    parse_port,
)
from .models import FieldViolation, ProvisionDraft, ProvisionRequest


def _check_tunnel_name(value: str) -> str | None:
    if not value:
        return "Tunnel name is required"
    if has_whitespace(value):
        return "Tunnel name must not contain whitespace"
    return None


def _check_config_name(value: str) -> str | None:
    if not value:
        return "Config name is required"
    if has_path_separator(value):
        return "Config name must not contain '/', '\\' or ':'"
    return None


def _check_hostname(value: str) -> str | None:
    if not value:
        return "Hostname is required"
    if has_whitespace(value):
        return "Hostname must not contain whitespace"
    if "." not in value:
        return "Hostname must contain at least one '.'"
    return None


def _check_port(value: Any) -> str | None:
    try:
        parse_port(value)
    except ValueError as e:
        return str(e)
    return None


def _check_document_root(value: str | None, update_vhost: bool) -> str | None:
    if not update_vhost:
        return None
    if not value:
        return "Document root is required to update the vhost file"
    if has_unquotable_char(value):
        return "Document root must not contain '\"' or control characters"
    if not os.path.isdir(value):
        return f"Document root does not exist or is not a directory: {value}"
    if not os.access(value, os.R_OK | os.X_OK):
        return f"Document root is not readable: {value}"
    return None


def document_root_exists(value: str | None) -> bool:
    """Return True if ``value`` names an existing directory right now."""
    return bool(value) and os.path.isdir(value)  # type: ignore[arg-type]


def _coerce_draft(
    draft: ProvisionDraft | dict[str, Any],
) -> tuple[ProvisionDraft | None, list[FieldViolation]]:
    if isinstance(draft, ProvisionDraft):
        return draft, []
    try:
        return ProvisionDraft(**draft), []
    except ValidationError as e:
        violations = [
            FieldViolation(
                field=".".join(str(part) for part in error["loc"]) or "request",
                message=error["msg"],
            )
            for error in e.errors()
        ]
        return None, violations


def validate_draft(draft: ProvisionDraft | dict[str, Any]) -> list[FieldViolation]:
    """Collect every field violation in a request draft.

    Args:
        draft: Draft model or a plain mapping of its fields

    Returns:
        List of violations; empty if the draft is valid
    """
    draft, violations = _coerce_draft(draft)
    if draft is None:
        return violations

    checks = [
        ("tunnel_name", _check_tunnel_name(draft.tunnel_name)),
        ("config_name", _check_config_name(draft.config_name)),
        ("hostname", _check_hostname(draft.hostname)),
        ("port", _check_port(draft.port)),
        (
            "document_root",
            _check_document_root(draft.document_root, draft.update_vhost),
        ),
    ]
    return [
        FieldViolation(field=field, message=message)
        for field, message in checks
        if message is not None
    ]


def build_request(draft: ProvisionDraft | dict[str, Any]) -> ProvisionRequest:
    """Validate a draft and convert it into a ``ProvisionRequest``.

    Raises:
        RequestValidationError: If any field rule is violated
    """
    draft, violations = _coerce_draft(draft)
    if draft is not None:
        violations = validate_draft(draft)
    if draft is None or violations:
        raise RequestValidationError(violations)

    return ProvisionRequest(
        tunnel_name=draft.tunnel_name,
        config_name=draft.config_name,
        hostname=draft.hostname,
        port=parse_port(draft.port),
        document_root=draft.document_root or None,
        update_vhost=draft.update_vhost,
        overwrite=draft.overwrite,
    )
