"""Publish-time validation of survey graphs."""

from .workflow_validator import (
    Severity,
    ValidationError,
    ValidationResult,
    WorkflowValidator,
    ensure_publishable,
    validate_workflow,
)

__all__ = [
    "Severity",
    "ValidationError",
    "ValidationResult",
    "WorkflowValidator",
    "ensure_publishable",
    "validate_workflow",
]
