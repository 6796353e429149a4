"""Custom exception hierarchy for SurveyFlow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class SurveyFlowException(Exception):
    """Base exception type for all SurveyFlow errors."""

    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"


class ConfigurationError(SurveyFlowException):
    """Raised when configuration is missing or invalid."""


class WorkflowValidationError(SurveyFlowException):
    """Raised when a workflow fails the publish gate (invalid structure)."""


# -----------------------------------------------------------------------------
# Runtime traversal errors
# -----------------------------------------------------------------------------


class TraversalError(SurveyFlowException):
    """Raised when a compiled graph cannot be walked for a respondent."""


class MissingStartNodeError(TraversalError):
    """Raised when the compiled graph has no start node."""


class MultipleStartNodesError(TraversalError):
    """Raised when the compiled graph has more than one start node."""


class CycleDetectedError(TraversalError):
    """Raised when a node is revisited while walking the graph."""


class InvalidConditionError(TraversalError):
    """Raised when a condition is malformed or cannot be evaluated."""


class EmptyConditionError(InvalidConditionError):
    """Raised when a condition group is missing or has no children."""


class GraphFormatError(SurveyFlowException):
    """Raised when stored runtime JSON cannot be loaded into a compiled graph."""
