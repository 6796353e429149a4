"""Runtime evaluation: conditions, graph traversal and respondent sessions."""

from .conditions import ConditionEvaluator
from .session import SurveySession
from .traversal import DagTraversalEngine, TraversalStep, TraversalTrace

__all__ = [
    "ConditionEvaluator",
    "DagTraversalEngine",
    "SurveySession",
    "TraversalStep",
    "TraversalTrace",
]
