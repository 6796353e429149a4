"""SurveyFlow - survey graph compiler, validator and runtime traversal engine."""

from typing import TYPE_CHECKING

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "compile_graph",
    "validate_workflow",
    "ConditionEvaluator",
    "DagTraversalEngine",
]

if TYPE_CHECKING:
    from .config.settings import Settings
    from .compiler import compile_graph
    from .execution.conditions import ConditionEvaluator
    from .execution.traversal import DagTraversalEngine
    from .validation import validate_workflow


def __getattr__(name: str):
    if name == "Settings":
        from .config.settings import Settings

        return Settings
    if name == "compile_graph":
        from .compiler import compile_graph

        return compile_graph
    if name == "validate_workflow":
        from .validation import validate_workflow

        return validate_workflow
    if name == "ConditionEvaluator":
        from .execution.conditions import ConditionEvaluator

        return ConditionEvaluator
    if name == "DagTraversalEngine":
        from .execution.traversal import DagTraversalEngine

        return DagTraversalEngine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
