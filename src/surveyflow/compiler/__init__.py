"""Editable graph -> runtime DAG compilation."""

from surveyflow.compiler.compiler import compile_design, compile_graph
from surveyflow.compiler.models import (
    BranchNext,
    CompiledGraph,
    CompiledNode,
    LinearNext,
    dump_runtime_json,
    load_runtime_json,
)

__all__ = [
    "compile_graph",
    "compile_design",
    "CompiledGraph",
    "CompiledNode",
    "LinearNext",
    "BranchNext",
    "dump_runtime_json",
    "load_runtime_json",
]
