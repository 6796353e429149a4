"""Graph compiler: editable nodes + edges -> runtime DAG keyed by node id.

Compilation is tolerant by contract. It never rejects a graph:
- edges from unknown sources are ignored
- edges to unknown targets resolve to None
- branch edges without a "true"/"false" handle are dropped
- when several edges share a source (and handle), the last one wins

Rejecting such graphs is the validator's job; run it before trusting the
compiled output.
"""

from __future__ import annotations

from typing import Any, Iterable

from surveyflow.compiler.models import BranchNext, CompiledGraph, CompiledNode, LinearNext
from surveyflow.core.nodes import BranchHandle, DesignGraph, NodeType, parse_edge, parse_node
from surveyflow.utils.logging import get_logger

logger = get_logger(__name__)


def compile_graph(nodes: Iterable[Any], edges: Iterable[Any]) -> CompiledGraph:
    """Compile editor nodes and edges into a runtime graph.

    Args:
        nodes: Node models (or raw editor dicts, validated on the way in).
        edges: Edge models (or raw editor dicts).

    Returns:
        Mapping of node id -> CompiledNode.
    """
    compiled: CompiledGraph = {}

    for raw_node in nodes:
        node = parse_node(raw_node)
        compiled[node.id] = CompiledNode(
            id=node.id,
            type=node.type,
            data=node.data.model_copy(deep=True),
            next=BranchNext() if node.type == NodeType.BRANCH else LinearNext(),
        )

    edge_count = 0
    for raw_edge in edges:
        edge = parse_edge(raw_edge)
        edge_count += 1

        source = compiled.get(edge.source)
        if source is None:
            logger.debug("Ignoring edge %s from unknown source %s", edge.id, edge.source)
            continue

        target_id = edge.target if edge.target in compiled else None

        if isinstance(source.next, BranchNext):
            if edge.source_handle == BranchHandle.TRUE:
                source.next.true_id = target_id
            elif edge.source_handle == BranchHandle.FALSE:
                source.next.false_id = target_id
            else:
                logger.debug(
                    "Dropping edge %s: branch %s has no handle %r",
                    edge.id,
                    source.id,
                    edge.source_handle,
                )
        else:
            source.next.next_id = target_id

    logger.debug("Compiled %d nodes and %d edges", len(compiled), edge_count)
    return compiled


def compile_design(design: DesignGraph) -> CompiledGraph:
    """Compile a saved editor graph."""
    return compile_graph(design.nodes, design.edges)
