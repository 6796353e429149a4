"""Runtime (compiled) graph representation.

The runtime JSON is what the respondent-facing runner loads:

    {
        "<node id>": {
            "id": "<node id>",
            "type": "singleChoice",
            "data": {...},
            "next": {"kind": "linear", "nextId": "<node id>" | null}
        },
        "<branch id>": {
            ...,
            "next": {"kind": "branch", "trueId": ..., "falseId": ...}
        }
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from surveyflow.core.exceptions import GraphFormatError
from surveyflow.core.nodes import NodeData, NodeType, data_model_for


@dataclass
class LinearNext:
    """Single outgoing route."""
    next_id: Optional[str] = None

    kind: ClassVar[str] = "linear"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "nextId": self.next_id}


@dataclass
class BranchNext:
    """True/false routes of a branch node."""
    true_id: Optional[str] = None
    false_id: Optional[str] = None

    kind: ClassVar[str] = "branch"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "trueId": self.true_id, "falseId": self.false_id}


Next = Union[LinearNext, BranchNext]


@dataclass
class CompiledNode:
    """A node with its outgoing edges resolved into `next`."""
    id: str
    type: str
    data: NodeData
    next: Next

    @property
    def label(self) -> str:
        return self.data.label or self.id

    @property
    def is_branch(self) -> bool:
        return isinstance(self.next, BranchNext)

    @property
    def is_end(self) -> bool:
        return self.type == NodeType.END

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data.to_dict(),
            "next": self.next.to_dict(),
        }


CompiledGraph = Dict[str, CompiledNode]


def dump_runtime_json(graph: Mapping[str, CompiledNode]) -> Dict[str, Dict[str, Any]]:
    """Serialize a compiled graph to JSON-compatible runtime data."""
    return {node_id: node.to_dict() for node_id, node in graph.items()}


def load_runtime_json(raw: Mapping[str, Any]) -> CompiledGraph:
    """Load runtime JSON produced by `dump_runtime_json` (or the editor).

    Raises:
        GraphFormatError: If an entry has an unknown type, invalid data, or a
            `next` whose kind does not match the node type.
    """
    if not isinstance(raw, Mapping):
        raise GraphFormatError(
            f"Runtime graph must be an object, got {type(raw).__name__}",
        )

    graph: CompiledGraph = {}
    for key, entry in raw.items():
        if not isinstance(entry, Mapping):
            raise GraphFormatError(
                f"Runtime node '{key}' must be an object",
                context={"node_id": key},
            )

        node_type = str(entry.get("type") or "")
        data_model = data_model_for(node_type)
        if data_model is None:
            raise GraphFormatError(
                f"Runtime node '{key}' has unknown type '{node_type}'",
                context={"node_id": key},
            )

        try:
            data = data_model.model_validate(entry.get("data") or {})
        except ValidationError as e:
            raise GraphFormatError(
                f"Runtime node '{key}' has invalid data: {e}",
                context={"node_id": key},
            ) from e

        graph[key] = CompiledNode(
            id=str(entry.get("id") or key),
            type=node_type,
            data=data,
            next=_load_next(key, node_type, entry.get("next")),
        )

    return graph


def _load_next(key: str, node_type: str, raw: Any) -> Next:
    is_branch = node_type == NodeType.BRANCH
    if raw is None:
        return BranchNext() if is_branch else LinearNext()
    if not isinstance(raw, Mapping):
        raise GraphFormatError(
            f"Runtime node '{key}' has malformed 'next'",
            context={"node_id": key},
        )

    kind = raw.get("kind")
    if is_branch and kind == BranchNext.kind:
        return BranchNext(true_id=raw.get("trueId"), false_id=raw.get("falseId"))
    if not is_branch and kind == LinearNext.kind:
        return LinearNext(next_id=raw.get("nextId"))

    raise GraphFormatError(
        f"Runtime node '{key}' of type '{node_type}' cannot have next.kind '{kind}'",
        context={"node_id": key, "kind": kind},
    )
