"""Static validation of survey graphs before publishing."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from surveyflow.core.exceptions import WorkflowValidationError
from surveyflow.core.logic import LogicGroup, collect_referenced_fields
from surveyflow.core.nodes import BranchHandle, Edge, NodeBase, NodeType, parse_edge, parse_node
from surveyflow.utils.logging import get_logger

logger = get_logger(__name__)

BRANCH_HANDLES = frozenset(handle.value for handle in BranchHandle)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ValidationError:
    """Represents a workflow validation problem."""

    code: str
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    severity: Severity = Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
        }
        if self.node_id is not None:
            payload["nodeId"] = self.node_id
        if self.edge_id is not None:
            payload["edgeId"] = self.edge_id
        return payload


@dataclass
class ValidationResult:
    """Outcome of a validation run. Warnings do not block publishing."""

    errors: List[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(err.severity == Severity.ERROR for err in self.errors)

    @property
    def warnings(self) -> List[ValidationError]:
        return [err for err in self.errors if err.severity == Severity.WARNING]

    def codes(self) -> List[str]:
        return [err.code for err in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": [err.to_dict() for err in self.errors]}


@dataclass
class _NodeView:
    """What the graph checks need to know about a node, parsed or not."""

    id: str
    type: str
    label: str
    node: Optional[NodeBase] = None


class WorkflowValidator:
    """Validates survey graph structure, reachability and causal ordering.

    Nodes and edges may be typed models or the raw dicts saved by the editor.
    Malformed entries are reported rather than raised, so one run always
    returns the complete list of problems.
    """

    def validate(self, nodes: Iterable[Any], edges: Iterable[Any]) -> ValidationResult:
        """
        Validate a graph and return every problem found.

        Rules:
        1. Exactly one start node, at least one end node; nodes and edges
           must parse, node ids must be unique, edges must reference
           existing nodes
        2. No cycles (Kahn's algorithm)
        3. Every node reachable from the start node
        4. Every node can reach an end node
        5. End nodes need a redirect URL; branch nodes need a condition with
           no empty groups and exactly one "true" and one "false" edge; other
           nodes have at most one outgoing edge
        6. Branch conditions only reference fields that come strictly earlier
           in topological order
        """
        errors: List[ValidationError] = []

        views = self._coerce_nodes(nodes, errors)
        edge_list = self._coerce_edges(edges, errors)

        by_id: Dict[str, _NodeView] = {}
        for view in views:
            if view.id in by_id:
                errors.append(
                    ValidationError(
                        code="DUPLICATE_NODE_ID",
                        message=f"Duplicate node ID: {view.id}",
                        node_id=view.id,
                    )
                )
                continue
            by_id[view.id] = view

        start_nodes = [v for v in by_id.values() if v.type == NodeType.START]
        end_nodes = [v for v in by_id.values() if v.type == NodeType.END]

        # Rule 1: structural
        if not start_nodes:
            errors.append(
                ValidationError(
                    code="NO_START_NODE",
                    message="The flow must have exactly one Start node.",
                )
            )
        elif len(start_nodes) > 1:
            labels = ", ".join(v.label for v in start_nodes)
            errors.append(
                ValidationError(
                    code="MULTIPLE_START_NODES",
                    message=f"The flow has {len(start_nodes)} Start nodes but only one is allowed. Found: {labels}",
                )
            )

        if not end_nodes:
            errors.append(
                ValidationError(
                    code="NO_END_NODE",
                    message="The flow must have at least one End node.",
                )
            )

        outgoing: Dict[str, List[Edge]] = {node_id: [] for node_id in by_id}
        adjacency: Dict[str, List[str]] = {node_id: [] for node_id in by_id}
        reverse_adjacency: Dict[str, List[str]] = {node_id: [] for node_id in by_id}

        for edge in edge_list:
            if edge.source not in by_id:
                errors.append(
                    ValidationError(
                        code="INVALID_EDGE_SOURCE",
                        message=f"Edge references non-existent source node: {edge.source}",
                        edge_id=edge.id,
                    )
                )
                continue
            outgoing[edge.source].append(edge)

            if edge.target not in by_id:
                errors.append(
                    ValidationError(
                        code="INVALID_EDGE_TARGET",
                        message=f"Edge references non-existent target node: {edge.target}",
                        node_id=edge.source,
                        edge_id=edge.id,
                    )
                )
                continue
            adjacency[edge.source].append(edge.target)
            reverse_adjacency[edge.target].append(edge.source)

        # Rule 2: cycles
        topo_order = self._topological_order(adjacency)
        if len(topo_order) < len(by_id):
            errors.append(
                ValidationError(
                    code="CYCLE_DETECTED",
                    message="The flow contains a cycle (loop). Remove loops to publish.",
                )
            )
        topo_index = {node_id: idx for idx, node_id in enumerate(topo_order)}

        # Rule 3: forward reachability
        if len(start_nodes) == 1:
            reachable = self._reachable([start_nodes[0].id], adjacency)
            for view in by_id.values():
                if view.id not in reachable:
                    errors.append(
                        ValidationError(
                            code="UNREACHABLE_NODE",
                            message=f"Node '{view.label}' is not reachable from the Start node.",
                            node_id=view.id,
                        )
                    )

        # Rule 4: every node must lead to an end
        can_reach_end = self._reachable([v.id for v in end_nodes], reverse_adjacency)
        for view in by_id.values():
            if view.id not in can_reach_end:
                errors.append(
                    ValidationError(
                        code="DEAD_END_NODE",
                        message=f"Path starting at '{view.label}' never reaches an End node.",
                        node_id=view.id,
                    )
                )

        # Rules 5 & 6: per node type
        for view in by_id.values():
            node_edges = outgoing[view.id]
            if view.type == NodeType.END:
                errors.extend(self._check_end(view, node_edges))
            elif view.type == NodeType.BRANCH:
                errors.extend(self._check_branch(view, node_edges, topo_index))
            elif len(node_edges) > 1:
                errors.append(
                    ValidationError(
                        code="TOO_MANY_OUTGOING",
                        message=f"Node '{view.label}' can only have one outgoing connection, found {len(node_edges)}.",
                        node_id=view.id,
                    )
                )

            if view.node is not None:
                errors.extend(self._check_skip_logic(view, topo_index))
                errors.extend(self._check_operators(view))

        result = ValidationResult(errors=errors)
        logger.debug(
            "Validated %d nodes / %d edges: %d problems (valid=%s)",
            len(by_id),
            len(edge_list),
            len(errors),
            result.is_valid,
        )
        return result

    # -------------------------------------------------------------------------
    # Input coercion
    # -------------------------------------------------------------------------

    def _coerce_nodes(self, nodes: Iterable[Any], errors: List[ValidationError]) -> List[_NodeView]:
        views: List[_NodeView] = []
        for raw in nodes:
            if isinstance(raw, NodeBase):
                views.append(_NodeView(id=raw.id, type=raw.type, label=raw.label, node=raw))
                continue

            if not isinstance(raw, Mapping) or not isinstance(raw.get("id"), str) or not raw.get("id"):
                errors.append(
                    ValidationError(
                        code="INVALID_NODE",
                        message="Node is missing an id.",
                    )
                )
                continue

            node_id = raw["id"]
            raw_data = raw.get("data")
            raw_label = raw_data.get("label") if isinstance(raw_data, Mapping) else None
            label = raw_label if isinstance(raw_label, str) and raw_label else node_id

            try:
                node = parse_node(raw)
            except PydanticValidationError as e:
                errors.append(
                    ValidationError(
                        code="INVALID_NODE",
                        message=f"Node '{label}' is invalid: {_first_error(e)}",
                        node_id=node_id,
                    )
                )
                views.append(_NodeView(id=node_id, type=str(raw.get("type") or ""), label=label))
                continue

            views.append(_NodeView(id=node.id, type=node.type, label=node.label, node=node))
        return views

    def _coerce_edges(self, edges: Iterable[Any], errors: List[ValidationError]) -> List[Edge]:
        parsed: List[Edge] = []
        for raw in edges:
            try:
                parsed.append(parse_edge(raw))
            except PydanticValidationError as e:
                edge_id = raw.get("id") if isinstance(raw, Mapping) else None
                errors.append(
                    ValidationError(
                        code="INVALID_EDGE",
                        message=f"Edge is invalid: {_first_error(e)}",
                        edge_id=edge_id if isinstance(edge_id, str) else None,
                    )
                )
        return parsed

    # -------------------------------------------------------------------------
    # Graph algorithms
    # -------------------------------------------------------------------------

    def _topological_order(self, adjacency: Mapping[str, Sequence[str]]) -> List[str]:
        """Kahn's algorithm. Nodes on (or behind) a cycle are left out."""
        in_degree = {node_id: 0 for node_id in adjacency}
        for targets in adjacency.values():
            for target in targets:
                in_degree[target] += 1

        queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
        order: List[str] = []
        while queue:
            current = queue.popleft()
            order.append(current)
            for target in adjacency[current]:
                in_degree[target] -= 1
                if in_degree[target] == 0:
                    queue.append(target)
        return order

    def _reachable(self, seeds: Iterable[str], adjacency: Mapping[str, Sequence[str]]) -> set:
        visited = set()
        stack = list(seeds)
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            stack.extend(adjacency.get(current, []))
        return visited

    # -------------------------------------------------------------------------
    # Per node type checks
    # -------------------------------------------------------------------------

    def _check_end(self, view: _NodeView, node_edges: List[Edge]) -> List[ValidationError]:
        errors: List[ValidationError] = []
        if view.node is not None and not (view.node.data.redirect_url or "").strip():
            errors.append(
                ValidationError(
                    code="END_MISSING_REDIRECT",
                    message=f"End node '{view.label}' must have a Redirect URL.",
                    node_id=view.id,
                )
            )
        if node_edges:
            errors.append(
                ValidationError(
                    code="END_HAS_OUTGOING",
                    message=f"End node '{view.label}' has outgoing connections; they are never followed.",
                    node_id=view.id,
                    severity=Severity.WARNING,
                )
            )
        return errors

    def _check_branch(
        self,
        view: _NodeView,
        node_edges: List[Edge],
        topo_index: Mapping[str, int],
    ) -> List[ValidationError]:
        errors: List[ValidationError] = []

        condition: Optional[LogicGroup] = None
        if view.node is not None:
            condition = view.node.data.routing_condition
            if condition is None or condition.is_empty:
                errors.append(
                    ValidationError(
                        code="BRANCH_MISSING_CONDITION",
                        message=f"Branch node '{view.label}' must have at least one valid condition rule.",
                        node_id=view.id,
                    )
                )
            else:
                # An empty group anywhere in the tree raises during evaluation.
                for nested in condition.iter_groups():
                    if nested.is_empty:
                        errors.append(
                            ValidationError(
                                code="EMPTY_CONDITION_GROUP",
                                message=f"Branch node '{view.label}' has an empty condition group; add a rule or remove it.",
                                node_id=view.id,
                            )
                        )

        handle_counts: Dict[str, int] = {}
        for edge in node_edges:
            handle = edge.source_handle
            if handle not in BRANCH_HANDLES:
                errors.append(
                    ValidationError(
                        code="INVALID_BRANCH_HANDLE",
                        message=(
                            f"Branch node '{view.label}' has a connection without a TRUE/FALSE handle "
                            f"(got {handle!r}); it would be ignored at runtime."
                        ),
                        node_id=view.id,
                        edge_id=edge.id,
                    )
                )
                continue
            handle_counts[handle] = handle_counts.get(handle, 0) + 1

        for handle, count in sorted(handle_counts.items()):
            if count > 1:
                errors.append(
                    ValidationError(
                        code="DUPLICATE_BRANCH_HANDLE",
                        message=f"Branch node '{view.label}' has {count} {handle.upper()} connections; only one is allowed.",
                        node_id=view.id,
                    )
                )

        if BranchHandle.TRUE.value not in handle_counts or BranchHandle.FALSE.value not in handle_counts:
            errors.append(
                ValidationError(
                    code="BRANCH_MISSING_PATHS",
                    message=f"Branch node '{view.label}' must have both TRUE and FALSE connections.",
                    node_id=view.id,
                )
            )

        for field_id in self._out_of_order_fields(view.id, condition, topo_index):
            errors.append(
                ValidationError(
                    code="CAUSAL_ORDER_VIOLATION",
                    message=(
                        f"Branch depends on question '{field_id}' which is not guaranteed "
                        f"to be answered before this branch."
                    ),
                    node_id=view.id,
                )
            )

        return errors

    def _check_skip_logic(self, view: _NodeView, topo_index: Mapping[str, int]) -> List[ValidationError]:
        # Skip logic fails open at runtime, so ordering problems only warrant a warning.
        if view.id not in topo_index:
            return []
        condition = view.node.data.skip_condition
        return [
            ValidationError(
                code="SKIP_LOGIC_ORDER",
                message=(
                    f"Skip logic on '{view.label}' depends on question '{field_id}' which is not "
                    f"answered before it; the node will always be shown."
                ),
                node_id=view.id,
                severity=Severity.WARNING,
            )
            for field_id in self._out_of_order_fields(view.id, condition, topo_index)
        ]

    def _check_operators(self, view: _NodeView) -> List[ValidationError]:
        condition = view.node.data.condition
        if condition is None:
            return []
        return [
            ValidationError(
                code="UNKNOWN_OPERATOR",
                message=f"Condition on '{view.label}' uses unknown operator '{rule.operator}'; it never matches.",
                node_id=view.id,
                severity=Severity.WARNING,
            )
            for rule in condition.iter_rules()
            if not rule.is_known_operator
        ]

    def _out_of_order_fields(
        self,
        node_id: str,
        condition: Optional[LogicGroup],
        topo_index: Mapping[str, int],
    ) -> List[str]:
        position = topo_index.get(node_id, -1)
        return [
            field_id
            for field_id in collect_referenced_fields(condition)
            if field_id not in topo_index or topo_index[field_id] >= position
        ]

    def format_errors(self, errors: Iterable[ValidationError]) -> str:
        """Format validation errors as a readable string."""
        errors = list(errors)
        if not errors:
            return ""

        lines = ["Workflow validation failed:"]
        for err in errors:
            location = ""
            if err.node_id:
                location = f" (node: {err.node_id})"
            elif err.edge_id:
                location = f" (edge: {err.edge_id})"
            prefix = "warning: " if err.severity == Severity.WARNING else ""
            lines.append(f"  • {prefix}{err.message}{location}")

        return "\n".join(lines)


def _first_error(exc: PydanticValidationError) -> str:
    details = exc.errors()
    if not details:
        return str(exc)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def validate_workflow(nodes: Iterable[Any], edges: Iterable[Any]) -> ValidationResult:
    """Validate a graph with a default validator."""
    return WorkflowValidator().validate(nodes, edges)


def ensure_publishable(nodes: Iterable[Any], edges: Iterable[Any]) -> ValidationResult:
    """Validate a graph and raise if it may not be published.

    Raises:
        WorkflowValidationError: If any error-severity problem is found.
    """
    validator = WorkflowValidator()
    result = validator.validate(nodes, edges)
    if not result.is_valid:
        blocking = [err for err in result.errors if err.severity == Severity.ERROR]
        raise WorkflowValidationError(
            validator.format_errors(blocking),
            context={"errors": [err.to_dict() for err in blocking]},
        )
    return result


def split_design(design: Mapping[str, Any]) -> Tuple[List[Any], List[Any]]:
    """Pull raw node and edge lists out of a saved editor document."""
    nodes = design.get("nodes") or []
    edges = design.get("edges") or []
    return list(nodes), list(edges)
