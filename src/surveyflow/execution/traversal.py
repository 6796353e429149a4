"""Runtime traversal of compiled survey graphs.

The engine answers one question for the respondent runner: given the node
just completed and the answers so far, which node comes next?

1. Branch nodes evaluate their condition and follow the true/false route
2. Other nodes follow their single route
3. If the candidate node has skip logic that evaluates False, it is skipped
   and routing continues from the candidate
4. If skip logic cannot be evaluated, the candidate is shown

Traversal is deterministic: the same graph and answers always produce the
same path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from surveyflow.compiler.models import BranchNext, CompiledNode, load_runtime_json
from surveyflow.core.exceptions import (
    CycleDetectedError,
    EmptyConditionError,
    InvalidConditionError,
    MissingStartNodeError,
    MultipleStartNodesError,
)
from surveyflow.core.nodes import NodeType
from surveyflow.execution.conditions import ConditionEvaluator
from surveyflow.execution.session import SurveySession
from surveyflow.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TraversalStep:
    """One routing decision.

    action is one of:
    - "enter": the node was presented
    - "branch": a branch condition was evaluated (`result` holds the outcome)
    - "skip": the node's skip logic was False
    - "show_on_error": skip logic failed to evaluate, node shown anyway
    """
    node_id: str
    action: str
    result: Optional[bool] = None
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"nodeId": self.node_id, "action": self.action}
        if self.result is not None:
            payload["result"] = self.result
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


@dataclass
class TraversalTrace:
    """Detailed record of a full walk through the graph."""
    path: List[CompiledNode] = field(default_factory=list)
    steps: List[TraversalStep] = field(default_factory=list)

    @property
    def path_ids(self) -> List[str]:
        return [node.id for node in self.path]

    @property
    def end_node(self) -> Optional[CompiledNode]:
        if self.path and self.path[-1].is_end:
            return self.path[-1]
        return None

    @property
    def completed(self) -> bool:
        """Whether the walk reached an end node."""
        return self.end_node is not None

    @property
    def outcome(self) -> Optional[str]:
        end = self.end_node
        return end.data.outcome.value if end is not None else None

    @property
    def redirect_url(self) -> Optional[str]:
        end = self.end_node
        return end.data.redirect_url if end is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path_ids,
            "steps": [step.to_dict() for step in self.steps],
            "completed": self.completed,
            "outcome": self.outcome,
            "redirectUrl": self.redirect_url,
        }


class DagTraversalEngine:
    """Walks a compiled graph for one set of answers.

    Usage:
        engine = DagTraversalEngine(compile_graph(nodes, edges))
        node = engine.get_next_node("q1", {"q1": "yes"})
        path = engine.get_taken_path(responses)

    The engine only reads the graph; one instance can serve many sessions.
    Branch nodes are never skipped, so they always appear in a taken path.
    """

    def __init__(
        self,
        graph: Mapping[str, CompiledNode],
        evaluator: Optional[ConditionEvaluator] = None,
    ):
        self.graph = graph
        self.evaluator = evaluator or ConditionEvaluator(
            {node_id: node.data for node_id, node in graph.items()}
        )
        self._check_identity()

    @classmethod
    def from_runtime_json(
        cls,
        raw: Mapping[str, Any],
        evaluator: Optional[ConditionEvaluator] = None,
    ) -> "DagTraversalEngine":
        return cls(load_runtime_json(raw), evaluator)

    def _check_identity(self) -> None:
        for key, node in self.graph.items():
            if node.id != key:
                logger.warning("Node identity mismatch: key %s vs node.id %s", key, node.id)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_start_node(self) -> CompiledNode:
        """Return the unique start node.

        Raises:
            MissingStartNodeError: If the graph has no start node.
            MultipleStartNodesError: If it has more than one.
        """
        starts = [node for node in self.graph.values() if node.type == NodeType.START]
        if not starts:
            raise MissingStartNodeError("Start node missing in workflow.")
        if len(starts) > 1:
            raise MultipleStartNodesError(
                "Multiple start nodes found. Workflow invalid.",
                context={"start_nodes": [node.id for node in starts]},
            )
        return starts[0]

    def get_node(self, node_id: str) -> Optional[CompiledNode]:
        return self.graph.get(node_id)

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    def get_next_node(self, current_id: str, responses: Mapping[str, Any]) -> Optional[CompiledNode]:
        """Return the next node to present after `current_id`, or None at the end.

        Raises:
            EmptyConditionError: If a branch on the route has no condition.
            InvalidConditionError: If a branch condition cannot be evaluated.
            CycleDetectedError: If skipping nodes leads back to a skipped node.
        """
        return self._next_node(current_id, responses, None)

    def _next_node(
        self,
        current_id: str,
        responses: Mapping[str, Any],
        steps: Optional[List[TraversalStep]],
    ) -> Optional[CompiledNode]:
        skipped: List[str] = []
        node_id = current_id

        while True:
            node = self.graph.get(node_id)
            if node is None:
                return None

            candidate_id = self._route(node, responses, steps)
            if not candidate_id:
                return None
            candidate = self.graph.get(candidate_id)
            if candidate is None:
                return None

            condition = candidate.data.skip_condition
            if condition is None:
                return candidate

            try:
                visible = self.evaluator.evaluate(condition, responses)
            except InvalidConditionError as e:
                logger.warning("Error evaluating skip logic for node %s, showing it: %s", candidate_id, e)
                _record(steps, TraversalStep(node_id=candidate_id, action="show_on_error", detail=str(e)))
                return candidate

            if visible:
                return candidate

            if candidate_id in skipped:
                raise CycleDetectedError(
                    f"Cycle detected while skipping past node {candidate_id}",
                    context={"node_id": candidate_id, "skipped": skipped},
                )
            skipped.append(candidate_id)
            logger.debug("Skipping node %s", candidate_id)
            _record(steps, TraversalStep(node_id=candidate_id, action="skip", result=False))
            node_id = candidate_id

    def _route(
        self,
        node: CompiledNode,
        responses: Mapping[str, Any],
        steps: Optional[List[TraversalStep]],
    ) -> Optional[str]:
        if not isinstance(node.next, BranchNext):
            return node.next.next_id

        condition = node.data.condition
        if condition is None or condition.is_empty:
            raise EmptyConditionError(
                f"Branch node {node.id} has no condition defined.",
                context={"node_id": node.id},
            )

        result = self.evaluator.evaluate(condition, responses)
        logger.debug("Branch %s evaluated %s", node.id, result)
        _record(steps, TraversalStep(node_id=node.id, action="branch", result=result))
        return node.next.true_id if result else node.next.false_id

    # -------------------------------------------------------------------------
    # Full path
    # -------------------------------------------------------------------------

    def trace(self, responses: Mapping[str, Any]) -> TraversalTrace:
        """Walk from the start node and record every routing decision.

        Stops after an end node is reached or when there is no next node.

        Raises:
            CycleDetectedError: If a node is visited twice.
        """
        result = TraversalTrace()
        visited = set()
        current: Optional[CompiledNode] = self.get_start_node()

        while current is not None:
            if current.id in visited:
                raise CycleDetectedError(
                    f"Cycle detected at node {current.id} during runtime traversal.",
                    context={"node_id": current.id, "path": result.path_ids},
                )
            visited.add(current.id)
            result.path.append(current)
            result.steps.append(TraversalStep(node_id=current.id, action="enter"))

            if current.is_end:
                break
            current = self._next_node(current.id, responses, result.steps)

        logger.debug(
            "Traced %d nodes (completed=%s, outcome=%s)",
            len(result.path),
            result.completed,
            result.outcome,
        )
        return result

    def get_taken_path(self, responses: Mapping[str, Any]) -> List[CompiledNode]:
        """Return the nodes a respondent with these answers would see."""
        return self.trace(responses).path

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def begin(self, responses: Optional[Mapping[str, Any]] = None) -> SurveySession:
        """Start a session at the start node."""
        start = self.get_start_node()
        return SurveySession(responses=responses or {}, current_node_id=start.id, history=(start.id,))

    def advance(self, session: SurveySession) -> SurveySession:
        """Move a session to its next node.

        Advancing from an end node (or past the last node) finishes the
        session; a finished session is returned unchanged.
        """
        if session.finished:
            return session

        current = self.get_node(session.current_node_id) if session.current_node_id else None
        if current is None or current.is_end:
            return session.finish()

        next_node = self.get_next_node(current.id, session.responses)
        if next_node is None:
            return session.finish()

        if next_node.id in session.history:
            raise CycleDetectedError(
                f"Cycle detected at node {next_node.id} during runtime traversal.",
                context={"node_id": next_node.id, "path": list(session.history)},
            )
        return session.moved_to(next_node.id)

    def is_finished(self, session: SurveySession) -> bool:
        if session.finished:
            return True
        current = self.get_node(session.current_node_id) if session.current_node_id else None
        return current is not None and current.is_end


def _record(steps: Optional[List[TraversalStep]], step: TraversalStep) -> None:
    if steps is not None:
        steps.append(step)
