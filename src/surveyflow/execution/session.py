"""Respondent session snapshots.

The engine never owns session state. Callers keep a SurveySession, add
answers to it and hand it back to `DagTraversalEngine.advance()`, which
returns the next snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class SurveySession:
    """Immutable snapshot of one respondent's progress."""
    responses: Mapping[str, Any] = field(default_factory=dict)
    current_node_id: Optional[str] = None
    history: Tuple[str, ...] = ()
    finished: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "responses", MappingProxyType(dict(self.responses)))
        object.__setattr__(self, "history", tuple(self.history))

    def with_answer(self, node_id: str, answer: Any) -> "SurveySession":
        """Return a copy with `answer` recorded for `node_id`."""
        responses = dict(self.responses)
        responses[node_id] = answer
        return replace(self, responses=responses)

    def moved_to(self, node_id: str) -> "SurveySession":
        return replace(self, current_node_id=node_id, history=self.history + (node_id,))

    def finish(self) -> "SurveySession":
        return replace(self, finished=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "responses": dict(self.responses),
            "currentNodeId": self.current_node_id,
            "history": list(self.history),
            "finished": self.finished,
        }
