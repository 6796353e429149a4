"""Builders for editor-shaped survey graphs used across the test suite."""

from typing import Any, Dict, List, Optional


def node(node_id: str, node_type: str, **data: Any) -> Dict[str, Any]:
    """Editor node dict. Keyword arguments become `data` keys as written."""
    data.setdefault("label", node_id)
    return {
        "id": node_id,
        "type": node_type,
        "position": {"x": 0, "y": 0},
        "data": data,
    }


def edge(source: str, target: str, handle: Optional[str] = None, edge_id: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": edge_id or f"{source}->{target}",
        "source": source,
        "target": target,
    }
    if handle is not None:
        payload["sourceHandle"] = handle
    return payload


def rule(field: str, operator: str, value: Any = None, **extra: Any) -> Dict[str, Any]:
    return {"type": "rule", "field": field, "operator": operator, "value": value, **extra}


def group(*children: Dict[str, Any], logic: str = "AND") -> Dict[str, Any]:
    return {"type": "group", "logicType": logic, "children": list(children)}


def end(node_id: str, redirect: str = "https://panel.example.com/complete", **data: Any) -> Dict[str, Any]:
    return node(node_id, "end", redirectUrl=redirect, **data)


def choice(node_id: str, *labels: str, **data: Any) -> Dict[str, Any]:
    """singleChoice node whose option values are the lowercased labels."""
    options: List[Dict[str, Any]] = [{"label": label, "value": label.lower()} for label in labels]
    return node(node_id, "singleChoice", options=options, **data)


# -----------------------------------------------------------------------------
# Canned graphs
# -----------------------------------------------------------------------------


def linear_design() -> Dict[str, Any]:
    """start -> q1 (text) -> end"""
    return {
        "nodes": [node("start", "start"), node("q1", "textInput"), end("end")],
        "edges": [edge("start", "q1"), edge("q1", "end")],
    }


def branch_design() -> Dict[str, Any]:
    """start -> q1 (Yes/No) -> branch(q1 == yes) -> end1 | end2"""
    return {
        "nodes": [
            node("start", "start"),
            choice("q1", "Yes", "No"),
            node("branch", "branch", condition=group(rule("q1", "equals", "yes"))),
            end("end1"),
            end("end2", outcome="disqualified"),
        ],
        "edges": [
            edge("start", "q1"),
            edge("q1", "branch"),
            edge("branch", "end1", "true"),
            edge("branch", "end2", "false"),
        ],
    }
