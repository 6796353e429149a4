"""Tests for the graph compiler and runtime JSON.

Tests cover:
- Linear and branch routing
- Tolerance of dangling, duplicate and unlabelled edges
- Runtime JSON dump/load
"""

import pytest

from builders import edge, end, group, node, rule
from surveyflow.compiler import (
    BranchNext,
    LinearNext,
    compile_design,
    compile_graph,
    dump_runtime_json,
    load_runtime_json,
)
from surveyflow.core.exceptions import GraphFormatError
from surveyflow.core.nodes import DesignGraph


class TestCompileGraph:
    """Tests for compile_graph()."""

    def test_linear_routes(self, linear):
        graph = compile_graph(linear["nodes"], linear["edges"])
        assert set(graph) == {"start", "q1", "end"}
        assert graph["start"].next == LinearNext("q1")
        assert graph["q1"].next == LinearNext("end")
        assert graph["end"].next == LinearNext(None)

    def test_branch_routes(self, branching):
        graph = compile_graph(branching["nodes"], branching["edges"])
        assert graph["branch"].is_branch
        assert graph["branch"].next == BranchNext(true_id="end1", false_id="end2")
        assert not graph["q1"].is_branch

    def test_next_kind_matches_type(self, branching):
        graph = compile_graph(branching["nodes"], branching["edges"])
        for compiled in graph.values():
            assert (compiled.next.kind == "branch") == (compiled.type == "branch")

    def test_edges_reproduced(self, branching):
        """Reading every `next` gives back exactly the routable edges."""
        graph = compile_graph(branching["nodes"], branching["edges"])
        routes = set()
        for compiled in graph.values():
            if isinstance(compiled.next, BranchNext):
                routes.add((compiled.id, compiled.next.true_id, "true"))
                routes.add((compiled.id, compiled.next.false_id, "false"))
            elif compiled.next.next_id is not None:
                routes.add((compiled.id, compiled.next.next_id, None))
        expected = {(e["source"], e["target"], e.get("sourceHandle")) for e in branching["edges"]}
        assert routes == expected

    def test_missing_target_becomes_none(self):
        graph = compile_graph([node("s", "start")], [edge("s", "ghost")])
        assert graph["s"].next.next_id is None

    def test_unknown_source_ignored(self):
        graph = compile_graph([node("s", "start")], [edge("ghost", "s")])
        assert graph["s"].next.next_id is None

    def test_last_edge_wins(self):
        nodes = [node("s", "start"), end("a"), end("b")]
        graph = compile_graph(nodes, [edge("s", "a"), edge("s", "b")])
        assert graph["s"].next.next_id == "b"

    def test_last_branch_edge_wins(self):
        nodes = [node("br", "branch"), end("a"), end("b")]
        graph = compile_graph(nodes, [edge("br", "a", "true"), edge("br", "b", "true")])
        assert graph["br"].next.true_id == "b"
        assert graph["br"].next.false_id is None

    def test_branch_edge_without_handle_dropped(self):
        nodes = [node("br", "branch"), end("a"), end("b")]
        graph = compile_graph(nodes, [edge("br", "a"), edge("br", "b", "maybe")])
        assert graph["br"].next == BranchNext(None, None)

    def test_handle_ignored_on_linear_source(self):
        graph = compile_graph([node("s", "start"), end("a")], [edge("s", "a", "true")])
        assert graph["s"].next.next_id == "a"

    def test_data_is_copied(self, linear):
        design = DesignGraph.model_validate(linear)
        graph = compile_design(design)
        graph["q1"].data.label = "changed"
        assert design.get_node("q1").data.label == "q1"

    def test_empty_graph(self):
        assert compile_graph([], []) == {}


class TestRuntimeJson:
    """Tests for dumping and loading compiled graphs."""

    def test_dump_shape(self, branching):
        dumped = dump_runtime_json(compile_graph(branching["nodes"], branching["edges"]))
        assert dumped["q1"]["next"] == {"kind": "linear", "nextId": "branch"}
        assert dumped["branch"]["next"] == {"kind": "branch", "trueId": "end1", "falseId": "end2"}
        assert dumped["branch"]["data"]["condition"]["children"][0]["field"] == "q1"
        assert dumped["end2"]["data"]["outcome"] == "disqualified"

    def test_round_trip(self, branching):
        graph = compile_graph(branching["nodes"], branching["edges"])
        loaded = load_runtime_json(dump_runtime_json(graph))
        assert dump_runtime_json(loaded) == dump_runtime_json(graph)
        assert loaded["branch"].data.condition.children[0].value == "yes"

    def test_missing_next_defaults(self):
        loaded = load_runtime_json({"b": {"id": "b", "type": "branch", "data": {}}})
        assert loaded["b"].next == BranchNext()

    def test_id_defaults_to_key(self):
        loaded = load_runtime_json({"s": {"type": "start"}})
        assert loaded["s"].id == "s"

    def test_unknown_type(self):
        with pytest.raises(GraphFormatError) as exc_info:
            load_runtime_json({"x": {"id": "x", "type": "hologram"}})
        assert exc_info.value.context == {"node_id": "x"}

    def test_kind_mismatch(self):
        with pytest.raises(GraphFormatError):
            load_runtime_json({"b": {"id": "b", "type": "branch", "next": {"kind": "linear", "nextId": None}}})

    def test_invalid_data(self):
        raw = {"e": {"id": "e", "type": "end", "data": {"outcome": "nope"}}}
        with pytest.raises(GraphFormatError):
            load_runtime_json(raw)

    def test_not_a_mapping(self):
        with pytest.raises(GraphFormatError):
            load_runtime_json(["not", "a", "graph"])

    def test_condition_preserved(self):
        raw = {
            "q": {
                "id": "q",
                "type": "textInput",
                "data": {"condition": group(rule("a", "is_set"))},
                "next": {"kind": "linear", "nextId": None},
            }
        }
        assert load_runtime_json(raw)["q"].data.skip_condition is not None
