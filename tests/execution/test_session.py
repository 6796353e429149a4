"""Tests for caller-owned respondent sessions."""

from dataclasses import FrozenInstanceError

import pytest

from builders import edge, node
from surveyflow.compiler import compile_graph
from surveyflow.core.exceptions import CycleDetectedError
from surveyflow.execution import DagTraversalEngine, SurveySession


@pytest.fixture
def engine(branching):
    return DagTraversalEngine(compile_graph(branching["nodes"], branching["edges"]))


class TestSurveySession:
    """Tests for the immutable session snapshot."""

    def test_with_answer_returns_copy(self):
        session = SurveySession(current_node_id="q1")
        updated = session.with_answer("q1", "yes")
        assert dict(updated.responses) == {"q1": "yes"}
        assert dict(session.responses) == {}

    def test_responses_read_only(self):
        session = SurveySession(responses={"q1": "yes"})
        with pytest.raises(TypeError):
            session.responses["q1"] = "no"

    def test_frozen(self):
        session = SurveySession()
        with pytest.raises(FrozenInstanceError):
            session.current_node_id = "x"

    def test_caller_dict_not_shared(self):
        answers = {"q1": "yes"}
        session = SurveySession(responses=answers)
        answers["q1"] = "no"
        assert session.responses["q1"] == "yes"

    def test_to_dict(self):
        session = SurveySession(current_node_id="q1", history=["start", "q1"]).with_answer("q1", 3)
        assert session.to_dict() == {
            "responses": {"q1": 3},
            "currentNodeId": "q1",
            "history": ["start", "q1"],
            "finished": False,
        }


class TestAdvance:
    """Tests for stepping a session through the engine."""

    def test_walkthrough(self, engine):
        session = engine.begin()
        assert session.current_node_id == "start"

        session = engine.advance(session)
        assert session.current_node_id == "q1"

        session = engine.advance(session.with_answer("q1", "Yes"))
        assert session.current_node_id == "branch"

        session = engine.advance(session)
        assert session.current_node_id == "end1"
        assert engine.is_finished(session)
        assert not session.finished

        session = engine.advance(session)
        assert session.finished
        assert session.history == ("start", "q1", "branch", "end1")

    def test_finished_session_unchanged(self, engine):
        session = SurveySession(current_node_id="end1", finished=True)
        assert engine.advance(session) is session

    def test_no_next_node_finishes(self):
        engine = DagTraversalEngine(compile_graph([node("s", "start"), node("q", "textInput")], [edge("s", "q")]))
        session = engine.advance(engine.advance(engine.begin()))
        assert session.finished
        assert session.current_node_id == "q"

    def test_revisit_raises(self):
        graph = compile_graph(
            [node("s", "start"), node("a", "textInput"), node("b", "textInput")],
            [edge("s", "a"), edge("a", "b"), edge("b", "a")],
        )
        engine = DagTraversalEngine(graph)
        session = engine.advance(engine.advance(engine.begin()))
        assert session.current_node_id == "b"
        with pytest.raises(CycleDetectedError):
            engine.advance(session)

    def test_begin_with_answers(self, engine):
        session = engine.begin({"q1": "no"})
        assert session.responses["q1"] == "no"
