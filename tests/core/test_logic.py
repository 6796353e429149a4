"""Tests for condition models."""

import pytest
from pydantic import ValidationError

from builders import group, rule
from surveyflow.core.logic import (
    LogicGroup,
    LogicRule,
    LogicType,
    ValueType,
    collect_referenced_fields,
    parse_condition,
)


class TestLogicGroupParsing:
    """Tests for loading stored conditions."""

    def test_nested_groups(self):
        parsed = parse_condition(
            group(rule("q1", "equals", "a"), group(rule("q2", "gt", 3), logic="OR"))
        )
        assert parsed.logic_type == LogicType.AND
        assert isinstance(parsed.children[0], LogicRule)
        assert isinstance(parsed.children[1], LogicGroup)
        assert parsed.children[1].logic_type == LogicType.OR

    def test_untyped_children_are_tagged(self):
        parsed = LogicGroup.model_validate(
            {
                "logicType": "OR",
                "children": [
                    {"field": "q1", "operator": "is_set"},
                    {"logicType": "AND", "children": [{"field": "q2", "operator": "is_empty"}]},
                ],
            }
        )
        assert isinstance(parsed.children[0], LogicRule)
        assert isinstance(parsed.children[1], LogicGroup)

    def test_legacy_rules_key(self):
        parsed = LogicGroup.model_validate({"logicType": "AND", "rules": []})
        assert parsed.is_empty

    def test_none_stays_none(self):
        assert parse_condition(None) is None

    def test_rule_requires_field(self):
        with pytest.raises(ValidationError):
            parse_condition(group({"type": "rule", "operator": "equals"}))

    def test_unknown_operator_still_loads(self):
        parsed = parse_condition(group(rule("q1", "starts_with", "a")))
        assert parsed.children[0].is_known_operator is False

    def test_round_trip(self):
        parsed = parse_condition(
            group(rule("q1", "equals", "q2", valueType="variable"), rule("m", "equals", "x", subField="row1"))
        )
        assert LogicGroup.model_validate(parsed.to_dict()) == parsed
        assert parsed.to_dict()["children"][0]["valueType"] == "variable"


class TestReferencedFields:
    """Tests for dependency extraction used by causal ordering."""

    def test_static_rule(self):
        assert LogicRule(field="q1", operator="equals", value="q9").referenced_fields == ["q1"]

    def test_variable_rule(self):
        r = LogicRule(field="q1", operator="equals", value="q9", value_type=ValueType.VARIABLE)
        assert r.referenced_fields == ["q1", "q9"]

    def test_collect_in_order_without_duplicates(self):
        parsed = parse_condition(
            group(
                rule("q2", "is_set"),
                group(rule("q1", "equals", "q2", valueType="variable"), rule("q3", "lt", 5), logic="OR"),
            )
        )
        assert collect_referenced_fields(parsed) == ["q2", "q1", "q3"]

    def test_collect_none(self):
        assert collect_referenced_fields(None) == []

    def test_iter_rules_depth_first(self):
        parsed = parse_condition(group(group(rule("a", "is_set")), rule("b", "is_set")))
        assert [r.field for r in parsed.iter_rules()] == ["a", "b"]

    def test_iter_groups_includes_root_and_nested(self):
        parsed = parse_condition(
            group(rule("a", "is_set"), group(group(), logic="OR"))
        )
        groups = list(parsed.iter_groups())
        assert groups[0] is parsed
        assert [g.logic_type for g in groups] == [LogicType.AND, LogicType.OR, LogicType.AND]
        assert [g.is_empty for g in groups] == [False, False, True]
