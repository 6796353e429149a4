"""Condition models for skip logic and branch routing.

A condition is a tree of groups and rules:
- LogicGroup: combines its children with AND / OR
- LogicRule: compares one answer (optionally a sub-field of it) against a value

Rules reference answers by node id. With `valueType == "variable"` the rule's
value is itself a node id whose answer is compared against.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Annotated, Dict, Iterator, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LogicOperator(str, Enum):
    """Operators understood by the condition evaluator."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GT = "gt"
    LT = "lt"
    IS_SET = "is_set"
    IS_EMPTY = "is_empty"
    IS_BETWEEN = "is_between"
    IN_RANGE = "in_range"


KNOWN_OPERATORS = frozenset(op.value for op in LogicOperator)


class LogicType(str, Enum):
    AND = "AND"
    OR = "OR"


class ValueType(str, Enum):
    """Whether a rule value is a literal or a reference to another answer."""
    STATIC = "static"
    VARIABLE = "variable"


class LogicRule(BaseModel):
    """Leaf condition comparing a single answer.

    The operator is kept as a plain string so conditions saved by newer
    editors still load; unknown operators simply evaluate to False.
    """
    type: Literal["rule"] = "rule"
    id: Optional[str] = None
    field: str
    sub_field: Optional[str] = Field(default=None, alias="subField")
    operator: str
    value: Any = None
    value_type: ValueType = Field(default=ValueType.STATIC, alias="valueType")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def is_known_operator(self) -> bool:
        return self.operator in KNOWN_OPERATORS

    @property
    def referenced_fields(self) -> List[str]:
        """Node ids this rule reads answers from."""
        fields = [self.field]
        if self.value_type == ValueType.VARIABLE and isinstance(self.value, str) and self.value:
            fields.append(self.value)
        return fields


class LogicGroup(BaseModel):
    """AND / OR combination of rules and nested groups."""
    type: Literal["group"] = "group"
    id: Optional[str] = None
    logic_type: LogicType = Field(default=LogicType.AND, alias="logicType")
    children: List["LogicItem"] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def normalize_children(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        # Older editor builds seeded new nodes with {"logicType": "AND", "rules": []}
        if "children" not in data and "rules" in data:
            data["children"] = data.pop("rules")
        children = data.get("children")
        if isinstance(children, list):
            data["children"] = [_tag_child(child) for child in children]
        return data

    @property
    def is_empty(self) -> bool:
        return not self.children

    def iter_groups(self) -> Iterator["LogicGroup"]:
        """Yield this group and every nested group, depth first."""
        yield self
        for child in self.children:
            if isinstance(child, LogicGroup):
                yield from child.iter_groups()

    def iter_rules(self) -> Iterator[LogicRule]:
        """Yield every rule in the tree, depth first."""
        for child in self.children:
            if isinstance(child, LogicGroup):
                yield from child.iter_rules()
            else:
                yield child

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


LogicItem = Annotated[Union[LogicGroup, LogicRule], Field(discriminator="type")]

LogicGroup.model_rebuild()


def _tag_child(child: Any) -> Any:
    if isinstance(child, Mapping) and "type" not in child:
        tag = "group" if ("children" in child or "rules" in child) else "rule"
        return {**child, "type": tag}
    return child


def parse_condition(raw: Any) -> Optional[LogicGroup]:
    """Coerce a stored condition into a LogicGroup (None stays None)."""
    if raw is None or isinstance(raw, LogicGroup):
        return raw
    return LogicGroup.model_validate(raw)


def collect_referenced_fields(group: Optional[LogicGroup]) -> List[str]:
    """Return the node ids a condition depends on, in first-seen order."""
    if group is None:
        return []
    seen: Dict[str, None] = {}
    for rule in group.iter_rules():
        for field_id in rule.referenced_fields:
            seen.setdefault(field_id, None)
    return list(seen)
