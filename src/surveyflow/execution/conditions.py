"""Condition evaluation for skip logic and branch routing.

Conditions are LogicGroup trees evaluated against a respondent's answers,
keyed by node id. Evaluation is pure: the same group and answers always
produce the same result.

Answers are compared leniently:
- rich answers ({"answer": ...}) are unwrapped
- text is compared case-insensitively with smart quotes and whitespace folded
- a displayed option label is mapped back to the option's stored value
- list answers (multi-select) match if any element matches
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from surveyflow.config.settings import get_settings
from surveyflow.core.exceptions import EmptyConditionError, InvalidConditionError
from surveyflow.core.logic import LogicGroup, LogicOperator, LogicRule, LogicType, ValueType, parse_condition
from surveyflow.core.nodes import NodeData
from surveyflow.utils.logging import get_logger

logger = get_logger(__name__)

_SMART_QUOTES = str.maketrans({"‘": "'", "’": "'", "“": '"', "”": '"'})
_WHITESPACE = re.compile(r"\s+")
_RANGE_TOKEN = re.compile(r"^(-?\d+(?:\.\d+)?)\s*-\s*(-?\d+(?:\.\d+)?)$")


# -----------------------------------------------------------------------------
# Value helpers
# -----------------------------------------------------------------------------


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_text(value: Any) -> str:
    """Lowercase, fold smart quotes, collapse whitespace and trim."""
    return _WHITESPACE.sub(" ", _to_text(value).translate(_SMART_QUOTES)).strip().lower()


def unwrap_answer(value: Any) -> Any:
    """Return the raw answer from a rich response wrapper."""
    if isinstance(value, Mapping) and "answer" in value:
        return value["answer"]
    return value


def to_number(value: Any) -> Optional[float]:
    """Coerce an answer to a float, or None if it is not numeric."""
    if value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


# -----------------------------------------------------------------------------
# Evaluator
# -----------------------------------------------------------------------------


class ConditionEvaluator:
    """Evaluate LogicGroup conditions against a response map.

    Usage:
        evaluator = ConditionEvaluator({"q1": q1_node.data})
        evaluator.evaluate(branch.data.condition, {"q1": "Yes"})

    `definitions` maps node id -> node data and is only used to translate
    option labels into stored values; it may be omitted.
    """

    def __init__(
        self,
        definitions: Optional[Mapping[str, NodeData]] = None,
        *,
        other_value: Optional[str] = None,
        default_other_label: Optional[str] = None,
    ):
        if other_value is None or default_other_label is None:
            settings = get_settings()
            other_value = other_value if other_value is not None else settings.other_option_value
            default_other_label = (
                default_other_label if default_other_label is not None else settings.default_other_label
            )
        self._definitions = dict(definitions or {})
        self.other_value = other_value
        self.default_other_label = default_other_label

    def evaluate(self, group: Any, responses: Mapping[str, Any]) -> bool:
        """Evaluate a condition group.

        Args:
            group: LogicGroup (or its stored dict form).
            responses: Node id -> answer.

        Returns:
            True if the condition holds.

        Raises:
            EmptyConditionError: If the group (or a nested group) has no children.
            InvalidConditionError: If the condition cannot be parsed or evaluated.
        """
        try:
            group = parse_condition(group)
        except ValidationError as e:
            raise InvalidConditionError(
                f"Invalid condition: {e}",
                context={"condition": group},
            ) from e

        if group is None or group.is_empty:
            raise EmptyConditionError(
                "Cannot evaluate an empty condition group.",
                context={"group_id": group.id if group is not None else None},
            )

        try:
            return self._evaluate_group(group, responses)
        except InvalidConditionError:
            raise
        except Exception as e:
            raise InvalidConditionError(
                f"Error evaluating condition: {e}",
                context={"group_id": group.id},
            ) from e

    def _evaluate_group(self, group: LogicGroup, responses: Mapping[str, Any]) -> bool:
        if group.is_empty:
            raise EmptyConditionError(
                "Cannot evaluate an empty condition group.",
                context={"group_id": group.id},
            )

        # No short-circuit: an empty nested group must raise even once the result is decided.
        results = [
            self._evaluate_group(child, responses)
            if isinstance(child, LogicGroup)
            else self.evaluate_rule(child, responses)
            for child in group.children
        ]

        if group.logic_type == LogicType.OR:
            return any(results)
        return all(results)

    def evaluate_rule(self, rule: LogicRule, responses: Mapping[str, Any]) -> bool:
        """Evaluate a single rule.

        A field that was never answered fails every operator except
        `is_empty`, which matches it.
        """
        if rule.field not in responses:
            return rule.operator == LogicOperator.IS_EMPTY

        value = unwrap_answer(responses[rule.field])
        if rule.sub_field and isinstance(value, Mapping):
            value = value.get(rule.sub_field)

        target = rule.value
        if rule.value_type == ValueType.VARIABLE:
            if not isinstance(target, str) or target not in responses:
                return False
            target = unwrap_answer(responses[target])

        definition = self._definitions.get(rule.field)
        value = self._resolve_labels(value, definition)
        target = self._resolve_labels(target, definition)

        return self._apply_operator(rule.operator, value, target)

    # -------------------------------------------------------------------------
    # Label -> value resolution
    # -------------------------------------------------------------------------

    def _resolve_labels(self, value: Any, definition: Optional[NodeData]) -> Any:
        if definition is None:
            return value
        if isinstance(value, str):
            return self._resolve_label(value, definition)
        if isinstance(value, list):
            return [self._resolve_label(v, definition) if isinstance(v, str) else v for v in value]
        return value

    def _resolve_label(self, text: str, definition: NodeData) -> Any:
        key = normalize_text(text)
        if not key:
            return text

        for option in definition.answer_options():
            if option.label and normalize_text(option.label) == key:
                return option.value

        other_label = definition.other_option_label
        if other_label is not None and key != normalize_text(self.other_value):
            if normalize_text(other_label or self.default_other_label) == key:
                return self.other_value

        return text

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def _apply_operator(self, operator: str, value: Any, target: Any) -> bool:
        if operator == LogicOperator.EQUALS:
            return self._matches(value, target)
        if operator == LogicOperator.NOT_EQUALS:
            return not self._matches(value, target)
        if operator == LogicOperator.CONTAINS:
            return self._contains(value, target)
        if operator == LogicOperator.NOT_CONTAINS:
            return not self._contains(value, target)
        if operator == LogicOperator.GT:
            left, right = to_number(value), to_number(target)
            return left is not None and right is not None and left > right
        if operator == LogicOperator.LT:
            left, right = to_number(value), to_number(target)
            return left is not None and right is not None and left < right
        if operator == LogicOperator.IS_SET:
            return not is_blank(value)
        if operator == LogicOperator.IS_EMPTY:
            return is_blank(value)
        if operator == LogicOperator.IS_BETWEEN:
            return self._is_between(value, target)
        if operator == LogicOperator.IN_RANGE:
            return self._in_range(value, target)

        logger.debug("Unknown operator %r evaluates to False", operator)
        return False

    def _matches(self, value: Any, target: Any) -> bool:
        expected = normalize_text(target)
        if isinstance(value, (list, tuple)):
            return any(normalize_text(item) == expected for item in value)
        return normalize_text(value) == expected

    def _contains(self, value: Any, target: Any) -> bool:
        if isinstance(value, (list, tuple)):
            return self._matches(value, target)
        return normalize_text(target) in normalize_text(value)

    def _is_between(self, value: Any, target: Any) -> bool:
        if not isinstance(target, Mapping):
            return False
        number = to_number(value)
        low = to_number(target.get("min"))
        high = to_number(target.get("max"))
        if number is None or low is None or high is None:
            return False
        return low <= number <= high

    def _in_range(self, value: Any, target: Any) -> bool:
        """Match against a comma-separated list such as "1-5, 10, other"."""
        if not isinstance(target, str):
            return False

        number = to_number(value)
        text = normalize_text(value)
        for token in (part.strip() for part in target.split(",")):
            if not token:
                continue
            bounds = _RANGE_TOKEN.match(token)
            if bounds:
                if number is not None and float(bounds.group(1)) <= number <= float(bounds.group(2)):
                    return True
                continue
            token_number = to_number(token)
            if token_number is not None and number is not None:
                if number == token_number:
                    return True
            elif text == normalize_text(token):
                return True
        return False
