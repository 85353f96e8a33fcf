"""
Constraint and rule matching predicates.

Everything here is pure: no logging, no I/O, safe to call concurrently.
"""

import re
from typing import Any, Iterable, List, Mapping

from .models import ParameterConstraint, PolicyRule


def scalar_equals(left: Any, right: Any) -> bool:
    """Type-sensitive equality: a boolean never equals a number or a string."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def _contains(values: Iterable[Any], value: Any) -> bool:
    return any(scalar_equals(candidate, value) for candidate in values)


def to_constraint_string(value: Any) -> str:
    """String form of an observed value for ``pattern`` and ``startsWith``."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else to_constraint_string(item) for item in value)
    return str(value)


def constraint_matches(constraint: ParameterConstraint, value: Any) -> bool:
    """Check whether ``value`` satisfies every sub-test set on ``constraint``.

    A malformed ``pattern`` raises ``re.error``; it is an authoring error in
    the rule and is left for the caller to surface.
    """
    if constraint.in_ is not None and not _contains(constraint.in_, value):
        return False

    if constraint.not_in is not None and _contains(constraint.not_in, value):
        return False

    if constraint.eq is not None and not scalar_equals(value, constraint.eq):
        return False

    if constraint.pattern is not None:
        if re.search(constraint.pattern, to_constraint_string(value)) is None:
            return False

    if constraint.starts_with is not None:
        if not to_constraint_string(value).startswith(constraint.starts_with):
            return False

    return True


def rule_matches_action(rule: PolicyRule, action: str) -> bool:
    """A null action is a wildcard; otherwise exact, case-sensitive match."""
    if rule.action is None:
        return True
    return rule.action == action


def rule_matches_parameters(rule: PolicyRule, parameters: Mapping[str, Any]) -> bool:
    """Check a rule's parameter constraints against the call's parameters.

    A constrained parameter that is absent from the call means no match,
    whatever the rule's effect.
    """
    if not rule.parameter_constraints:
        return True

    for name, constraint in rule.parameter_constraints.items():
        if name not in parameters:
            return False
        if not constraint_matches(constraint, parameters[name]):
            return False
    return True


def rule_matches(rule: PolicyRule, action: str, parameters: Mapping[str, Any]) -> bool:
    return rule_matches_action(rule, action) and rule_matches_parameters(rule, parameters)


def pattern_errors(rules: Iterable[PolicyRule]) -> List[str]:
    """Compile every ``pattern`` in ``rules`` and describe the ones that fail."""
    errors = []
    for index, rule in enumerate(rules):
        for name, constraint in (rule.parameter_constraints or {}).items():
            if constraint.pattern is None:
                continue
            try:
                re.compile(constraint.pattern)
            except re.error as e:
                errors.append(f"rules[{index}].parameterConstraints.{name}.pattern: {e}")
    return errors
