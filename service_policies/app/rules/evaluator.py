"""
Policy rule chain evaluator.

Rules are evaluated top-to-bottom and the first match wins. If no rule
matches, the action is ALLOWED so that providers without any rules stay
unrestricted.
"""

from typing import Any, Dict, List, Mapping, Optional

from .matcher import rule_matches, to_constraint_string
from .models import (
    ParameterConstraint, PolicyDecision, PolicyEffect, PolicyEvaluationResult,
    PolicyRule, PolicyRuleChain, PolicyRuleWithSource
)

IMPLICIT_ALLOW_REASON = "No matching rule (implicit allow)"


def _action_label(rule: PolicyRule) -> str:
    return "*" if rule.action is None else rule.action


def default_reason(rule: PolicyRuleWithSource) -> str:
    return f"{rule.effect.value} {_action_label(rule)} ({rule.source.value})"


def evaluate_rule_chain(
    chain: PolicyRuleChain,
    action: str,
    parameters: Optional[Mapping[str, Any]] = None
) -> PolicyEvaluationResult:
    """Evaluate ``chain`` against an action and its parameters."""
    parameters = parameters or {}

    for rule in chain.rules:
        if rule_matches(rule, action, parameters):
            decision = (
                PolicyDecision.ALLOWED if rule.effect == PolicyEffect.ALLOW
                else PolicyDecision.DENIED
            )
            reason = rule.description if rule.description is not None else default_reason(rule)
            return PolicyEvaluationResult(decision=decision, reason=reason, matched_rule=rule)

    return PolicyEvaluationResult(decision=PolicyDecision.ALLOWED, reason=IMPLICIT_ALLOW_REASON)


def _format_values(values: List[Any]) -> str:
    return "[" + ", ".join(to_constraint_string(v) for v in values) + "]"


def describe_constraint(name: str, constraint: ParameterConstraint) -> str:
    parts = []
    if constraint.in_ is not None:
        parts.append(f"{name} IN {_format_values(constraint.in_)}")
    if constraint.not_in is not None:
        parts.append(f"{name} NOT IN {_format_values(constraint.not_in)}")
    if constraint.eq is not None:
        parts.append(f"{name} = {to_constraint_string(constraint.eq)}")
    if constraint.pattern is not None:
        parts.append(f"{name} ~ {constraint.pattern}")
    if constraint.starts_with is not None:
        parts.append(f"{name} starts with {constraint.starts_with}")
    if not parts:
        return f"{name} present"
    return " AND ".join(parts)


def describe_rule(rule: PolicyRule) -> str:
    """One-line rendering, e.g. ``DENY send where channel IN [ops]``."""
    text = f"{rule.effect.value} {_action_label(rule)}"
    if rule.parameter_constraints:
        constraints = ", ".join(
            describe_constraint(name, constraint)
            for name, constraint in rule.parameter_constraints.items()
        )
        text += f" where {constraints}"
    return text


def explain_chain(chain: PolicyRuleChain, result: PolicyEvaluationResult) -> List[Dict[str, Any]]:
    """Render every rule of the chain, flagging the one that decided ``result``."""
    return [
        {
            "rule": describe_rule(rule),
            "source": rule.source.value,
            "matched": rule is result.matched_rule,
        }
        for rule in chain.rules
    ]
