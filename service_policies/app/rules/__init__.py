"""
Rules package.

Defines the rule wire model and the pure evaluation algorithm used by the
Policies Service and by runtime enforcement.

Modules of interest:
- models: Rule, constraint, chain and result types.
- matcher: Constraint and rule predicates.
- evaluator: First-match-wins chain evaluation and readable rendering.
- enforcement: Raising ``PolicyViolationError`` on denied provider calls.
- engine: Builds chains from the record store and evaluates them.
"""

from .evaluator import evaluate_rule_chain, describe_rule, explain_chain, IMPLICIT_ALLOW_REASON
from .matcher import constraint_matches, rule_matches
from .models import (
    ParameterConstraint, PolicyRule, PolicyRuleWithSource, PolicyRuleChain,
    PolicyEvaluationResult, PolicyActionEvaluation, PolicyEffect, PolicyDecision, RuleSource
)

__all__ = [
    "evaluate_rule_chain",
    "describe_rule",
    "explain_chain",
    "IMPLICIT_ALLOW_REASON",
    "constraint_matches",
    "rule_matches",
    "ParameterConstraint",
    "PolicyRule",
    "PolicyRuleWithSource",
    "PolicyRuleChain",
    "PolicyEvaluationResult",
    "PolicyActionEvaluation",
    "PolicyEffect",
    "PolicyDecision",
    "RuleSource",
]
