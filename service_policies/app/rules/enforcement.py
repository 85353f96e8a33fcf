"""
Runtime enforcement of injected rule chains.

At deployment time the service hands each workflow a map of chains keyed by
``"<provider_type>:<alias>"``. Provider calls are checked against the chain
for their key before they run.
"""

from typing import Any, Dict, Mapping, Optional

from shared.errors import PolicyViolationError
from shared.logging import get_logger

from .evaluator import evaluate_rule_chain
from .models import PolicyRuleChain, PolicyEvaluationResult

logger = get_logger("policies.enforcement")


def chain_key(provider_type: str, alias: str) -> str:
    return f"{provider_type}:{alias}"


def enforce_rule_chain(
    chain: PolicyRuleChain,
    provider_type: str,
    action: str,
    parameters: Optional[Mapping[str, Any]] = None
) -> PolicyEvaluationResult:
    """Evaluate ``chain`` and raise ``PolicyViolationError`` if it denies."""
    result = evaluate_rule_chain(chain, action, parameters)
    if not result.allowed:
        logger.warning(
            "Provider action denied by policy",
            provider_type=provider_type,
            action=action,
            reason=result.reason
        )
        raise PolicyViolationError(
            f"Action '{action}' on provider '{provider_type}' denied by policy: {result.reason}",
            provider_type,
            action,
            details={"reason": result.reason}
        )
    return result


class RuleChainEnforcer:
    """Holds the chains injected for one deployment."""

    def __init__(self, chains: Optional[Dict[str, PolicyRuleChain]] = None):
        self.chains: Dict[str, PolicyRuleChain] = dict(chains or {})

    def get_chain(self, provider_type: str, alias: str) -> PolicyRuleChain:
        # An omitted chain behaves exactly like an empty one.
        return self.chains.get(chain_key(provider_type, alias), PolicyRuleChain())

    def check(
        self,
        provider_type: str,
        alias: str,
        action: str,
        parameters: Optional[Mapping[str, Any]] = None
    ) -> PolicyEvaluationResult:
        return enforce_rule_chain(self.get_chain(provider_type, alias), provider_type, action, parameters)
