"""
Policy engine for the Policies Service.

Composes the record store, grant resolver, chain builder and evaluator into
the operations the HTTP layer exposes.
"""

from typing import Any, Dict, List, Mapping, Optional

from shared.logging import get_logger, set_policy_context
from shared.metrics import MetricsCollector

from ..chain.builder import RuleChainBuilder
from ..grants.resolver import GrantResolver
from ..persistence.base import PolicyStore
from ..persistence.records import GrantRecord
from .evaluator import evaluate_rule_chain
from .models import PolicyActionEvaluation, PolicyRule, PolicyRuleChain


class PolicyEngine:
    """Rule chain construction and evaluation over a record store."""

    def __init__(self, store: PolicyStore, metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("policies.engine")
        self.store = store
        self.metrics = metrics
        self.resolver = GrantResolver(store)
        self.builder = RuleChainBuilder(store, self.resolver)

    async def find_applicable_grant(self, workflow_id: str, provider_id: str) -> Optional[GrantRecord]:
        return await self.resolver.resolve(workflow_id, provider_id)

    async def build_rule_chain(self, workflow_id: str, provider_id: str) -> PolicyRuleChain:
        if self.metrics is None:
            return await self.builder.build(workflow_id, provider_id)

        with self.metrics.time_operation("rule_chain_build_duration_seconds"):
            chain = await self.builder.build(workflow_id, provider_id)
        self.metrics.record_chain_length(len(chain.rules))
        return chain

    async def evaluate_action(
        self,
        workflow_id: str,
        provider_id: str,
        action: str,
        parameters: Optional[Mapping[str, Any]] = None
    ) -> PolicyActionEvaluation:
        """Build the chain for the pair and evaluate ``action`` against it."""
        set_policy_context(principal_id=workflow_id, resource_id=provider_id)

        chain = await self.build_rule_chain(workflow_id, provider_id)
        result = evaluate_rule_chain(chain, action, parameters)

        source = result.matched_rule.source.value if result.matched_rule else "implicit"
        if self.metrics:
            self.metrics.record_evaluation(result.decision.value, source)

        self.logger.debug(
            "Policy evaluated",
            action=action,
            decision=result.decision.value,
            source=source,
            chain_length=len(chain.rules)
        )
        return PolicyActionEvaluation(
            decision=result.decision,
            reason=result.reason,
            matched_rule=result.matched_rule,
            chain=chain
        )

    async def get_grant_rules(self, grant_id: str) -> Optional[List[PolicyRule]]:
        return await self.store.get_grant_rules(grant_id)

    async def set_grant_rules(self, grant_id: str, rules: List[PolicyRule]) -> Optional[List[PolicyRule]]:
        """Replace the entire rule array of a grant. ``None`` if the grant is unknown."""
        stored = await self.store.set_grant_rules(grant_id, rules)
        if stored is not None and self.metrics:
            self.metrics.increment_counter("rule_writes_total", target="grant")
        return stored

    async def get_provider_default_rules(self, provider_id: str) -> List[PolicyRule]:
        return await self.store.get_provider_default_rules(provider_id)

    async def set_provider_default_rules(
        self, provider_id: str, rules: List[PolicyRule]
    ) -> Optional[List[PolicyRule]]:
        """Replace the entire default rule array of a provider. ``None`` if unknown."""
        stored = await self.store.set_provider_default_rules(provider_id, rules)
        if stored is not None and self.metrics:
            self.metrics.increment_counter("rule_writes_total", target="provider")
        return stored

    async def build_rule_chains_for_deployment(
        self,
        workflow_id: str,
        provider_mappings: Dict[str, Dict[str, str]]
    ) -> Dict[str, PolicyRuleChain]:
        return await self.builder.build_for_deployment(workflow_id, provider_mappings)

    async def build_rule_chains_for_namespace(
        self, workflow_id: str, namespace_id: str
    ) -> Dict[str, PolicyRuleChain]:
        return await self.builder.build_for_namespace(workflow_id, namespace_id)
