"""
Builds rule chains for (workflow, provider) pairs.

Chain = [grant rules] ++ [provider default rules]. Grant rules always come
first, so a grant overrides a default simply by matching earlier.
"""

from typing import Dict, Optional

from shared.logging import get_logger

from ..grants.resolver import GrantResolver
from ..persistence.base import PolicyStore
from ..rules.enforcement import chain_key
from ..rules.models import PolicyRuleChain, RuleSource


class RuleChainBuilder:
    """Assembles chains fresh from the store on every call; nothing is cached."""

    def __init__(self, store: PolicyStore, resolver: Optional[GrantResolver] = None):
        self.store = store
        self.resolver = resolver or GrantResolver(store)
        self.logger = get_logger("policies.chain.builder")

    async def build(self, workflow_id: str, provider_id: str) -> PolicyRuleChain:
        chain = PolicyRuleChain()

        grant = await self.resolver.resolve(workflow_id, provider_id)
        if grant and grant.rules:
            chain.rules.extend(rule.with_source(RuleSource.GRANT) for rule in grant.rules)
        grant_count = len(chain.rules)

        default_rules = await self.store.get_provider_default_rules(provider_id)
        chain.rules.extend(rule.with_source(RuleSource.DEFAULT) for rule in default_rules)

        self.logger.debug(
            "Rule chain built",
            workflow_id=workflow_id,
            provider_id=provider_id,
            grant_id=grant.id if grant else None,
            grant_rules=grant_count,
            default_rules=len(chain.rules) - grant_count
        )
        return chain

    async def build_for_deployment(
        self,
        workflow_id: str,
        provider_mappings: Dict[str, Dict[str, str]]
    ) -> Dict[str, PolicyRuleChain]:
        """Build chains for every provider a workflow uses.

        ``provider_mappings`` is ``{provider_type: {code_alias: provider_id}}``;
        the result is keyed ``"type:alias"`` and omits chains without rules.
        """
        chains: Dict[str, PolicyRuleChain] = {}
        for provider_type, alias_map in provider_mappings.items():
            for alias, provider_id in alias_map.items():
                chain = await self.build(workflow_id, provider_id)
                if chain.rules:
                    chains[chain_key(provider_type, alias)] = chain
        return chains

    async def build_for_namespace(self, workflow_id: str, namespace_id: str) -> Dict[str, PolicyRuleChain]:
        """Build chains for every provider in a namespace, keyed by provider ``type:alias``."""
        chains: Dict[str, PolicyRuleChain] = {}
        for provider in await self.store.list_namespace_providers(namespace_id):
            chain = await self.build(workflow_id, provider.id)
            if chain.rules:
                chains[chain_key(provider.type, provider.alias)] = chain
        return chains
