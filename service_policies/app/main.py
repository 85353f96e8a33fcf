"""
Policies service for the Policy Layer.

GET  /provider-access/{grant_id}/rules         Get grant rules
PUT  /provider-access/{grant_id}/rules         Replace grant rules
GET  /providers/{provider_id}/default-rules    Get provider default rules
PUT  /providers/{provider_id}/default-rules    Replace provider default rules
POST /policies/evaluate                        Dry-run evaluation
POST /policies/rule-chains                     Chains for deployment injection
"""

import re
from contextlib import nullcontext
from typing import List, Optional

from fastapi import Body

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import NotFoundError, PolicyConfigurationError, ValidationError

from .persistence import InMemoryPolicyStore, PolicyStore, PostgreSQLPolicyStore
from .rules.engine import PolicyEngine
from .rules.evaluator import explain_chain
from .rules.matcher import pattern_errors
from .rules.models import EvaluatePolicyRequest, PolicyRule, RuleChainsRequest, rules_to_wire

SERVICE_NAME = "policies"
SERVICE_PORT = 8013


def create_store(config: ServiceConfig) -> PolicyStore:
    """Pick the record store backend named by the configuration."""
    if config.store_backend == "memory":
        return InMemoryPolicyStore()
    return PostgreSQLPolicyStore(
        config.postgres_dsn,
        min_size=config.postgres_min_pool_size,
        max_size=config.postgres_max_pool_size,
        command_timeout=config.postgres_command_timeout
    )


class PoliciesService(BaseService):
    """Policies service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, store: Optional[PolicyStore] = None):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config=config)

        self.store = store or create_store(self.config)
        self.engine = PolicyEngine(self.store, metrics=self.metrics)

        self._setup_policy_routes()

    def _validate_rules(self, rules: List[PolicyRule]):
        errors = pattern_errors(rules)
        if errors:
            raise ValidationError("Invalid policy rules", {"errors": errors})

    def _setup_policy_routes(self):
        """Set up policy-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Policy Layer - Policies Service",
                "version": "1.0.0",
                "capabilities": ["rule_chains", "dry_run_evaluation", "deployment_injection"]
            }

        @self.app.get("/provider-access/{grant_id}/rules")
        async def get_grant_rules(grant_id: str):
            """Get the rules stored on a provider access grant."""
            rules = await self.engine.get_grant_rules(grant_id)
            if rules is None:
                raise NotFoundError("Grant not found", {"grant_id": grant_id})
            return {"rules": rules_to_wire(rules)}

        @self.app.put("/provider-access/{grant_id}/rules")
        async def set_grant_rules(grant_id: str, rules: List[PolicyRule] = Body(...)):
            """Replace the entire rule array of a grant."""
            self._validate_rules(rules)
            stored = await self.engine.set_grant_rules(grant_id, rules)
            if stored is None:
                raise NotFoundError("Grant not found", {"grant_id": grant_id})

            self.logger.info("Grant rules updated", grant_id=grant_id, rule_count=len(stored))
            return {"rules": rules_to_wire(stored)}

        @self.app.get("/providers/{provider_id}/default-rules")
        async def get_provider_default_rules(provider_id: str):
            """Get a provider's default rules (empty when it has none)."""
            rules = await self.engine.get_provider_default_rules(provider_id)
            return {"rules": rules_to_wire(rules)}

        @self.app.put("/providers/{provider_id}/default-rules")
        async def set_provider_default_rules(provider_id: str, rules: List[PolicyRule] = Body(...)):
            """Replace the entire default rule array of a provider."""
            self._validate_rules(rules)
            stored = await self.engine.set_provider_default_rules(provider_id, rules)
            if stored is None:
                raise NotFoundError("Provider not found", {"provider_id": provider_id})

            self.logger.info("Provider default rules updated", provider_id=provider_id, rule_count=len(stored))
            return {"rules": rules_to_wire(stored)}

        @self.app.post("/policies/evaluate")
        async def evaluate_policy(request: EvaluatePolicyRequest):
            """Dry-run: which rule would match this action, and why."""
            in_progress = self.metrics.track_in_progress("active_evaluations") if self.metrics else nullcontext()
            with in_progress:
                try:
                    result = await self.engine.evaluate_action(
                        request.workflow_id,
                        request.provider_id,
                        request.action,
                        request.parameters
                    )
                except re.error as e:
                    raise PolicyConfigurationError(
                        "A rule in the chain has an invalid pattern",
                        {"error": str(e), "pattern": e.pattern}
                    ) from e

            self.logger.info(
                "Policy dry-run evaluated",
                workflow_id=request.workflow_id,
                provider_id=request.provider_id,
                action=request.action,
                decision=result.decision.value
            )

            matched = result.matched_rule
            return {
                "decision": result.decision.value,
                "reason": result.reason,
                "matchedRule": {
                    "effect": matched.effect.value,
                    "action": matched.action,
                    "source": matched.source.value,
                    "description": matched.description,
                } if matched else None,
                "chainEvaluated": explain_chain(result.chain, result),
            }

        @self.app.post("/policies/rule-chains")
        async def build_rule_chains(request: RuleChainsRequest):
            """Build the chains injected into a workflow deployment."""
            if request.provider_mappings is not None:
                chains = await self.engine.build_rule_chains_for_deployment(
                    request.workflow_id, request.provider_mappings
                )
            else:
                chains = await self.engine.build_rule_chains_for_namespace(
                    request.workflow_id, request.namespace_id
                )

            self.logger.info(
                "Rule chains built for deployment",
                workflow_id=request.workflow_id,
                chain_count=len(chains)
            )
            return {"chains": {key: chain.to_wire() for key, chain in chains.items()}}

    async def _check_dependencies(self):
        """Check policies service dependencies."""
        try:
            healthy = await self.store.health_check()
        except Exception as e:
            self.logger.warning("Store health check raised", error=str(e))
            healthy = False
        return {"store": "ok" if healthy else "error"}

    async def start(self):
        """Start policies service components."""
        await self.store.start()
        self.logger.info("Policies service started", store=type(self.store).__name__)

    async def stop(self):
        """Stop policies service components."""
        await self.store.stop()
        self.logger.info("Policies service stopped")


def create_app(config: Optional[ServiceConfig] = None, store: Optional[PolicyStore] = None):
    """Create policies service application."""
    service = PoliciesService(config=config, store=store)
    return service.app


if __name__ == "__main__":
    service = PoliciesService(config=get_config(SERVICE_NAME, SERVICE_PORT))
    service.run()
