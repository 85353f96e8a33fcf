"""
In-process record store for local runs and tests.
"""

from typing import Dict, List, Optional

from shared.logging import get_logger

from ..rules.models import PolicyRule
from .records import (
    FolderRecord, GrantRecord, PrincipalType, ProviderRecord, WorkflowRecord
)


class InMemoryPolicyStore:
    """Dictionary-backed implementation of ``PolicyStore``.

    Rule arrays are copied on the way in and out so callers never share a
    list with the store; replacement is always of the whole array.
    """

    def __init__(self):
        self.logger = get_logger("policies.persistence.memory")
        self.providers: Dict[str, ProviderRecord] = {}
        self.grants: Dict[str, GrantRecord] = {}
        self.workflows: Dict[str, WorkflowRecord] = {}
        self.folders: Dict[str, FolderRecord] = {}

    async def start(self):
        self.logger.info("In-memory policy store started")

    async def stop(self):
        self.logger.info("In-memory policy store stopped")

    async def health_check(self) -> bool:
        return True

    # Seeding

    def add_provider(self, provider: ProviderRecord) -> ProviderRecord:
        self.providers[provider.id] = provider
        return provider

    def add_grant(self, grant: GrantRecord) -> GrantRecord:
        self.grants[grant.id] = grant
        return grant

    def add_workflow(self, workflow: WorkflowRecord) -> WorkflowRecord:
        self.workflows[workflow.id] = workflow
        return workflow

    def add_folder(self, folder: FolderRecord) -> FolderRecord:
        self.folders[folder.id] = folder
        return folder

    # Reads

    async def find_grant(
        self, principal_type: PrincipalType, principal_id: str, resource_id: str
    ) -> Optional[GrantRecord]:
        for grant in self.grants.values():
            if (
                grant.principal_type == principal_type
                and grant.principal_id == principal_id
                and grant.resource_id == resource_id
            ):
                return grant
        return None

    async def get_workflow_parent_folder(self, workflow_id: str) -> Optional[str]:
        workflow = self.workflows.get(workflow_id)
        return workflow.parent_folder_id if workflow else None

    async def get_folder_parent(self, folder_id: str) -> Optional[str]:
        folder = self.folders.get(folder_id)
        return folder.parent_folder_id if folder else None

    async def get_grant_rules(self, grant_id: str) -> Optional[List[PolicyRule]]:
        grant = self.grants.get(grant_id)
        if grant is None:
            return None
        return list(grant.rules)

    async def get_provider_default_rules(self, provider_id: str) -> List[PolicyRule]:
        provider = self.providers.get(provider_id)
        if provider is None:
            return []
        return list(provider.default_rules)

    async def list_namespace_providers(self, namespace_id: str) -> List[ProviderRecord]:
        return [p for p in self.providers.values() if p.namespace_id == namespace_id]

    # Writes

    async def set_grant_rules(self, grant_id: str, rules: List[PolicyRule]) -> Optional[List[PolicyRule]]:
        grant = self.grants.get(grant_id)
        if grant is None:
            return None
        grant.rules = list(rules)
        self.logger.info("Grant rules replaced", grant_id=grant_id, rule_count=len(rules))
        return list(grant.rules)

    async def set_provider_default_rules(
        self, provider_id: str, rules: List[PolicyRule]
    ) -> Optional[List[PolicyRule]]:
        provider = self.providers.get(provider_id)
        if provider is None:
            return None
        provider.default_rules = list(rules)
        self.logger.info("Provider default rules replaced", provider_id=provider_id, rule_count=len(rules))
        return list(provider.default_rules)
