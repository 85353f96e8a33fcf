"""
Record store contract consumed by the grant resolver, chain builder and engine.
"""

from typing import List, Optional, Protocol

from ..rules.models import PolicyRule
from .records import GrantRecord, PrincipalType, ProviderRecord


class PolicyStore(Protocol):
    """Async reads and whole-array writes of stored rules.

    ``get_grant_rules`` returns ``None`` when the grant does not exist, and
    ``[]`` when it exists without rules. Writers store an empty array as
    "no rules"; readers return ``[]`` for it.
    """

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def health_check(self) -> bool: ...

    async def find_grant(
        self, principal_type: PrincipalType, principal_id: str, resource_id: str
    ) -> Optional[GrantRecord]: ...

    async def get_workflow_parent_folder(self, workflow_id: str) -> Optional[str]: ...

    async def get_folder_parent(self, folder_id: str) -> Optional[str]: ...

    async def get_grant_rules(self, grant_id: str) -> Optional[List[PolicyRule]]: ...

    async def set_grant_rules(self, grant_id: str, rules: List[PolicyRule]) -> Optional[List[PolicyRule]]: ...

    async def get_provider_default_rules(self, provider_id: str) -> List[PolicyRule]: ...

    async def set_provider_default_rules(
        self, provider_id: str, rules: List[PolicyRule]
    ) -> Optional[List[PolicyRule]]: ...

    async def list_namespace_providers(self, namespace_id: str) -> List[ProviderRecord]: ...
