"""
Finds the provider access grant that applies to a workflow.
"""

from typing import Optional, Set

from shared.logging import get_logger

from ..persistence.base import PolicyStore
from ..persistence.records import GrantRecord, PrincipalType


class GrantResolver:
    """Most specific grant wins.

    Specificity order:
    1. A grant on the workflow itself.
    2. A grant on the workflow's parent folder.
    3. Grants on ancestor folders, nearest first, until the root.
    """

    def __init__(self, store: PolicyStore):
        self.store = store
        self.logger = get_logger("policies.grants.resolver")

    async def resolve(self, workflow_id: str, provider_id: str) -> Optional[GrantRecord]:
        grant = await self.store.find_grant(PrincipalType.WORKFLOW, workflow_id, provider_id)
        if grant:
            self.logger.debug("Grant resolved", grant_id=grant.id, level="workflow")
            return grant

        folder_id = await self.store.get_workflow_parent_folder(workflow_id)
        visited: Set[str] = set()
        depth = 0

        while folder_id:
            if folder_id in visited:
                self.logger.warning(
                    "Folder hierarchy cycle detected",
                    workflow_id=workflow_id,
                    folder_id=folder_id
                )
                return None
            visited.add(folder_id)

            grant = await self.store.find_grant(PrincipalType.FOLDER, folder_id, provider_id)
            if grant:
                self.logger.debug(
                    "Grant resolved",
                    grant_id=grant.id,
                    level="folder",
                    folder_id=folder_id,
                    depth=depth
                )
                return grant

            folder_id = await self.store.get_folder_parent(folder_id)
            depth += 1

        self.logger.debug("No grant applies", workflow_id=workflow_id, provider_id=provider_id)
        return None
