"""
Shared fixtures for Policies Service tests.
"""

import pytest

from service_policies.app.persistence import (
    FolderRecord, GrantRecord, InMemoryPolicyStore, PrincipalType, ProviderRecord, WorkflowRecord
)
from service_policies.app.rules.models import PolicyRule


def make_rule(effect="ALLOW", action=None, constraints=None, description=None) -> PolicyRule:
    """Build a rule from its wire shape."""
    raw = {"effect": effect, "action": action}
    if constraints is not None:
        raw["parameterConstraints"] = constraints
    if description is not None:
        raw["description"] = description
    return PolicyRule.model_validate(raw)


@pytest.fixture
def store():
    """Store seeded with a small folder tree.

    root-folder
      team-folder
        wf-nested
      wf-team
    wf-orphan (no folder)
    """
    store = InMemoryPolicyStore()
    store.add_folder(FolderRecord(id="root-folder"))
    store.add_folder(FolderRecord(id="team-folder", parent_folder_id="root-folder"))
    store.add_workflow(WorkflowRecord(id="wf-nested", parent_folder_id="team-folder"))
    store.add_workflow(WorkflowRecord(id="wf-team", parent_folder_id="root-folder"))
    store.add_workflow(WorkflowRecord(id="wf-orphan"))

    store.add_provider(ProviderRecord(id="prov-github", type="github", alias="main", namespace_id="ns-1"))
    store.add_provider(ProviderRecord(id="prov-slack", type="slack", alias="team", namespace_id="ns-1"))
    store.add_provider(ProviderRecord(id="prov-gitlab", type="gitlab", alias="ops", namespace_id="ns-2"))
    return store


@pytest.fixture
def add_grant(store):
    """Attach a grant to the seeded store."""
    def _add(grant_id, principal_type, principal_id, resource_id, rules=None):
        return store.add_grant(GrantRecord(
            id=grant_id,
            principal_type=PrincipalType(principal_type),
            principal_id=principal_id,
            resource_id=resource_id,
            rules=list(rules or [])
        ))
    return _add
