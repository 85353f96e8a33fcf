"""
Integration tests for the policy authoring, dry-run and enforcement flow.
"""

import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.errors import PolicyViolationError
from service_policies.app.main import create_app
from service_policies.app.persistence import (
    FolderRecord, GrantRecord, InMemoryPolicyStore, PrincipalType, ProviderRecord, WorkflowRecord
)
from service_policies.app.rules.enforcement import RuleChainEnforcer
from service_policies.app.rules.models import PolicyRuleChain


class TestPolicyFlow:
    """An operator scopes a GitHub provider for one folder of workflows."""

    @pytest.fixture
    def store(self):
        store = InMemoryPolicyStore()
        store.add_folder(FolderRecord(id="engineering"))
        store.add_folder(FolderRecord(id="release", parent_folder_id="engineering"))
        store.add_workflow(WorkflowRecord(id="nightly-build", parent_folder_id="release"))
        store.add_workflow(WorkflowRecord(id="triage-bot", parent_folder_id="engineering"))
        store.add_provider(ProviderRecord(id="gh-1", type="github", alias="main", namespace_id="ns"))
        store.add_grant(GrantRecord(
            id="grant-eng", principal_type=PrincipalType.FOLDER, principal_id="engineering", resource_id="gh-1"
        ))
        store.add_grant(GrantRecord(
            id="grant-nightly", principal_type=PrincipalType.WORKFLOW, principal_id="nightly-build",
            resource_id="gh-1"
        ))
        return store

    @pytest.fixture
    def client(self, store):
        config = get_config("policies", 8013, store_backend="memory")
        return TestClient(create_app(config=config, store=store))

    def evaluate(self, client, workflow_id, action, **parameters):
        response = client.post("/policies/evaluate", json={
            "workflowId": workflow_id,
            "providerId": "gh-1",
            "action": action,
            "parameters": parameters,
        })
        assert response.status_code == 200
        return response.json()

    def test_full_flow(self, client):
        # Defaults: allow everything except deleting repositories.
        assert client.put("/providers/gh-1/default-rules", json=[
            {"effect": "DENY", "action": "deleteRepo", "description": "Repositories are never deleted"},
            {"effect": "ALLOW", "action": None},
        ]).status_code == 200

        # Engineering folder: issues only in acme/ repos.
        assert client.put("/provider-access/grant-eng/rules", json=[
            {"effect": "ALLOW", "action": "createIssue",
             "parameterConstraints": {"repo": {"startsWith": "acme/"}}},
            {"effect": "DENY", "action": "createIssue"},
        ]).status_code == 200

        # Nightly build: may push tags matching v<semver>.
        assert client.put("/provider-access/grant-nightly/rules", json=[
            {"effect": "ALLOW", "action": "pushTag", "parameterConstraints": {"tag": {"pattern": r"^v\d+\.\d+\.\d+$"}}},
            {"effect": "DENY", "action": "pushTag", "description": "Only release tags"},
        ]).status_code == 200

        triage_ok = self.evaluate(client, "triage-bot", "createIssue", repo="acme/api")
        triage_bad = self.evaluate(client, "triage-bot", "createIssue", repo="other/api")
        triage_delete = self.evaluate(client, "triage-bot", "deleteRepo", repo="acme/api")
        assert triage_ok["decision"] == "ALLOWED"
        assert triage_ok["matchedRule"]["source"] == "grant"
        assert triage_bad["decision"] == "DENIED"
        assert triage_delete["decision"] == "DENIED"
        assert triage_delete["reason"] == "Repositories are never deleted"

        # The workflow grant shadows the folder grant entirely.
        nightly_issue = self.evaluate(client, "nightly-build", "createIssue", repo="other/api")
        nightly_tag = self.evaluate(client, "nightly-build", "pushTag", tag="v1.2.3")
        nightly_bad_tag = self.evaluate(client, "nightly-build", "pushTag", tag="latest")
        assert nightly_issue["decision"] == "ALLOWED"
        assert nightly_issue["matchedRule"]["source"] == "default"
        assert nightly_tag["decision"] == "ALLOWED"
        assert nightly_bad_tag["decision"] == "DENIED"
        assert nightly_bad_tag["reason"] == "Only release tags"

    def test_injected_chains_enforced_at_runtime(self, client):
        client.put("/provider-access/grant-eng/rules", json=[
            {"effect": "DENY", "action": "deleteBranch", "parameterConstraints": {"branch": {"in": ["main"]}}},
        ])

        response = client.post("/policies/rule-chains", json={
            "workflowId": "triage-bot",
            "providerMappings": {"github": {"main": "gh-1"}},
        })
        chains = {
            key: PolicyRuleChain.from_wire(data) for key, data in response.json()["chains"].items()
        }
        enforcer = RuleChainEnforcer(chains)

        assert enforcer.check("github", "main", "deleteBranch", {"branch": "feature/x"}).allowed
        with pytest.raises(PolicyViolationError) as exc_info:
            enforcer.check("github", "main", "deleteBranch", {"branch": "main"})
        assert exc_info.value.provider_type == "github"

    def test_clearing_rules_restores_implicit_allow(self, client):
        client.put("/providers/gh-1/default-rules", json=[{"effect": "DENY", "action": None}])
        assert self.evaluate(client, "triage-bot", "listRepos")["decision"] == "DENIED"

        client.put("/providers/gh-1/default-rules", json=[])
        result = self.evaluate(client, "triage-bot", "listRepos")

        assert result["decision"] == "ALLOWED"
        assert result["reason"] == "No matching rule (implicit allow)"
