"""
Unit tests for GrantResolver.
"""

import pytest
from unittest.mock import AsyncMock

from service_policies.app.grants.resolver import GrantResolver
from service_policies.app.persistence import FolderRecord, GrantRecord, PrincipalType

from conftest import make_rule


class TestGrantResolver:
    """Test cases for the folder hierarchy walk."""

    @pytest.fixture
    def resolver(self, store):
        return GrantResolver(store)

    @pytest.mark.asyncio
    async def test_no_grant_returns_none(self, resolver):
        assert await resolver.resolve("wf-nested", "prov-github") is None

    @pytest.mark.asyncio
    async def test_unknown_workflow_returns_none(self, resolver):
        assert await resolver.resolve("wf-missing", "prov-github") is None

    @pytest.mark.asyncio
    async def test_direct_workflow_grant_wins(self, resolver, add_grant):
        add_grant("g-root", "FOLDER", "root-folder", "prov-github")
        add_grant("g-team", "FOLDER", "team-folder", "prov-github")
        add_grant("g-direct", "WORKFLOW", "wf-nested", "prov-github", [make_rule("DENY", None)])

        grant = await resolver.resolve("wf-nested", "prov-github")

        assert grant.id == "g-direct"
        assert grant.principal_type == PrincipalType.WORKFLOW

    @pytest.mark.asyncio
    async def test_parent_folder_grant(self, resolver, add_grant):
        add_grant("g-root", "FOLDER", "root-folder", "prov-github")
        add_grant("g-team", "FOLDER", "team-folder", "prov-github")

        grant = await resolver.resolve("wf-nested", "prov-github")

        assert grant.id == "g-team"

    @pytest.mark.asyncio
    async def test_ancestor_folder_grant(self, resolver, add_grant):
        add_grant("g-root", "FOLDER", "root-folder", "prov-github")

        grant = await resolver.resolve("wf-nested", "prov-github")

        assert grant.id == "g-root"

    @pytest.mark.asyncio
    async def test_grant_for_other_provider_ignored(self, resolver, add_grant):
        add_grant("g-slack", "WORKFLOW", "wf-nested", "prov-slack")
        add_grant("g-folder-slack", "FOLDER", "team-folder", "prov-slack")

        assert await resolver.resolve("wf-nested", "prov-github") is None

    @pytest.mark.asyncio
    async def test_workflow_grant_for_other_workflow_ignored(self, resolver, add_grant):
        add_grant("g-team-wf", "WORKFLOW", "wf-team", "prov-github")

        assert await resolver.resolve("wf-nested", "prov-github") is None

    @pytest.mark.asyncio
    async def test_orphan_workflow_without_grant(self, resolver, add_grant):
        add_grant("g-root", "FOLDER", "root-folder", "prov-github")

        assert await resolver.resolve("wf-orphan", "prov-github") is None

    @pytest.mark.asyncio
    async def test_cycle_in_hierarchy_terminates(self, store, resolver):
        store.add_folder(FolderRecord(id="root-folder", parent_folder_id="team-folder"))

        assert await resolver.resolve("wf-nested", "prov-github") is None

    @pytest.mark.asyncio
    async def test_walk_stops_at_first_grant(self):
        expected = GrantRecord(
            id="g-gp", principal_type=PrincipalType.FOLDER, principal_id="grandparent", resource_id="prov"
        )
        store = AsyncMock()
        store.find_grant.side_effect = [None, None, expected]
        store.get_workflow_parent_folder.return_value = "parent"
        store.get_folder_parent.side_effect = ["grandparent", "great-grandparent"]

        grant = await GrantResolver(store).resolve("wf", "prov")

        assert grant is expected
        assert store.find_grant.await_count == 3
        store.find_grant.assert_any_await(PrincipalType.FOLDER, "grandparent", "prov")
        assert store.get_folder_parent.await_count == 1
