"""
PostgreSQL record store for the Policies Service.
"""

import json
from typing import Any, List, Optional

import asyncpg

from shared.errors import PersistenceError
from shared.logging import get_logger

from ..rules.models import PolicyRule, parse_rules, rules_to_wire
from .records import GrantRecord, PrincipalType, ProviderRecord, ResourceType

DB_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)


async def _init_connection(conn: asyncpg.Connection):
    """Decode JSONB rule columns into Python lists."""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog"
    )


class PostgreSQLPolicyStore:
    """asyncpg implementation of ``PolicyStore``."""

    def __init__(
        self,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: float = 30.0
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.logger = get_logger("policies.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
                init=_init_connection
            )
            await self._create_tables()
            self.logger.info("PostgreSQL policy store started")

        except DB_ERRORS as e:
            self.logger.error("Failed to start PostgreSQL policy store", error=str(e))
            raise PersistenceError("Failed to start PostgreSQL policy store", {"error": str(e)}) from e

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL policy store stopped")

    async def health_check(self) -> bool:
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except DB_ERRORS as e:
            self.logger.warning("PostgreSQL health check failed", error=str(e))
            return False

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS workflow_folders (
                    id VARCHAR(255) PRIMARY KEY,
                    parent_folder_id VARCHAR(255) REFERENCES workflow_folders(id) ON DELETE CASCADE
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS workflows (
                    id VARCHAR(255) PRIMARY KEY,
                    parent_folder_id VARCHAR(255) REFERENCES workflow_folders(id) ON DELETE SET NULL
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS providers (
                    id VARCHAR(255) PRIMARY KEY,
                    type VARCHAR(100) NOT NULL,
                    alias VARCHAR(255) NOT NULL,
                    namespace_id VARCHAR(255),
                    default_policy_rules JSONB
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS provider_access (
                    id VARCHAR(255) PRIMARY KEY,
                    principal_type VARCHAR(20) NOT NULL,
                    principal_id VARCHAR(255) NOT NULL,
                    resource_type VARCHAR(20) NOT NULL DEFAULT 'PROVIDER',
                    resource_id VARCHAR(255) NOT NULL,
                    policy_rules JSONB
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_provider_access_lookup
                ON provider_access(principal_type, principal_id, resource_type, resource_id);
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_providers_namespace ON providers(namespace_id);
            """)

    async def _fetchrow(self, query: str, *args: Any, operation: str):
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchrow(query, *args)
        except DB_ERRORS as e:
            self.logger.error("Policy store query failed", operation=operation, error=str(e))
            raise PersistenceError(f"Policy store query failed: {operation}", {"error": str(e)}) from e

    async def find_grant(
        self, principal_type: PrincipalType, principal_id: str, resource_id: str
    ) -> Optional[GrantRecord]:
        row = await self._fetchrow(
            """
            SELECT id, principal_type, principal_id, resource_id, policy_rules
            FROM provider_access
            WHERE principal_type = $1 AND principal_id = $2
              AND resource_type = $3 AND resource_id = $4
            LIMIT 1
            """,
            principal_type.value, principal_id, ResourceType.PROVIDER.value, resource_id,
            operation="find_grant"
        )
        if not row:
            return None
        return GrantRecord(
            id=row["id"],
            principal_type=PrincipalType(row["principal_type"]),
            principal_id=row["principal_id"],
            resource_id=row["resource_id"],
            rules=parse_rules(row["policy_rules"])
        )

    async def get_workflow_parent_folder(self, workflow_id: str) -> Optional[str]:
        row = await self._fetchrow(
            "SELECT parent_folder_id FROM workflows WHERE id = $1",
            workflow_id,
            operation="get_workflow_parent_folder"
        )
        return row["parent_folder_id"] if row else None

    async def get_folder_parent(self, folder_id: str) -> Optional[str]:
        row = await self._fetchrow(
            "SELECT parent_folder_id FROM workflow_folders WHERE id = $1",
            folder_id,
            operation="get_folder_parent"
        )
        return row["parent_folder_id"] if row else None

    async def get_grant_rules(self, grant_id: str) -> Optional[List[PolicyRule]]:
        row = await self._fetchrow(
            "SELECT policy_rules FROM provider_access WHERE id = $1",
            grant_id,
            operation="get_grant_rules"
        )
        if not row:
            return None
        return parse_rules(row["policy_rules"])

    async def set_grant_rules(self, grant_id: str, rules: List[PolicyRule]) -> Optional[List[PolicyRule]]:
        row = await self._fetchrow(
            """
            UPDATE provider_access SET policy_rules = $2
            WHERE id = $1
            RETURNING policy_rules
            """,
            grant_id, rules_to_wire(rules) if rules else None,
            operation="set_grant_rules"
        )
        if not row:
            return None
        self.logger.info("Grant rules replaced", grant_id=grant_id, rule_count=len(rules))
        return parse_rules(row["policy_rules"])

    async def get_provider_default_rules(self, provider_id: str) -> List[PolicyRule]:
        row = await self._fetchrow(
            "SELECT default_policy_rules FROM providers WHERE id = $1",
            provider_id,
            operation="get_provider_default_rules"
        )
        if not row:
            return []
        return parse_rules(row["default_policy_rules"])

    async def set_provider_default_rules(
        self, provider_id: str, rules: List[PolicyRule]
    ) -> Optional[List[PolicyRule]]:
        row = await self._fetchrow(
            """
            UPDATE providers SET default_policy_rules = $2
            WHERE id = $1
            RETURNING default_policy_rules
            """,
            provider_id, rules_to_wire(rules) if rules else None,
            operation="set_provider_default_rules"
        )
        if not row:
            return None
        self.logger.info("Provider default rules replaced", provider_id=provider_id, rule_count=len(rules))
        return parse_rules(row["default_policy_rules"])

    async def list_namespace_providers(self, namespace_id: str) -> List[ProviderRecord]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, type, alias, namespace_id, default_policy_rules
                    FROM providers WHERE namespace_id = $1
                    ORDER BY type, alias
                    """,
                    namespace_id
                )
        except DB_ERRORS as e:
            self.logger.error("Policy store query failed", operation="list_namespace_providers", error=str(e))
            raise PersistenceError("Policy store query failed: list_namespace_providers", {"error": str(e)}) from e

        return [
            ProviderRecord(
                id=row["id"],
                type=row["type"],
                alias=row["alias"],
                namespace_id=row["namespace_id"],
                default_rules=parse_rules(row["default_policy_rules"])
            )
            for row in rows
        ]
