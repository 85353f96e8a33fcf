"""
Record store backends for policy rules, grants and the folder hierarchy.
"""

from .base import PolicyStore
from .memory import InMemoryPolicyStore
from .postgres import PostgreSQLPolicyStore
from .records import FolderRecord, GrantRecord, PrincipalType, ProviderRecord, ResourceType, WorkflowRecord

__all__ = [
    "PolicyStore",
    "InMemoryPolicyStore",
    "PostgreSQLPolicyStore",
    "FolderRecord",
    "GrantRecord",
    "PrincipalType",
    "ProviderRecord",
    "ResourceType",
    "WorkflowRecord",
]
