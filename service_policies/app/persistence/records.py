"""
Record shapes read from the policy record store.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..rules.models import PolicyRule


class PrincipalType(str, Enum):
    """Who a provider access grant is scoped to."""
    WORKFLOW = "WORKFLOW"
    FOLDER = "FOLDER"


class ResourceType(str, Enum):
    PROVIDER = "PROVIDER"


@dataclass
class GrantRecord:
    """A provider access grant and its optional rule array."""
    id: str
    principal_type: PrincipalType
    principal_id: str
    resource_id: str
    resource_type: ResourceType = ResourceType.PROVIDER
    rules: List[PolicyRule] = field(default_factory=list)


@dataclass
class ProviderRecord:
    id: str
    type: str
    alias: str
    namespace_id: Optional[str] = None
    default_rules: List[PolicyRule] = field(default_factory=list)


@dataclass
class WorkflowRecord:
    id: str
    parent_folder_id: Optional[str] = None


@dataclass
class FolderRecord:
    id: str
    parent_folder_id: Optional[str] = None
