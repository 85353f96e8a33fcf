"""
Rule data models for the Policies Service.

The pydantic models mirror the JSON wire shape of stored rule arrays
exactly (camelCase keys, ``in`` as a field name). Chains and evaluation
results are ephemeral and live as dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator, model_validator
)

ConstraintScalar = Union[StrictStr, StrictBool, StrictInt, StrictFloat]


class PolicyEffect(str, Enum):
    """Outcome a matching rule prescribes."""
    ALLOW = "ALLOW"
    DENY = "DENY"


class PolicyDecision(str, Enum):
    """Evaluation decision."""
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"


class RuleSource(str, Enum):
    """Which record contributed a rule to a chain."""
    GRANT = "grant"
    DEFAULT = "default"


class ParameterConstraint(BaseModel):
    """Field-level test on one call parameter. All present sub-tests must pass."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    in_: Optional[List[ConstraintScalar]] = Field(None, alias="in")
    not_in: Optional[List[ConstraintScalar]] = Field(None, alias="notIn")
    eq: Optional[ConstraintScalar] = None
    pattern: Optional[StrictStr] = None
    starts_with: Optional[StrictStr] = Field(None, alias="startsWith")

    @field_validator("in_", "not_in", "eq", "pattern", "starts_with")
    @classmethod
    def reject_null(cls, value):
        # Sub-tests are omitted, never null.
        if value is None:
            raise ValueError("must be omitted rather than null")
        return value

    @property
    def is_vacuous(self) -> bool:
        return (
            self.in_ is None
            and self.not_in is None
            and self.eq is None
            and self.pattern is None
            and self.starts_with is None
        )


class PolicyRule(BaseModel):
    """One line of the firewall."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", use_enum_values=False)

    effect: PolicyEffect
    action: Optional[StrictStr] = Field(..., description="Action name, null matches every action")
    parameter_constraints: Optional[Dict[str, ParameterConstraint]] = Field(
        None, alias="parameterConstraints"
    )
    description: Optional[StrictStr] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the persisted/transmitted JSON shape."""
        data: Dict[str, Any] = {"effect": self.effect.value, "action": self.action}
        if self.parameter_constraints is not None:
            data["parameterConstraints"] = {
                name: constraint.model_dump(by_alias=True, exclude_none=True)
                for name, constraint in self.parameter_constraints.items()
            }
        if self.description is not None:
            data["description"] = self.description
        return data

    def with_source(self, source: RuleSource) -> "PolicyRuleWithSource":
        return PolicyRuleWithSource(
            effect=self.effect,
            action=self.action,
            parameter_constraints=self.parameter_constraints,
            description=self.description,
            source=source,
        )


class PolicyRuleWithSource(PolicyRule):
    """A rule tagged with its provenance once merged into a chain."""

    source: RuleSource

    def to_wire(self) -> Dict[str, Any]:
        data = super().to_wire()
        data["source"] = self.source.value
        return data


@dataclass
class PolicyRuleChain:
    """Ordered rules for one (principal, resource) pair. Index 0 wins first."""
    rules: List[PolicyRuleWithSource] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rules)

    def to_wire(self) -> Dict[str, Any]:
        return {"rules": [rule.to_wire() for rule in self.rules]}

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "PolicyRuleChain":
        """Rebuild a chain injected into a deployment payload."""
        return cls(rules=[PolicyRuleWithSource.model_validate(raw) for raw in data.get("rules") or []])


@dataclass
class PolicyEvaluationResult:
    """Result of evaluating a rule chain against an action."""
    decision: PolicyDecision
    reason: str
    matched_rule: Optional[PolicyRuleWithSource] = None

    @property
    def allowed(self) -> bool:
        return self.decision == PolicyDecision.ALLOWED


@dataclass
class PolicyActionEvaluation(PolicyEvaluationResult):
    """Evaluation result together with the chain it was computed from."""
    chain: PolicyRuleChain = field(default_factory=PolicyRuleChain)


def parse_rules(raw_rules: Optional[List[Any]]) -> List[PolicyRule]:
    """Parse a stored or transmitted rule array. ``None`` means no rules."""
    if not raw_rules:
        return []
    return [PolicyRule.model_validate(raw) for raw in raw_rules]


def rules_to_wire(rules: List[PolicyRule]) -> List[Dict[str, Any]]:
    return [rule.to_wire() for rule in rules]


class EvaluatePolicyRequest(BaseModel):
    """Request model for a dry-run evaluation."""

    model_config = ConfigDict(populate_by_name=True)

    workflow_id: str = Field(..., alias="workflowId", min_length=1)
    provider_id: str = Field(..., alias="providerId", min_length=1)
    action: str = Field(..., min_length=1)
    parameters: Dict[str, Any] = Field(default_factory=dict)


class RuleChainsRequest(BaseModel):
    """Request model for deployment-time chain building."""

    model_config = ConfigDict(populate_by_name=True)

    workflow_id: str = Field(..., alias="workflowId", min_length=1)
    provider_mappings: Optional[Dict[str, Dict[str, str]]] = Field(None, alias="providerMappings")
    namespace_id: Optional[str] = Field(None, alias="namespaceId", min_length=1)

    @model_validator(mode="after")
    def check_target(self) -> "RuleChainsRequest":
        if self.provider_mappings is None and self.namespace_id is None:
            raise ValueError("providerMappings or namespaceId is required")
        return self
