"""Rule chain assembly from grant and provider default rules."""

from .builder import RuleChainBuilder

__all__ = ["RuleChainBuilder"]
