"""Read-only query policy."""

from pgmcp.safety.policy import DenyRule, PolicyValidator, PolicyVerdict

__all__ = ["DenyRule", "PolicyValidator", "PolicyVerdict"]
