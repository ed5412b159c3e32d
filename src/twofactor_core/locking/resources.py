"""Lockable resource identifiers."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import TwoFactorContext


@dataclass(frozen=True)
class ResourceIdentifier:
    """
    Identifies a single lockable resource.

    Examples:
        >>> ResourceIdentifier("TwoFactorUser", "platform:123")
        >>> ResourceIdentifier.for_user(context)
    """

    resource_type: str
    resource_id: str

    def __lt__(self, other: ResourceIdentifier) -> bool:
        """Sort deterministically so multi-lock acquisition cannot deadlock."""
        return (self.resource_type, self.resource_id) < (
            other.resource_type,
            other.resource_id,
        )

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id}"

    @classmethod
    def for_user(cls, context: TwoFactorContext) -> ResourceIdentifier:
        """Per-user resource covering all of a user's methods and backup codes."""
        return cls("TwoFactorUser", context.scope)


__all__: list[str] = ["ResourceIdentifier"]
