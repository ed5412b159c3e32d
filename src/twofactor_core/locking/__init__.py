"""Per-user serialization for two-factor state changes."""

from .critical_section import CriticalSection
from .memory import InMemoryLockStrategy
from .ports import ILockStrategy
from .resources import ResourceIdentifier

__all__: list[str] = [
    "ResourceIdentifier",
    "ILockStrategy",
    "InMemoryLockStrategy",
    "CriticalSection",
]
