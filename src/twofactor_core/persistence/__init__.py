"""Two-factor persistence: realm-parameterized port, router, in-memory adapter."""

from __future__ import annotations

from .memory import InMemoryTwoFactorRepository
from .ports import IRealmRepositoryResolver, ITwoFactorRepository
from .router import RealmRepositoryRouter

__all__: list[str] = [
    "ITwoFactorRepository",
    "IRealmRepositoryResolver",
    "RealmRepositoryRouter",
    "InMemoryTwoFactorRepository",
]
