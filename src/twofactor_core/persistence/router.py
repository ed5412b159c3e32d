"""Realm router: picks the repository backing a context."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..models import Realm
from .ports import IRealmRepositoryResolver, ITwoFactorRepository

if TYPE_CHECKING:
    from ..models import TwoFactorContext

logger = logging.getLogger("twofactor.persistence")


class RealmRepositoryRouter(IRealmRepositoryResolver):
    """Routes platform contexts to one repository and tenant contexts to a
    per-tenant repository.

    Tenant repositories are built on first use by ``tenant_factory`` and
    cached per tenant id.

    Example:
        ```python
        router = RealmRepositoryRouter(
            platform=PlatformTwoFactorRepository(platform_session),
            tenant_factory=lambda tenant_id: TenantTwoFactorRepository(
                session_for(tenant_id)
            ),
        )
        repository = router.for_context(context)
        ```
    """

    def __init__(
        self,
        *,
        platform: ITwoFactorRepository,
        tenant_factory: Callable[[str], ITwoFactorRepository],
    ) -> None:
        self._platform = platform
        self._tenant_factory = tenant_factory
        self._tenants: dict[str, ITwoFactorRepository] = {}

    def for_context(self, context: TwoFactorContext) -> ITwoFactorRepository:
        if context.realm is Realm.PLATFORM:
            return self._platform
        # tenant_id is guaranteed by TwoFactorContext validation
        tenant_id = str(context.tenant_id)
        repository = self._tenants.get(tenant_id)
        if repository is None:
            repository = self._tenant_factory(tenant_id)
            self._tenants[tenant_id] = repository
            logger.debug("Tenant repository created for %s", tenant_id)
        return repository


__all__: list[str] = ["RealmRepositoryRouter"]
