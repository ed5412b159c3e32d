"""Method registry: factor type -> provider.

Single source of truth for "is this factor supported here". Populated once
at process start, then frozen.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .exceptions import MethodNotSupportedError, ProviderRegistrationError
from .models import MethodType
from .providers.base import TwoFactorMethodProvider

logger = logging.getLogger("twofactor.registry")


class MethodRegistry:
    """Lookup of two-factor providers keyed by factor type.

    **Conflict detection:** registering a second provider for the same
    factor type raises ``ProviderRegistrationError``, as does any
    registration after :meth:`freeze`.

    Example:
        ```python
        registry = MethodRegistry()
        registry.register(TotpProvider(config.totp))
        registry.freeze()

        provider = registry.get_provider(MethodType.TOTP)
        ```
    """

    def __init__(self, providers: Iterable[TwoFactorMethodProvider] = ()) -> None:
        self._providers: dict[MethodType, TwoFactorMethodProvider] = {}
        self._frozen = False
        for provider in providers:
            self.register(provider)

    # ── Registration ─────────────────────────────────────────────

    def register(self, provider: TwoFactorMethodProvider) -> None:
        if self._frozen:
            raise ProviderRegistrationError(
                f"Cannot register {type(provider).__name__}: registry is frozen"
            )
        method_type = provider.method_type
        existing = self._providers.get(method_type)
        if existing is not None and existing is not provider:
            msg = (
                f"Duplicate provider for {method_type.value}: "
                f"{type(existing).__name__} already registered, "
                f"cannot register {type(provider).__name__}"
            )
            raise ProviderRegistrationError(msg)
        self._providers[method_type] = provider
        logger.debug(
            "Registered provider %s -> %s",
            method_type.value,
            type(provider).__name__,
        )

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True
        logger.info(
            "Two-factor registry ready",
            extra={"methods": [m.value for m in self._providers]},
        )

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── Lookup ───────────────────────────────────────────────────

    def get_provider(self, method_type: MethodType | str) -> TwoFactorMethodProvider:
        """Return the provider for a factor type.

        Raises:
            MethodNotSupportedError: If no provider is registered for it.
        """
        try:
            key = MethodType(method_type)
        except ValueError:
            raise MethodNotSupportedError() from None
        provider = self._providers.get(key)
        if provider is None:
            raise MethodNotSupportedError(method_type=key)
        return provider

    def is_method_supported(self, method_type: MethodType | str) -> bool:
        try:
            return MethodType(method_type) in self._providers
        except ValueError:
            return False

    def get_available_methods(self) -> list[MethodType]:
        return list(self._providers)

    def get_all_providers(self) -> dict[MethodType, TwoFactorMethodProvider]:
        return dict(self._providers)

    # ── Introspection ────────────────────────────────────────────

    def get_registry_stats(self) -> dict[str, Any]:
        """Snapshot of registered providers and their features."""
        return {
            "total_providers": len(self._providers),
            "available_methods": [m.value for m in self._providers],
            "features": {
                m.value: [f.value for f in provider.supported_features]
                for m, provider in self._providers.items()
            },
        }

    def validate_required_methods(
        self, required: Iterable[MethodType | str]
    ) -> list[MethodType | str]:
        """Return the required factor types that have no provider.

        An empty list means every required type is supported.
        """
        return [m for m in required if not self.is_method_supported(m)]


__all__: list[str] = ["MethodRegistry"]
