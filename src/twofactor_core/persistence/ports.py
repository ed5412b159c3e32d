"""Persistence ports for two-factor state.

One repository protocol serves both identity realms. A realm router picks
the realm-specific backend for a context, so the orchestration service
never branches on realm itself.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..models import (
        BackupCodesData,
        NewTwoFactorMethod,
        TwoFactorAuditLog,
        TwoFactorContext,
        TwoFactorMethod,
        UserTwoFactorRecord,
    )


@runtime_checkable
class ITwoFactorRepository(Protocol):
    """Protocol for one realm's two-factor storage.

    Implementations should use a database table per record type. Transient
    failures are surfaced as-is; retry policy belongs to the adapter.
    """

    async def get_user(self, user_id: str) -> UserTwoFactorRecord:
        """Load the user's aggregate flag, backup codes and methods.

        Args:
            user_id: User identifier.

        Returns:
            The user's record (empty for a user with no two-factor state).
        """
        ...

    async def get_methods(self, user_id: str) -> list[TwoFactorMethod]:
        """All methods owned by the user, in creation order."""
        ...

    async def get_method(self, user_id: str, method_id: str) -> TwoFactorMethod | None:
        """One method, only if owned by the user."""
        ...

    async def create_method(self, data: NewTwoFactorMethod) -> TwoFactorMethod:
        """Create a disabled, non-primary method and assign its id."""
        ...

    async def update_method_status(self, method_id: str, enabled: bool) -> None:
        """Set the enabled flag. Disabling also clears the primary flag."""
        ...

    async def update_method_last_used(self, method_id: str, timestamp: datetime) -> None:
        """Stamp a successful use."""
        ...

    async def set_primary_method(self, user_id: str, method_id: str | None) -> None:
        """Make one method primary, atomically clearing any prior primary.

        Args:
            user_id: User identifier.
            method_id: Method to designate, or None to only clear.
        """
        ...

    async def update_user_aggregate_flag(self, user_id: str, enabled: bool) -> None:
        """Set the user's overall two-factor flag."""
        ...

    async def update_backup_codes(
        self, user_id: str, data: BackupCodesData | None
    ) -> None:
        """Replace the user's backup code batch (None removes it)."""
        ...

    async def delete_method(self, method_id: str) -> None:
        """Delete a method record."""
        ...

    async def append_audit_log(self, entry: TwoFactorAuditLog) -> None:
        """Append an audit entry. Entries are never updated or deleted."""
        ...


@runtime_checkable
class IRealmRepositoryResolver(Protocol):
    """Resolves the repository backing a context's realm."""

    def for_context(self, context: TwoFactorContext) -> ITwoFactorRepository:
        """Repository for the context's realm (and tenant)."""
        ...


__all__: list[str] = ["ITwoFactorRepository", "IRealmRepositoryResolver"]
