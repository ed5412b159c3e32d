"""InMemoryTwoFactorRepository: dict-backed fake for unit tests."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from ..models import (
    BackupCodesData,
    TwoFactorAuditLog,
    TwoFactorMethod,
    UserTwoFactorRecord,
    utc_now,
)
from .ports import ITwoFactorRepository

if TYPE_CHECKING:
    from ..models import NewTwoFactorMethod


class InMemoryTwoFactorRepository(ITwoFactorRepository):
    """In-memory implementation of ``ITwoFactorRepository``.

    Stores methods in a dict keyed by id and hands out copies, so callers
    only change state through the port operations.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._methods: dict[str, TwoFactorMethod] = {}
        self._flags: dict[str, bool] = {}
        self._backup_codes: dict[str, BackupCodesData] = {}
        self._audit: list[TwoFactorAuditLog] = []
        self._clock = clock

    async def get_user(self, user_id: str) -> UserTwoFactorRecord:
        return UserTwoFactorRecord(
            user_id=user_id,
            two_factor_enabled=self._flags.get(user_id, False),
            backup_codes=self._backup_codes.get(user_id),
            methods=await self.get_methods(user_id),
        )

    async def get_methods(self, user_id: str) -> list[TwoFactorMethod]:
        return [
            method.model_copy()
            for method in self._methods.values()
            if method.user_id == user_id
        ]

    async def get_method(self, user_id: str, method_id: str) -> TwoFactorMethod | None:
        method = self._methods.get(method_id)
        if method is None or method.user_id != user_id:
            return None
        return method.model_copy()

    async def create_method(self, data: NewTwoFactorMethod) -> TwoFactorMethod:
        now = self._clock()
        method = TwoFactorMethod(
            id=str(uuid.uuid4()),
            user_id=data.user_id,
            realm=data.realm,
            method_type=data.method_type,
            name=data.name,
            secret_data=data.secret_data,
            masked_data=data.masked_data,
            created_at=now,
            updated_at=now,
        )
        self._methods[method.id] = method
        return method.model_copy()

    async def update_method_status(self, method_id: str, enabled: bool) -> None:
        method = self._methods.get(method_id)
        if method is None:
            return
        method.is_enabled = enabled
        if not enabled:
            method.is_primary = False
        method.updated_at = self._clock()

    async def update_method_last_used(self, method_id: str, timestamp: datetime) -> None:
        method = self._methods.get(method_id)
        if method is not None:
            method.last_used_at = timestamp

    async def set_primary_method(self, user_id: str, method_id: str | None) -> None:
        for method in self._methods.values():
            if method.user_id == user_id:
                method.is_primary = method.id == method_id

    async def update_user_aggregate_flag(self, user_id: str, enabled: bool) -> None:
        self._flags[user_id] = enabled

    async def update_backup_codes(
        self, user_id: str, data: BackupCodesData | None
    ) -> None:
        if data is None:
            self._backup_codes.pop(user_id, None)
        else:
            self._backup_codes[user_id] = data

    async def delete_method(self, method_id: str) -> None:
        self._methods.pop(method_id, None)

    async def append_audit_log(self, entry: TwoFactorAuditLog) -> None:
        self._audit.append(entry)

    # ── Test helpers ─────────────────────────────────────────────

    @property
    def audit_entries(self) -> list[TwoFactorAuditLog]:
        return list(self._audit)

    def clear(self) -> None:
        self._methods.clear()
        self._flags.clear()
        self._backup_codes.clear()
        self._audit.clear()


__all__: list[str] = ["InMemoryTwoFactorRepository"]
