"""Audit entries for two-factor operations.

One entry is written per action attempt, including failures. Entries carry
request provenance from the context and free-form metadata; they never
carry secrets or submitted codes.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..models import TwoFactorAction, TwoFactorAuditLog, utc_now

if TYPE_CHECKING:
    from ..models import MethodType, TwoFactorContext, TwoFactorMethod

# Method type recorded for backup code events, which have no method record
BACKUP_CODES_METHOD = "BACKUP_CODES"


def build_audit_entry(
    context: TwoFactorContext,
    action: TwoFactorAction,
    *,
    success: bool,
    method: TwoFactorMethod | None = None,
    method_type: MethodType | str | None = None,
    metadata: dict[str, Any] | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> TwoFactorAuditLog:
    """Create an audit entry for an action attempt.

    Args:
        context: Ambient identity and request provenance.
        action: The audited action.
        success: Whether the action succeeded.
        method: The method involved, if any.
        method_type: Factor type when no method record is involved.
        metadata: Additional event-specific data.
        clock: Source of the entry timestamp.

    Returns:
        TwoFactorAuditLog instance.
    """
    if method is not None:
        method_type = method.method_type
    return TwoFactorAuditLog(
        id=str(uuid.uuid4()),
        user_id=context.user_id,
        realm=context.realm,
        tenant_id=context.tenant_id,
        method_id=method.id if method is not None else None,
        method_type=getattr(method_type, "value", method_type),
        action=action,
        success=success,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        timestamp=clock(),
        metadata=metadata or {},
    )


# ═══════════════════════════════════════════════════════════════
# EVENT FACTORY FUNCTIONS
# ═══════════════════════════════════════════════════════════════


def setup_event(
    context: TwoFactorContext,
    method: TwoFactorMethod,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> TwoFactorAuditLog:
    """Create a method setup event."""
    return build_audit_entry(
        context, TwoFactorAction.SETUP, success=True, method=method, clock=clock
    )


def verification_event(
    context: TwoFactorContext,
    *,
    success: bool,
    method: TwoFactorMethod | None = None,
    method_type: MethodType | str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> TwoFactorAuditLog:
    """Create a verification success or failure event."""
    meta: dict[str, Any] = {}
    if reason:
        meta["reason"] = reason
    if metadata:
        meta.update(metadata)
    return build_audit_entry(
        context,
        TwoFactorAction.VERIFY_SUCCESS if success else TwoFactorAction.VERIFY_FAILURE,
        success=success,
        method=method,
        method_type=method_type,
        metadata=meta,
        clock=clock,
    )


def status_change_event(
    context: TwoFactorContext,
    action: TwoFactorAction,
    method: TwoFactorMethod,
    *,
    administrative: bool = False,
    metadata: dict[str, Any] | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> TwoFactorAuditLog:
    """Create an enable, disable or delete event."""
    meta: dict[str, Any] = {"administrative": administrative}
    if metadata:
        meta.update(metadata)
    return build_audit_entry(
        context, action, success=True, method=method, metadata=meta, clock=clock
    )


__all__: list[str] = [
    "BACKUP_CODES_METHOD",
    "build_audit_entry",
    "setup_event",
    "verification_event",
    "status_change_event",
]
