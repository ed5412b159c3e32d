"""Two-factor audit entries."""

from __future__ import annotations

from ..models import TwoFactorAction
from .events import (
    BACKUP_CODES_METHOD,
    build_audit_entry,
    setup_event,
    status_change_event,
    verification_event,
)

__all__: list[str] = [
    "TwoFactorAction",
    "BACKUP_CODES_METHOD",
    "build_audit_entry",
    "setup_event",
    "verification_event",
    "status_change_event",
]
