"""Optional Prometheus metrics for two-factor operations."""

from __future__ import annotations

from .metrics import TwoFactorMetrics

__all__: list[str] = ["TwoFactorMetrics"]
