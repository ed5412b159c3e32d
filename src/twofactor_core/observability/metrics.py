"""Two-factor metrics helpers for Prometheus integration.

Metrics are optional: without ``prometheus_client`` installed every helper
is a no-op.

Usage:
    ```python
    from twofactor_core.observability import TwoFactorMetrics

    with TwoFactorMetrics.operation("setup", method="TOTP"):
        response = await provider.setup(user_id)

    TwoFactorMetrics.record("verify", method="TOTP", result="failure")
    ```
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Generator


class _TwoFactorMetricsRegistry:
    """Registry for two-factor Prometheus metrics.

    Lazily initializes Prometheus metrics on first use.
    """

    def __init__(self) -> None:
        self._histogram: Any = None
        self._counter: Any = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        """Initialize Prometheus metrics if available."""
        if self._initialized:
            return

        try:
            from prometheus_client import Counter, Histogram

            self._histogram = Histogram(
                "two_factor_operation_duration_seconds",
                "Two-factor operation duration",
                ["operation", "method"],
            )
            self._counter = Counter(
                "two_factor_operations_total",
                "Two-factor operation count",
                ["operation", "method", "result"],
            )
        except ImportError:
            _logger.debug("prometheus_client not available, metrics disabled")

        self._initialized = True

    @property
    def histogram(self) -> Any:
        self._ensure_initialized()
        return self._histogram

    @property
    def counter(self) -> Any:
        self._ensure_initialized()
        return self._counter


# Global registry instance
_registry = _TwoFactorMetricsRegistry()


class TwoFactorMetrics:
    """Helpers for recording two-factor operations.

    Integrates with Prometheus when available but works as a no-op
    otherwise.
    """

    @staticmethod
    @contextmanager
    def operation(
        operation: str, *, method: str = "unknown"
    ) -> Generator[None, None, None]:
        """Context manager timing an operation and counting its result.

        Args:
            operation: Operation name (setup, verify, enable, disable).
            method: Factor type.

        Yields:
            Nothing.
        """
        result = "success"
        start = time.monotonic()

        try:
            yield
        except Exception:
            result = "error"
            raise
        finally:
            duration = time.monotonic() - start

            if _registry.histogram:
                try:
                    _registry.histogram.labels(
                        operation=operation, method=method
                    ).observe(duration)
                except Exception:
                    _logger.debug("Failed to record histogram")

            TwoFactorMetrics.record(operation, method=method, result=result)

    @staticmethod
    def record(operation: str, *, method: str = "unknown", result: str = "success") -> None:
        """Increment the operation counter.

        Args:
            operation: Operation name.
            method: Factor type.
            result: success, failure or error.
        """
        if not _registry.counter:
            return

        try:
            _registry.counter.labels(
                operation=operation, method=method, result=result
            ).inc()
        except Exception:
            _logger.debug("Failed to record counter")


__all__: list[str] = ["TwoFactorMetrics"]
