"""Backup codes for two-factor recovery.

Generates and validates single-use backup codes that users can use
when they lose access to their primary two-factor device.

Codes are hashed with an ICodeHasher (bcrypt) before they leave this
module; plaintext codes are returned once, for display, and never stored.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from .config import BackupCodesConfig
from .crypto import ICodeHasher
from .models import (
    BackupCodeOutcome,
    BackupCodesData,
    BackupCodeVerificationResult,
    utc_now,
)

logger = logging.getLogger("twofactor.backup_codes")

_SEPARATORS = str.maketrans("", "", "- \t\r\n")


@dataclass(frozen=True)
class GeneratedBackupCodes:
    """A freshly generated batch.

    Attributes:
        plain_codes: Formatted plaintext codes, to show to the user once.
        hashed_codes: Digests, in the same order.
        data: The batch record to persist.
    """

    plain_codes: list[str]
    hashed_codes: list[str]
    data: BackupCodesData


class BackupCodesService:
    """Backup codes service for two-factor recovery.

    Each code is single-use: a successful verification appends its digest
    to ``used_codes`` and returns the updated batch, which the caller
    persists. Regeneration replaces the whole batch.

    Example:
        ```python
        service = BackupCodesService(BcryptCodeHasher(rounds=12))

        generated = service.generate()
        print(f"Save these codes: {generated.plain_codes}")

        # Later, when the user needs to recover
        result = service.verify(user_code, generated.data)
        if result.is_valid:
            await repository.update_backup_codes(user_id, result.data)
        ```
    """

    # Characters used in backup codes (exclude ambiguous: 0, O, 1, I)
    ALPHABET = string.ascii_uppercase.replace("O", "").replace(
        "I", ""
    ) + string.digits.replace("0", "").replace("1", "")

    def __init__(
        self,
        hasher: ICodeHasher,
        config: BackupCodesConfig | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the backup codes service.

        Args:
            hasher: One-way hasher for stored codes.
            config: Count, length and regeneration threshold.
            clock: Source of the current time.
        """
        self.hasher = hasher
        self.config = config or BackupCodesConfig()
        self._clock = clock

    def _generate_code(self) -> str:
        """Generate a single raw code."""
        return "".join(
            secrets.choice(self.ALPHABET) for _ in range(self.config.length)
        )

    def _format_code(self, code: str) -> str:
        """Format code with a dash between its halves (e.g. "ABCD-EFGH")."""
        half = len(code) // 2
        return f"{code[:half]}-{code[half:]}"

    @staticmethod
    def normalize_code(code: str) -> str:
        """Strip separators and whitespace and upper-case the input."""
        return code.translate(_SEPARATORS).upper()

    def _is_well_formed(self, normalized: str) -> bool:
        return len(normalized) == self.config.length and all(
            char in self.ALPHABET for char in normalized
        )

    def is_well_formed(self, code: str) -> bool:
        """Whether ``code`` has the length and charset of a backup code."""
        return self._is_well_formed(self.normalize_code(code))

    def generate(self) -> GeneratedBackupCodes:
        """Generate a new batch.

        Returns:
            Plaintext codes, their digests and the batch record.
        """
        raw_codes: list[str] = []
        while len(raw_codes) < self.config.count:
            code = self._generate_code()
            if code not in raw_codes:
                raw_codes.append(code)

        hashed = [self.hasher.hash(code) for code in raw_codes]
        data = BackupCodesData(codes=hashed, generated_at=self._clock())
        logger.debug("Generated %d backup codes", len(hashed))
        return GeneratedBackupCodes(
            plain_codes=[self._format_code(code) for code in raw_codes],
            hashed_codes=hashed,
            data=data,
        )

    def verify(self, code: str, data: BackupCodesData) -> BackupCodeVerificationResult:
        """Check a code against a batch.

        Malformed input is rejected without any hash comparison. A code
        matching an already used digest is reported as invalid.

        Args:
            code: User-supplied code, with or without separators.
            data: The user's current batch.

        Returns:
            Verification result; ``data`` holds the updated batch when the
            code was consumed.
        """
        normalized = self.normalize_code(code)
        if not self._is_well_formed(normalized):
            return self._invalid(data, BackupCodeOutcome.BACKUP_CODE_INVALID)

        for digest in data.used_codes:
            if self.hasher.compare(normalized, digest):
                logger.warning("Replayed backup code rejected")
                return self._invalid(data, BackupCodeOutcome.BACKUP_CODE_USED)

        for digest in data.unused_codes:
            if self.hasher.compare(normalized, digest):
                updated = data.model_copy(
                    update={
                        "used_codes": [*data.used_codes, digest],
                        "last_used_at": self._clock(),
                    }
                )
                return BackupCodeVerificationResult(
                    is_valid=True,
                    remaining_codes=updated.remaining_count,
                    message="Backup code accepted",
                    outcome=BackupCodeOutcome.VALID,
                    should_regenerate=self.should_regenerate(updated),
                    data=updated,
                )

        return self._invalid(data, BackupCodeOutcome.BACKUP_CODE_INVALID)

    def should_regenerate(self, data: BackupCodesData) -> bool:
        """Whether few enough codes remain that regeneration is recommended."""
        return data.remaining_count <= self.config.regenerate_threshold

    def get_instructions(self) -> str:
        return (
            "Backup codes are single-use codes that can be used to access your "
            "account if you lose access to your primary two-factor method.\n\n"
            "Important:\n"
            "• Each code can only be used once\n"
            "• Store them in a secure location (password manager, safe, etc.)\n"
            "• Don't share them with anyone\n"
            "• Generate new codes if you're running low\n\n"
            f"You have {self.config.count} backup codes. Use them wisely!"
        )

    def _invalid(
        self, data: BackupCodesData, outcome: BackupCodeOutcome
    ) -> BackupCodeVerificationResult:
        return BackupCodeVerificationResult(
            is_valid=False,
            remaining_codes=data.remaining_count,
            message="Invalid backup code",
            outcome=outcome,
            should_regenerate=self.should_regenerate(data),
        )


__all__: list[str] = ["BackupCodesService", "GeneratedBackupCodes"]
