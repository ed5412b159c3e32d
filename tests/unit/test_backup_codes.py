"""Tests for the backup codes subsystem."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from twofactor_core.backup_codes import BackupCodesService
from twofactor_core.config import BackupCodesConfig
from twofactor_core.crypto import BcryptCodeHasher
from twofactor_core.models import BackupCodeOutcome, BackupCodesData


class CountingHasher(BcryptCodeHasher):
    """bcrypt hasher that counts comparisons."""

    def __init__(self) -> None:
        super().__init__(rounds=4)
        self.comparisons = 0

    def compare(self, code: str, digest: str) -> bool:
        self.comparisons += 1
        return super().compare(code, digest)


@pytest.fixture
def backup_service(hasher: BcryptCodeHasher, clock) -> BackupCodesService:
    return BackupCodesService(hasher, BackupCodesConfig(rounds=4), clock=clock)


class TestGenerate:
    """Test backup code generation."""

    def test_generates_configured_count(self, backup_service: BackupCodesService) -> None:
        """Test ten formatted codes are generated by default."""
        generated = backup_service.generate()

        assert len(generated.plain_codes) == 10
        assert len(generated.hashed_codes) == 10
        assert generated.data.codes == generated.hashed_codes
        assert generated.data.used_codes == []
        assert generated.data.remaining_count == 10

    def test_code_format(self, backup_service: BackupCodesService) -> None:
        """Test codes are XXXX-XXXX from the unambiguous alphabet."""
        generated = backup_service.generate()

        for code in generated.plain_codes:
            assert len(code) == 9
            assert code[4] == "-"
            raw = code.replace("-", "")
            assert all(c in BackupCodesService.ALPHABET for c in raw)
            assert not any(c in raw for c in "O0I1")

    def test_codes_are_unique(self, backup_service: BackupCodesService) -> None:
        """Test no duplicate codes within a batch."""
        generated = backup_service.generate()
        assert len(set(generated.plain_codes)) == len(generated.plain_codes)

    def test_plaintext_not_stored(self, backup_service: BackupCodesService) -> None:
        """Test the batch record holds only digests."""
        generated = backup_service.generate()
        for code in generated.plain_codes:
            assert code not in generated.data.codes
            assert code.replace("-", "") not in generated.data.codes

    def test_generated_at_uses_clock(self, backup_service: BackupCodesService, clock) -> None:
        """Test the batch is stamped with the injected clock."""
        assert backup_service.generate().data.generated_at == clock.now


class TestVerify:
    """Test backup code verification."""

    def test_single_use_scenario(self, backup_service: BackupCodesService) -> None:
        """Test code #3 succeeds once then is rejected with the count unchanged."""
        generated = backup_service.generate()
        code = generated.plain_codes[2]

        first = backup_service.verify(code, generated.data)
        assert first.is_valid
        assert first.remaining_codes == 9
        assert first.outcome is BackupCodeOutcome.VALID
        assert first.data is not None

        second = backup_service.verify(code, first.data)
        assert not second.is_valid
        assert second.remaining_codes == 9
        assert second.outcome is BackupCodeOutcome.BACKUP_CODE_USED
        assert second.data is None

    def test_used_and_unknown_share_message(
        self, backup_service: BackupCodesService
    ) -> None:
        """Test a replayed code is not distinguishable by message."""
        generated = backup_service.generate()
        used = backup_service.verify(generated.plain_codes[0], generated.data)
        assert used.data is not None

        replay = backup_service.verify(generated.plain_codes[0], used.data)
        unknown = backup_service.verify("ZZZZ-ZZZZ", used.data)

        assert replay.message == unknown.message
        assert "outcome" not in replay.model_dump()

    def test_consumption_stamps_last_used(
        self, backup_service: BackupCodesService, clock
    ) -> None:
        """Test a consumed code records the digest and the time."""
        generated = backup_service.generate()
        clock.advance(60)

        result = backup_service.verify(generated.plain_codes[0], generated.data)

        assert result.data is not None
        assert result.data.used_codes == [generated.hashed_codes[0]]
        assert result.data.last_used_at == clock.now

    @pytest.mark.parametrize(
        "transform",
        [
            lambda c: c,
            lambda c: c.replace("-", ""),
            lambda c: c.lower(),
            lambda c: f"  {c[:4]} {c[5:]}  ",
        ],
    )
    def test_separator_and_case_insensitive(
        self, backup_service: BackupCodesService, transform
    ) -> None:
        """Test formatting variations of a code are equivalent."""
        generated = backup_service.generate()
        result = backup_service.verify(transform(generated.plain_codes[0]), generated.data)
        assert result.is_valid

    def test_unknown_code_is_invalid(self, backup_service: BackupCodesService) -> None:
        """Test a well-formed code outside the batch is rejected."""
        generated = backup_service.generate()
        result = backup_service.verify("ZZZZ-ZZZZ", generated.data)

        assert not result.is_valid
        assert result.outcome is BackupCodeOutcome.BACKUP_CODE_INVALID
        assert result.remaining_codes == 10

    @pytest.mark.parametrize("code", ["ABC", "ABCD-EFGH-JK", "ABCD-EF0H", "ABCD_EFG!"])
    def test_malformed_code_skips_hashing(self, clock, code: str) -> None:
        """Test wrong length or charset is rejected without any hash comparison."""
        hasher = CountingHasher()
        service = BackupCodesService(hasher, BackupCodesConfig(rounds=4), clock=clock)
        generated = service.generate()

        result = service.verify(code, generated.data)

        assert not result.is_valid
        assert hasher.comparisons == 0

    def test_each_code_succeeds_exactly_once(
        self, backup_service: BackupCodesService
    ) -> None:
        """Test every code in a batch is single-use."""
        generated = backup_service.generate()
        data = generated.data

        for code in generated.plain_codes:
            result = backup_service.verify(code, data)
            assert result.is_valid
            assert result.data is not None
            data = result.data

        assert data.remaining_count == 0
        for code in generated.plain_codes[:3]:
            assert not backup_service.verify(code, data).is_valid


class TestRegeneration:
    """Test regeneration recommendations."""

    def test_should_regenerate_threshold(self, hasher: BcryptCodeHasher) -> None:
        """Test regeneration is recommended at two remaining codes."""
        service = BackupCodesService(hasher, BackupCodesConfig(count=4, rounds=4))
        generated = service.generate()
        data = generated.data

        assert not service.should_regenerate(data)
        result = service.verify(generated.plain_codes[0], data)
        assert result.data is not None
        assert not result.should_regenerate

        result = service.verify(generated.plain_codes[1], result.data)
        assert result.data is not None
        assert result.remaining_codes == 2
        assert result.should_regenerate
        assert service.should_regenerate(result.data)

    def test_instructions_mention_count(self, backup_service: BackupCodesService) -> None:
        """Test instructions include the batch size."""
        assert "10 backup codes" in backup_service.get_instructions()


class TestBackupCodesData:
    """Test batch invariants."""

    def test_used_codes_must_be_subset(self) -> None:
        """Test an unknown digest in used_codes is rejected."""
        with pytest.raises(ValidationError):
            BackupCodesData(codes=["a", "b"], used_codes=["c"])

    def test_used_codes_must_be_unique(self) -> None:
        """Test a digest cannot be used twice."""
        with pytest.raises(ValidationError):
            BackupCodesData(codes=["a", "b"], used_codes=["a", "a"])

    def test_remaining_count(self) -> None:
        """Test remaining = codes - used."""
        data = BackupCodesData(codes=["a", "b", "c"], used_codes=["b"])
        assert data.remaining_count == 2
        assert data.unused_codes == ["a", "c"]
