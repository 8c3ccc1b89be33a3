"""
Unit tests for SQLite storage and the persisted claim set.
"""

import pytest

from fundsplit.core.storage import InstanceRecord, SQLiteClaimSet, StorageManager


def addr(n: int) -> bytes:
    return bytes([n]) * 20


INSTANCE = addr(0x10)


@pytest.fixture
def storage(tmp_path):
    manager = StorageManager(tmp_path / "data")
    yield manager
    manager.close()


class TestInstanceRecords:
    """Tests for instance header persistence."""

    def test_save_and_load(self, storage):
        record = InstanceRecord(
            address=INSTANCE,
            commitment_root=b"\x01" * 32,
            currency=addr(1),
            owner=addr(2),
            auction_service=addr(3),
            generated_fund=2**200 + 1,
            auction_ref=7,
            phase=2,
        )
        storage.save_instance(record)

        assert storage.load_instance(INSTANCE) == record

    def test_save_overwrites(self, storage):
        record = InstanceRecord(INSTANCE, b"\x01" * 32, addr(1), addr(2), addr(3))
        storage.save_instance(record)
        record.auction_ref = 3
        storage.save_instance(record)

        assert storage.load_instance(INSTANCE).auction_ref == 3
        assert len(storage.list_instances()) == 1

    def test_missing_instance(self, storage):
        assert storage.load_instance(addr(9)) is None

    def test_meta(self, storage):
        assert storage.get_meta("factory") is None
        storage.set_meta("factory", "0xabc")
        assert storage.get_meta("factory") == "0xabc"


class TestSQLiteClaimSet:
    """Tests for the persisted bitmap."""

    def test_set_and_query(self, storage):
        claims = SQLiteClaimSet(storage, INSTANCE)
        claims.set_claimed(300)

        assert claims.is_claimed(300)
        assert not claims.is_claimed(299)
        assert storage.get_claim_word(INSTANCE, 1) == 1 << 44
        assert claims.word_count() == 1

    def test_survives_reopen(self, tmp_path):
        first = StorageManager(tmp_path / "data")
        SQLiteClaimSet(first, INSTANCE).set_claimed(5)
        first.close()

        second = StorageManager(tmp_path / "data")
        assert SQLiteClaimSet(second, INSTANCE).is_claimed(5)
        second.close()

    def test_instances_are_isolated(self, storage):
        SQLiteClaimSet(storage, INSTANCE).set_claimed(1)
        assert not SQLiteClaimSet(storage, addr(0x11)).is_claimed(1)

    def test_zero_word_deletes_row(self, storage):
        claims = SQLiteClaimSet(storage, INSTANCE)
        claims.set_claimed(1)
        claims.set_word(0, 0)

        assert claims.word_count() == 0
        assert not claims.is_claimed(1)

    @pytest.mark.parametrize("word_bits", [32, 64, 128, 256])
    def test_word_widths(self, storage, word_bits):
        claims = SQLiteClaimSet(storage, INSTANCE, word_bits)
        top = word_bits - 1
        claims.set_claimed(top)
        claims.set_claimed(word_bits)

        assert storage.get_claim_word(INSTANCE, 0) == 1 << top
        assert storage.get_claim_word(INSTANCE, 1) == 1

    @pytest.mark.parametrize("index", [2**100, 2**256 - 1])
    def test_indices_beyond_sqlite_integer_range(self, storage, index):
        claims = SQLiteClaimSet(storage, INSTANCE, 32)
        assert not claims.is_claimed(index)

        claims.set_claimed(index)

        assert claims.is_claimed(index)
        assert not claims.is_claimed(index - 1)
        assert storage.get_claim_word(INSTANCE, index // 32) == 1 << (index % 32)
