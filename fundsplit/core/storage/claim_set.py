"""
SQLite-backed claim set.

Same bit layout as BitmapClaimSet, with each packed word stored as a row
keyed by (instance address, word index). Writes go straight to the
database; the owning instance journals the previous word so an aborted
operation restores it.
"""

from fundsplit.core.distribution.claims import DEFAULT_WORD_BITS, ClaimSet
from fundsplit.core.storage.storage_manager import StorageManager


class SQLiteClaimSet(ClaimSet):
    """Claim set persisted through a StorageManager."""

    def __init__(self, storage_manager: StorageManager, instance: bytes, word_bits: int = DEFAULT_WORD_BITS):
        super().__init__(word_bits)
        self.storage_manager = storage_manager
        self.instance = instance

    def get_word(self, word_index: int) -> int:
        return self.storage_manager.get_claim_word(self.instance, word_index)

    def set_word(self, word_index: int, word: int) -> None:
        self.storage_manager.set_claim_word(self.instance, word_index, word, self.word_bits)

    def word_count(self) -> int:
        return self.storage_manager.count_claim_words(self.instance)

    def __repr__(self) -> str:
        return f"SQLiteClaimSet(instance=0x{self.instance.hex()}, word_bits={self.word_bits})"
