from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from fundsplit.core.storage.sqlite_adapter import SQLiteAdapter
from fundsplit.utils.logger import get_logger

logger = get_logger("storage.manager")


@dataclass
class InstanceRecord:
    """Persisted header of one distribution instance."""
    address: bytes
    commitment_root: bytes
    currency: bytes
    owner: bytes
    auction_service: bytes
    generated_fund: int = 0
    auction_ref: int = 0
    phase: int = 0


class StorageManager:
    """
    Manages persistent storage for distribution instances.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Instance headers (written after each committed operation)
    - Claim bitmaps (one row per touched word)
    - Factory metadata
    """

    def __init__(self, data_dir: Path, db_name: str = "fundsplit.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Instances
    # =========================================================================

    def save_instance(self, record: InstanceRecord):
        self.adapter.save_instance(
            record.address,
            record.commitment_root,
            record.currency,
            record.owner,
            record.auction_service,
            record.generated_fund,
            record.auction_ref,
            record.phase,
        )

    def load_instance(self, address: bytes) -> Optional[InstanceRecord]:
        row = self.adapter.get_instance(address)
        return self._to_record(row) if row else None

    def list_instances(self) -> List[InstanceRecord]:
        return [self._to_record(row) for row in self.adapter.get_all_instances()]

    @staticmethod
    def _to_record(row) -> InstanceRecord:
        return InstanceRecord(
            address=bytes(row["address"]),
            commitment_root=bytes(row["commitment_root"]),
            currency=bytes(row["currency"]),
            owner=bytes(row["owner"]),
            auction_service=bytes(row["auction_service"]),
            generated_fund=int(row["generated_fund"]),
            auction_ref=int(row["auction_ref"]),
            phase=int(row["phase"]),
        )

    # =========================================================================
    # Claim Bitmaps
    # =========================================================================

    @staticmethod
    def _word_key(word_index: int) -> bytes:
        return word_index.to_bytes(32, byteorder="big")

    def get_claim_word(self, instance: bytes, word_index: int) -> int:
        data = self.adapter.get_claim_word(instance, self._word_key(word_index))
        return int.from_bytes(data, byteorder="big") if data else 0

    def set_claim_word(self, instance: bytes, word_index: int, word: int, word_bits: int = 256):
        if word == 0:
            self.adapter.delete_claim_word(instance, self._word_key(word_index))
            return
        self.adapter.set_claim_word(instance, self._word_key(word_index), word.to_bytes(word_bits // 8, byteorder="big"))

    def count_claim_words(self, instance: bytes) -> int:
        return self.adapter.count_claim_words(instance)

    # =========================================================================
    # Metadata
    # =========================================================================

    def set_meta(self, key: str, value: str):
        self.adapter.set_meta(key, value)

    def get_meta(self, key: str) -> Optional[str]:
        return self.adapter.get_meta(key)

    def close(self):
        self.adapter.close()
