"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Distribution instance headers
- Claim bitmaps (word index -> packed word)
- Factory metadata
"""

from fundsplit.core.storage.sqlite_adapter import SQLiteAdapter
from fundsplit.core.storage.storage_manager import InstanceRecord, StorageManager
from fundsplit.core.storage.claim_set import SQLiteClaimSet

__all__ = ["SQLiteAdapter", "StorageManager", "InstanceRecord", "SQLiteClaimSet"]
