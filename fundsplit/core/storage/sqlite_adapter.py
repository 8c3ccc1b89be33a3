import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from fundsplit.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Instance headers (root, currency, owner, fund, auction reference).
    2. Sparse claim bitmaps (instance, word index) -> packed word.
    3. Key-value metadata (factory bookkeeping).
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrency
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. Instance headers
            # Amounts are stored as decimal text: they may exceed 64 bits.
            conn.execute("""
                CREATE TABLE IF NOT EXISTS instances (
                    address BLOB PRIMARY KEY,
                    commitment_root BLOB NOT NULL,
                    currency BLOB NOT NULL,
                    owner BLOB NOT NULL,
                    auction_service BLOB NOT NULL,
                    generated_fund TEXT NOT NULL DEFAULT '0',
                    auction_ref TEXT NOT NULL DEFAULT '0',
                    phase INTEGER NOT NULL DEFAULT 0
                )
            """)

            # 2. Claim bitmaps
            # word_index is a 32-byte big-endian blob: index // W can exceed 64 bits.
            conn.execute("""
                CREATE TABLE IF NOT EXISTS claim_words (
                    instance BLOB NOT NULL,
                    word_index BLOB NOT NULL,
                    word BLOB NOT NULL,
                    PRIMARY KEY (instance, word_index)
                )
            """)

            # 3. Metadata
            conn.execute("""
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

    # =========================================================================
    # Instance Operations
    # =========================================================================

    def save_instance(
        self,
        address: bytes,
        commitment_root: bytes,
        currency: bytes,
        owner: bytes,
        auction_service: bytes,
        generated_fund: int,
        auction_ref: int,
        phase: int,
    ):
        """Insert or update an instance header."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO instances
                    (address, commitment_root, currency, owner, auction_service,
                     generated_fund, auction_ref, phase)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    address,
                    commitment_root,
                    currency,
                    owner,
                    auction_service,
                    str(generated_fund),
                    str(auction_ref),
                    int(phase),
                ),
            )

    def get_instance(self, address: bytes) -> Optional[sqlite3.Row]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT * FROM instances WHERE address = ?", (address,))
        return cursor.fetchone()

    def get_all_instances(self) -> List[sqlite3.Row]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT * FROM instances ORDER BY rowid")
        return cursor.fetchall()

    # =========================================================================
    # Claim Bitmap Operations
    # =========================================================================

    def get_claim_word(self, instance: bytes, word_index: bytes) -> Optional[bytes]:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT word FROM claim_words WHERE instance = ? AND word_index = ?",
            (instance, word_index),
        )
        row = cursor.fetchone()
        return row["word"] if row else None

    def set_claim_word(self, instance: bytes, word_index: bytes, word: bytes):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO claim_words (instance, word_index, word) VALUES (?, ?, ?)",
                (instance, word_index, word),
            )

    def delete_claim_word(self, instance: bytes, word_index: bytes):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "DELETE FROM claim_words WHERE instance = ? AND word_index = ?",
                (instance, word_index),
            )

    def count_claim_words(self, instance: bytes) -> int:
        conn = self._get_conn()
        cursor = conn.execute("SELECT COUNT(*) as cnt FROM claim_words WHERE instance = ?", (instance,))
        return cursor.fetchone()["cnt"]

    # =========================================================================
    # Metadata Operations
    # =========================================================================

    def set_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM meta WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def close(self):
        """Close the connection of the current thread."""
        if hasattr(self._conn_local, "conn"):
            self._conn_local.conn.close()
            del self._conn_local.conn
