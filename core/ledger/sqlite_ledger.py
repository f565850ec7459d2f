"""
SQLite Identity Ledger

Durable implementation of the IdentityLedger contract backed by a single
SQLite database file. Each account is one row:

    accounts(account TEXT PRIMARY KEY,
             signature BLOB,             -- NULL until enrolled
             verified INTEGER NOT NULL,  -- 0 / 1
             enrolled_at TEXT,
             updated_at TEXT)

Enrollment is one conditional upsert that only writes when the stored
signature is NULL, so the write-once check and the write happen in the same
statement and two racing enrollments cannot both succeed.

Usage:
    from core.ledger.sqlite_ledger import SQLiteIdentityLedger

    ledger = SQLiteIdentityLedger(db_path="storage/ledger.sqlite",
                                  admin_identity="relay-admin")
    ledger.enroll("0xabc", "0xabc", signature)
"""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from core.exceptions import AlreadyEnrolled, LedgerUnavailable
from core.ledger.interfaces import (
    IdentityLedger,
    IdentityRecord,
    validate_account,
    validate_signature,
)

logger = logging.getLogger(__name__)


class SQLiteIdentityLedger(IdentityLedger):
    """
    Identity ledger persisted in SQLite.

    Attributes:
        db_path: Path to the SQLite database file.
        admin_identity: The only caller allowed to call set_verified.
    """

    def __init__(self, db_path: str, admin_identity: str):
        """
        Open (and create if needed) the ledger database.

        Args:
            db_path: Path to the SQLite database file. ":memory:" is accepted.
            admin_identity: Identity allowed to change the verified flag.
        """
        self.db_path = db_path
        self.admin_identity = admin_identity
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()

        logger.info(f"SQLiteIdentityLedger initialized: db={self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get or lazily create the SQLite connection."""
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=10.0,
                    check_same_thread=False,
                )
            except sqlite3.Error as e:
                raise LedgerUnavailable(f"Cannot open ledger database: {e}") from e
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self) -> None:
        """Create the accounts table if it doesn't exist."""
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS accounts (
                        account TEXT PRIMARY KEY,
                        signature BLOB,
                        verified INTEGER NOT NULL DEFAULT 0,
                        enrolled_at TEXT,
                        updated_at TEXT
                    )
                """)
                conn.commit()
            except sqlite3.Error as e:
                raise LedgerUnavailable(f"Cannot initialize ledger schema: {e}") from e
        logger.debug("Ledger schema initialized")

    def _fetch(self, conn: sqlite3.Connection, account: str) -> IdentityRecord:
        row = conn.execute(
            "SELECT account, signature, verified, enrolled_at FROM accounts WHERE account = ?",
            (account,),
        ).fetchone()

        if row is None:
            return IdentityRecord(account=account)

        signature = row["signature"]
        return IdentityRecord(
            account=row["account"],
            signature=bytes(signature) if signature is not None else None,
            verified=bool(row["verified"]),
            enrolled_at=row["enrolled_at"],
        )

    def get_record(self, account: str) -> IdentityRecord:
        validate_account(account)
        with self._lock:
            try:
                return self._fetch(self._get_connection(), account)
            except sqlite3.Error as e:
                raise LedgerUnavailable(f"Ledger read failed: {e}") from e

    def enroll(self, caller: str, account: str, signature: bytes) -> IdentityRecord:
        validate_account(account)
        signature = validate_signature(signature)
        self._check_owner(caller, account)

        now = datetime.now().isoformat()

        with self._lock:
            conn = self._get_connection()
            try:
                with conn:
                    cursor = conn.execute("""
                        INSERT INTO accounts (account, signature, verified, enrolled_at, updated_at)
                        VALUES (?, ?, 0, ?, ?)
                        ON CONFLICT(account) DO UPDATE SET
                            signature = excluded.signature,
                            enrolled_at = excluded.enrolled_at,
                            updated_at = excluded.updated_at
                        WHERE accounts.signature IS NULL
                    """, (account, sqlite3.Binary(signature), now, now))
                    written = cursor.rowcount
                record = self._fetch(conn, account)
            except sqlite3.Error as e:
                raise LedgerUnavailable(f"Ledger enroll failed: {e}") from e

        if written == 0:
            logger.warning(f"Rejected enrollment for {account}: signature already committed")
            raise AlreadyEnrolled(
                f"Account {account} already has a committed signature",
                context={"account": account},
            )

        logger.info(f"Enrolled signature for {account} ({len(signature)} bytes)")
        return record

    def set_verified(self, caller: str, account: str, flag: bool) -> IdentityRecord:
        validate_account(account)
        self._check_admin(caller)

        now = datetime.now().isoformat()

        with self._lock:
            conn = self._get_connection()
            try:
                with conn:
                    conn.execute("""
                        INSERT INTO accounts (account, verified, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(account) DO UPDATE SET
                            verified = excluded.verified,
                            updated_at = excluded.updated_at
                    """, (account, int(bool(flag)), now))
                record = self._fetch(conn, account)
            except sqlite3.Error as e:
                raise LedgerUnavailable(f"Ledger flag write failed: {e}") from e

        logger.info(f"Set verified={bool(flag)} for {account}")
        return record

    def count_enrolled(self) -> int:
        """Number of accounts with a committed signature."""
        with self._lock:
            try:
                row = self._get_connection().execute(
                    "SELECT COUNT(*) AS count FROM accounts WHERE signature IS NOT NULL"
                ).fetchone()
            except sqlite3.Error as e:
                raise LedgerUnavailable(f"Ledger read failed: {e}") from e
        return row["count"] or 0

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug("Ledger connection closed")
