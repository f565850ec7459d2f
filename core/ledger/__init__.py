"""
Identity Ledger Package

The authoritative store mapping an account to its committed face signature
and verification flag.

Components:
    - interfaces: IdentityRecord, the IdentityLedger contract, in-memory ledger
    - sqlite_ledger: Durable SQLite-backed ledger

Usage:
    from core.ledger import get_ledger
    ledger = get_ledger()
    record = ledger.get_record("0xabc")
"""

from typing import Optional

from core.ledger.interfaces import (
    IdentityRecord,
    IdentityLedger,
    InMemoryIdentityLedger,
    validate_account,
)
from core.ledger.sqlite_ledger import SQLiteIdentityLedger

# Singleton instance for the ledger
_ledger_instance: Optional[IdentityLedger] = None


def get_ledger(
    db_path: Optional[str] = None,
    admin_identity: Optional[str] = None,
) -> IdentityLedger:
    """
    Get or create the singleton ledger instance.

    Args:
        db_path: Path to the SQLite ledger. If None, uses storage.ledger_db_path
                 from config (relative to the project root).
        admin_identity: Administrative identity. If None, uses
                        relay.admin_identity from config.

    Returns:
        The shared IdentityLedger instance.
    """
    global _ledger_instance

    if _ledger_instance is None:
        if db_path is None or admin_identity is None:
            from core.config import get_project_root, get_relay_config, get_storage_config

            if db_path is None:
                db_path = str(get_project_root() / get_storage_config()["ledger_db_path"])
            if admin_identity is None:
                admin_identity = get_relay_config()["admin_identity"]

        _ledger_instance = SQLiteIdentityLedger(db_path, admin_identity)

    return _ledger_instance


def reset_ledger() -> None:
    """Close and forget the singleton (used on shutdown and in tests)."""
    global _ledger_instance

    if _ledger_instance is not None and hasattr(_ledger_instance, "close"):
        _ledger_instance.close()
    _ledger_instance = None


__all__ = [
    "IdentityRecord",
    "IdentityLedger",
    "InMemoryIdentityLedger",
    "SQLiteIdentityLedger",
    "validate_account",
    "get_ledger",
    "reset_ledger",
]
