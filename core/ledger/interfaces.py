"""
Identity Ledger Interfaces

This module defines the fixed contract between the verification core and the
authoritative identity store. The ledger maps an account identifier to its
committed face signature and a verification flag, and exposes exactly three
operations:

1. get_record   - read; absent accounts read back all-default
2. enroll       - write-once commit of the caller's own signature
3. set_verified - flag write, restricted to the administrative identity

Consensus and execution of a real ledger are out of scope; implementations
only have to provide atomic, serialized writes. An in-memory implementation
is provided for tests and demos.

Usage:
    from core.ledger.interfaces import InMemoryIdentityLedger

    ledger = InMemoryIdentityLedger(admin_identity="relay-admin")
    ledger.enroll("0xabc", "0xabc", signature)
    record = ledger.get_record("0xabc")
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from core.exceptions import AlreadyEnrolled, MalformedSignature, Unauthorized


@dataclass(frozen=True)
class IdentityRecord:
    """
    Ledger entry for one account.

    Attributes:
        account: Account identifier the record is keyed by.
        signature: Committed face signature bytes, or None if not enrolled.
        verified: Verification flag, only changed by the admin relay.
        enrolled_at: ISO timestamp of enrollment, or None if not enrolled.
    """

    account: str
    signature: Optional[bytes] = None
    verified: bool = False
    enrolled_at: Optional[str] = None

    @property
    def is_enrolled(self) -> bool:
        """True once a signature has been committed."""
        return self.signature is not None


def validate_account(account: str) -> str:
    """
    Check that an account identifier is well formed.

    Raises:
        ValueError: If the account is not a non-empty string.
    """
    if not isinstance(account, str) or not account.strip():
        raise ValueError(f"Account identifier must be a non-empty string, got {account!r}")
    return account


def validate_signature(signature: bytes) -> bytes:
    """Reject signatures that cannot be committed (wrong type or empty)."""
    if not isinstance(signature, (bytes, bytearray)) or len(signature) == 0:
        raise MalformedSignature("Signature must be a non-empty byte string")
    return bytes(signature)


class IdentityLedger(ABC):
    """
    Abstract base class for the identity ledger.

    Implementations must make every write atomic: a reader never observes a
    partially applied enroll or set_verified, and two concurrent enroll calls
    for the same account result in exactly one success.

    Attributes:
        admin_identity: The only caller allowed to call set_verified.
    """

    admin_identity: str

    @abstractmethod
    def get_record(self, account: str) -> IdentityRecord:
        """
        Read the record for an account.

        Never fails for a well-formed account; an account that was never
        written reads back as IdentityRecord(account) with default fields.

        Raises:
            ValueError: If the account identifier is malformed.
            LedgerUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    def enroll(self, caller: str, account: str, signature: bytes) -> IdentityRecord:
        """
        Commit a signature for the caller's own account.

        Args:
            caller: Identity performing the write.
            account: Account whose record is written. Must equal caller.
            signature: Encoded face signature.

        Returns:
            The record as stored after the write.

        Raises:
            Unauthorized: If caller is not the account owner.
            AlreadyEnrolled: If a signature is already present.
            MalformedSignature: If the signature is empty.
            LedgerUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    def set_verified(self, caller: str, account: str, flag: bool) -> IdentityRecord:
        """
        Set the verification flag of an account.

        Args:
            caller: Identity performing the write. Must be admin_identity.
            account: Account whose flag is written.
            flag: New value of the verified flag.

        Returns:
            The record as stored after the write.

        Raises:
            Unauthorized: If caller is not the admin identity.
            LedgerUnavailable: If the backend cannot be reached.
        """
        pass

    def _check_owner(self, caller: str, account: str) -> None:
        if caller != account:
            raise Unauthorized(
                "Only the account owner may enroll a signature",
                context={"caller": caller, "account": account},
            )

    def _check_admin(self, caller: str) -> None:
        if caller != self.admin_identity:
            raise Unauthorized(
                "Only the administrative identity may change the verified flag",
                context={"caller": caller},
            )


# ============================================================
# In-memory implementation
# ============================================================

class InMemoryIdentityLedger(IdentityLedger):
    """
    Dictionary-backed ledger.

    A single lock serializes writes, which gives the same write-once
    guarantee as a transactional backend within one process.
    """

    def __init__(self, admin_identity: str):
        self.admin_identity = admin_identity
        self._records: Dict[str, IdentityRecord] = {}
        self._lock = threading.Lock()

    def get_record(self, account: str) -> IdentityRecord:
        validate_account(account)
        with self._lock:
            return self._records.get(account, IdentityRecord(account=account))

    def enroll(self, caller: str, account: str, signature: bytes) -> IdentityRecord:
        validate_account(account)
        signature = validate_signature(signature)
        self._check_owner(caller, account)

        with self._lock:
            current = self._records.get(account, IdentityRecord(account=account))
            if current.is_enrolled:
                raise AlreadyEnrolled(
                    f"Account {account} already has a committed signature",
                    context={"account": account},
                )
            record = IdentityRecord(
                account=account,
                signature=signature,
                verified=current.verified,
                enrolled_at=datetime.now().isoformat(),
            )
            self._records[account] = record
            return record

    def set_verified(self, caller: str, account: str, flag: bool) -> IdentityRecord:
        validate_account(account)
        self._check_admin(caller)

        with self._lock:
            current = self._records.get(account, IdentityRecord(account=account))
            record = IdentityRecord(
                account=account,
                signature=current.signature,
                verified=bool(flag),
                enrolled_at=current.enrolled_at,
            )
            self._records[account] = record
            return record
