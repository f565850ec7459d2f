"""
Admin Relay

A privileged actor that writes the ledger's verification flag directly, on
behalf of a human operator. The relay does not run the biometric comparison:
it transfers the operator's trust decision to the ledger, nothing more.

Ledger failures (Unauthorized, LedgerUnavailable, ...) propagate to the
caller unchanged and are not retried.

Overrides sent through one relay are serialized, so the previous flag
reported with each outcome is the value that write replaced. Writes made
by other processes against the same ledger are not covered.

Usage:
    from core.admin_relay import AdminRelay

    relay = AdminRelay(ledger, admin_identity="relay-admin")
    outcome = relay.set_verified("0xabc", True)
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from core.ledger.interfaces import IdentityLedger

logger = logging.getLogger(__name__)


@dataclass
class RelayOutcome:
    """Acknowledgment of an accepted override."""

    account: str
    verified: bool
    previous: bool


class AdminRelay:
    """
    Forward operator overrides to the ledger using the admin identity.

    Args:
        ledger: Ledger to write to.
        admin_identity: Identity the relay signs its writes with. Defaults to
                        the ledger's configured admin identity.
    """

    def __init__(self, ledger: IdentityLedger, admin_identity: Optional[str] = None):
        self.ledger = ledger
        self.admin_identity = admin_identity if admin_identity is not None else ledger.admin_identity
        self._lock = threading.Lock()

    def set_verified(self, account: str, is_verified: bool) -> RelayOutcome:
        """
        Set the verified flag of an account.

        Args:
            account: Account identifier.
            is_verified: New flag value.

        Returns:
            RelayOutcome with the new and previous flag values.
        """
        with self._lock:
            previous = self.ledger.get_record(account).verified

            try:
                record = self.ledger.set_verified(self.admin_identity, account, bool(is_verified))
            except Exception as e:
                logger.error(f"Override failed for {account}: {e}")
                raise

        logger.info(f"Override applied: account={account} verified {previous} -> {record.verified}")

        return RelayOutcome(account=account, verified=record.verified, previous=previous)


# Singleton instance for the relay
_relay_instance: Optional[AdminRelay] = None


def get_admin_relay() -> AdminRelay:
    """Get or create the relay bound to the shared ledger."""
    global _relay_instance

    if _relay_instance is None:
        from core.config import get_relay_config
        from core.ledger import get_ledger

        _relay_instance = AdminRelay(get_ledger(), get_relay_config()["admin_identity"])

    return _relay_instance


def reset_admin_relay() -> None:
    """Forget the singleton relay."""
    global _relay_instance
    _relay_instance = None
