"""
Tests for the identity ledger implementations.

This test suite verifies, for both the in-memory and the SQLite ledger:
- Default records for accounts that were never written
- Write-once enrollment
- Owner-only enrollment and admin-only flag writes
- Concurrent enrollment race (exactly one winner)
- SQLite durability across reopen

Run with: pytest tests/test_ledger.py -v
"""

import os
import sys
import shutil
import sqlite3
import tempfile
import threading
import pytest
import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.exceptions import (
    AlreadyEnrolled,
    LedgerUnavailable,
    MalformedSignature,
    Unauthorized,
)
from core.ledger import (
    IdentityRecord,
    InMemoryIdentityLedger,
    SQLiteIdentityLedger,
    get_ledger,
    reset_ledger,
)
from core.signature_codec import encode

ADMIN = "relay-admin"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for ledger files."""
    path = tempfile.mkdtemp(prefix="ledger_test_")
    yield path
    shutil.rmtree(path)


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request, temp_dir):
    """Each test runs against both ledger implementations."""
    if request.param == "memory":
        yield InMemoryIdentityLedger(admin_identity=ADMIN)
    else:
        sqlite_ledger = SQLiteIdentityLedger(
            db_path=os.path.join(temp_dir, "ledger.sqlite"),
            admin_identity=ADMIN,
        )
        yield sqlite_ledger
        sqlite_ledger.close()


@pytest.fixture
def signature():
    rng = np.random.default_rng(1)
    return encode(rng.normal(0, 0.1, 128).astype(np.float32))


class TestGetRecord:
    """Tests for the read path."""

    def test_unknown_account_reads_default(self, ledger):
        record = ledger.get_record("0xnew")

        assert record == IdentityRecord(account="0xnew")
        assert record.signature is None
        assert record.verified is False
        assert record.is_enrolled is False

    @pytest.mark.parametrize("account", ["", "   ", None, 42])
    def test_malformed_account(self, ledger, account):
        with pytest.raises(ValueError):
            ledger.get_record(account)


class TestEnroll:
    """Tests for write-once enrollment."""

    def test_enroll_stores_signature(self, ledger, signature):
        returned = ledger.enroll("0xA1", "0xA1", signature)
        record = ledger.get_record("0xA1")

        assert record.signature == signature
        assert record.is_enrolled is True
        assert record.verified is False
        assert record.enrolled_at is not None
        assert returned == record

    def test_second_enroll_fails_and_keeps_signature(self, ledger, signature):
        ledger.enroll("0xA1", "0xA1", signature)
        other = encode(np.ones(128, dtype=np.float32))

        with pytest.raises(AlreadyEnrolled):
            ledger.enroll("0xA1", "0xA1", other)

        assert ledger.get_record("0xA1").signature == signature

    def test_second_enroll_with_same_signature_fails(self, ledger, signature):
        ledger.enroll("0xA1", "0xA1", signature)

        with pytest.raises(AlreadyEnrolled):
            ledger.enroll("0xA1", "0xA1", signature)

    def test_only_owner_may_enroll(self, ledger, signature):
        with pytest.raises(Unauthorized):
            ledger.enroll("0xMallory", "0xA1", signature)

        assert ledger.get_record("0xA1").is_enrolled is False

    def test_admin_cannot_enroll_for_others(self, ledger, signature):
        with pytest.raises(Unauthorized):
            ledger.enroll(ADMIN, "0xA1", signature)

    def test_empty_signature_rejected(self, ledger):
        with pytest.raises(MalformedSignature):
            ledger.enroll("0xA1", "0xA1", b"")

    def test_enroll_keeps_existing_verified_flag(self, ledger, signature):
        ledger.set_verified(ADMIN, "0xA1", True)
        ledger.enroll("0xA1", "0xA1", signature)

        record = ledger.get_record("0xA1")
        assert record.verified is True
        assert record.signature == signature

    def test_accounts_are_independent(self, ledger, signature):
        ledger.enroll("0xA1", "0xA1", signature)
        assert ledger.get_record("0xA2").is_enrolled is False

    def test_concurrent_enroll_has_exactly_one_winner(self, ledger):
        """Racing enrollments for one account: one success, the rest AlreadyEnrolled."""
        n_threads = 8
        barrier = threading.Barrier(n_threads)
        successes = []
        rejections = []

        def attempt(i):
            sig = encode(np.full(16, float(i), dtype=np.float32))
            barrier.wait()
            try:
                ledger.enroll("0xRace", "0xRace", sig)
                successes.append(sig)
            except AlreadyEnrolled:
                rejections.append(i)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(successes) == 1
        assert len(rejections) == n_threads - 1
        assert ledger.get_record("0xRace").signature == successes[0]


class TestSetVerified:
    """Tests for the admin-only flag write."""

    def test_admin_sets_flag(self, ledger):
        ledger.set_verified(ADMIN, "0xA1", True)
        assert ledger.get_record("0xA1").verified is True

        ledger.set_verified(ADMIN, "0xA1", False)
        assert ledger.get_record("0xA1").verified is False

    def test_non_admin_rejected_and_flag_unchanged(self, ledger):
        ledger.set_verified(ADMIN, "0xA1", True)

        with pytest.raises(Unauthorized):
            ledger.set_verified("0xA1", "0xA1", False)

        assert ledger.get_record("0xA1").verified is True

    def test_flag_write_does_not_touch_signature(self, ledger, signature):
        ledger.enroll("0xA1", "0xA1", signature)
        ledger.set_verified(ADMIN, "0xA1", True)

        record = ledger.get_record("0xA1")
        assert record.signature == signature
        assert record.verified is True

    def test_flag_on_unenrolled_account(self, ledger):
        ledger.set_verified(ADMIN, "0xA1", True)
        record = ledger.get_record("0xA1")

        assert record.verified is True
        assert record.is_enrolled is False


class TestSQLiteLedger:
    """SQLite-specific behavior."""

    def test_records_survive_reopen(self, temp_dir, signature):
        db_path = os.path.join(temp_dir, "nested", "ledger.sqlite")

        first = SQLiteIdentityLedger(db_path, ADMIN)
        first.enroll("0xA1", "0xA1", signature)
        first.set_verified(ADMIN, "0xA1", True)
        first.close()

        second = SQLiteIdentityLedger(db_path, ADMIN)
        record = second.get_record("0xA1")
        second.close()

        assert record.signature == signature
        assert record.verified is True

    def test_count_enrolled(self, temp_dir, signature):
        ledger = SQLiteIdentityLedger(os.path.join(temp_dir, "ledger.sqlite"), ADMIN)
        ledger.enroll("0xA1", "0xA1", signature)
        ledger.set_verified(ADMIN, "0xA2", True)

        assert ledger.count_enrolled() == 1
        ledger.close()

    def test_backend_errors_become_ledger_unavailable(self, temp_dir):
        ledger = SQLiteIdentityLedger(os.path.join(temp_dir, "ledger.sqlite"), ADMIN)
        ledger._get_connection().execute("DROP TABLE accounts")

        with pytest.raises(LedgerUnavailable):
            ledger.get_record("0xA1")
        ledger.close()

    def test_signature_stored_as_blob(self, temp_dir, signature):
        db_path = os.path.join(temp_dir, "ledger.sqlite")
        ledger = SQLiteIdentityLedger(db_path, ADMIN)
        ledger.enroll("0xA1", "0xA1", signature)
        ledger.close()

        conn = sqlite3.connect(db_path)
        stored = conn.execute("SELECT signature FROM accounts WHERE account = '0xA1'").fetchone()[0]
        conn.close()

        assert bytes(stored) == signature


class TestGetLedger:
    """Tests for the ledger singleton."""

    def test_singleton(self, temp_dir):
        reset_ledger()
        try:
            first = get_ledger(os.path.join(temp_dir, "ledger.sqlite"), ADMIN)
            second = get_ledger()
            assert first is second
            assert first.admin_identity == ADMIN
        finally:
            reset_ledger()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
