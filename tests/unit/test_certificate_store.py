"""
Unit tests for the PostgreSQL adapters with a mocked psycopg connection.

Real database behavior is covered by tests/integration; these tests pin
the commit/rollback decisions and the error mapping.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import psycopg
import pytest

from admin_revoker.adapters.repository import PsycopgCertificateStore, PsycopgTransactionContext
from admin_revoker.domain.models import CertificateRecord
from admin_revoker.railway import ErrorCode, Result, ResultAssertions

# ─────────────────────── Fixtures ───────────────────────


def _tx_returning(rows: list[tuple]) -> MagicMock:
    tx = MagicMock()
    tx.execute.return_value.fetchall.return_value = rows
    return tx


@pytest.fixture()
def store() -> PsycopgCertificateStore:
    return PsycopgCertificateStore()


@pytest.fixture()
def conn() -> MagicMock:
    return MagicMock(name="connection")


@pytest.fixture()
def connect(conn: MagicMock) -> MagicMock:
    return MagicMock(return_value=conn)


@pytest.fixture()
def transactions(connect: MagicMock) -> PsycopgTransactionContext:
    return PsycopgTransactionContext("postgresql://test", connect_timeout=3, connect=connect)


# ═══════════════════════════════════════════════════════════════════════
# PsycopgCertificateStore
# ═══════════════════════════════════════════════════════════════════════


class TestSelectCertificateBySerial:
    def test_found(self, store: PsycopgCertificateStore) -> None:
        tx = _tx_returning([("0a", memoryview(b"\x30\x00"), 42)])

        result = store.select_certificate_by_serial(tx, "0a")

        assert ResultAssertions.assert_success(result) == CertificateRecord(
            serial="0a", der=b"\x30\x00", registration_id=42
        )
        query, params = tx.execute.call_args.args
        assert "WHERE serial = %s" in query
        assert params == ("0a",)

    def test_absent_serial_is_not_found(self, store: PsycopgCertificateStore) -> None:
        result = store.select_certificate_by_serial(_tx_returning([]), "0a")

        ResultAssertions.assert_failure(result, ErrorCode.NOT_FOUND)
        ResultAssertions.assert_failure_message_contains(result, "'0a' not found")

    def test_query_error_is_store_failure(self, store: PsycopgCertificateStore) -> None:
        tx = MagicMock()
        tx.execute.side_effect = psycopg.OperationalError("server closed the connection")

        result = store.select_certificate_by_serial(tx, "0a")

        ResultAssertions.assert_failure(result, ErrorCode.STORE_FAILURE)


class TestSelectCertificatesByRegistration:
    def test_rows_in_store_order(self, store: PsycopgCertificateStore) -> None:
        tx = _tx_returning([("02", b"b", 42), ("01", b"a", 42)])

        result = store.select_certificates_by_registration(tx, 42)

        records = ResultAssertions.assert_success(result)
        assert [r.serial for r in records] == ["02", "01"]
        query, params = tx.execute.call_args.args
        assert "WHERE registration_id = %s" in query
        assert "ORDER BY" not in query
        assert params == (42,)

    def test_no_rows_is_empty_success(self, store: PsycopgCertificateStore) -> None:
        assert ResultAssertions.assert_success(
            store.select_certificates_by_registration(_tx_returning([]), 42)
        ) == []

    def test_query_error_is_store_failure(self, store: PsycopgCertificateStore) -> None:
        tx = MagicMock()
        tx.execute.side_effect = psycopg.OperationalError("boom")
        ResultAssertions.assert_failure(
            store.select_certificates_by_registration(tx, 42), ErrorCode.STORE_FAILURE
        )


# ═══════════════════════════════════════════════════════════════════════
# PsycopgTransactionContext
# ═══════════════════════════════════════════════════════════════════════


class TestTransactionCommit:
    def test_success_commits_once(
        self, transactions: PsycopgTransactionContext, conn: MagicMock
    ) -> None:
        """
        GIVEN a computation that returns Success
        WHEN execute runs it
        THEN the transaction is committed once and never rolled back.
        """
        result = transactions.execute(lambda tx: Result.success("done"))

        assert ResultAssertions.assert_success(result) == "done"
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()

    def test_computation_receives_connection(
        self, transactions: PsycopgTransactionContext, conn: MagicMock
    ) -> None:
        seen = []
        transactions.execute(lambda tx: seen.append(tx) or Result.success(1))
        assert seen == [conn]

    def test_commit_error_is_store_failure(
        self, transactions: PsycopgTransactionContext, conn: MagicMock
    ) -> None:
        conn.commit.side_effect = psycopg.OperationalError("lost")

        result = transactions.execute(lambda tx: Result.success(1))

        ResultAssertions.assert_failure(result, ErrorCode.STORE_FAILURE)
        ResultAssertions.assert_failure_message_contains(result, "Couldn't cleanly close transaction")


class TestTransactionRollback:
    def test_failure_rolls_back_and_keeps_error(
        self, transactions: PsycopgTransactionContext, conn: MagicMock
    ) -> None:
        """
        GIVEN a computation that returns Failure(REMOTE_CALL_FAILURE)
        WHEN execute runs it
        THEN the transaction is rolled back and the original failure is returned.
        """
        result = transactions.execute(
            lambda tx: Result.failure(ErrorCode.REMOTE_CALL_FAILURE, "RA down")
        )

        error = ResultAssertions.assert_failure(result, ErrorCode.REMOTE_CALL_FAILURE)
        assert error.message == "RA down"
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_rollback_error_is_store_failure_naming_original(
        self, transactions: PsycopgTransactionContext, conn: MagicMock
    ) -> None:
        conn.rollback.side_effect = psycopg.OperationalError("lost")

        result = transactions.execute(lambda tx: Result.failure(ErrorCode.NOT_FOUND, "missing"))

        ResultAssertions.assert_failure(result, ErrorCode.STORE_FAILURE)
        ResultAssertions.assert_failure_message_contains(result, "NOT_FOUND: missing")

    def test_exception_rolls_back_and_propagates(
        self, transactions: PsycopgTransactionContext, conn: MagicMock
    ) -> None:
        def explode(tx: object) -> Result[int]:
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError, match="bug"):
            transactions.execute(explode)
        conn.rollback.assert_called_once()

    def test_failed_rollback_keeps_original_exception(
        self, transactions: PsycopgTransactionContext, conn: MagicMock
    ) -> None:
        """
        GIVEN a computation that raises and a connection whose rollback fails too
        WHEN execute runs it
        THEN the computation's exception is the one that propagates.
        """
        conn.rollback.side_effect = psycopg.OperationalError("connection lost")

        def explode(tx: object) -> Result[int]:
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError, match="bug"):
            transactions.execute(explode)
        conn.rollback.assert_called_once()


class TestConnectionLifecycle:
    def test_connects_lazily_once(
        self, transactions: PsycopgTransactionContext, connect: MagicMock
    ) -> None:
        connect.assert_not_called()

        transactions.execute(lambda tx: Result.success(1))
        transactions.execute(lambda tx: Result.success(2))

        connect.assert_called_once_with("postgresql://test", connect_timeout=3)

    def test_connect_error_is_store_failure(self) -> None:
        connect = MagicMock(side_effect=psycopg.OperationalError("refused"))
        transactions = PsycopgTransactionContext("postgresql://test", connect=connect)
        ran = []

        result = transactions.execute(lambda tx: ran.append(tx) or Result.success(1))

        ResultAssertions.assert_failure(result, ErrorCode.STORE_FAILURE)
        ResultAssertions.assert_failure_message_contains(result, "Couldn't begin transaction")
        assert ran == []

    def test_close(self, transactions: PsycopgTransactionContext, conn: MagicMock) -> None:
        transactions.execute(lambda tx: Result.success(1))
        transactions.close()
        transactions.close()
        conn.close.assert_called_once()
