"""
PostgreSQL adapters — certificate reads and the per-operation transaction.

Adapter layer — implements CertificateStore and TransactionContext using
psycopg (v3) with raw parameterized SQL.

One connection is opened lazily and kept for the life of the process; each
top-level operation runs in exactly one transaction on it:

  1. computation(conn)            (reads + remote calls, via the orchestrator)
  2. COMMIT   if the Result is a Success
     ROLLBACK if the Result is a Failure, or the computation raised

A failing COMMIT or ROLLBACK is reported as STORE_FAILURE.

Table read:
  certificates(serial, registration_id, der, ...)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import psycopg
import structlog

from admin_revoker.domain.models import CertificateRecord
from admin_revoker.domain.ports import TransactionScope
from admin_revoker.railway import ErrorCode, Result

T = TypeVar("T")

log = structlog.get_logger()

_SELECT_BY_SERIAL = """
SELECT serial, der, registration_id
FROM certificates
WHERE serial = %s
"""

# No ORDER BY: certificates are revoked in whatever order the store returns them.
_SELECT_BY_REGISTRATION = """
SELECT serial, der, registration_id
FROM certificates
WHERE registration_id = %s
"""


def _to_record(row: tuple[Any, ...]) -> CertificateRecord:
    serial, der, registration_id = row
    return CertificateRecord(serial=serial, der=bytes(der), registration_id=registration_id)


class PsycopgCertificateStore:
    """
    Read certificate records inside the caller's transaction.

    Implements the CertificateStore port. Query errors are caught at this
    adapter boundary via Result.from_computation().
    """

    def select_certificate_by_serial(
        self, tx: TransactionScope, serial: str
    ) -> Result[CertificateRecord]:
        return Result.from_computation(
            lambda: tx.execute(_SELECT_BY_SERIAL, (serial,)).fetchall(),
            ErrorCode.STORE_FAILURE,
            f"Failed to look up certificate {serial!r}",
        ).flat_map(
            lambda rows: Result.from_optional(
                rows[0] if rows else None,
                f"certificate with serial {serial!r} not found",
            ).map(_to_record)
        )

    def select_certificates_by_registration(
        self, tx: TransactionScope, registration_id: int
    ) -> Result[list[CertificateRecord]]:
        return Result.from_computation(
            lambda: [
                _to_record(row)
                for row in tx.execute(_SELECT_BY_REGISTRATION, (registration_id,)).fetchall()
            ],
            ErrorCode.STORE_FAILURE,
            f"Failed to list certificates for registration {registration_id}",
        ).peek(
            lambda records: log.info(
                "repository.certificates_selected",
                registration_id=registration_id,
                count=len(records),
            )
        )


class PsycopgTransactionContext:
    """
    Run a computation in one transaction: commit on Success, rollback on Failure.

    Implements the TransactionContext port. The connection is process-scoped
    and is not shared across threads.
    """

    def __init__(
        self,
        dsn: str,
        connect_timeout: int = 10,
        connect: Callable[..., psycopg.Connection[Any]] = psycopg.connect,
    ) -> None:
        self._dsn = dsn
        self._connect_timeout = connect_timeout
        self._connect = connect
        self._conn: psycopg.Connection[Any] | None = None

    def execute(self, computation: Callable[[TransactionScope], Result[T]]) -> Result[T]:
        return self._connection().flat_map(lambda conn: self._run(conn, computation))

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _connection(self) -> Result[psycopg.Connection[Any]]:
        if self._conn is None:
            connected = Result.from_computation(
                lambda: self._connect(self._dsn, connect_timeout=self._connect_timeout),
                ErrorCode.STORE_FAILURE,
                "Couldn't begin transaction",
            )
            if connected.is_failure():
                return connected
            self._conn = connected.value()
        return Result.success(self._conn)

    def _run(
        self,
        conn: psycopg.Connection[Any],
        computation: Callable[[TransactionScope], Result[T]],
    ) -> Result[T]:
        try:
            result = computation(conn)
        except Exception:
            try:
                conn.rollback()
            except psycopg.Error as rollback_error:
                log.error("transaction.rollback_failed", error=str(rollback_error))
            else:
                log.error("transaction.rolled_back", reason="exception")
            raise

        if result.is_success():
            try:
                conn.commit()
            except psycopg.Error as e:
                return Result.failure(
                    ErrorCode.STORE_FAILURE, f"Couldn't cleanly close transaction: {e}", e
                )
            log.info("transaction.committed")
            return result

        try:
            conn.rollback()
        except psycopg.Error as e:
            return Result.failure(
                ErrorCode.STORE_FAILURE, f"Rollback failed ({e}) after: {result.error()}", e
            )
        log.warning("transaction.rolled_back", error=str(result.error()))
        return result
