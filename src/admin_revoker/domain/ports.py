"""
Ports — Protocol-based interfaces for the revoker's collaborators.

These define WHAT the orchestrator needs without specifying HOW:

  Orchestrator ← Ports (protocols) ← Adapters (psycopg, httpx, structlog)

Each port is a Protocol (structural typing) so adapters, and the mocks used
in tests, satisfy the contract simply by implementing the methods.

The two authority clients hide the wire transport: whether the services are
reached over REST or legacy JSON-RPC is decided once when the clients are
built, and never seen here.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

from cryptography import x509

from admin_revoker.domain.models import (
    AuthorizationRevocationCounts,
    CertificateRecord,
    DomainIdentifier,
    Registration,
)
from admin_revoker.domain.reasons import RevocationReason
from admin_revoker.railway import Result

T = TypeVar("T")


@runtime_checkable
class TransactionScope(Protocol):
    """
    An open store transaction, supplied by the caller of the orchestrator.

    psycopg's Connection satisfies this directly.
    """

    def execute(self, query: Any, params: Any = None) -> Any: ...


@runtime_checkable
class TransactionContext(Protocol):
    """
    Port: run a computation inside exactly one store transaction.

    Commits when the computation returns a Success, rolls back otherwise.
    A commit or rollback error is reported as STORE_FAILURE.
    """

    def execute(self, computation: Callable[[TransactionScope], Result[T]]) -> Result[T]: ...


@runtime_checkable
class CertificateStore(Protocol):
    """Port: read certificate records within a caller-supplied transaction."""

    def select_certificate_by_serial(
        self, tx: TransactionScope, serial: str
    ) -> Result[CertificateRecord]:
        """Success with the record, NOT_FOUND when absent, STORE_FAILURE on query error."""
        ...

    def select_certificates_by_registration(
        self, tx: TransactionScope, registration_id: int
    ) -> Result[list[CertificateRecord]]:
        """All records owned by the registration, in the store's natural order."""
        ...


@runtime_checkable
class CertificateDecoder(Protocol):
    """Port: turn stored DER bytes into a structured certificate (MALFORMED_CERTIFICATE on error)."""

    def decode(self, der: bytes) -> Result[x509.Certificate]: ...


@runtime_checkable
class RevocationAuthorityClient(Protocol):
    """
    Port: the registration authority's administrative revocation call.

    Irreversible on success: once this returns Success the certificate is
    revoked, whatever later happens to the local transaction.
    Returns the revoked serial (hex) on success.
    """

    def revoke_certificate(
        self,
        certificate: x509.Certificate,
        reason: RevocationReason,
        admin_identity: str,
    ) -> Result[str]: ...


@runtime_checkable
class StorageAuthorityClient(Protocol):
    """Port: the storage authority's registration lookup and bulk authorization invalidation."""

    def get_registration(self, registration_id: int) -> Result[Registration]:
        """Success with the registration, NOT_FOUND when it does not exist."""
        ...

    def revoke_authorizations_by_domain(
        self, identifier: DomainIdentifier
    ) -> Result[AuthorizationRevocationCounts]: ...


@runtime_checkable
class AuditReporter(Protocol):
    """Port: record successful operations and operational counts."""

    def record(self, message: str, **fields: Any) -> None: ...

    def increment(self, counter: str, value: int = 1) -> None: ...
