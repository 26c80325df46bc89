"""
Revocation orchestrator — the operator-facing revocation operations.

This module is pure coordination: all I/O is injected via ports. Each step
returns Result[T] and failures short-circuit the railway:

  revoke_by_serial:
    validate_reason(code)
      → store.select_certificate_by_serial(tx, serial)
        → decoder.decode(der)
          → ra.revoke_certificate(cert, reason, admin)   (irreversible)
            → audit

  revoke_by_registration:
    validate_reason(code)
      → sa.get_registration(id)
        → store.select_certificates_by_registration(tx, id)
          → revoke_by_serial(...) for each record, stopping at the first failure

The store transaction `tx` belongs to the caller, which commits it only when
the returned Result is a Success and rolls it back otherwise.

Known gap: the remote revocation is not part of the local transaction.
When a cascade fails part-way, the certificates revoked before the failure
stay revoked at the authority even though the local transaction is rolled
back. Remote revocation is at-least-once, not exactly-once.
"""

from __future__ import annotations

import structlog

from admin_revoker.domain.models import (
    AuthorizationRevocationCounts,
    CascadeOutcome,
    CertificateOutcome,
    CertificateRecord,
    DomainIdentifier,
    RevokedCertificate,
)
from admin_revoker.domain.ports import (
    AuditReporter,
    CertificateDecoder,
    CertificateStore,
    RevocationAuthorityClient,
    StorageAuthorityClient,
    TransactionScope,
)
from admin_revoker.domain.reasons import RevocationReason, all_reasons, validate_reason
from admin_revoker.railway import FailureDescription, Result

log = structlog.get_logger()


class RevocationOrchestrator:
    """Composes the store, the decoder, both authorities and the audit reporter."""

    def __init__(
        self,
        store: CertificateStore,
        decoder: CertificateDecoder,
        ra: RevocationAuthorityClient,
        sa: StorageAuthorityClient,
        audit: AuditReporter,
    ) -> None:
        self._store = store
        self._decoder = decoder
        self._ra = ra
        self._sa = sa
        self._audit = audit

    # ──────────────────────── Single certificate ────────────────────────

    def revoke_by_serial(
        self,
        serial: str,
        reason_code: int,
        admin_identity: str,
        tx: TransactionScope,
    ) -> Result[RevokedCertificate]:
        """
        Revoke one certificate, looked up by serial inside `tx`.

        Failures: INVALID_REASON (nothing else attempted), NOT_FOUND,
        MALFORMED_CERTIFICATE, STORE_FAILURE, or the authority's
        REMOTE_CALL_FAILURE passed through unchanged.
        """
        return validate_reason(reason_code).flat_map(
            lambda reason: self._store.select_certificate_by_serial(tx, serial)
            .flat_map(lambda record: self._revoke_record(record, reason, admin_identity))
        )

    def _revoke_record(
        self,
        record: CertificateRecord,
        reason: RevocationReason,
        admin_identity: str,
    ) -> Result[RevokedCertificate]:
        return (
            self._decoder.decode(record.der)
            .flat_map(lambda cert: self._ra.revoke_certificate(cert, reason, admin_identity))
            .map(lambda _: RevokedCertificate(serial=record.serial, reason=reason))
            .peek(self._audit_certificate_revoked)
        )

    def _audit_certificate_revoked(self, revoked: RevokedCertificate) -> None:
        self._audit.record(
            f"Revoked certificate {revoked.serial} with reason '{revoked.reason.label}'",
            serial=revoked.serial,
            reason=int(revoked.reason),
        )
        self._audit.increment("RevokedCertificates")

    # ──────────────────────── Cascade by registration ────────────────────────

    def revoke_by_registration(
        self,
        registration_id: int,
        reason_code: int,
        admin_identity: str,
        tx: TransactionScope,
    ) -> Result[CascadeOutcome]:
        """
        Revoke every certificate owned by a registration, in store order.

        The registration must exist at the storage authority before any
        certificate is touched. The first failing certificate stops the
        cascade; the returned failure carries that certificate's error code.
        """
        return (
            validate_reason(reason_code)
            .flat_map(
                lambda reason: self._sa.get_registration(registration_id)
                .flat_map(
                    lambda _: self._store.select_certificates_by_registration(
                        tx, registration_id
                    )
                )
                .map(
                    lambda records: self._cascade(
                        registration_id, records, reason, admin_identity, tx
                    )
                )
            )
            .flat_map(self._require_complete)
        )

    def _cascade(
        self,
        registration_id: int,
        records: list[CertificateRecord],
        reason: RevocationReason,
        admin_identity: str,
        tx: TransactionScope,
    ) -> CascadeOutcome:
        log.info(
            "revoker.cascade_started",
            registration_id=registration_id,
            certificates=len(records),
            reason=reason.label,
        )
        outcomes: list[CertificateOutcome] = []
        for record in records:
            result = self.revoke_by_serial(record.serial, reason, admin_identity, tx)
            outcomes.append(
                CertificateOutcome(
                    serial=record.serial,
                    failure=None if result.is_success() else result.error(),
                )
            )
            if result.is_failure():
                break
        return CascadeOutcome(
            registration_id=registration_id,
            total=len(records),
            outcomes=tuple(outcomes),
        )

    def _require_complete(self, outcome: CascadeOutcome) -> Result[CascadeOutcome]:
        if outcome.is_complete:
            self._audit.record(
                f"Revoked {outcome.total} certificates for registration {outcome.registration_id}",
                registration_id=outcome.registration_id,
                serials=list(outcome.revoked_serials),
            )
            return Result.success(outcome)

        failed = outcome.failed
        if failed is None or failed.failure is None:
            raise RuntimeError(
                f"cascade for registration {outcome.registration_id} is incomplete "
                "without a failed certificate"
            )
        # The local rollback that follows cannot undo these.
        log.warning(
            "revoker.cascade_aborted",
            registration_id=outcome.registration_id,
            failed_serial=failed.serial,
            revoked_remotely=list(outcome.revoked_serials),
            skipped=outcome.skipped,
            error=str(failed.failure),
        )
        if outcome.revoked_serials:
            self._audit.record(
                f"Cascade for registration {outcome.registration_id} aborted after "
                f"{len(outcome.revoked_serials)} of {outcome.total} certificates were revoked",
                registration_id=outcome.registration_id,
                serials=list(outcome.revoked_serials),
            )
        return Result.failure_from(
            FailureDescription(
                code=failed.failure.code,
                message=(
                    f"Revocation of certificate {failed.serial} failed "
                    f"({len(outcome.revoked_serials)} of {outcome.total} already revoked "
                    f"remotely: {', '.join(outcome.revoked_serials) or 'none'}): "
                    f"{failed.failure.message}"
                ),
                exception=failed.failure.exception,
            )
        )

    # ──────────────────────── Authorizations ────────────────────────

    def revoke_authorizations_by_domain(
        self, domain: str
    ) -> Result[AuthorizationRevocationCounts]:
        """
        Invalidate all pending and valid authorizations for a DNS name.

        No local transaction is involved. Zero counts are a success.
        """
        identifier = DomainIdentifier.dns(domain)
        return self._sa.revoke_authorizations_by_domain(identifier).peek(
            lambda counts: self._audit_authorizations_revoked(identifier, counts)
        )

    def _audit_authorizations_revoked(
        self, identifier: DomainIdentifier, counts: AuthorizationRevocationCounts
    ) -> None:
        self._audit.record(
            f"Revoked {counts.pending} pending authorizations and "
            f"{counts.valid} final authorizations",
            domain=identifier.value,
        )
        self._audit.increment("RevokedAuthorizations", counts.valid)
        self._audit.increment("RevokedPendingAuthorizations", counts.pending)

    # ──────────────────────── Reasons ────────────────────────

    def list_reasons(self) -> tuple[tuple[int, str], ...]:
        return all_reasons()
