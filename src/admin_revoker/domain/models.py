"""
Domain models — immutable value objects for revocation.

Certificate records and registrations are owned by the store and the
storage authority; this tool only reads them. Outcome objects are produced
per invocation and never persisted.

All models are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from admin_revoker.domain.reasons import RevocationReason
from admin_revoker.railway import FailureDescription


@dataclass(frozen=True, slots=True)
class CertificateRecord:
    """
    A row of the `certificates` table.

    `der` holds the raw DER-encoded X.509 certificate exactly as issued.
    """

    serial: str
    der: bytes = field(repr=False)
    registration_id: int


@dataclass(frozen=True, slots=True)
class Registration:
    """An ACME account as returned by the storage authority's existence check."""

    id: int
    status: str | None = None
    contact: tuple[str, ...] = ()


class IdentifierKind(Enum):
    DNS = "dns"


@dataclass(frozen=True, slots=True)
class DomainIdentifier:
    """Identifier used to select authorizations for bulk invalidation."""

    kind: IdentifierKind
    value: str

    @classmethod
    def dns(cls, value: str) -> DomainIdentifier:
        return cls(kind=IdentifierKind.DNS, value=value)


@dataclass(frozen=True, slots=True)
class RevokedCertificate:
    """Outcome of a successful single-certificate revocation."""

    serial: str
    reason: RevocationReason


@dataclass(frozen=True, slots=True)
class CertificateOutcome:
    """Outcome of one attempted certificate inside a cascade."""

    serial: str
    failure: FailureDescription | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None


@dataclass(frozen=True, slots=True)
class CascadeOutcome:
    """
    Outcome of revoking every certificate owned by a registration.

    `outcomes` is ordered as the store enumerated the certificates and stops
    at the first failure, so `len(outcomes)` may be less than `total`.
    Certificates listed in `revoked_serials` were revoked by the remote
    authority even when the cascade as a whole failed.
    """

    registration_id: int
    total: int
    outcomes: tuple[CertificateOutcome, ...] = ()

    @property
    def revoked_serials(self) -> tuple[str, ...]:
        return tuple(o.serial for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> CertificateOutcome | None:
        return next((o for o in self.outcomes if not o.succeeded), None)

    @property
    def skipped(self) -> int:
        return self.total - len(self.outcomes)

    @property
    def is_complete(self) -> bool:
        return self.failed is None and len(self.outcomes) == self.total


@dataclass(frozen=True, slots=True)
class AuthorizationRevocationCounts:
    """Number of previously valid and previously pending authorizations invalidated."""

    valid: int
    pending: int
