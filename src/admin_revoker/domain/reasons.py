"""
Revocation reason codes — the static taxonomy operators may choose from.

Codes mirror the RFC 5280 CRLReason enumeration. Value 7 is unassigned in
that enumeration and is therefore rejected, as is anything outside 0..10.
Labels are taken from cryptography's ReasonFlags so they match what ends
up in CRLs and OCSP responses.
"""

from __future__ import annotations

from enum import IntEnum

from cryptography.x509 import ReasonFlags

from admin_revoker.railway import ErrorCode, Result


class RevocationReason(IntEnum):
    UNSPECIFIED = 0
    KEY_COMPROMISE = 1
    CA_COMPROMISE = 2
    AFFILIATION_CHANGED = 3
    SUPERSEDED = 4
    CESSATION_OF_OPERATION = 5
    CERTIFICATE_HOLD = 6
    REMOVE_FROM_CRL = 8
    PRIVILEGE_WITHDRAWN = 9
    AA_COMPROMISE = 10

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[RevocationReason, str] = {
    RevocationReason.UNSPECIFIED: ReasonFlags.unspecified.value,
    RevocationReason.KEY_COMPROMISE: ReasonFlags.key_compromise.value,
    RevocationReason.CA_COMPROMISE: ReasonFlags.ca_compromise.value,
    RevocationReason.AFFILIATION_CHANGED: ReasonFlags.affiliation_changed.value,
    RevocationReason.SUPERSEDED: ReasonFlags.superseded.value,
    RevocationReason.CESSATION_OF_OPERATION: ReasonFlags.cessation_of_operation.value,
    RevocationReason.CERTIFICATE_HOLD: ReasonFlags.certificate_hold.value,
    RevocationReason.REMOVE_FROM_CRL: ReasonFlags.remove_from_crl.value,
    RevocationReason.PRIVILEGE_WITHDRAWN: ReasonFlags.privilege_withdrawn.value,
    RevocationReason.AA_COMPROMISE: ReasonFlags.aa_compromise.value,
}


def validate_reason(code: int) -> Result[RevocationReason]:
    """
    Accept a raw operator-supplied code, or fail with INVALID_REASON.

    Must run before any lookup or remote call of the operation it guards.
    """
    if code not in RevocationReason._value2member_map_:
        return Result.failure(
            ErrorCode.INVALID_REASON,
            f"Invalid reason code: {code} (valid codes are "
            + ", ".join(str(c) for c, _ in all_reasons())
            + ")",
        )
    return Result.success(RevocationReason(code))


def describe_reason(code: int) -> str:
    """Canonical label for a valid code. Raises ValueError for an invalid one."""
    return RevocationReason(code).label


def all_reasons() -> tuple[tuple[int, str], ...]:
    """Every valid (code, label) pair, ascending by code."""
    return tuple((int(reason), reason.label) for reason in sorted(RevocationReason))
