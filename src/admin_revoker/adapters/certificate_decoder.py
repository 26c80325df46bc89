"""
X.509 decoder adapter — implements CertificateDecoder with cryptography (PyCA).

A stored certificate that does not decode means the store is corrupt; the
failure is surfaced as MALFORMED_CERTIFICATE and never retried.
"""

from __future__ import annotations

import structlog
from cryptography import x509

from admin_revoker.railway import ErrorCode, Result

log = structlog.get_logger()


class CryptographyCertificateDecoder:
    """Decode DER bytes with x509.load_der_x509_certificate."""

    def decode(self, der: bytes) -> Result[x509.Certificate]:
        return Result.from_computation(
            lambda: x509.load_der_x509_certificate(der),
            ErrorCode.MALFORMED_CERTIFICATE,
            "Stored certificate could not be decoded",
        ).peek_failure(lambda err: log.error("decoder.malformed_certificate", size_bytes=len(der)))
