"""
Shared test fixtures and helpers for the admin-revoker test suite.

Certificates are generated on the fly with cryptography (self-signed,
EC P-256), so every test controls the serial it revokes.
"""

from __future__ import annotations

import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID

from admin_revoker.domain.models import CertificateRecord

_KEY = ec.generate_private_key(ec.SECP256R1())


def make_certificate(serial_number: int = 0x0ABC, common_name: str = "example.invalid") -> x509.Certificate:
    """Build a self-signed leaf certificate with the given serial number."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.UTC)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(_KEY.public_key())
        .serial_number(serial_number)
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=90))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(common_name)]), critical=False
        )
        .sign(_KEY, hashes.SHA256())
    )


def serial_hex(serial_number: int) -> str:
    """Serial in the zero-padded hex form stored in the certificates table."""
    return f"{serial_number:036x}"


def make_record(serial_number: int = 0x0ABC, registration_id: int = 1) -> CertificateRecord:
    """A CertificateRecord whose DER decodes to a certificate with the same serial."""
    der = make_certificate(serial_number).public_bytes(Encoding.DER)
    return CertificateRecord(
        serial=serial_hex(serial_number), der=der, registration_id=registration_id
    )


@pytest.fixture()
def certificate() -> x509.Certificate:
    return make_certificate()


@pytest.fixture()
def record() -> CertificateRecord:
    return make_record()
