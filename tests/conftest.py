"""Shared fixtures: self-signed CAs to issue against."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import NameOID

from pki.ca.keys import KeyAlgorithm, KeyPair, generate_private_key
from pki.ca.signer import CertificateAuthority


def make_self_signed_ca(key_pair: KeyPair, not_before: datetime | None = None) -> CertificateAuthority:
    """Build a self-issued CA certificate for ``key_pair``."""
    not_before = not_before or datetime.now(timezone.utc) - timedelta(days=30)
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, "Chaos Mesh Test CA"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Chaos Mesh"),
        ]
    )
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key_pair.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + timedelta(days=3650))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key_pair.private_key, hashes.SHA256())
    )
    return CertificateAuthority(certificate=certificate, key_pair=key_pair)


@pytest.fixture(scope="session")
def rsa_ca() -> CertificateAuthority:
    """RSA-2048 CA valid since 30 days ago."""
    return make_self_signed_ca(generate_private_key(KeyAlgorithm.RSA))


@pytest.fixture(scope="session")
def ecdsa_ca() -> CertificateAuthority:
    """ECDSA P-256 CA valid since 30 days ago."""
    return make_self_signed_ca(generate_private_key(KeyAlgorithm.ECDSA))


@pytest.fixture(scope="session")
def ecdsa_key() -> KeyPair:
    return generate_private_key(KeyAlgorithm.ECDSA)
