"""PEM encoding and parsing of certificates and private keys.

All functions here are pure: they take and return bytes, never paths.
"""

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from pki.ca.errors import (
    CertificateParseError,
    PKIError,
    PrivateKeyParseError,
    UnsupportedKeyFormatError,
)
from pki.ca.keys import KeyPair

# PEM block type for certificates
CERTIFICATE_BLOCK_TYPE = "CERTIFICATE"


def encode_certificate_pem(certificate: x509.Certificate) -> bytes:
    """Wrap the certificate's DER encoding in a ``CERTIFICATE`` PEM block."""
    return certificate.public_bytes(serialization.Encoding.PEM)


def parse_certificates(data: bytes) -> list[x509.Certificate]:
    """Parse every ``CERTIFICATE`` block in ``data``.

    Blocks of other types are skipped.

    Raises:
        CertificateParseError: If no block parses as a certificate, or one is malformed.
    """
    try:
        certificates = x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise CertificateParseError(f"data does not contain any valid certificates: {e}") from e

    if not certificates:
        raise CertificateParseError("data does not contain any valid certificates")
    return certificates


def parse_certificate(data: bytes) -> x509.Certificate:
    """Return the first certificate found in ``data``.

    Any further certificates in a bundle are ignored.

    Raises:
        CertificateParseError: If ``data`` holds no valid certificate.
    """
    return parse_certificates(data)[0]


def parse_private_key(data: bytes) -> KeyPair:
    """Parse an unencrypted PEM private key (PKCS#1, SEC1 or PKCS#8).

    Raises:
        PrivateKeyParseError: If the PEM cannot be read.
        UnsupportedKeyFormatError: If the key is neither RSA nor ECDSA.
    """
    try:
        private_key = serialization.load_pem_private_key(data, password=None)
    except UnsupportedAlgorithm as e:
        raise UnsupportedKeyFormatError(
            f"the private key file is neither in RSA nor ECDSA format: {e}"
        ) from e
    except (ValueError, TypeError) as e:
        raise PrivateKeyParseError(f"error reading private key file: {e}") from e

    # Allow RSA and ECDSA formats only
    return KeyPair.from_private_key(private_key)


def encode_private_key_pem(key: KeyPair | object) -> bytes:
    """Serialize an RSA (PKCS#1) or ECDSA (SEC1) key to unencrypted PEM.

    Raises:
        UnsupportedKeyFormatError: For any other key type.
    """
    key_pair = key if isinstance(key, KeyPair) else KeyPair.from_private_key(key)
    return key_pair.private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def parse_certificate_and_key(cert_data: bytes, key_data: bytes) -> tuple[x509.Certificate, KeyPair]:
    """Parse a certificate and its private key.

    Raises:
        CertificateParseError: If the certificate cannot be parsed.
        PrivateKeyParseError: If the key cannot be parsed or is unsupported.
    """
    try:
        certificate = parse_certificate(cert_data)
    except PKIError as e:
        raise CertificateParseError(f"parse certs pem failed: {e}") from e

    try:
        key_pair = parse_private_key(key_data)
    except PrivateKeyParseError as e:
        raise type(e)(f"parse ca key file failed: {e}") from e

    return certificate, key_pair
