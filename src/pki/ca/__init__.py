"""Certificate Authority module for the chaosd agent.

This module provides:
- RSA / ECDSA key generation
- X.509 certificate signing with a supplied CA
- PEM encoding and parsing of certificates and keys
"""

from pki.ca.codec import (
    encode_certificate_pem,
    encode_private_key_pem,
    parse_certificate,
    parse_certificate_and_key,
    parse_private_key,
)
from pki.ca.errors import (
    CertificateParseError,
    CertificateSigningError,
    CertificateStoreError,
    InvalidArgumentError,
    KeyGenerationError,
    PKIError,
    PrivateKeyParseError,
    UnsupportedKeyFormatError,
)
from pki.ca.keys import KeyAlgorithm, KeyGenerator, KeyPair, generate_private_key
from pki.ca.signer import (
    CertificateAuthority,
    CertificateProfile,
    CertificateSigner,
    new_cert_and_key,
)

__all__ = [
    "CertificateAuthority",
    "CertificateParseError",
    "CertificateProfile",
    "CertificateSigner",
    "CertificateSigningError",
    "CertificateStoreError",
    "InvalidArgumentError",
    "KeyAlgorithm",
    "KeyGenerationError",
    "KeyGenerator",
    "KeyPair",
    "PKIError",
    "PrivateKeyParseError",
    "UnsupportedKeyFormatError",
    "encode_certificate_pem",
    "encode_private_key_pem",
    "generate_private_key",
    "new_cert_and_key",
    "parse_certificate",
    "parse_certificate_and_key",
    "parse_private_key",
]
