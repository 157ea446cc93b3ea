"""X.509 certificate signing for the chaosd agent identity.

Every certificate issued here names the same service (the chaosd agent); only
the key, serial number and CA flag vary between issuances.
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID
from opentelemetry import trace

from pki.ca.errors import (
    CertificateSigningError,
    InvalidArgumentError,
    KeyGenerationError,
    PKIError,
)
from pki.ca.keys import KeyAlgorithm, KeyGenerator, KeyPair
from pki.metrics import pki_metrics

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

COMMON_NAME = "chaosd.chaos-mesh.org"
DNS_NAMES = (COMMON_NAME, "localhost")
CERTIFICATE_VALIDITY = timedelta(days=1825)  # five years

# Serial numbers are drawn from [1, 2^63)
MAX_SERIAL_NUMBER = 2**63


@dataclass(frozen=True)
class CertificateProfile:
    """Fixed identity stamped on every issued certificate."""

    common_name: str = COMMON_NAME
    dns_names: tuple[str, ...] = DNS_NAMES
    validity: timedelta = CERTIFICATE_VALIDITY
    hash_algorithm: hashes.HashAlgorithm = field(default_factory=hashes.SHA256)


DEFAULT_PROFILE = CertificateProfile()


@dataclass(frozen=True)
class CertificateAuthority:
    """A CA certificate together with its signing key."""

    certificate: x509.Certificate
    key_pair: KeyPair


def random_serial_number() -> int:
    """Draw a positive serial number from the system CSPRNG."""
    return secrets.randbelow(MAX_SERIAL_NUMBER - 1) + 1


def _key_usage(is_ca: bool) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=True,
        key_encipherment=True,
        key_cert_sign=is_ca,
        crl_sign=False,
        content_commitment=False,
        data_encipherment=False,
        key_agreement=False,
        encipher_only=False,
        decipher_only=False,
    )


def _as_key_pair(key: KeyPair | object) -> KeyPair:
    if isinstance(key, KeyPair):
        return key
    return KeyPair.from_private_key(key)


class CertificateSigner:
    """Signs certificates for the profile identity with a CA key.

    Validity starts at the CA certificate's notBefore and ends
    ``profile.validity`` after the moment of signing.
    """

    def __init__(self, profile: CertificateProfile | None = None) -> None:
        self.profile = profile or DEFAULT_PROFILE

    def sign(
        self,
        key: KeyPair | object,
        ca_certificate: x509.Certificate,
        ca_key: KeyPair | object,
        is_ca: bool = False,
    ) -> x509.Certificate:
        """Sign a certificate over ``key``'s public key.

        Args:
            key: Leaf key pair (only its public key is used).
            ca_certificate: Issuer certificate; provides issuer name and notBefore.
            ca_key: Issuer private key used to produce the signature.
            is_ca: Whether the issued certificate may itself sign certificates.

        Returns:
            The certificate, parsed back from its signed DER encoding.

        Raises:
            InvalidArgumentError: If any input is None.
            CertificateSigningError: If building or signing fails.
        """
        if key is None or ca_certificate is None or ca_key is None:
            raise InvalidArgumentError("key, CA certificate and CA key are required for signing")

        with tracer.start_as_current_span("CertificateSigner.sign") as span:
            span.set_attribute("is_ca", is_ca)
            start_time = time.time()

            try:
                leaf = _as_key_pair(key)
                signer = _as_key_pair(ca_key)

                serial_number = random_serial_number()
                not_before = ca_certificate.not_valid_before_utc
                not_after = datetime.now(timezone.utc) + self.profile.validity

                builder = (
                    x509.CertificateBuilder()
                    .subject_name(
                        x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, self.profile.common_name)])
                    )
                    .issuer_name(ca_certificate.subject)
                    .public_key(leaf.public_key())
                    .serial_number(serial_number)
                    .not_valid_before(not_before)
                    .not_valid_after(not_after)
                    .add_extension(
                        x509.BasicConstraints(ca=is_ca, path_length=None),
                        critical=True,
                    )
                    .add_extension(_key_usage(is_ca), critical=True)
                    .add_extension(
                        x509.SubjectAlternativeName(
                            [x509.DNSName(name) for name in self.profile.dns_names]
                        ),
                        critical=False,
                    )
                )

                signed = builder.sign(signer.private_key, self.profile.hash_algorithm)
                der = signed.public_bytes(serialization.Encoding.DER)
                certificate = x509.load_der_x509_certificate(der)
            except Exception as e:
                raise CertificateSigningError(f"unable to sign certificate: {e}") from e

            duration = time.time() - start_time
            span.set_attribute("serial", format(serial_number, "x"))
            pki_metrics.record_certificate_signed(is_ca, duration)

            logger.info(
                "certificate_signed",
                extra={
                    "serial": format(serial_number, "x"),
                    "is_ca": is_ca,
                    "issuer": ca_certificate.subject.rfc4514_string(),
                    "not_after": not_after.isoformat(),
                    "duration_seconds": duration,
                },
            )

            return certificate


def issue_certificate(
    ca: CertificateAuthority,
    key_generator: KeyGenerator,
    signer: CertificateSigner,
    is_ca: bool = False,
) -> tuple[x509.Certificate, KeyPair]:
    """Generate a key with ``key_generator`` and have ``signer`` certify it under ``ca``.

    Raises:
        KeyGenerationError: If the leaf key cannot be created.
        CertificateSigningError: If signing fails.
    """
    try:
        key_pair = key_generator.generate()
    except KeyGenerationError:
        raise
    except PKIError as e:
        raise KeyGenerationError(f"unable to create private key: {e}") from e

    try:
        certificate = signer.sign(key_pair, ca.certificate, ca.key_pair, is_ca=is_ca)
    except CertificateSigningError:
        raise
    except PKIError as e:
        raise CertificateSigningError(f"unable to sign certificate: {e}") from e

    return certificate, key_pair


def new_cert_and_key(
    ca: CertificateAuthority,
    algorithm: KeyAlgorithm | str | None = KeyAlgorithm.RSA,
    profile: CertificateProfile | None = None,
) -> tuple[x509.Certificate, KeyPair]:
    """Create a fresh leaf key and a non-CA certificate for it signed by ``ca``.

    Raises:
        KeyGenerationError: If the leaf key cannot be created.
        CertificateSigningError: If signing fails.
    """
    return issue_certificate(ca, KeyGenerator(algorithm), CertificateSigner(profile))
