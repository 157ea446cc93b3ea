"""Private key generation for issued certificates.

Only two key types are issued or accepted: RSA-2048 and ECDSA over P-256.
Both are carried in a ``KeyPair`` tagged with their algorithm so callers can
sign and fetch the public key without caring which one they hold.
"""

import logging
from dataclasses import dataclass
from enum import StrEnum

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from opentelemetry import trace

from pki.ca.errors import InvalidArgumentError, KeyGenerationError, UnsupportedKeyFormatError
from pki.metrics import pki_metrics

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
ECDSA_CURVE = ec.SECP256R1


class KeyAlgorithm(StrEnum):
    """Supported key algorithms."""

    RSA = "RSA"
    ECDSA = "ECDSA"


SupportedPrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey
SupportedPublicKey = rsa.RSAPublicKey | ec.EllipticCurvePublicKey


@dataclass(frozen=True)
class KeyPair:
    """A private key tagged with its algorithm."""

    algorithm: KeyAlgorithm
    private_key: SupportedPrivateKey

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "algorithm", KeyAlgorithm(self.algorithm))
        except ValueError as e:
            raise InvalidArgumentError(f"unsupported key algorithm tag: {self.algorithm}") from e

        expected = rsa.RSAPrivateKey if self.algorithm == KeyAlgorithm.RSA else ec.EllipticCurvePrivateKey
        if not isinstance(self.private_key, expected):
            raise InvalidArgumentError(
                f"{type(self.private_key).__name__} is not a {self.algorithm} private key"
            )

    @classmethod
    def from_private_key(cls, private_key: object) -> "KeyPair":
        """Tag a raw ``cryptography`` private key.

        Raises:
            UnsupportedKeyFormatError: If the key is neither RSA nor ECDSA.
        """
        if isinstance(private_key, rsa.RSAPrivateKey):
            return cls(KeyAlgorithm.RSA, private_key)
        if isinstance(private_key, ec.EllipticCurvePrivateKey):
            return cls(KeyAlgorithm.ECDSA, private_key)
        raise UnsupportedKeyFormatError("the private key file is neither in RSA nor ECDSA format")

    def public_key(self) -> SupportedPublicKey:
        return self.private_key.public_key()

    def sign(self, data: bytes) -> bytes:
        """Sign ``data`` with SHA-256 (PKCS#1 v1.5 for RSA)."""
        if self.algorithm == KeyAlgorithm.RSA:
            return self.private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())  # type: ignore[call-arg]
        return self.private_key.sign(data, ec.ECDSA(hashes.SHA256()))  # type: ignore[call-arg]

    @property
    def description(self) -> str:
        """Human readable algorithm, e.g. ``RSA-2048`` or ``ECDSA-secp256r1``."""
        if isinstance(self.private_key, rsa.RSAPrivateKey):
            return f"RSA-{self.private_key.key_size}"
        return f"ECDSA-{self.private_key.curve.name}"


def _coerce_algorithm(algorithm: KeyAlgorithm | str | None) -> KeyAlgorithm:
    if algorithm is None:
        return KeyAlgorithm.RSA
    try:
        return KeyAlgorithm(str(algorithm).upper())
    except ValueError as e:
        raise KeyGenerationError(f"unsupported key algorithm: {algorithm}") from e


def generate_private_key(algorithm: KeyAlgorithm | str | None = None) -> KeyPair:
    """Generate a fresh key pair.

    Args:
        algorithm: ``KeyAlgorithm.RSA`` (default) or ``KeyAlgorithm.ECDSA``.

    Raises:
        KeyGenerationError: On an unknown algorithm or a backend failure.
    """
    algorithm = _coerce_algorithm(algorithm)

    try:
        if algorithm == KeyAlgorithm.ECDSA:
            private_key: SupportedPrivateKey = ec.generate_private_key(ECDSA_CURVE())
        else:
            private_key = rsa.generate_private_key(
                public_exponent=RSA_PUBLIC_EXPONENT,
                key_size=RSA_KEY_SIZE,
            )
    except Exception as e:
        raise KeyGenerationError(f"unable to create private key: {e}") from e

    return KeyPair(algorithm, private_key)


class KeyGenerator:
    """Generates leaf key pairs of a configured default algorithm."""

    def __init__(self, algorithm: KeyAlgorithm | str | None = None) -> None:
        self.algorithm = _coerce_algorithm(algorithm)

    def generate(self, algorithm: KeyAlgorithm | str | None = None) -> KeyPair:
        """Generate a key pair, falling back to the configured algorithm."""
        with tracer.start_as_current_span("KeyGenerator.generate") as span:
            key_pair = generate_private_key(algorithm or self.algorithm)
            span.set_attribute("algorithm", key_pair.description)

            pki_metrics.record_private_key_generated(key_pair.algorithm.value)
            logger.debug("private_key_generated", extra={"algorithm": key_pair.description})

            return key_pair
