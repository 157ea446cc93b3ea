"""Exception hierarchy for certificate issuance."""


class PKIError(Exception):
    """Base class for all PKI errors."""

    pass


class InvalidArgumentError(PKIError, ValueError):
    """Raised when a required certificate or key argument is missing."""

    pass


class KeyGenerationError(PKIError):
    """Raised when a private key cannot be generated."""

    pass


class CertificateSigningError(PKIError):
    """Raised when a certificate cannot be built or signed."""

    pass


class CertificateParseError(PKIError):
    """Raised when PEM data holds no usable certificate."""

    pass


class PrivateKeyParseError(PKIError):
    """Raised when PEM data holds no usable private key."""

    pass


class UnsupportedKeyFormatError(PrivateKeyParseError):
    """Raised for keys that are neither RSA nor ECDSA."""

    pass


class CertificateStoreError(PKIError):
    """Raised when reading or writing a blob fails.

    Attributes:
        path: Blob identifier the operation targeted, if known.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
