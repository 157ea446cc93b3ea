"""Issuance of the agent's TLS identity from a stored CA."""

import logging

from cryptography import x509
from opentelemetry import trace

from pki.ca.keys import KeyAlgorithm, KeyGenerator, KeyPair
from pki.ca.signer import (
    CertificateAuthority,
    CertificateProfile,
    CertificateSigner,
    issue_certificate,
)
from pki.store import CertificateStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Default PKI name of the agent's own certificate/key pair
CHAOSD_PKI_NAME = "chaosd"


class CertificateIssuer:
    """Loads a CA, issues leaf certificates with it and persists them.

    Holds only configuration; every issuance is independent.
    """

    def __init__(
        self,
        store: CertificateStore | None = None,
        profile: CertificateProfile | None = None,
        algorithm: KeyAlgorithm | str | None = KeyAlgorithm.RSA,
    ) -> None:
        self.store = store or CertificateStore()
        self.key_generator = KeyGenerator(algorithm)
        self.signer = CertificateSigner(profile)

    def load_authority(self, directory: str, name: str) -> CertificateAuthority:
        """Read the CA certificate and key stored under ``(directory, name)``."""
        certificate, key_pair = self.store.read(directory, name)
        return CertificateAuthority(certificate=certificate, key_pair=key_pair)

    def issue(self, ca: CertificateAuthority, is_ca: bool = False) -> tuple[x509.Certificate, KeyPair]:
        """Generate a leaf key and a certificate for it signed by ``ca``.

        Raises:
            KeyGenerationError: If the leaf key cannot be created.
            CertificateSigningError: If signing fails.
        """
        with tracer.start_as_current_span("CertificateIssuer.issue") as span:
            span.set_attribute("is_ca", is_ca)

            certificate, key_pair = issue_certificate(ca, self.key_generator, self.signer, is_ca=is_ca)

            span.set_attribute("algorithm", key_pair.description)
            return certificate, key_pair

    def issue_and_store(
        self,
        ca: CertificateAuthority,
        directory: str,
        name: str = CHAOSD_PKI_NAME,
    ) -> tuple[x509.Certificate, KeyPair]:
        """Issue a leaf certificate and write it to ``{directory}/{name}.crt|.key``."""
        certificate, key_pair = self.issue(ca)
        self.store.write(directory, name, certificate, key_pair)

        logger.info(
            "certificate_issued",
            extra={
                "directory": directory,
                "pki_name": name,
                "serial": format(certificate.serial_number, "x"),
                "algorithm": key_pair.description,
            },
        )
        return certificate, key_pair

    def bootstrap(
        self,
        directory: str,
        ca_name: str,
        name: str = CHAOSD_PKI_NAME,
    ) -> tuple[x509.Certificate, KeyPair]:
        """Load the CA from ``directory`` and issue the agent identity next to it."""
        ca = self.load_authority(directory, ca_name)
        return self.issue_and_store(ca, directory, name)
