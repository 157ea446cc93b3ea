"""Persistence of issued certificates and keys.

A ``(directory, name)`` location maps to two blobs, ``{directory}/{name}.crt``
and ``{directory}/{name}.key``. The bytes go through a ``BlobStore``; the
default one writes files on the local filesystem.
"""

import logging
import os
from pathlib import Path
from typing import Protocol

from cryptography import x509

from pki.ca.codec import (
    encode_certificate_pem,
    encode_private_key_pem,
    parse_certificate,
    parse_certificate_and_key,
    parse_private_key,
)
from pki.ca.errors import CertificateStoreError, InvalidArgumentError, PKIError
from pki.ca.keys import KeyPair
from pki.metrics import pki_metrics

logger = logging.getLogger(__name__)

CERTIFICATE_FILE_MODE = 0o644
PRIVATE_KEY_FILE_MODE = 0o600
DIRECTORY_MODE = 0o755


class BlobStore(Protocol):
    """Byte blobs keyed by path."""

    def write(self, path: str, data: bytes, mode: int) -> None: ...

    def read(self, path: str) -> bytes: ...


class FileBlobStore:
    """Stores blobs as files, creating parent directories as needed."""

    def write(self, path: str, data: bytes, mode: int) -> None:
        Path(path).parent.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)

        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as f:
            # An existing file keeps its old mode on open; tighten it explicitly
            os.fchmod(f.fileno(), mode)
            f.write(data)

    def read(self, path: str) -> bytes:
        return Path(path).read_bytes()


def path_for_cert(directory: str, name: str) -> str:
    return os.path.join(directory, f"{name}.crt")


def path_for_key(directory: str, name: str) -> str:
    return os.path.join(directory, f"{name}.key")


class CertificateStore:
    """Reads and writes certificate/key pairs by ``(directory, name)``.

    ``write`` is not transactional: the key is written first, so a failed
    certificate write leaves the new key in place. Re-issuing overwrites both.
    """

    def __init__(self, blob_store: BlobStore | None = None) -> None:
        self.blob_store = blob_store or FileBlobStore()

    def write(self, directory: str, name: str, certificate: x509.Certificate, key: KeyPair) -> None:
        """Store a certificate and its key.

        Raises:
            InvalidArgumentError: If the certificate or key is None.
            CertificateStoreError: If either blob cannot be written.
        """
        if certificate is None or key is None:
            raise InvalidArgumentError("certificate and private key cannot be None when writing to file")

        try:
            self.write_private_key(directory, name, key)
        except CertificateStoreError as e:
            raise CertificateStoreError(f"couldn't write key: {e}", path=e.path) from e

        self.write_certificate(directory, name, certificate)

    def write_certificate(self, directory: str, name: str, certificate: x509.Certificate) -> None:
        """Store ``certificate`` as ``{directory}/{name}.crt``."""
        if certificate is None:
            raise InvalidArgumentError("certificate cannot be None when writing to file")

        certificate_path = path_for_cert(directory, name)
        try:
            self.blob_store.write(
                certificate_path, encode_certificate_pem(certificate), CERTIFICATE_FILE_MODE
            )
        except Exception as e:
            raise CertificateStoreError(
                f"unable to write certificate to file {certificate_path}: {e}",
                path=certificate_path,
            ) from e

        pki_metrics.record_blob_written("certificate")
        logger.info("certificate_written", extra={"path": certificate_path})

    def write_private_key(self, directory: str, name: str, key: KeyPair) -> None:
        """Store ``key`` as ``{directory}/{name}.key``, readable by the owner only."""
        if key is None:
            raise InvalidArgumentError("private key cannot be None when writing to file")

        private_key_path = path_for_key(directory, name)
        try:
            encoded = encode_private_key_pem(key)
        except PKIError as e:
            raise CertificateStoreError(
                f"unable to marshal private key to PEM: {e}", path=private_key_path
            ) from e

        try:
            self.blob_store.write(private_key_path, encoded, PRIVATE_KEY_FILE_MODE)
        except Exception as e:
            raise CertificateStoreError(
                f"unable to write private key to file {private_key_path}: {e}",
                path=private_key_path,
            ) from e

        pki_metrics.record_blob_written("private_key")
        logger.info("private_key_written", extra={"path": private_key_path})

    def read_certificate(self, directory: str, name: str) -> x509.Certificate:
        """Load the first certificate from ``{directory}/{name}.crt``.

        Raises:
            CertificateStoreError: If the blob cannot be read.
            CertificateParseError: If it holds no valid certificate.
        """
        certificate_path = path_for_cert(directory, name)
        data = self._read(certificate_path, "certificate")
        return parse_certificate(data)

    def read_private_key(self, directory: str, name: str) -> KeyPair:
        """Load the private key from ``{directory}/{name}.key``.

        Raises:
            CertificateStoreError: If the blob cannot be read.
            PrivateKeyParseError: If it holds no supported key.
        """
        private_key_path = path_for_key(directory, name)
        data = self._read(private_key_path, "private key")
        return parse_private_key(data)

    def read(self, directory: str, name: str) -> tuple[x509.Certificate, KeyPair]:
        """Load a certificate and its key.

        Raises:
            CertificateStoreError: If either blob cannot be read.
            CertificateParseError, PrivateKeyParseError: If either blob fails to parse.
        """
        cert_data = self._read(path_for_cert(directory, name), "certificate")
        key_data = self._read(path_for_key(directory, name), "private key")
        return parse_certificate_and_key(cert_data, key_data)

    def _read(self, path: str, kind: str) -> bytes:
        try:
            data = self.blob_store.read(path)
        except Exception as e:
            raise CertificateStoreError(f"unable to read {kind} from file {path}: {e}", path=path) from e

        pki_metrics.record_blob_read(kind.replace(" ", "_"))
        return data
