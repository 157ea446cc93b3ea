"""Tests for certificate signing."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.x509.oid import NameOID

from conftest import make_self_signed_ca
from pki.ca.errors import CertificateSigningError, InvalidArgumentError, KeyGenerationError
from pki.ca.keys import KeyAlgorithm, generate_private_key
from pki.ca.signer import (
    CERTIFICATE_VALIDITY,
    MAX_SERIAL_NUMBER,
    CertificateProfile,
    CertificateSigner,
    new_cert_and_key,
    random_serial_number,
)


def dns_names(certificate: x509.Certificate) -> list[str]:
    san = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    return san.value.get_values_for_type(x509.DNSName)


def verify_issued_by(certificate: x509.Certificate, issuer: x509.Certificate) -> None:
    public_key = issuer.public_key()
    if isinstance(public_key, rsa.RSAPublicKey):
        public_key.verify(
            certificate.signature,
            certificate.tbs_certificate_bytes,
            padding.PKCS1v15(),
            certificate.signature_hash_algorithm,
        )
    else:
        public_key.verify(
            certificate.signature,
            certificate.tbs_certificate_bytes,
            ec.ECDSA(certificate.signature_hash_algorithm),
        )


class TestCertificateSigner:
    """Tests for CertificateSigner.sign."""

    def test_sign_sets_fixed_identity(self, rsa_ca, ecdsa_key):
        """Test subject CN and SAN DNS names."""
        cert = CertificateSigner().sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair)

        cn = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0]
        assert cn.value == "chaosd.chaos-mesh.org"
        assert dns_names(cert) == ["chaosd.chaos-mesh.org", "localhost"]

    def test_issuer_is_ca_subject_and_signature_verifies(self, rsa_ca, ecdsa_key):
        """Test that the certificate is issued and signed by the CA."""
        cert = CertificateSigner().sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair)

        assert cert.issuer == rsa_ca.certificate.subject
        assert isinstance(cert.signature_hash_algorithm, hashes.SHA256)
        verify_issued_by(cert, rsa_ca.certificate)

    def test_certificate_carries_leaf_public_key(self, ecdsa_ca):
        """Test that the leaf key, not the CA key, is certified."""
        leaf = generate_private_key(KeyAlgorithm.RSA)
        cert = CertificateSigner().sign(leaf, ecdsa_ca.certificate, ecdsa_ca.key_pair)

        assert cert.public_key().public_numbers() == leaf.public_key().public_numbers()
        verify_issued_by(cert, ecdsa_ca.certificate)

    def test_validity_starts_at_ca_not_before_and_ends_five_years_from_now(self, rsa_ca, ecdsa_key):
        """Test the validity window."""
        before = datetime.now(timezone.utc).replace(microsecond=0)
        cert = CertificateSigner().sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair)
        after = datetime.now(timezone.utc)

        assert cert.not_valid_before_utc == rsa_ca.certificate.not_valid_before_utc
        assert before + timedelta(days=1825) <= cert.not_valid_after_utc <= after + timedelta(days=1825)
        assert CERTIFICATE_VALIDITY == timedelta(days=1825)

    def test_validity_follows_an_older_ca(self, ecdsa_key):
        """Test that a CA older than the validity period still yields a valid leaf."""
        not_before = datetime(2021, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        ca = make_self_signed_ca(generate_private_key(KeyAlgorithm.ECDSA), not_before=not_before)

        cert = CertificateSigner().sign(ecdsa_key, ca.certificate, ca.key_pair)

        now = datetime.now(timezone.utc)
        assert cert.not_valid_before_utc == not_before
        assert cert.not_valid_after_utc > now
        assert abs(cert.not_valid_after_utc - (now + timedelta(days=1825))) < timedelta(minutes=1)

    def test_leaf_key_usage_excludes_cert_sign(self, rsa_ca, ecdsa_key):
        """Test key usage and basic constraints for a leaf."""
        cert = CertificateSigner().sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair, is_ca=False)

        ku = cert.extensions.get_extension_for_class(x509.KeyUsage)
        assert ku.critical is True
        assert ku.value.digital_signature is True
        assert ku.value.key_encipherment is True
        assert ku.value.key_cert_sign is False

        bc = cert.extensions.get_extension_for_class(x509.BasicConstraints)
        assert bc.critical is True
        assert bc.value.ca is False

    def test_ca_key_usage_includes_cert_sign(self, rsa_ca, ecdsa_key):
        """Test that issuing a CA sets CertSign and the CA flag."""
        cert = CertificateSigner().sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair, is_ca=True)

        ku = cert.extensions.get_extension_for_class(x509.KeyUsage)
        assert ku.value.key_cert_sign is True
        assert ku.value.digital_signature is True
        assert ku.value.key_encipherment is True
        assert cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca is True

    def test_repeated_signing_differs_only_in_serial(self, rsa_ca, ecdsa_key):
        """Test two signings with the same inputs."""
        signer = CertificateSigner()
        first = signer.sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair)
        second = signer.sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair)

        assert first.serial_number != second.serial_number
        assert first.public_bytes(serialization.Encoding.DER) != second.public_bytes(
            serialization.Encoding.DER
        )
        assert first.subject == second.subject
        assert dns_names(first) == dns_names(second)
        assert first.not_valid_before_utc == second.not_valid_before_utc
        # notAfter is derived from the signing time, which has one-second resolution
        assert abs(first.not_valid_after_utc - second.not_valid_after_utc) <= timedelta(seconds=1)

    def test_accepts_raw_private_keys(self, rsa_ca, ecdsa_key):
        """Test that unwrapped cryptography keys are accepted."""
        cert = CertificateSigner().sign(
            ecdsa_key.private_key, rsa_ca.certificate, rsa_ca.key_pair.private_key
        )

        assert cert.issuer == rsa_ca.certificate.subject

    def test_custom_profile(self, rsa_ca, ecdsa_key):
        """Test that an injected profile replaces the identity constants."""
        profile = CertificateProfile(
            common_name="agent.example.org",
            dns_names=("agent.example.org",),
            validity=timedelta(days=30),
        )
        cert = CertificateSigner(profile).sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair)

        assert dns_names(cert) == ["agent.example.org"]
        expected = datetime.now(timezone.utc) + timedelta(days=30)
        assert abs(cert.not_valid_after_utc - expected) < timedelta(minutes=1)

    def test_incompatible_ca_key_raises(self, rsa_ca, ecdsa_key):
        """Test that a CA key of an unsupported type fails signing."""
        with pytest.raises(CertificateSigningError, match="unable to sign certificate"):
            CertificateSigner().sign(
                ecdsa_key, rsa_ca.certificate, ed25519.Ed25519PrivateKey.generate()
            )

    def test_none_inputs_raise(self, rsa_ca, ecdsa_key):
        """Test that missing inputs fail before signing."""
        with pytest.raises(InvalidArgumentError):
            CertificateSigner().sign(None, rsa_ca.certificate, rsa_ca.key_pair)
        with pytest.raises(InvalidArgumentError):
            CertificateSigner().sign(ecdsa_key, rsa_ca.certificate, None)

    def test_records_metrics(self, rsa_ca, ecdsa_key):
        """Test that signing records a metric."""
        with patch("pki.ca.signer.pki_metrics") as mock_metrics:
            CertificateSigner().sign(ecdsa_key, rsa_ca.certificate, rsa_ca.key_pair, is_ca=True)

        mock_metrics.record_certificate_signed.assert_called_once()
        assert mock_metrics.record_certificate_signed.call_args.args[0] is True


class TestRandomSerialNumber:
    """Tests for serial number generation."""

    def test_serial_in_range(self):
        """Test serials are positive and below 2^63."""
        for _ in range(100):
            serial = random_serial_number()
            assert 0 < serial < MAX_SERIAL_NUMBER

    def test_lowest_draw_is_positive(self):
        """Test that a zero draw is shifted to 1."""
        with patch("pki.ca.signer.secrets.randbelow", return_value=0):
            assert random_serial_number() == 1


class TestNewCertAndKey:
    """Tests for new_cert_and_key."""

    def test_issues_rsa_leaf_by_default(self, ecdsa_ca):
        """Test the default leaf is RSA and not a CA."""
        cert, key_pair = new_cert_and_key(ecdsa_ca)

        assert key_pair.algorithm == KeyAlgorithm.RSA
        assert cert.public_key().public_numbers() == key_pair.public_key().public_numbers()
        assert cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca is False

    def test_issues_ecdsa_leaf(self, ecdsa_ca):
        """Test an ECDSA leaf on request."""
        _, key_pair = new_cert_and_key(ecdsa_ca, KeyAlgorithm.ECDSA)

        assert key_pair.algorithm == KeyAlgorithm.ECDSA

    def test_key_failure_is_not_rewrapped(self, ecdsa_ca):
        """Test that a KeyGenerationError propagates without repeating its context."""
        error = KeyGenerationError("unable to create private key: entropy exhausted")
        with patch("pki.ca.signer.KeyGenerator.generate", side_effect=error):
            with pytest.raises(KeyGenerationError) as exc:
                new_cert_and_key(ecdsa_ca)

        assert exc.value is error
        assert str(exc.value).count("unable to create private key") == 1

    def test_foreign_signing_error_is_wrapped(self, ecdsa_ca):
        """Test that other PKI errors from the signer gain signing context."""
        with patch(
            "pki.ca.signer.CertificateSigner.sign", side_effect=InvalidArgumentError("missing CA key")
        ):
            with pytest.raises(CertificateSigningError, match="unable to sign certificate: missing CA key"):
                new_cert_and_key(ecdsa_ca)
