"""OpenTelemetry metrics for the PKI module."""

from opentelemetry import metrics

meter = metrics.get_meter("pki")

# Key generation
private_keys_generated_total = meter.create_counter(
    name="pki_private_keys_generated_total",
    description="Total private keys generated",
    unit="1",
)

# Signing
certificates_signed_total = meter.create_counter(
    name="pki_certificates_signed_total",
    description="Total certificates signed",
    unit="1",
)

certificate_signing_duration = meter.create_histogram(
    name="pki_certificate_signing_duration_seconds",
    description="Certificate signing duration in seconds",
    unit="s",
)

# Storage
blobs_written_total = meter.create_counter(
    name="pki_blobs_written_total",
    description="Total PEM blobs written to the store",
    unit="1",
)

blobs_read_total = meter.create_counter(
    name="pki_blobs_read_total",
    description="Total PEM blobs read from the store",
    unit="1",
)


class PKIMetrics:
    """Facade for PKI metrics with proper labels."""

    def record_private_key_generated(self, algorithm: str) -> None:
        """Record key generation. Labels: algorithm=RSA|ECDSA"""
        private_keys_generated_total.add(1, {"algorithm": algorithm})

    def record_certificate_signed(self, is_ca: bool, duration_seconds: float) -> None:
        """Record a signed certificate with signing duration."""
        certificates_signed_total.add(1, {"is_ca": str(is_ca).lower()})
        certificate_signing_duration.record(duration_seconds)

    def record_blob_written(self, kind: str) -> None:
        """Record a blob write. Labels: kind=certificate|private_key"""
        blobs_written_total.add(1, {"kind": kind})

    def record_blob_read(self, kind: str) -> None:
        """Record a blob read. Labels: kind=certificate|private_key"""
        blobs_read_total.add(1, {"kind": kind})


# Singleton instance
pki_metrics = PKIMetrics()
