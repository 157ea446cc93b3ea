import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from pki.services.issuer import CertificateIssuer
from shared.config import settings
from shared.logging import setup_logging
from shared.metrics import setup_metrics

logger = logging.getLogger(__name__)


def setup_tracing() -> None:
    resource = Resource.create({"service.name": settings.APP_NAME})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)


def issue_agent_identity() -> None:
    """Issue the agent certificate from the CA found under ``PKI_PATH``."""
    issuer = CertificateIssuer(algorithm=settings.PKI_KEY_ALGORITHM)
    certificate, key_pair = issuer.bootstrap(
        settings.PKI_PATH,
        ca_name=settings.PKI_CA_NAME,
        name=settings.PKI_NAME,
    )
    logger.info(
        "agent_identity_ready",
        extra={
            "pki_path": settings.PKI_PATH,
            "pki_name": settings.PKI_NAME,
            "not_after": certificate.not_valid_after_utc.isoformat(),
            "algorithm": key_pair.description,
        },
    )


def main() -> None:
    setup_logging()
    setup_tracing()
    setup_metrics(settings.APP_NAME)

    issue_agent_identity()


if __name__ == "__main__":
    main()
