import logging
import sys

from opentelemetry._logs import set_logger_provider
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor, ConsoleLogRecordExporter

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> LoggerProvider:
    """Route stdlib logging through an OpenTelemetry logger provider.

    Library modules only call ``logging.getLogger(__name__)``; the agent that
    embeds them calls this once at startup.
    """
    level_name = (level or settings.LOG_LEVEL).upper()

    logger_provider = LoggerProvider()
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(ConsoleLogRecordExporter()))
    set_logger_provider(logger_provider)

    root = logging.getLogger()
    root.addHandler(LoggingHandler(level=getattr(logging, level_name), logger_provider=logger_provider))
    root.setLevel(level_name)

    # Batched OTel output can lag; keep a plain stdout handler for startup messages
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(stream_handler)

    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    return logger_provider

