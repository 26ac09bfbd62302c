import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Send every record to stdout and return the service's root logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    return logging.getLogger("smdr_ingest")
