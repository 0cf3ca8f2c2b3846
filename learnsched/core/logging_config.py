"""Process-wide logging setup shared by the worker and beat entrypoints."""

import logging

from .request_context import attach_correlation_id_filter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    attach_correlation_id_filter()
