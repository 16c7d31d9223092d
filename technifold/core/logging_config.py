# technifold/core/logging_config.py
import logging
import sys
from typing import Optional, TextIO

import structlog

from technifold.core.settings import settings


def setup_logging(stream: Optional[TextIO] = None) -> None:
    """
    JSON-regels via structlog bovenop de stdlib logging.
    Zonder stream gaat alles naar stdout; de CLI geeft stderr mee.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# gedeelde logger voor alle pricing-modules
logger = structlog.get_logger("technifold")
