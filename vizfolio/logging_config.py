"""
Structured logging configuration
"""
import structlog
import logging
import sys

from vizfolio.config import settings


def level_for(debug: bool) -> int:
    return logging.DEBUG if debug else logging.INFO


def setup_logging(level: int = logging.INFO):
    """Configure structured JSON logging for the gateway and the AI proxy"""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level
    )
    # basicConfig is a no-op once a handler exists
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("vizfolio")


# Global logger instance, DEBUG=true turns on debug output
logger = setup_logging(level_for(settings.DEBUG))
