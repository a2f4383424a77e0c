import logging
import sys
from typing import Optional

import structlog
from waypoint.core.config import Settings, settings as default_settings

def configure_logging(config: Optional[Settings] = None, level: int = logging.INFO):
    """
    Configures structlog to intercept standard library logs and setup
    JSON rendering for production or Console rendering for local development.
    """
    config = config or default_settings

    # settings.ENV is 'development' by default in config.py
    is_local = config.ENV.lower() == "development"

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
    ]

    if is_local:
        # Human-readable for local development
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer()
        ]
    else:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # httpx logs every request at INFO; route it through the root logger
    # and keep it at WARNING so cache hits and misses stay readable.
    for _log in ["httpx", "httpcore"]:
        logger = logging.getLogger(_log)
        logger.handlers = []
        logger.propagate = True
        logger.setLevel(logging.WARNING)
