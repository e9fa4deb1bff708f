"""Logging setup for the Customer Feedback UI.

Configures structlog on top of the standard library logging module so that
module level loggers produce consistent, timestamped output. Records are
rendered as JSON lines when ``LOG_FORMAT=json`` (the deployed setting) and as
readable console lines otherwise.

Typical usage example:
    logger = get_logger(__name__, level="DEBUG")
    logger.info(f"order_id:{order_id} - feedback submitted")
"""

import logging
import os
import sys

import structlog

_CONFIGURED = False


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging() -> None:
    """Configure structlog and the root stdlib logger once per process.

    The renderer is chosen from the ``LOG_FORMAT`` environment variable.
    Calling this function more than once has no further effect.
    """
    global _CONFIGURED  # pylint: disable=global-statement
    if _CONFIGURED:
        return

    if os.getenv("LOG_FORMAT", "console").lower() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.addHandler(handler)

    # Quiet noisy third-party loggers
    for noisy in ("urllib3", "werkzeug"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _CONFIGURED = True


def get_logger(name: str, level: str = "INFO") -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the stdlib logger ``name``.

    Args:
        name (str): Logger name, normally the calling module's ``__name__``.
        level (str): Minimum level for this logger. The ``LOG_LEVEL``
            environment variable takes precedence when set.

    Returns:
        structlog.stdlib.BoundLogger: The configured logger.
    """
    configure_logging()
    logging.getLogger(name).setLevel(os.getenv("LOG_LEVEL", level).upper())
    return structlog.stdlib.get_logger(name)
