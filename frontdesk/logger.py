import logging

import structlog
from structlog.stdlib import LoggerFactory


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Route structlog through the stdlib logging module.

    Development gets the coloured console renderer; production emits one
    JSON object per line.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
    )

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "frontdesk"):
    return structlog.get_logger(name)
