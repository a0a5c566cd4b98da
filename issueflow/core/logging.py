"""
issueflow logging

Every service logs one event per state change through
structlog.get_logger(__name__): ticket_reported, ticket_assigned,
milestone_escalated, command_rejected and so on, with the ticket id,
milestone name or username as key/value fields. A batch run therefore
reads as an ordered command trail.

configure_structlog() is called once by create_app(). Library loggers
(uvicorn, httpx) go through the same formatter so the trail is not
interleaved with a second format.
"""

import logging
import logging.config

import structlog

# Third-party loggers too chatty for a command trail
QUIET_LOGGERS = ("uvicorn.access", "httpx")


def _renderer(json_logs: bool):
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Route structlog and stdlib logging to one stderr handler.

    json_logs selects JSON lines (one event per command effect) over the
    colored console renderer used in development and tests.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "issueflow": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    _renderer(json_logs),
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "issueflow",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"handlers": ["stderr"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
