import logging
import sys

import structlog


def configure_logging(level: str = "info", json_output: bool = False):
    """Configure structlog to output console or JSON formatted events"""
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,  # Add log level
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),  # Add stack info for exceptions
            structlog.processors.dict_tracebacks,  # Formats exception info
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name):
    """Get a logger instance"""
    return structlog.get_logger(name)
