"""structlog setup shared by the API server and command-line entry points."""

import logging

import structlog


def configure_logging(level: int = logging.INFO, json: bool = False) -> None:
    """Configure structlog with level filtering and a console or JSON renderer.

    Args:
        level: Minimum stdlib logging level to emit
        json: Render one JSON object per line instead of the console format
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
