import logging
import sys

import structlog

from tfkoyeb import __version__


def configure_logging(level: int | str = logging.WARNING, *, json_output: bool = True) -> None:
    """
    Route structlog through stdlib logging on stderr.

    stdout carries command output (resolved IDs, wait results), so log lines
    never go there. ``json_output=False`` switches to the human readable
    console renderer for ``--debug`` sessions.
    """

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)
    structlog.contextvars.bind_contextvars(provider="koyeb", provider_version=__version__)
