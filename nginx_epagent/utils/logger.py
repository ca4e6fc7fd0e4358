"""JSON logging for the forwarder."""

import logging
import sys
from pythonjsonlogger import jsonlogger


LOG_FORMAT = '%(name)s %(levelname)s %(message)s'


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        LOG_FORMAT,
        rename_fields={'levelname': 'level', 'name': 'logger'},
        timestamp=True
    ))
    handler.set_name('nginx_epagent.json')
    return handler


def setup_logger(name: str = "nginx_epagent", level: str = "INFO") -> logging.Logger:
    """
    Return ``name`` configured to emit one JSON object per line on stdout.

    Calling it again for the same name only updates the level; the JSON
    handler is attached once.

    Args:
        name: Logger name
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    if not any(h.get_name() == 'nginx_epagent.json' for h in logger.handlers):
        logger.addHandler(_json_handler())

    logger.propagate = False
    return logger
