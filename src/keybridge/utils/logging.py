"""Logging setup utilities for keybridge.

Log records go to stderr (and optionally a file) so they never mix with
the serial bytes relayed on stdout.
"""

from __future__ import annotations

import logging
import sys

from keybridge.config.settings import LoggingConfig

# Marks handlers installed by setup_logging so a later call can replace them
_HANDLER_FLAG = "_keybridge_handler"


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the 'keybridge' logger's level and handlers.

    Attaches a stderr handler and, if ``config.file`` is set, a file
    handler. Handlers left by an earlier call are removed and closed first,
    so calling this again reconfigures rather than duplicating output.

    Args:
        config: Logging configuration. If None, uses defaults
                (WARNING level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("keybridge")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.WARNING))

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_FLAG, True)
        root_logger.addHandler(handler)

    root_logger.debug("Logging initialized at %s level", config.level)
