"""
Console logging for the workflow compiler.

Library modules log through `logging.getLogger(__name__)`; the CLI attaches one
colored handler to the `workflow_codegen` logger. Output goes to stderr so that
generated code written to stdout stays clean.

Usage:
    from shared.logger import get_logger

    logger = get_logger("workflow_codegen", level="DEBUG")
    logger.info("Message here")
"""

import copy
import logging
import sys
from typing import IO, Optional, Union

# Global cache of loggers
_loggers = {}


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to console output"""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record):
        levelname = record.levelname
        if levelname not in self.COLORS:
            return super().format(record)
        # other handlers share the record
        colored = copy.copy(record)
        colored.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        return super().format(colored)


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def get_logger(
    name: str,
    level: Union[int, str] = logging.INFO,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    Get a logger that outputs colored, structured logs to the console.

    Args:
        name: Logger name (typically __name__ or a package name)
        level: Logging level or its name (default: INFO)
        stream: Target stream (default: stderr)

    Returns:
        Configured logger instance
    """
    level = _coerce_level(level)

    # Cached loggers get their level and stream refreshed
    if name in _loggers:
        logger = _loggers[name]
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
            if isinstance(handler, logging.StreamHandler):
                handler.setStream(stream or sys.stderr)
        return logger

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(
        fmt='%(asctime)s | %(name)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(console_handler)

    _loggers[name] = logger
    return logger
