"""Logging configuration for brepkit.

Kernel and model modules only call ``structlog.get_logger(__name__)``. The
CLI decides where those events go by applying one of the ``PRESETS`` (or
calling ``configure_logging`` directly). Events are written to stderr so
that commands printing JSON on stdout stay machine readable.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Any, Dict, List, Optional

import structlog

# Overrides the level of whichever preset is applied
LEVEL_ENV_VAR = "BREPKIT_LOG_LEVEL"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

PRESETS: Dict[str, Dict[str, Any]] = {
    # Interactive use: only problems, colored
    "quiet": {"level": "WARNING", "enable_colors": True, "enable_json": False},
    # --verbose: every build step
    "verbose": {"level": "DEBUG", "enable_colors": True, "enable_json": False},
    # Long-running host feeding a log collector
    "host": {"level": "INFO", "enable_colors": False, "enable_json": True},
}


def add_thread_name(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events from the model host worker with the thread that emitted them."""
    thread = threading.current_thread()
    if thread is not threading.main_thread():
        event_dict.setdefault("thread", thread.name)
    return event_dict


def resolve_level(level: str) -> int:
    """Numeric level for ``level``, unless ``BREPKIT_LOG_LEVEL`` overrides it.

    Raises:
        ValueError: If the level name is unknown
    """
    name = os.environ.get(LEVEL_ENV_VAR) or level
    try:
        return LOG_LEVELS[name.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown log level '{name}', expected one of {sorted(LOG_LEVELS)}"
        ) from None


def configure_logging(
    level: str = "INFO",
    enable_colors: bool = True,
    enable_json: bool = False,
    extra_processors: Optional[List[Any]] = None,
) -> None:
    """Configure structured logging for brepkit.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        enable_colors: Enable colored output when stderr is a terminal
        enable_json: Render events as JSON lines
        extra_processors: Additional structlog processors, run before rendering
    """
    numeric_level = resolve_level(level)

    # Libraries logging through the standard library end up on stderr too
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        add_thread_name,
    ]
    if extra_processors:
        processors.extend(extra_processors)

    if enable_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=enable_colors and sys.stderr.isatty())
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def configure_preset(name: str) -> None:
    """Apply one of the ``PRESETS``.

    Raises:
        KeyError: If no preset of that name exists
    """
    configure_logging(**PRESETS[name])


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)
