"""
Logging configuration for applications serving sessions.

Engine records carry a ``component`` field (pool, session, middleware) so
Redis round-trips can be traced per module; each component's level can be
raised on its own without turning on DEBUG everywhere.
"""

import logging
import logging.config
from typing import Any, Dict, Optional

ENGINE_LOGGER = "sessionstore"
MODULES_PREFIX = "sessionstore.modules."

# Logger names whose level can be set separately from the engine level
COMPONENT_LOGGERS = {
    "pool": "sessionstore.modules.pool",
    "session": "sessionstore.modules.session",
    "middleware": "sessionstore.modules.middleware",
}


class ComponentFilter(logging.Filter):
    """Attach the engine component that emitted a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(MODULES_PREFIX):
            record.component = name[len(MODULES_PREFIX):].split(".", 1)[0]
        elif name == ENGINE_LOGGER or name.startswith(ENGINE_LOGGER + "."):
            record.component = name.rsplit(".", 1)[-1]
        else:
            record.component = name
        return True


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(
    level: str = "INFO",
    component_levels: Optional[Dict[str, str]] = None,
    access_log: bool = True,
) -> Dict[str, Any]:
    """
    Build a dictConfig for the engine and the uvicorn server.

    Args:
        level: Level for the engine and uvicorn loggers
        component_levels: Per-component overrides, e.g. {"pool": "DEBUG"}
        access_log: Whether uvicorn request lines are emitted

    Raises:
        ValueError: If a component name is unknown
    """
    level = level.upper()
    loggers = {
        ENGINE_LOGGER: _logger("engine", level),
        "uvicorn": _logger("server", level),
        "uvicorn.error": _logger("server", level),
        "uvicorn.access": _logger("server", level if access_log else "WARNING"),
    }
    for component, component_level in (component_levels or {}).items():
        if component not in COMPONENT_LOGGERS:
            raise ValueError(
                f"Unknown logging component: {component}. Available: {sorted(COMPONENT_LOGGERS)}"
            )
        loggers[COMPONENT_LOGGERS[component]] = _logger("engine", component_level.upper())

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"component": {"()": ComponentFilter}},
        "formatters": {
            "engine": {"format": "%(asctime)s %(levelname)-7s [%(component)s] %(message)s"},
            "server": {"format": "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"},
        },
        "handlers": {
            "engine": {
                "class": "logging.StreamHandler",
                "formatter": "engine",
                "filters": ["component"],
                "stream": "ext://sys.stdout",
            },
            "server": {
                "class": "logging.StreamHandler",
                "formatter": "server",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": loggers,
        "root": {"level": "WARNING", "handlers": ["server"]},
    }


def configure_logging(
    level: str = "INFO",
    component_levels: Optional[Dict[str, str]] = None,
    access_log: bool = True,
) -> None:
    """Apply get_logging_config() to the logging module."""
    logging.config.dictConfig(get_logging_config(level, component_levels, access_log))


def mask_session_id(session_id: str) -> str:
    """Shorten an identifier for logs; the full value is a bearer credential."""
    if len(session_id) <= 8:
        return "***"
    return f"{session_id[:8]}..."
