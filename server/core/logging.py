"""Structured logging for the gateway (structlog over stdlib logging)."""

import sys
import logging
from pathlib import Path
from typing import Any, Dict, List

import structlog

from core.config import Settings

# Event keys whose values are PBX credentials
SECRET_KEYS = frozenset({"cookie", "session_cookie", "password", "token", "credential_digest"})


def redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Replace credential values with their length."""
    for key in SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        if value:
            event_dict[key] = f"<redacted:{len(str(value))}>"
    return event_dict


def configure_logging(settings: Settings) -> None:
    """Configure structured logging based on settings."""
    level = getattr(logging, settings.log_level.upper())

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(level)
    logging.basicConfig(level=level, handlers=handlers, format="%(message)s", force=True)

    if settings.log_format == "json":
        head = [structlog.stdlib.add_logger_name, structlog.processors.TimeStamper(fmt="iso")]
        renderer = structlog.processors.JSONRenderer()
    else:
        head = [structlog.processors.TimeStamper(fmt="%H:%M:%S")]
        renderer = structlog.dev.ConsoleRenderer(
            colors=False,
            pad_event=35,
            exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=[
            *head,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_api_call(logger: structlog.stdlib.BoundLogger, service: str, action: str,
                 success: bool, **kwargs) -> None:
    """One event per PBX round trip."""
    logger.info("API call completed", service=service, action=action, success=success, **kwargs)


def log_cache_operation(logger: structlog.stdlib.BoundLogger, operation: str,
                        key: str, hit: bool = None, **kwargs) -> None:
    """Debug-level cache event; ``cache_hit`` only for reads."""
    if hit is not None:
        kwargs["cache_hit"] = hit
    logger.debug("Cache operation", operation=operation, cache_key=key, **kwargs)
