"""Structured logging for the case engagement client.

Development settings get colored console output, every other environment
gets JSON lines. Every record carries the client environment and, inside an
``open_service`` session, the viewer's role and id. The backend token is
scrubbed from rendered values so error text echoed by the API cannot leak it.

Usage:
    from caseflow.logging_config import setup_logging, get_logger
    setup_logging(get_settings())
    logger = get_logger()
    logger.info("case.hired", case_id="abc-123", paralegal_id="p-1")
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from contextlib import AbstractContextManager

    from caseflow.config import Settings
    from caseflow.domain.viewer import Viewer

REDACTED = "[redacted]"

# Transport loggers print full request lines, headers included.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


class TokenRedactor:
    """structlog processor that replaces the API token in string values."""

    def __init__(self, token: str) -> None:
        self._token = token

    def __call__(
        self, _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        if not self._token:
            return event_dict
        for key, value in event_dict.items():
            if isinstance(value, str) and self._token in value:
                event_dict[key] = value.replace(self._token, REDACTED)
        return event_dict


def _add_environment(app_env: str) -> structlog.types.Processor:
    def processor(
        _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("env", app_env)
        return event_dict

    return processor


def setup_logging(settings: Settings) -> None:
    """Configure structlog and the stdlib root logger from client settings.

    Args:
        settings: Supplies the level (``app_log_level``), the renderer
                  (console in development, JSON elsewhere), the environment
                  tag and the token to redact.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_environment(settings.app_env),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        TokenRedactor(settings.api_token),
    ]

    if settings.is_development:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.app_log_level.upper(), logging.INFO))

    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_viewer(viewer: Viewer) -> AbstractContextManager[None]:
    """Tag every record logged inside the block with the viewer."""
    return structlog.contextvars.bound_contextvars(
        viewer_role=viewer.role.value, viewer_id=viewer.user_id
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
