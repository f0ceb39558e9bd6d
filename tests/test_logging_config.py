"""Tests for the structlog setup."""

from __future__ import annotations

import logging

import structlog

from caseflow.domain.enums import ViewerRole
from caseflow.domain.viewer import Viewer
from caseflow.logging_config import REDACTED, TokenRedactor, bind_viewer, setup_logging


class TestTokenRedactor:
    def test_token_is_scrubbed_from_string_values(self) -> None:
        redact = TokenRedactor("secret-token")
        event = redact(
            None,
            "warning",
            {"event": "case.hire_rejected", "error": "Bearer secret-token rejected", "count": 2},
        )
        assert event["error"] == f"Bearer {REDACTED} rejected"
        assert event["count"] == 2

    def test_empty_token_leaves_values_alone(self) -> None:
        event = {"event": "case.hired", "case_id": "case-1"}
        assert TokenRedactor("")(None, "info", dict(event)) == event


class TestSetupLogging:
    def test_level_comes_from_settings(self, settings) -> None:
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        setup_logging(settings.model_copy(update={"app_log_level": "debug"}))
        try:
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            structlog.reset_defaults()
            root.handlers[:] = handlers
            root.setLevel(level)


class TestBindViewer:
    def test_viewer_is_bound_only_inside_the_block(self) -> None:
        with bind_viewer(Viewer(ViewerRole.PARALEGAL, "para-9")):
            bound = structlog.contextvars.get_contextvars()
            assert bound["viewer_role"] == "paralegal"
            assert bound["viewer_id"] == "para-9"
        assert "viewer_role" not in structlog.contextvars.get_contextvars()
