"""Client entry point for the case engagement core.

Lifecycle:
    1. Startup: Initialize logging, open the backend HTTP client, create an
       empty case cache.
    2. Running: Yield a LifecycleService bound to the viewer.
    3. Shutdown: Close the HTTP client if this module opened it.

Usage:
    async with open_service(Viewer(ViewerRole.ATTORNEY, "u-1")) as service:
        await service.load_cases()
        await service.hire(case_id, paralegal_id)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from caseflow.config import Settings, get_settings
from caseflow.infrastructure.api_client import CaseApiClient
from caseflow.infrastructure.case_store import CaseStore
from caseflow.logging_config import bind_viewer, get_logger, setup_logging
from caseflow.services.archival import CountdownController
from caseflow.services.lifecycle_service import LifecycleService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    import httpx

    from caseflow.domain.payment_protocol import PaymentConfirmer
    from caseflow.domain.viewer import Viewer


@asynccontextmanager
async def open_service(
    viewer: Viewer,
    *,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    payment_confirmer: PaymentConfirmer | None = None,
    configure_logging: bool = True,
) -> AsyncGenerator[LifecycleService, None]:
    """Wire settings, HTTP client, cache and service for one viewer session."""
    settings = settings or get_settings()

    if configure_logging:
        setup_logging(settings)
    logger = get_logger(__name__)
    logger.info(
        "client.starting",
        env=settings.app_env,
        base_url=settings.normalized_base_url,
        role=viewer.role.value,
    )

    api = CaseApiClient(settings, client=client)
    service = LifecycleService(
        api,
        CaseStore(),
        viewer,
        payment_confirmer=payment_confirmer,
        cases_limit=settings.cases_page_limit,
        archived_limit=settings.archived_page_limit,
    )
    try:
        with bind_viewer(viewer):
            yield service
    finally:
        logger.info("client.shutting_down")
        await api.aclose()
        logger.info("client.stopped")


def build_countdown(
    render: Callable[[str, str], None],
    settings: Settings | None = None,
) -> CountdownController:
    """Countdown controller ticking at the configured interval."""
    settings = settings or get_settings()
    return CountdownController(render, interval_seconds=settings.countdown_interval_seconds)
