"""Shared test fixtures for the caseflow test suite.

Provides:
    - Settings pointed at a fake backend host
    - An httpx.AsyncClient wired to a scripted FakeBackend via MockTransport
    - Viewers and LifecycleService instances with a frozen clock
"""

from __future__ import annotations

import httpx
import pytest
from factories import ATTORNEY_ID, BASE_URL, NOW, PARALEGAL_ID, FakeBackend, FakeConfirmer

from caseflow.config import Settings
from caseflow.domain.enums import ViewerRole
from caseflow.domain.viewer import Viewer
from caseflow.infrastructure.api_client import CaseApiClient
from caseflow.infrastructure.case_store import CaseStore
from caseflow.schemas.case import Case
from caseflow.services.lifecycle_service import LifecycleService

# ---------------------------------------------------------------------------
# Transport Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url=BASE_URL, api_token="test-token", _env_file=None)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def http_client(backend: FakeBackend):
    async with httpx.AsyncClient(
        base_url=BASE_URL, transport=httpx.MockTransport(backend.handler)
    ) as client:
        yield client


@pytest.fixture
def api(settings: Settings, http_client: httpx.AsyncClient) -> CaseApiClient:
    return CaseApiClient(settings, client=http_client)


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def attorney() -> Viewer:
    return Viewer(ViewerRole.ATTORNEY, ATTORNEY_ID)


@pytest.fixture
def paralegal() -> Viewer:
    return Viewer(ViewerRole.PARALEGAL, PARALEGAL_ID)


@pytest.fixture
def admin() -> Viewer:
    return Viewer(ViewerRole.ADMIN, "admin-1")


@pytest.fixture
def make_service(api: CaseApiClient):
    """Build a LifecycleService for a viewer, optionally pre-seeding cases."""

    def _make(
        viewer: Viewer,
        *cases: Case,
        payment_confirmer: FakeConfirmer | None = None,
    ) -> LifecycleService:
        store = CaseStore()
        for case in cases:
            store.merge(case)
        return LifecycleService(
            api,
            store,
            viewer,
            payment_confirmer=payment_confirmer,
            clock=lambda: NOW,
        )

    return _make
