"""HTTP boundary to the marketplace backend.

Wraps an httpx.AsyncClient and turns every failed call into one of the
BackendError subclasses, carrying the backend's own ``error``/``msg``
string. No automatic retry happens here: the only silent
retries in the package are the compensating writes in the lifecycle
service.

Usage:
    async with CaseApiClient(get_settings()) as api:
        payload = await api.get_case("665f...")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from caseflow.domain.exceptions import (
    BackendError,
    NetworkFailure,
    NotFound,
    PaymentRequired,
    Unauthorized,
    ValidationConflict,
)
from caseflow.logging_config import get_logger

if TYPE_CHECKING:
    from caseflow.config import Settings

logger = get_logger(__name__)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("error", "msg", "message"):
            value = payload.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    text = response.text.strip()
    if text and len(text) <= 300 and not text.startswith("<"):
        return text
    return f"HTTP {response.status_code}"


def error_from_response(response: httpx.Response) -> BackendError:
    """Classify a non-2xx response."""
    status = response.status_code
    message = _error_message(response)
    if status in (401, 403):
        return Unauthorized(message, status_code=status)
    if status == 402:
        return PaymentRequired(message, status_code=status)
    if status == 404:
        return NotFound(message)
    if status in (400, 409, 422):
        return ValidationConflict(message, status_code=status)
    return BackendError(message, status_code=status)


class CaseApiClient:
    """Typed access to the case, engagement and payment endpoints."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owned_client = client is None

        if client is None:
            timeout_s = settings.api_timeout_seconds
            headers = {
                "Accept": "application/json",
                "User-Agent": "caseflow/0.1",
            }
            if settings.api_token:
                headers["Authorization"] = f"Bearer {settings.api_token}"
            client = httpx.AsyncClient(
                base_url=settings.normalized_base_url,
                timeout=httpx.Timeout(timeout=timeout_s, connect=min(5.0, timeout_s)),
                limits=httpx.Limits(max_connections=settings.api_max_connections),
                headers=headers,
                follow_redirects=True,
            )

        self._client = client

    async def __aenter__(self) -> CaseApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owned_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Cases
    # ------------------------------------------------------------------

    async def list_cases(
        self,
        *,
        archived: bool,
        limit: int,
        with_files: bool = True,
    ) -> list[dict]:
        params = {
            "archived": "true" if archived else "false",
            "limit": limit,
            "withFiles": "true" if with_files else "false",
        }
        payload = await self._request_json("GET", "/api/cases/my", params=params)
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in ("items", "cases"):
                if isinstance(payload.get(key), list):
                    return payload[key]
        return []

    async def get_case(self, case_id: str) -> dict:
        return await self._request_json("GET", f"/api/cases/{_segment(case_id)}")

    async def patch_case(self, case_id: str, fields: dict[str, Any]) -> dict:
        return await self._request_json(
            "PATCH", f"/api/cases/{_segment(case_id)}", json_body=fields
        )

    async def set_archived(
        self,
        case_id: str,
        archived: bool,
        *,
        status: str | None = None,
    ) -> dict:
        body: dict[str, Any] = {"archived": archived}
        if status is not None:
            body["status"] = status
        return await self._request_json(
            "PATCH", f"/api/cases/{_segment(case_id)}/archive", json_body=body
        )

    async def delete_case(self, case_id: str) -> Any:
        return await self._request_json("DELETE", f"/api/cases/{_segment(case_id)}")

    # ------------------------------------------------------------------
    # Engagement
    # ------------------------------------------------------------------

    async def hire(self, case_id: str, paralegal_id: str) -> Any:
        return await self._request_json(
            "POST",
            f"/api/cases/{_segment(case_id)}/hire/{_segment(paralegal_id)}",
            json_body={},
        )

    async def invite(self, case_id: str, paralegal_id: str) -> Any:
        return await self._request_json(
            "POST",
            f"/api/cases/{_segment(case_id)}/invite/{_segment(paralegal_id)}",
            json_body={},
        )

    async def respond_invite(self, case_id: str, decision: str) -> Any:
        return await self._request_json(
            "POST",
            f"/api/cases/{_segment(case_id)}/respond-invite",
            json_body={"decision": decision},
        )

    async def apply(self, case_id: str, note: str) -> Any:
        return await self._request_json(
            "POST", f"/api/cases/{_segment(case_id)}/apply", json_body={"note": note}
        )

    async def complete(self, case_id: str) -> dict:
        return await self._request_json(
            "POST", f"/api/cases/{_segment(case_id)}/complete", json_body={}
        )

    async def terminate(self, case_id: str, reason: str) -> dict:
        return await self._request_json(
            "POST",
            f"/api/cases/{_segment(case_id)}/terminate",
            json_body={"reason": reason},
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def start_escrow(self, case_id: str) -> dict:
        return await self._request_json(
            "POST", "/api/payments/start-escrow", json_body={"caseId": case_id}
        )

    async def default_payment_method(self) -> dict:
        return await self._request_json("GET", "/api/payments/payment-method/default")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        path_norm = path if path.startswith("/") else f"/{path}"
        try:
            response = await self._client.request(
                method, path_norm, params=params, json=json_body
            )
        except httpx.TransportError as exc:
            logger.warning("api.network_failure", method=method, path=path_norm, error=str(exc))
            raise NetworkFailure(str(exc) or "Network request failed") from exc

        if response.is_error:
            error = error_from_response(response)
            logger.warning(
                "api.request_failed",
                method=method,
                path=path_norm,
                status=response.status_code,
                error=error.message,
            )
            raise error

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(
                "Unexpected response from server", status_code=response.status_code
            ) from exc
