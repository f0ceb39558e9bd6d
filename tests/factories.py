"""Case payload factories and fakes shared by the test modules."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import httpx

from caseflow.domain.payment_protocol import PaymentOutcome
from caseflow.schemas.case import Case

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
ATTORNEY_ID = "att-1"
PARALEGAL_ID = "para-1"
BASE_URL = "http://backend.test"


# ---------------------------------------------------------------------------
# Case factories
# ---------------------------------------------------------------------------


def case_payload(**overrides: Any) -> dict:
    """A backend case body. Overrides use the API's camelCase keys."""
    payload: dict[str, Any] = {
        "_id": "case-1",
        "title": "Commercial lease review",
        "practiceArea": "Real Estate",
        "details": "Review a ten year commercial lease.",
        "status": "open",
        "attorney": {"_id": ATTORNEY_ID, "firstName": "Ada", "lastName": "Lovelace"},
        "archived": False,
        "readOnly": False,
        "applicants": [],
        "invites": [],
        "createdAt": "2026-10-01T09:00:00Z",
        "updatedAt": "2026-10-02T09:00:00Z",
    }
    payload.update(overrides)
    return payload


def make_case(**overrides: Any) -> Case:
    return Case.model_validate(case_payload(**overrides))


def hired_payload(**overrides: Any) -> dict:
    """A case with a funded escrow and a paralegal at work."""
    fields: dict[str, Any] = {
        "status": "in_progress",
        "paralegal": {"_id": PARALEGAL_ID, "firstName": "Grace", "lastName": "Hopper"},
        "escrowIntentId": "pi_123",
        "escrowStatus": "funded",
    }
    fields.update(overrides)
    return case_payload(**fields)


def make_hired_case(**overrides: Any) -> Case:
    return Case.model_validate(hired_payload(**overrides))


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------


class FakeBackend:
    """Scripted responses per (method, path); records every request.

    A route holds a queue of responses. The last one repeats once the queue
    is down to a single entry. Unrouted requests get a 404.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def on(self, method: str, path: str, *responses: Any) -> None:
        self._routes[(method.upper(), path)] = list(responses)

    def calls(self, method: str | None = None) -> list[tuple[str, str]]:
        return [
            (r.method, r.url.path)
            for r in self.requests
            if method is None or r.method == method.upper()
        ]

    def body(self, index: int) -> Any:
        content = self.requests[index].content
        return json.loads(content) if content else None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "Not found"})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response):
            return await response(request)
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )


def ok(body: Any = None, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={} if body is None else body)


def fail(status_code: int, error: str) -> httpx.Response:
    return httpx.Response(status_code, json={"error": error})


class FakeConfirmer:
    """PaymentConfirmer double returning a fixed outcome."""

    def __init__(self, outcome: PaymentOutcome) -> None:
        self.outcome = outcome
        self.calls: list[tuple[str, str]] = []

    async def confirm(self, client_secret: str, payment_method_token: str) -> PaymentOutcome:
        self.calls.append((client_secret, payment_method_token))
        return self.outcome
