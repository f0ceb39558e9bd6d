"""At-most-one-in-flight per control.

The first activation of a control (hire, apply, fund, ...) claims its key
before awaiting anything; a second activation while the first is pending
raises ControlBusy. The key is released when the call settles, success or
failure. Single event loop, so the claim needs no lock.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from caseflow.domain.exceptions import ControlBusy
from caseflow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


class InflightGuard:
    """Tracks which (control, case) pairs have a request outstanding."""

    def __init__(self) -> None:
        self._held: set[tuple[str, str]] = set()

    def is_busy(self, control: str, case_id: str) -> bool:
        return (control, str(case_id)) in self._held

    @asynccontextmanager
    async def hold(self, control: str, case_id: str) -> AsyncIterator[None]:
        key = (control, str(case_id))
        if key in self._held:
            logger.info("control.busy", control=control, case_id=str(case_id))
            raise ControlBusy(control, str(case_id))
        self._held.add(key)
        try:
            yield
        finally:
            self._held.discard(key)
