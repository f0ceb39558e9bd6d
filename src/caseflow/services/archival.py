"""Archival lock and purge countdown.

Once the backend marks a case read-only (after completion or archival) it
also declares ``purgeScheduledFor``. Collaborators see an HH:MM countdown to
that moment, refreshed once a minute. The countdown is display only: the
purge itself happens server-side.

One CountdownController drives the countdown for whichever case is
visible. Showing another case, or leaving the view, cancels the previous
task before anything new starts.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from caseflow.domain.enums import CollaborationSurface
from caseflow.domain.exceptions import CollaborationLocked
from caseflow.domain.predicates import is_workspace_eligible
from caseflow.domain.state_machine import PurgeStateMachine, purge_state
from caseflow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from caseflow.schemas.case import Case

logger = get_logger(__name__)

PLACEHOLDER = "--:--"
WORKSPACE_SURFACES = frozenset({CollaborationSurface.COMPOSER, CollaborationSurface.UPLOADS})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def format_countdown(purge_at: datetime, now: datetime | None = None) -> str:
    """Whole hours and minutes until ``purge_at``, clamped at 00:00."""
    now = _aware(now) if now is not None else _utcnow()
    remaining = max(0.0, (_aware(purge_at) - now).total_seconds())
    total_minutes = int(remaining // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


# ---------------------------------------------------------------------------
# Collaboration lock
# ---------------------------------------------------------------------------


def collaboration_locks(case: Case) -> frozenset[CollaborationSurface]:
    """Surfaces disabled by the archival lock."""
    if case.read_only:
        return frozenset(CollaborationSurface)
    return frozenset()


def ensure_collaboration_allowed(case: Case, surface: CollaborationSurface) -> None:
    """Refuse a message/upload/engagement action before any request is made.

    Raises:
        CollaborationLocked: The case is read-only, or the composer/uploads
            were requested on a case whose workspace is not unlocked.
    """
    if surface in collaboration_locks(case):
        raise CollaborationLocked(case.id, surface)
    if surface in WORKSPACE_SURFACES and not is_workspace_eligible(case):
        raise CollaborationLocked(
            case.id,
            surface,
            message="Messaging and files unlock once escrow is funded and work is in progress.",
        )


# ---------------------------------------------------------------------------
# Countdown
# ---------------------------------------------------------------------------


class CountdownController:
    """Owns the single countdown task for the visible case.

    Args:
        render: Called with (case_id, text) on every tick.
        interval_seconds: Tick period; one minute in production.
        clock: Returns the current aware datetime.
    """

    def __init__(
        self,
        render: Callable[[str, str], None],
        *,
        interval_seconds: float = 60.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._render = render
        self._interval = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._case_id: str | None = None
        self._machine: PurgeStateMachine | None = None

    @property
    def active_case_id(self) -> str | None:
        return self._case_id if self.running else None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> str | None:
        return self._machine.status if self._machine is not None else None

    def show(self, case: Case) -> bool:
        """Make ``case`` the visible case. Returns True if a countdown started."""
        self.stop()
        self._case_id = case.id
        now = self._clock()
        self._machine = PurgeStateMachine(purge_state(case, now))
        if not case.read_only:
            return False
        if case.purge_scheduled_for is None:
            self._render(case.id, PLACEHOLDER)
            return False

        purge_at = _aware(case.purge_scheduled_for)
        self._render(case.id, format_countdown(purge_at, now))
        if self._machine.current_state.final:
            return False
        self._task = asyncio.get_running_loop().create_task(
            self._run(case.id, purge_at, self._machine)
        )
        logger.info("countdown.started", case_id=case.id, purge_at=purge_at.isoformat())
        return True

    def stop(self) -> None:
        """Cancel the running countdown, if any."""
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                logger.debug("countdown.cancelled", case_id=self._case_id)
            self._task = None
        self._case_id = None
        self._machine = None

    async def aclose(self) -> None:
        """Cancel and wait for the running countdown to unwind."""
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self, case_id: str, purge_at: datetime, machine: PurgeStateMachine) -> None:
        while True:
            await asyncio.sleep(self._interval)
            now = self._clock()
            self._render(case_id, format_countdown(purge_at, now))
            if purge_at <= now:
                machine.purge()
                logger.info("countdown.elapsed", case_id=case_id)
                return
