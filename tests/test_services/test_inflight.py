"""Tests for the at-most-one-in-flight control guard."""

from __future__ import annotations

import pytest

from caseflow.domain.exceptions import ControlBusy
from caseflow.services.inflight import InflightGuard


class TestInflightGuard:
    @pytest.mark.asyncio
    async def test_second_activation_is_refused(self) -> None:
        guard = InflightGuard()
        async with guard.hold("hire", "case-1"):
            assert guard.is_busy("hire", "case-1")
            with pytest.raises(ControlBusy) as exc_info:
                async with guard.hold("hire", "case-1"):
                    pass
            assert exc_info.value.control == "hire"
        assert not guard.is_busy("hire", "case-1")

    @pytest.mark.asyncio
    async def test_keys_are_per_control_and_case(self) -> None:
        guard = InflightGuard()
        async with guard.hold("hire", "case-1"):
            async with guard.hold("hire", "case-2"), guard.hold("apply", "case-1"):
                assert guard.is_busy("apply", "case-1")

    @pytest.mark.asyncio
    async def test_released_on_failure(self) -> None:
        guard = InflightGuard()
        with pytest.raises(RuntimeError):
            async with guard.hold("delete", "case-1"):
                raise RuntimeError("backend down")
        assert not guard.is_busy("delete", "case-1")
