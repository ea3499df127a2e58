"""Unit tests for ProgressHeartbeat.

Tests the heartbeat's behavior:
- No report before the first interval elapses
- Repeated reports while active
- Failed beats do not stop later beats
- The timer task is gone once the scope exits
"""

import asyncio
from unittest.mock import AsyncMock

import aiohttp
import pytest

from scraper_worker.main.exceptions import QueueUnavailableError
from scraper_worker.worker.heartbeat import ProgressHeartbeat


def _counting_report(calls_needed: int, side_effects=None):
    """AsyncMock report that sets an event after ``calls_needed`` calls."""
    reached = asyncio.Event()
    effects = list(side_effects or [])

    async def report(work_item_id):
        report.calls.append(work_item_id)
        if len(report.calls) >= calls_needed:
            reached.set()
        if effects:
            effect = effects.pop(0)
            if effect is not None:
                raise effect

    report.calls = []
    return report, reached


class TestProgressHeartbeatTiming:
    @pytest.mark.asyncio
    async def test_no_report_before_first_interval(self):
        report = AsyncMock()

        async with ProgressHeartbeat("w1", report, interval_seconds=60) as heartbeat:
            assert heartbeat.active
            await asyncio.sleep(0)

        report.assert_not_called()
        assert heartbeat.beats == 0

    @pytest.mark.asyncio
    async def test_reports_repeatedly_with_item_id(self):
        report, reached = _counting_report(3)

        async with ProgressHeartbeat("w1", report, interval_seconds=0.01) as heartbeat:
            await asyncio.wait_for(reached.wait(), timeout=2)

        assert report.calls[:3] == ["w1", "w1", "w1"]
        assert heartbeat.beats >= 3


class TestProgressHeartbeatFailures:
    @pytest.mark.asyncio
    async def test_failed_beat_does_not_stop_later_beats(self):
        unavailable = QueueUnavailableError(
            "workItemProgress", aiohttp.ClientConnectionError("refused")
        )
        report, reached = _counting_report(3, side_effects=[unavailable, RuntimeError("boom")])

        async with ProgressHeartbeat("w1", report, interval_seconds=0.01) as heartbeat:
            await asyncio.wait_for(reached.wait(), timeout=2)

        assert heartbeat.failed_beats == 2
        assert heartbeat.beats >= 1


class TestProgressHeartbeatStop:
    @pytest.mark.asyncio
    async def test_scope_exit_stops_timer(self):
        report, reached = _counting_report(1)

        async with ProgressHeartbeat("w1", report, interval_seconds=0.01) as heartbeat:
            await asyncio.wait_for(reached.wait(), timeout=2)

        assert not heartbeat.active
        calls_at_exit = len(report.calls)

        await asyncio.sleep(0.05)

        assert len(report.calls) == calls_at_exit

    @pytest.mark.asyncio
    async def test_scope_exit_on_exception_stops_timer(self):
        heartbeat = ProgressHeartbeat("w1", AsyncMock(), interval_seconds=0.01)

        with pytest.raises(ValueError):
            async with heartbeat:
                raise ValueError("handler failed")

        assert not heartbeat.active

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self):
        heartbeat = ProgressHeartbeat("w1", AsyncMock(), interval_seconds=0.01)

        await heartbeat.stop()

        assert not heartbeat.active

    @pytest.mark.asyncio
    async def test_start_twice_keeps_single_timer(self):
        heartbeat = ProgressHeartbeat("w1", AsyncMock(), interval_seconds=60)

        heartbeat.start()
        first_task = heartbeat._task
        heartbeat.start()

        assert heartbeat._task is first_task
        await heartbeat.stop()
