"""Tests for upload and periodic triggers."""

from __future__ import annotations

import threading
from unittest.mock import Mock

import pytest

from photofeed.index.reconciler import ReconcileStats
from photofeed.triggers import PERIODIC_TRIGGER, UPLOAD_TRIGGER, PeriodicTrigger, on_upload


@pytest.fixture
def mock_reconciler():
    reconciler = Mock()
    reconciler.run_pass.side_effect = lambda trigger: ReconcileStats(trigger=trigger)
    return reconciler


class TestOnUpload:
    def test_runs_upload_pass(self, mock_reconciler) -> None:
        stats = on_upload(mock_reconciler)

        mock_reconciler.run_pass.assert_called_once_with(UPLOAD_TRIGGER)
        assert stats.trigger == "upload"


class TestPeriodicTrigger:
    """Test the periodic catch-all trigger."""

    def test_rejects_non_positive_interval(self, mock_reconciler) -> None:
        with pytest.raises(ValueError):
            PeriodicTrigger(mock_reconciler, 0)

    def test_tick(self, mock_reconciler) -> None:
        trigger = PeriodicTrigger(mock_reconciler, 60)

        stats = trigger.tick()

        mock_reconciler.run_pass.assert_called_once_with(PERIODIC_TRIGGER)
        assert trigger.last_stats is stats

    def test_start_runs_until_stopped(self, mock_reconciler) -> None:
        ran = threading.Event()

        def run_pass(trigger):
            ran.set()
            return ReconcileStats(trigger=trigger)

        mock_reconciler.run_pass.side_effect = run_pass
        trigger = PeriodicTrigger(mock_reconciler, 0.01)

        trigger.start()
        try:
            assert ran.wait(2)
            assert trigger.running
        finally:
            trigger.stop(timeout=2)

        assert not trigger.running

    def test_start_twice_keeps_one_thread(self, mock_reconciler) -> None:
        trigger = PeriodicTrigger(mock_reconciler, 60)
        trigger.start()
        try:
            first = trigger._thread
            trigger.start()
            assert trigger._thread is first
        finally:
            trigger.stop(timeout=2)

    def test_run_forever_returns_after_stop(self, mock_reconciler) -> None:
        trigger = PeriodicTrigger(mock_reconciler, 0.01)
        calls = []

        def run_pass(name):
            calls.append(name)
            if len(calls) == 3:
                trigger.stop()
            return ReconcileStats(trigger=name)

        mock_reconciler.run_pass.side_effect = run_pass

        trigger.run_forever()

        assert calls == [PERIODIC_TRIGGER] * 3
