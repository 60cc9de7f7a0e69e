"""Unit tests for fire-and-forget background tasks."""

import logging
import threading

import pytest

from tasks import BackgroundTasks


class TestBackgroundTasks:

    @pytest.fixture
    def tasks(self):
        background = BackgroundTasks(max_workers=1)
        yield background
        background.shutdown()

    def test_runs_task(self, tasks):
        results = []
        future = tasks.submit(results.append, 'done')
        future.result(timeout=5)
        assert results == ['done']

    def test_failure_is_logged_not_raised(self, tasks, caplog):
        def explode():
            raise RuntimeError('store offline')

        with caplog.at_level(logging.ERROR, logger='tasks'):
            future = tasks.submit(explode, description='persist daily_news_Global_2025-01-01')
            assert isinstance(future.exception(timeout=5), RuntimeError)
            tasks.shutdown(wait=True)

        assert "persist daily_news_Global_2025-01-01" in caplog.text
        assert "store offline" in caplog.text

    def test_cancel_pending_drops_queued_tasks(self, caplog):
        background = BackgroundTasks(max_workers=1)
        release = threading.Event()
        started = threading.Event()
        ran = []

        def blocker():
            started.set()
            release.wait(timeout=5)

        first = background.submit(blocker)
        assert started.wait(timeout=5)
        queued = background.submit(ran.append, 'late write', description='late write')

        with caplog.at_level(logging.WARNING, logger='tasks'):
            background.shutdown(wait=False, cancel_pending=True)
            release.set()
            first.result(timeout=5)

        assert queued.cancelled()
        assert ran == []
        assert "late write" in caplog.text
