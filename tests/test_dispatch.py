"""
Tests for the UI-thread executor.
"""

import threading

from facebounds.dispatch import MainThreadExecutor


def test_runs_inline_on_owner_thread():
    ui = MainThreadExecutor()
    calls = []

    ui.execute(calls.append, 1)

    assert calls == [1]
    assert ui.pending == 0


def test_other_threads_are_queued_until_run_pending():
    ui = MainThreadExecutor()
    calls = []

    worker = threading.Thread(target=lambda: [ui.execute(calls.append, i) for i in range(3)])
    worker.start()
    worker.join()

    assert calls == []
    assert ui.pending == 3
    assert ui.run_pending(max_tasks=2) == 2
    assert calls == [0, 1]
    assert ui.run_pending() == 1
    assert calls == [0, 1, 2]


def test_task_exception_is_logged_and_drain_continues(caplog):
    ui = MainThreadExecutor()
    calls = []

    def boom():
        raise RuntimeError("bad task")

    worker = threading.Thread(target=lambda: (ui.execute(boom), ui.execute(calls.append, "ok")))
    worker.start()
    worker.join()

    assert ui.run_pending() == 2
    assert calls == ["ok"]
    assert "bad task" in caplog.text
