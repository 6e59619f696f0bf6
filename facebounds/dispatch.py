"""
UI-thread scheduling context.

The overlay and the result listener are not safe for concurrent use, so
everything that touches them is funnelled through a MainThreadExecutor.
The executor is bound to the thread that creates it. Work submitted from
that thread runs inline; work submitted from any other thread is queued
until the owning thread calls run_pending(), typically once per
iteration of its display loop.
"""

import logging
import queue
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MainThreadExecutor:
    """Executes callables on a single owning thread.

    Usage:
        ui = MainThreadExecutor()          # on the display thread
        ui.execute(overlay.update_faces, faces)   # from any thread
        ...
        ui.run_pending()                   # back on the display thread
    """

    def __init__(self) -> None:
        self._owner = threading.get_ident()
        self._tasks: "queue.SimpleQueue" = queue.SimpleQueue()

    @property
    def is_owner_thread(self) -> bool:
        """True when called from the thread this executor is bound to."""
        return threading.get_ident() == self._owner

    @property
    def pending(self) -> int:
        """Approximate number of queued tasks."""
        return self._tasks.qsize()

    def execute(self, fn: Callable, *args) -> None:
        """Run ``fn(*args)`` on the owning thread.

        Runs immediately when already on the owning thread, otherwise
        the call is queued for the next run_pending().
        """
        if self.is_owner_thread:
            self._run(fn, args)
        else:
            self._tasks.put((fn, args))

    def run_pending(self, max_tasks: Optional[int] = None) -> int:
        """Run queued tasks in FIFO order.

        Args:
            max_tasks: Upper bound on tasks to run in this call. None
                       drains everything queued so far.

        Returns:
            Number of tasks executed.
        """
        ran = 0
        while max_tasks is None or ran < max_tasks:
            try:
                fn, args = self._tasks.get_nowait()
            except queue.Empty:
                break
            self._run(fn, args)
            ran += 1
        return ran

    @staticmethod
    def _run(fn: Callable, args: tuple) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("UI task %r raised", fn)
