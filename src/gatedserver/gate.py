from __future__ import annotations

import logging
import threading
from typing import Callable


Task = Callable[[], None]


class AdmissionGate:
    """
    Run tasks on their own threads, at most ``max_tasks`` at a time.

    submit() blocks only until a capacity unit is free, never for the
    duration of the task. The unit is handed back when the task ends,
    whether it returned or raised.

    max_tasks == 0 is accepted but every submit() then waits forever.
    """

    def __init__(self, max_tasks: int) -> None:
        if max_tasks < 0:
            raise ValueError("max_tasks must be >= 0")
        self._max_tasks = max_tasks
        self._count = 0
        self._cond = threading.Condition(threading.Lock())

    @property
    def max_tasks(self) -> int:
        return self._max_tasks

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._count

    def submit(self, task: Task, name: str | None = None) -> threading.Thread:
        with self._cond:
            while self._count >= self._max_tasks:
                self._cond.wait()
            self._count += 1

        t = threading.Thread(target=self._run, args=(task,), name=name, daemon=True)
        try:
            t.start()
        except BaseException:
            self._release()
            raise
        return t

    def _run(self, task: Task) -> None:
        try:
            task()
        except Exception:
            logging.exception("Unhandled error in gated task")
        finally:
            self._release()

    def _release(self) -> None:
        with self._cond:
            self._count -= 1
            self._cond.notify()
