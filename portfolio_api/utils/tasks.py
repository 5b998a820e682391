"""Fire-and-forget dispatcher for best-effort side effects.

Notification emails and old-upload cleanup run as detached tasks: the
request that submits them never waits for, or learns about, their
outcome. Each task's result is logged and kept in a small in-memory
history for inspection.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Optional

logger = logging.getLogger("portfolio_api.tasks")


class TaskDispatcher:
    def __init__(self, history_size: int = 200):
        self._history: deque[dict] = deque(maxlen=history_size)
        self._threads: dict[str, threading.Thread] = {}
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[str]:
        """Run `fn(*args, **kwargs)` in a daemon thread and return a task id.

        Returns `None` when the dispatcher has been shut down; the task is
        dropped and the drop is logged.
        """
        task_id = uuid.uuid4().hex
        with self._lock:
            if self._closed:
                logger.warning("task_dropped name=%s reason=dispatcher closed", name)
                return None
            thread = threading.Thread(
                target=self._run,
                kwargs={"task_id": task_id, "name": name, "fn": fn, "args": args, "kwargs": kwargs},
                name=f"task-{name}",
                daemon=True,
            )
            self._threads[task_id] = thread
        thread.start()
        return task_id

    def history(self) -> list[dict]:
        with self._lock:
            return [dict(entry) for entry in self._history]

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight tasks; return True when none are left running."""
        with self._lock:
            threads = list(self._threads.values())
        for thread in threads:
            thread.join(timeout)
        with self._lock:
            return not any(t.is_alive() for t in self._threads.values())

    def shutdown(self, timeout: Optional[float] = 10.0) -> None:
        with self._lock:
            self._closed = True
        if not self.join(timeout):
            logger.warning("task_dispatcher_shutdown pending tasks still running")

    def _run(self, *, task_id: str, name: str, fn: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        entry = {
            "task_id": task_id,
            "name": name,
            "status": "running",
            "started_at": datetime.now(timezone.utc).isoformat(),
            "finished_at": None,
            "error": None,
        }
        try:
            fn(*args, **kwargs)
            entry["status"] = "succeeded"
            logger.info("task_done name=%s task_id=%s", name, task_id)
        except Exception as exc:
            entry["status"] = "failed"
            entry["error"] = str(exc)
            logger.warning("task_failed name=%s task_id=%s error=%s", name, task_id, exc)
        finally:
            entry["finished_at"] = datetime.now(timezone.utc).isoformat()
            with self._lock:
                self._history.append(entry)
                self._threads.pop(task_id, None)
