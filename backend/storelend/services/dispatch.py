# Overview: Runs notification/audit work after a borrow transition has committed.

"""
Side effects never report failure to the caller. Each effect is isolated:
an exception is logged with structlog, the session is rolled back, and the
next effect still runs.

Modes:
- inline: run immediately in the calling thread (after its commit)
- background: run on a thread pool inside a fresh app context; the caller
  does not wait
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable

from flask import Flask, current_app

from ..extensions import db
from storelend.logging_config import get_logger

logger = get_logger(__name__)

MODE_INLINE = "inline"
MODE_BACKGROUND = "background"
VALID_MODES = {MODE_INLINE, MODE_BACKGROUND}


class SideEffectDispatcher:
    def __init__(self, mode: str = MODE_INLINE, max_workers: int = 4):
        if mode not in VALID_MODES:
            raise ValueError(f"Unknown side effect mode: {mode}")
        self.mode = mode
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, name: str, func: Callable[[], None], **context) -> None:
        """Schedule `func`; never raises on behalf of `func`."""
        if self.mode == MODE_INLINE:
            self._run(name, func, context)
            return

        app = current_app._get_current_object()
        future = self._get_executor().submit(self._run_in_app, app, name, func, context)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def drain(self, timeout: float | None = None) -> None:
        """Block until background effects submitted so far have finished."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self, wait_for_pending: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait_for_pending)
            self._executor = None

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="borrow-effects",
                )
            return self._executor

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _run_in_app(self, app: Flask, name: str, func: Callable[[], None], context: dict) -> None:
        with app.app_context():
            self._run(name, func, context)

    def _run(self, name: str, func: Callable[[], None], context: dict) -> None:
        try:
            func()
        except Exception:
            db.session.rollback()
            logger.exception("Borrow side effect failed", effect=name, **context)
        else:
            logger.debug("Borrow side effect delivered", effect=name, **context)
