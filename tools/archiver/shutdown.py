"""Cooperative shutdown – stop the archive loop only at safe boundaries."""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType
from typing import Any

logger = logging.getLogger("archiver.shutdown")

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """One cancellation event, observed at two checkpoints.

    ``idle()`` is the long wait between polls: a stop request ends it at
    once and the loop returns.  ``proceed()`` is checked before each post:
    a stop request lets the post in progress finish and prevents the
    next one, the next poll and the next sleep.
    """

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._idle = False
        self._previous: dict[int, Any] = {}

    # ── checkpoints ──────────────────────────────────────────────

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    @property
    def idle_waiting(self) -> bool:
        return self._idle

    def proceed(self) -> bool:
        """Post boundary.  False once a stop has been requested."""
        return not self._stop.is_set()

    def idle(self, seconds: float) -> bool:
        """Inter-poll wait.  Returns True if it was cut short by a stop request."""
        self._idle = True
        try:
            return self._stop.wait(seconds)
        finally:
            self._idle = False

    def pause(self, seconds: float) -> None:
        """Short pacing wait between requests; also ends early on a stop."""
        self._stop.wait(seconds)

    def request_stop(self, reason: str = "") -> None:
        if self._idle:
            logger.info("Stop requested%s while idle, exiting now", f" ({reason})" if reason else "")
        else:
            logger.info(
                "Stop requested%s, finishing the current post",
                f" ({reason})" if reason else "",
            )
        self._stop.set()

    # ── signal wiring ────────────────────────────────────────────

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        self.request_stop(signal.Signals(signum).name)

    def install(self) -> None:
        for sig in HANDLED_SIGNALS:
            self._previous[sig] = signal.signal(sig, self._handle_signal)

    def uninstall(self) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()

    def __enter__(self) -> ShutdownCoordinator:
        self.install()
        return self

    def __exit__(self, *args: object) -> None:
        self.uninstall()
