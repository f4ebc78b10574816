"""One-shot timers for the round state machine.

Timers run as Socket.IO background tasks, so they follow whatever async
mode the server picked (eventlet, gevent or threads). Cancellation only
marks a handle; a task that is already past its sleep can still fire,
which is why RoundScheduler also checks its generation token.
"""

import logging
import threading

from dontblink import socketio

logger = logging.getLogger(__name__)


class TimerHandle:
    def __init__(self, delay_ms: float, callback):
        self.delay_ms = delay_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class SocketIOTimers:
    """call_later() on top of socketio.start_background_task.

    `lock` serialises callbacks with the socket handlers that own the
    same session.
    """

    def __init__(self, lock=None):
        self.lock = lock or threading.RLock()

    def call_later(self, delay_ms: float, callback) -> TimerHandle:
        handle = TimerHandle(delay_ms, callback)
        socketio.start_background_task(self._run, handle)
        return handle

    def _run(self, handle: TimerHandle) -> None:
        socketio.sleep(max(0.0, handle.delay_ms) / 1000.0)
        with self.lock:
            if handle.cancelled:
                return
            try:
                handle.callback()
            except Exception:
                logger.exception(f"[timer-error] delay={handle.delay_ms}ms callback failed")
