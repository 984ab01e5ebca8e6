import time
from typing import Callable, Optional

from rps_helper import socketio


class TimerHandle:
    __slots__ = ('session_id', 'waiting_status', 'deadline', 'cancelled')

    def __init__(self, session_id: int, waiting_status: str, deadline: float):
        self.session_id = session_id
        self.waiting_status = waiting_status
        self.deadline = deadline
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self):
        return f"<TimerHandle session={self.session_id} status={self.waiting_status} cancelled={self.cancelled}>"


class TimeoutSupervisor:
    """One deadline per claimed session.

    The handle lives on the ``ActiveSession``; arming replaces any previous
    handle. Cancellation is a flag, so a task that already woke up sees it
    and aborts. ``on_expire(handle)`` repeats the session/status check
    before forcing a terminal transition.
    """

    def __init__(self, app, on_expire: Callable[["TimerHandle"], None]):
        self.app = app
        self._on_expire = on_expire

    def _timeout(self) -> float:
        return float(self.app.config.get('TURN_TIMEOUT_SEC', 45))

    def arm(self, active, waiting_status: str, deadline: Optional[float] = None) -> TimerHandle:
        self.disarm(active)
        if deadline is None:
            deadline = time.time() + self._timeout()
        handle = TimerHandle(active.session_id, waiting_status, deadline)
        active.timer = handle
        self.app.logger.info(
            f"[timer-set] session={active.session_id} status={waiting_status} in={max(0.0, deadline - time.time()):.1f}s"
        )
        # Tests drive expiry through fire()
        if self.app.config.get('TESTING') and not self.app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
            return handle
        socketio.start_background_task(self._worker, handle)
        return handle

    def disarm(self, active) -> None:
        handle = active.timer
        active.timer = None
        if handle is not None and not handle.cancelled:
            handle.cancel()
            self.app.logger.info(f"[timer-clear] session={handle.session_id} status={handle.waiting_status}")

    def _worker(self, handle: TimerHandle) -> None:
        while not handle.cancelled:
            remaining = handle.deadline - time.time()
            if remaining <= 0:
                break
            socketio.sleep(min(remaining, 1.0))
        self.fire(handle)

    def fire(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            self.app.logger.info(f"[timer-abort] session={handle.session_id} status={handle.waiting_status} cancelled")
            return
        self.app.logger.info(f"[timer-fire] session={handle.session_id} status={handle.waiting_status}")
        self._on_expire(handle)
