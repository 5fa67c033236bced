"""
Main-thread dispatch queue.

Host-side effects (asset refresh, UI) must happen on one designated
thread.  Workers hand them over through this queue; the designated
thread drains it once per tick.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque, Optional

from protosync.config import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

Action = Callable[[], None]


class MainThreadQueue:
    """FIFO of zero-argument actions: many producers, one consumer."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._actions: Deque[Action] = deque()

    def enqueue(self, action: Action) -> None:
        with self._lock:
            self._actions.append(action)

    def _pop(self) -> Optional[Action]:
        with self._lock:
            return self._actions.popleft() if self._actions else None

    def drain(self) -> int:
        """
        Run queued actions in order until the queue is empty.

        Must only be called from the designated thread.  An action that
        raises stops the drain and the exception propagates; whatever is
        still queued runs on the next tick.
        """
        ran = 0
        while True:
            action = self._pop()
            if action is None:
                return ran
            action()
            ran += 1

    def clear(self) -> None:
        with self._lock:
            self._actions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)


#: Process-wide queue shared by every trigger.
main_thread_queue = MainThreadQueue()


def queue_on_main_thread(action: Action) -> None:
    main_thread_queue.enqueue(action)


def run_tick_loop(
    stop_event: threading.Event,
    queue: MainThreadQueue = main_thread_queue,
    interval: float = TICK_INTERVAL_SECONDS,
) -> None:
    """Drain *queue* every *interval* seconds until *stop_event* is set."""
    logger.debug("Tick loop started on %s", threading.current_thread().name)
    while not stop_event.is_set():
        queue.drain()
        stop_event.wait(interval)
    queue.drain()
