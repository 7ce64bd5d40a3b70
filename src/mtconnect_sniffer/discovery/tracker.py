"""
Completion tracking for a discovery run

Counts sent and received reachability checks and protocol probes and fires
the completion callback exactly once, when every sent operation has been
received and the initial fan-out has been closed.
"""

import time
import logging
import threading
from typing import Callable, Optional

from .models import RunState

logger = logging.getLogger(__name__)


class CompletionTracker:
    """Per-run counters guarded by a single lock"""

    def __init__(self, on_complete: Callable[[int], None], clock: Callable[[], float] = time.monotonic):
        self._on_complete = on_complete
        self._clock = clock
        self._lock = threading.Lock()

        self._sent_reachability = 0
        self._received_reachability = 0
        self._sent_probe = 0
        self._received_probe = 0

        # Open until start() has issued every reachability check
        self._dispatching = True
        self._fired = False

        self._start_time = clock()
        self._elapsed_ms: Optional[int] = None

    # ================== COUNTERS ==================

    def record_reachability_sent(self):
        self._transition("_sent_reachability")

    def record_reachability_received(self):
        self._transition("_received_reachability")

    def record_probe_sent(self):
        self._transition("_sent_probe")

    def record_probe_received(self):
        self._transition("_received_probe")

    def close_dispatch(self):
        """Mark the initial fan-out finished; completes at once if nothing is outstanding"""
        self._transition(None)

    # ================== STATE ==================

    @property
    def completed(self) -> bool:
        with self._lock:
            return self._fired

    @property
    def elapsed_ms(self) -> int:
        """Elapsed time of the run; frozen once the run completed"""
        with self._lock:
            return self._elapsed_locked()

    def snapshot(self) -> RunState:
        with self._lock:
            return RunState(
                sent_reachability=self._sent_reachability,
                received_reachability=self._received_reachability,
                sent_probe=self._sent_probe,
                received_probe=self._received_probe,
                elapsed_ms=self._elapsed_locked(),
                completed=self._fired
            )

    # ================== INTERNALS ==================

    def _elapsed_locked(self) -> int:
        if self._elapsed_ms is not None:
            return self._elapsed_ms
        return max(0, int((self._clock() - self._start_time) * 1000))

    def _transition(self, counter: Optional[str]):
        with self._lock:
            if counter is None:
                self._dispatching = False
            else:
                setattr(self, counter, getattr(self, counter) + 1)

            if self._fired or not self._is_quiescent_locked():
                return

            self._fired = True
            self._elapsed_ms = self._elapsed_locked()
            elapsed = self._elapsed_ms

        # Callback runs outside the lock so listeners may read the snapshot
        self._on_complete(elapsed)

    def _is_quiescent_locked(self) -> bool:
        if self._dispatching:
            return False
        if self._received_reachability > self._sent_reachability or self._received_probe > self._sent_probe:
            logger.warning("Received more completions than requests sent")
        return (self._received_reachability >= self._sent_reachability
                and self._received_probe >= self._sent_probe)
