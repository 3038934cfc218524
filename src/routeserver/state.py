"""
=============================================================================
SHARED APPLICATION STATE
=============================================================================

State created once at startup and shared by every request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   HTTPServer (owns)                                                 │
    │      └── SharedState                                                │
    │            ├── app_name   read-only                                 │
    │            └── counter    mutable, guarded by a lock                │
    │                                                                      │
    │   Worker-1 ─┐                                                       │
    │   Worker-2 ─┼──► ctx.state.counter.increment()   (one at a time)    │
    │   Worker-3 ─┘                                                       │
    └─────────────────────────────────────────────────────────────────────┘

The server hands the same SharedState instance to each RequestContext.
Only the counter is mutable, so only the counter needs a lock. The
critical section is acquire, read-modify-write, release. No I/O happens
while the lock is held.

=============================================================================
"""

from dataclasses import dataclass, field
import threading


class Counter:
    """Thread-safe monotonically increasing counter."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Add one and return the new value."""
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class SharedState:
    """
    Process-wide state for handlers.

    Frozen so handlers cannot rebind fields; mutation goes through the
    counter's own lock.
    """

    app_name: str = "routeserver"
    counter: Counter = field(default_factory=Counter)
