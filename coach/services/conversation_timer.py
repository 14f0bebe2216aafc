"""Conversation Timer: one cancellable time-limit warning per arm.

Invariants:
    - At most one pending warning per timer instance; arm() cancels the previous one
    - The warning fires at start_time + delay_seconds on the loop's clock
    - cancel() is idempotent, including after the warning has fired
    - The timer never touches session state, it only calls on_warn

Design Decisions:
    - Scheduling goes through loop.time()/loop.call_at(), so a fake loop with a
      manual clock drives it in tests
"""

import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class _Handle(Protocol):
    def cancel(self) -> None: ...


class SchedulingLoop(Protocol):
    """The subset of asyncio.AbstractEventLoop the timer relies on."""
    def time(self) -> float: ...
    def call_at(self, when: float, callback: Callable[[], None]) -> _Handle: ...


class ConversationTimer:
    """Schedules the time-limit warning relative to conversation start."""

    def __init__(self, loop: SchedulingLoop, delay_seconds: float):
        self._loop = loop
        self.delay_seconds = delay_seconds
        self._handle: _Handle | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(
        self, on_warn: Callable[[], None], start_time: float | None = None,
    ) -> Callable[[], None]:
        """Schedule on_warn at start_time + delay. Returns this arm's cancel()."""
        self.cancel()
        self._generation += 1
        generation = self._generation
        start = self._loop.time() if start_time is None else start_time

        def _fire() -> None:
            if generation != self._generation or self._handle is None:
                return
            self._handle = None
            on_warn()

        self._handle = self._loop.call_at(start + self.delay_seconds, _fire)
        logger.debug(
            "Time-limit warning armed",
            extra={"fires_at": start + self.delay_seconds},
        )

        def _cancel() -> None:
            if generation == self._generation:
                self.cancel()

        return _cancel

    def cancel(self) -> None:
        """Cancel the pending warning, if any. Safe to call repeatedly."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
