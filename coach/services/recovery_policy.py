"""Recovery Policy: supervises a fallible async operation and self-heals after a bounded delay.

Invariants:
    - run() never raises for Exception subclasses: it returns an Outcome (value or fault)
    - At most max_attempts calls per run(); delay between attempts is fixed
    - CancelledError (BaseException) passes through untouched
    - A degraded Outcome is still usable: callers keep working without the value
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a supervised run: exactly one of value/fault is meaningful."""
    value: T | None = None
    fault: Exception | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.fault is None


class RecoveryPolicy:
    """Retry wrapper with a fixed pause between attempts."""

    def __init__(self, max_attempts: int = 3, delay_ms: int = 500, name: str = "operation"):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms
        self.name = name

    async def run(self, operation: Callable[[], Awaitable[T]]) -> Outcome[T]:
        fault: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                value = await operation()
                return Outcome(value=value, attempts=attempt)
            except Exception as e:
                fault = e
                logger.warning(
                    f"{self.name} failed (attempt {attempt}/{self.max_attempts}): {e}",
                    extra={"attempt": attempt},
                )
                if attempt < self.max_attempts and self.delay_ms > 0:
                    await asyncio.sleep(self.delay_ms / 1000)
        logger.error(f"{self.name} degraded after {self.max_attempts} attempts")
        return Outcome(fault=fault, attempts=self.max_attempts)
