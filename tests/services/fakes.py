"""Test Fakes: hand-written collaborators for ConversationSession tests.

Invariants:
    - FakeLoop implements only time()/call_at(); advance() fires due callbacks in order
    - Every fake records its calls so tests can assert exactly-once side effects
    - Failures are scripted with `fail_times` counters, never randomness

Design Decisions:
    - Flat classes, no mocks library: explicit and easy to debug
    - Gate (asyncio.Event) lets a test hold a collaborator mid-await to inject
      concurrent events
"""

import asyncio
import itertools
from datetime import datetime, timedelta

from coach.core.auth_context import AuthContext
from coach.core.errors import TransportFailureError
from coach.core.evaluation import EvaluationMetrics
from coach.services.conversation_session import ConversationSession
from coach.services.conversation_timer import ConversationTimer
from coach.services.recovery_policy import RecoveryPolicy


# -- Clock & loop ---------------------------------------------------------------


class FakeClock:
    """Wall clock that moves only when told to."""

    def __init__(self, start: datetime = datetime(2026, 10, 19, 14, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class _Handle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Manual-time stand-in for the asyncio loop's scheduling surface."""

    def __init__(self):
        self._now = 0.0
        self._handles: list[_Handle] = []

    def time(self) -> float:
        return self._now

    def call_at(self, when, callback):
        handle = _Handle(when, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> list[_Handle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        self._now += seconds
        due = sorted(
            (h for h in self._handles if not h.cancelled and h.when <= self._now),
            key=lambda h: h.when,
        )
        for handle in due:
            self._handles.remove(handle)
            if not handle.cancelled:
                handle.callback()


# -- Collaborators --------------------------------------------------------------


class GrantedPermission:
    def has_permission(self) -> bool:
        return True


class DeniedPermission:
    def has_permission(self) -> bool:
        return False


class FakeTransport:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.begin_calls = 0
        self.end_calls = 0

    async def begin(self) -> dict:
        self.begin_calls += 1
        if self.fail:
            raise TransportFailureError("agent unreachable")
        return {"signed_url": "wss://voice.test/abc", "agent_id": "agent-1"}

    async def end(self) -> None:
        self.end_calls += 1


def sample_metrics(**overrides) -> EvaluationMetrics:
    fields = dict(
        strengths=("You asked clarifying questions",),
        improvements=("Invite quieter teammates",),
        tips=('Try: "What do you think?"',),
        words_per_min=95.0,
        duration="4 min 30 sec",
        pisa_shared_understanding=3,
    )
    fields.update(overrides)
    return EvaluationMetrics(**fields)


class FakeScorer:
    def __init__(self, fail_times: int = 0, metrics: EvaluationMetrics | None = None):
        self.fail_times = fail_times
        self.metrics = metrics or sample_metrics()
        self.calls: list[dict] = []
        self.gate: asyncio.Event | None = None

    async def score(self, messages, transcript, timing) -> EvaluationMetrics:
        self.calls.append({"messages": messages, "transcript": transcript, "timing": timing})
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("scorer unavailable")
        return self.metrics


class FakePersistence:
    def __init__(
        self, fail_saves: int = 0, fail_creates: int = 0, fail_reflections: int = 0,
    ):
        self.fail_saves = fail_saves
        self.fail_creates = fail_creates
        self.fail_reflections = fail_reflections
        self.created: list[dict] = []
        self.saves: list[tuple[str, EvaluationMetrics]] = []
        self.reflections: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None
        self.create_gate: asyncio.Event | None = None
        self.create_calls = 0
        self._ids = itertools.count(1)

    async def create_participation(self, session_id, user_id, transcript_url, reflection) -> str:
        self.create_calls += 1
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.fail_creates > 0:
            self.fail_creates -= 1
            raise RuntimeError("insert failed")
        user_session_id = f"ps-{next(self._ids)}"
        self.created.append({
            "id": user_session_id,
            "session_id": session_id,
            "user_id": user_id,
            "transcript_url": transcript_url,
            "reflection": reflection,
        })
        return user_session_id

    async def save(self, user_session_id, metrics) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_saves > 0:
            self.fail_saves -= 1
            raise RuntimeError("database unavailable")
        self.saves.append((user_session_id, metrics))

    async def save_reflection(self, user_session_id, reflection) -> None:
        if self.fail_reflections > 0:
            self.fail_reflections -= 1
            raise RuntimeError("reflection write failed")
        self.reflections.append((user_session_id, reflection))


class FakeStore:
    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.uploads: list[tuple[str, str]] = []
        self.owners: list[str | None] = []

    async def upload(self, file_name, content, owner=None) -> str:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise OSError("disk full")
        self.uploads.append((file_name, content))
        self.owners.append(owner)
        return f"/transcripts/{file_name}"


# -- Wiring ---------------------------------------------------------------------


class Harness:
    """A ConversationSession plus every fake it talks to."""

    def __init__(
        self,
        *,
        transport: FakeTransport | None = None,
        scorer: FakeScorer | None = None,
        persistence: FakePersistence | None = None,
        store: FakeStore | None = None,
        warning_seconds: float = 300,
    ):
        self.loop = FakeLoop()
        self.clock = FakeClock()
        self.transport = transport or FakeTransport()
        self.scorer = scorer or FakeScorer()
        self.persistence = persistence or FakePersistence()
        self.store = store or FakeStore()
        self.session = ConversationSession(
            auth=AuthContext(user_id="user-1", access_token="token"),
            session_id="practice-1",
            transport=self.transport,
            scorer=self.scorer,
            persistence=self.persistence,
            transcript_store=self.store,
            timer=ConversationTimer(self.loop, warning_seconds),
            export_policy=RecoveryPolicy(max_attempts=2, delay_ms=0, name="transcript export"),
            clock=self.clock,
        )

    @property
    def state(self):
        return self.session.state

    async def go_live(self) -> None:
        await self.session.request_start(GrantedPermission())
        self.session.transport_connected()
