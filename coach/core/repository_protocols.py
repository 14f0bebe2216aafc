"""Boundary Protocols: contracts between the conversation core and its collaborators.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Every external service is reached through one of these Protocols
    - Implementations are provided by the shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no base class
    - Boundary methods are async because implementations do IO; core functions
      that consume their results stay synchronous
"""

from collections.abc import Sequence
from typing import Protocol

from coach.core.evaluation import EvaluationMetrics
from coach.core.message import Message


class PermissionSource(Protocol):
    """Microphone/recording capability, read once per request_start."""
    def has_permission(self) -> bool: ...


class VoiceTransport(Protocol):
    """Speech-to-speech transport. Delivers events back through the session's methods."""
    async def begin(self) -> dict: ...
    async def end(self) -> None: ...


class TranscriptScorer(Protocol):
    """Opaque external scorer: message log + timing metadata in, metrics out."""
    async def score(
        self, messages: Sequence[Message], transcript: str, timing: dict,
    ) -> EvaluationMetrics: ...


class TranscriptStore(Protocol):
    """File-save collaborator for exported transcripts. Returns a retrievable URL."""
    async def upload(
        self, file_name: str, content: str, owner: str | None = None,
    ) -> str: ...


class EvaluationPersistence(Protocol):
    """Participation record persistence.

    save() is idempotent: retrying with the same id and metrics overwrites
    the same row, it never creates a second one.
    """
    async def create_participation(
        self, session_id: str, user_id: str,
        transcript_url: str | None, reflection: str | None,
    ) -> str: ...
    async def save(self, user_session_id: str, metrics: EvaluationMetrics) -> None: ...
    async def save_reflection(self, user_session_id: str, reflection: str) -> None: ...
