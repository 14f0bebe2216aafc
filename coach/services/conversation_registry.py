"""Conversation Registry: owns one ConversationSession per live conversation.

Invariants:
    - A conversation is visible only to the user who created it
    - Unknown and foreign ids look the same to callers (ResourceNotFoundError)
    - discard() stops the session's timer and transport before dropping it
    - Each session gets its own timer and transport; nothing is shared between them
    - create() evicts the same user's Completed/Failed conversations first

Design Decisions:
    - Held on app.state (built in the lifespan), not as a module global
    - In-process dict: conversations are tied to a live browser connection,
      so they do not outlive the process
"""

import asyncio
import logging
from collections.abc import Callable
from uuid import UUID

from coach.core.auth_context import AuthContext
from coach.core.domain_types import TERMINAL_PHASES
from coach.core.errors import ResourceNotFoundError
from coach.core.repository_protocols import (
    EvaluationPersistence,
    TranscriptScorer,
    TranscriptStore,
    VoiceTransport,
)
from coach.services.conversation_session import ConversationSession
from coach.services.conversation_timer import ConversationTimer
from coach.services.recovery_policy import RecoveryPolicy

logger = logging.getLogger(__name__)


class ConversationFactory:
    """Wires a new ConversationSession with shared collaborators and fresh per-session ones."""

    def __init__(
        self,
        *,
        scorer: TranscriptScorer,
        persistence: EvaluationPersistence,
        transcript_store: TranscriptStore,
        transport_factory: Callable[[str], VoiceTransport],
        warning_seconds: float,
        export_attempts: int = 3,
        export_delay_ms: int = 500,
    ):
        self.scorer = scorer
        self.persistence = persistence
        self.transcript_store = transcript_store
        self.transport_factory = transport_factory
        self.warning_seconds = warning_seconds
        self.export_attempts = export_attempts
        self.export_delay_ms = export_delay_ms

    def __call__(self, auth: AuthContext, session_id: str, agent_id: str) -> ConversationSession:
        return ConversationSession(
            auth=auth,
            session_id=session_id,
            transport=self.transport_factory(agent_id),
            scorer=self.scorer,
            persistence=self.persistence,
            transcript_store=self.transcript_store,
            timer=ConversationTimer(asyncio.get_running_loop(), self.warning_seconds),
            export_policy=RecoveryPolicy(
                self.export_attempts, self.export_delay_ms, name="transcript export",
            ),
        )


class ConversationRegistry:
    def __init__(self, factory: Callable[[AuthContext, str, str], ConversationSession]):
        self._factory = factory
        self._sessions: dict[UUID, ConversationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(
        self, auth: AuthContext, session_id: str, agent_id: str,
    ) -> ConversationSession:
        await self._evict_finished(auth)
        session = self._factory(auth, session_id, agent_id)
        self._sessions[session.id] = session
        logger.info(
            f"Conversation created for session {session_id}",
            extra={"conversation_id": str(session.id)},
        )
        return session

    def get(self, conversation_id: UUID, auth: AuthContext) -> ConversationSession:
        session = self._sessions.get(conversation_id)
        if session is None or not session.auth.owns(auth):
            raise ResourceNotFoundError("Conversation", str(conversation_id))
        return session

    async def discard(self, conversation_id: UUID, auth: AuthContext) -> None:
        session = self.get(conversation_id, auth)
        del self._sessions[conversation_id]
        await session.discard()
        logger.info(
            "Conversation discarded",
            extra={"conversation_id": str(conversation_id)},
        )

    async def _evict_finished(self, auth: AuthContext) -> None:
        finished = [
            session for session in self._sessions.values()
            if session.auth.owns(auth) and session.state.phase in TERMINAL_PHASES
        ]
        for session in finished:
            del self._sessions[session.id]
            await session.discard()
            logger.info(
                "Finished conversation evicted",
                extra={"conversation_id": str(session.id)},
            )

    async def close(self) -> None:
        """Shutdown: discard every conversation still held."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.discard()
