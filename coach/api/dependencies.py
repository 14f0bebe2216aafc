"""Request Dependencies: per-request AuthContext and access to app-scoped services.

Invariants:
    - Every conversation route builds its own AuthContext from the request headers
    - Registry and transcript store come from app.state (set in the lifespan)
"""

from uuid import UUID

from fastapi import Depends, Header, Request

from coach.core.auth_context import AuthContext, build_auth_context
from coach.infrastructure.transcript_store import LocalTranscriptStore
from coach.services.conversation_registry import ConversationRegistry
from coach.services.conversation_session import ConversationSession


async def get_auth(
    authorization: str | None = Header(None),
    x_user_id: str | None = Header(None),
) -> AuthContext:
    return build_auth_context(authorization, x_user_id)


def get_registry(request: Request) -> ConversationRegistry:
    return request.app.state.registry


def get_transcript_store(request: Request) -> LocalTranscriptStore:
    return request.app.state.transcript_store


async def get_conversation(
    conversation_id: UUID,
    auth: AuthContext = Depends(get_auth),
    registry: ConversationRegistry = Depends(get_registry),
) -> ConversationSession:
    """Conversation owned by the caller, or ResourceNotFoundError."""
    return registry.get(conversation_id, auth)
