"""Conversation Routes: feed client and transport events into a ConversationSession.

Invariants:
    - Each route maps to exactly one session event or query
    - Routes never touch ConversationState directly
    - Rejected commands surface as 409 (InvalidTransitionError); dropped
      events return 200 with accepted=False
    - The end sequence runs inside the request: the response carries its outcome
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse, Response

from coach.api.dependencies import get_auth, get_conversation, get_registry
from coach.core.auth_context import AuthContext
from coach.core.format_transcript import transcript_filename
from coach.infrastructure.voice_transport import ReportedPermission
from coach.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    MessageAccepted,
    MessageEvent,
    ReflectionSubmit,
    StartRequest,
    TransportErrorEvent,
)
from coach.services.conversation_registry import ConversationRegistry
from coach.services.conversation_session import ConversationSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


def _snapshot(conversation: ConversationSession) -> ConversationResponse:
    return ConversationResponse.model_validate(conversation.to_snapshot())


# ─── Lifecycle ───────────────────────────────────────────────────

@router.post(
    "", response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    body: ConversationCreate,
    auth: AuthContext = Depends(get_auth),
    registry: ConversationRegistry = Depends(get_registry),
):
    """Create an idle conversation for one practice session."""
    conversation = await registry.create(auth, body.session_id, body.agent_id)
    return _snapshot(conversation)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation_state(
    conversation: ConversationSession = Depends(get_conversation),
):
    return _snapshot(conversation)


@router.post("/{conversation_id}/start", response_model=ConversationResponse)
async def start_conversation(
    body: StartRequest,
    conversation: ConversationSession = Depends(get_conversation),
):
    """Idle -> Connecting. The response carries the transport connection descriptor."""
    await conversation.request_start(ReportedPermission(body.permission_granted))
    return _snapshot(conversation)


@router.post("/{conversation_id}/connected", response_model=ConversationResponse)
async def transport_connected(
    conversation: ConversationSession = Depends(get_conversation),
):
    conversation.transport_connected()
    return _snapshot(conversation)


@router.post("/{conversation_id}/end", response_model=ConversationResponse)
async def end_conversation(
    conversation: ConversationSession = Depends(get_conversation),
):
    """End, transcribe, score and persist. Failures leave the session retryable."""
    await conversation.request_end()
    return _snapshot(conversation)


@router.post("/{conversation_id}/retry", response_model=ConversationResponse)
async def retry_end_sequence(
    conversation: ConversationSession = Depends(get_conversation),
):
    await conversation.retry()
    return _snapshot(conversation)


@router.post("/{conversation_id}/reset", response_model=ConversationResponse)
async def reset_conversation(
    conversation: ConversationSession = Depends(get_conversation),
):
    conversation.reset()
    return _snapshot(conversation)


@router.delete(
    "/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT,
)
async def discard_conversation(
    conversation: ConversationSession = Depends(get_conversation),
    auth: AuthContext = Depends(get_auth),
    registry: ConversationRegistry = Depends(get_registry),
):
    await registry.discard(conversation.id, auth)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Transport events ────────────────────────────────────────────

@router.post("/{conversation_id}/messages", response_model=MessageAccepted)
async def receive_message(
    body: MessageEvent,
    conversation: ConversationSession = Depends(get_conversation),
):
    message = conversation.message_received(body.payload)
    if message is None:
        return MessageAccepted(accepted=False)
    return MessageAccepted(accepted=True, message=message.to_dict())


@router.post("/{conversation_id}/censorship", response_model=ConversationResponse)
async def flag_censorship(
    conversation: ConversationSession = Depends(get_conversation),
):
    conversation.censorship_flagged()
    return _snapshot(conversation)


@router.post("/{conversation_id}/transport-error", response_model=ConversationResponse)
async def report_transport_error(
    body: TransportErrorEvent,
    conversation: ConversationSession = Depends(get_conversation),
):
    conversation.transport_failed(body.reason)
    return _snapshot(conversation)


# ─── User actions ────────────────────────────────────────────────

@router.post("/{conversation_id}/warning/dismiss", response_model=ConversationResponse)
async def dismiss_time_limit_warning(
    conversation: ConversationSession = Depends(get_conversation),
):
    conversation.dismiss_warning()
    return _snapshot(conversation)


@router.post("/{conversation_id}/reflection", response_model=ConversationResponse)
async def submit_reflection(
    body: ReflectionSubmit,
    conversation: ConversationSession = Depends(get_conversation),
):
    await conversation.submit_reflection(body.reflection)
    return _snapshot(conversation)


@router.get("/{conversation_id}/transcript", response_class=PlainTextResponse)
async def download_transcript(
    conversation: ConversationSession = Depends(get_conversation),
):
    """Plain-text transcript; the final one once the conversation has ended."""
    content = conversation.state.transcript or conversation.current_transcript(datetime.now())
    file_name = transcript_filename(conversation.session_id, conversation.auth.user_id)
    return PlainTextResponse(
        content,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
