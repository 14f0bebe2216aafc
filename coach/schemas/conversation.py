"""Conversation Schemas: request/response models for the conversation API.

Invariants:
    - ConversationCreate.session_id/agent_id: 1-100 chars, stripped, non-empty
    - MessageEvent.payload is passed to the normalizer untouched (any JSON value)
    - ReflectionSubmit.reflection: 1-5000 chars, stripped, non-empty
    - ConversationResponse mirrors ConversationSession.to_snapshot()
"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from coach.core.domain_types import ConnectionStatus, ConversationPhase, MessageSource


def _strip_required(v: str, name: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{name} cannot be empty or whitespace")
    return v


class ConversationCreate(BaseModel):
    """Practice session the conversation belongs to, and the voice agent to talk to."""
    session_id: str = Field(min_length=1, max_length=100)
    agent_id: str = Field(min_length=1, max_length=100)

    @field_validator("session_id", "agent_id")
    @classmethod
    def strip_ids(cls, v: str, info: ValidationInfo) -> str:
        return _strip_required(v, info.field_name)


class StartRequest(BaseModel):
    """Client-reported microphone permission for this attempt."""
    permission_granted: bool


class MessageEvent(BaseModel):
    payload: Any = None


class TransportErrorEvent(BaseModel):
    reason: str = Field("connection lost", max_length=1000)


class ReflectionSubmit(BaseModel):
    reflection: str = Field(min_length=1, max_length=5000)

    @field_validator("reflection")
    @classmethod
    def strip_reflection(cls, v: str) -> str:
        return _strip_required(v, "reflection")


class MessageResponse(BaseModel):
    id: str
    text: str
    source: MessageSource
    timestamp: str
    speaker_label: str | None = None
    color_tag: str


class EvaluationResponse(BaseModel):
    strengths: list[str]
    improvements: list[str]
    tips: list[str]
    big_picture_thinking: list[str] = []
    words_per_min: float | None = None
    filler_words_per_min: float | None = None
    participation_percentage: float | None = None
    duration: str | None = None
    pisa_shared_understanding: float | None = None
    pisa_problem_solving_action: float | None = None
    pisa_team_organization: float | None = None
    overall_score: float | None = None
    detailed_feedback: str | None = None


class ConversationResponse(BaseModel):
    """Public-facing conversation state."""
    id: UUID
    session_id: str
    user_id: str
    connection: dict | None = None
    phase: ConversationPhase
    connection_status: ConnectionStatus
    has_permission: bool
    messages: list[MessageResponse]
    is_censored: bool
    conversation_start_time: str | None = None
    conversation_end_time: str | None = None
    show_time_limit_warning: bool
    is_ending: bool
    is_evaluating: bool
    is_saving: bool
    transcript_url: str | None = None
    user_session_id: str | None = None
    evaluation_data: EvaluationResponse | None = None
    show_reflection_modal: bool
    is_reflection_pending: bool
    show_evaluation_modal: bool
    reflection: str | None = None
    error_code: str | None = None
    error_message: str = ""


class MessageAccepted(BaseModel):
    """accepted=False means the event arrived in a phase that drops it."""
    accepted: bool
    message: MessageResponse | None = None
