"""Conversation request schemas: trimming and bounds.

Invariants:
    - session_id/agent_id are stripped and must stay non-empty
    - reflection max length is 5000 chars
    - MessageEvent passes any JSON payload through untouched
"""

import pytest
from pydantic import ValidationError

from coach.schemas.conversation import (
    ConversationCreate,
    MessageEvent,
    ReflectionSubmit,
    TransportErrorEvent,
)


def test_create_strips_ids():
    body = ConversationCreate(session_id="  practice-1 ", agent_id=" agent ")
    assert body.session_id == "practice-1"
    assert body.agent_id == "agent"


@pytest.mark.parametrize("field", ["session_id", "agent_id"])
def test_create_rejects_whitespace_ids(field):
    data = {"session_id": "p", "agent_id": "a", field: "   "}
    with pytest.raises(ValidationError, match=field):
        ConversationCreate(**data)


def test_create_rejects_long_ids():
    with pytest.raises(ValidationError):
        ConversationCreate(session_id="x" * 101, agent_id="a")


def test_reflection_is_stripped():
    assert ReflectionSubmit(reflection="  next time  ").reflection == "next time"


def test_reflection_max_length_enforced():
    with pytest.raises(ValidationError):
        ReflectionSubmit(reflection="x" * 5001)


def test_message_event_accepts_any_payload():
    assert MessageEvent(payload=[1, "two"]).payload == [1, "two"]
    assert MessageEvent().payload is None


def test_transport_error_defaults_reason():
    assert TransportErrorEvent().reason == "connection lost"
