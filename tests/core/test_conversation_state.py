"""Conversation State: tests for the pure lifecycle aggregate.

Tests cover:
    - Fresh state defaults and derived connection status
    - Ending/Saving flag coupling
    - show_evaluation_modal requires evaluation_data
    - user_session_id assigned at most once
    - Failure bookkeeping and snapshot serialization
"""

from datetime import datetime

import pytest

from coach.core.conversation_state import ConversationState
from coach.core.domain_types import ConnectionStatus, ConversationPhase
from coach.core.evaluation import EvaluationMetrics

NOW = datetime(2026, 10, 19, 14, 5, 0)


def _metrics():
    return EvaluationMetrics(strengths=("a",), improvements=("b",), tips=("c",))


def test_new_state_is_idle_and_disconnected():
    state = ConversationState()
    assert state.phase == ConversationPhase.IDLE
    assert state.connection_status == ConnectionStatus.DISCONNECTED
    assert state.messages == []
    assert state.evaluation_data is None
    assert not state.show_evaluation_modal


def test_connection_status_follows_phase():
    state = ConversationState()
    state.mark_connecting()
    assert state.connection_status == ConnectionStatus.CONNECTING
    state.mark_active(NOW)
    assert state.connection_status == ConnectionStatus.CONNECTED
    state.flag_time_limit()
    assert state.connection_status == ConnectionStatus.CONNECTED
    state.begin_ending(NOW)
    assert state.connection_status == ConnectionStatus.DISCONNECTED


def test_begin_ending_raises_reflection_modal():
    state = ConversationState()
    state.begin_ending(NOW)
    assert state.is_ending
    assert state.show_reflection_modal
    assert state.is_reflection_pending
    assert state.conversation_end_time == NOW


def test_attach_evaluation_moves_to_saving():
    state = ConversationState()
    state.begin_ending(NOW)
    state.attach_evaluation(_metrics())
    assert state.phase == ConversationPhase.SAVING
    assert state.is_saving and not state.is_ending


def test_mark_completed_without_evaluation_raises():
    state = ConversationState()
    with pytest.raises(ValueError):
        state.mark_completed()
    assert not state.show_evaluation_modal


def test_mark_completed_shows_evaluation_modal():
    state = ConversationState()
    state.begin_ending(NOW)
    state.attach_evaluation(_metrics())
    state.mark_completed()
    assert state.phase == ConversationPhase.COMPLETED
    assert state.show_evaluation_modal
    assert state.evaluation_data is not None
    assert not state.is_saving


def test_recoverable_failure_keeps_evaluation_data():
    state = ConversationState()
    state.begin_ending(NOW)
    state.attach_evaluation(_metrics())
    state.record_recoverable_failure("PERSISTENCE_FAILURE", "db down")
    assert state.phase == ConversationPhase.ENDING
    assert state.is_ending and not state.is_saving
    assert state.evaluation_data == _metrics()
    assert state.has_failure


def test_user_session_id_assigned_once():
    state = ConversationState()
    state.assign_user_session("abc")
    with pytest.raises(ValueError):
        state.assign_user_session("def")
    assert state.user_session_id == "abc"


def test_mark_failed_clears_in_flight_flags():
    state = ConversationState()
    state.begin_ending(NOW)
    state.begin_evaluation()
    state.mark_failed("TRANSPORT_FAILURE", "lost")
    assert state.phase == ConversationPhase.FAILED
    assert not (state.is_ending or state.is_evaluating or state.is_saving)
    assert state.error_code == "TRANSPORT_FAILURE"


def test_record_reflection_closes_modal():
    state = ConversationState()
    state.begin_ending(NOW)
    state.record_reflection("I should ask more questions")
    assert state.reflection == "I should ask more questions"
    assert not state.show_reflection_modal
    assert not state.is_reflection_pending


def test_message_log_is_a_snapshot():
    state = ConversationState()
    log = state.message_log
    assert isinstance(log, tuple)
    assert log == ()


def test_snapshot_is_json_safe():
    state = ConversationState()
    state.mark_connecting()
    state.mark_active(NOW)
    snap = state.to_snapshot()
    assert snap["phase"] == "active"
    assert snap["connection_status"] == "connected"
    assert snap["conversation_start_time"] == NOW.isoformat()
    assert snap["evaluation_data"] is None
