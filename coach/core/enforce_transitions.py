"""Transition Enforcement: legality of each lifecycle event in the current phase.

Invariants:
    - All functions are PURE: no IO, no async, no side effects
    - Return an error dict on violation, None when the event may be applied
    - A violation never changes state; the shell either rejects (raises) or drops the event
    - Ending/Saving are in flight: start, end and retry are rejected there

Rejected vs dropped:
    - Rejected (caller is told): request_start, request_end, retry, submit_reflection, reset
    - Dropped (logged only): transport_connected, message_received, timer_warning,
      censorship_flagged and transport_failed arriving in a phase that cannot use them
"""

from coach.core.conversation_state import ConversationState
from coach.core.domain_types import (
    ConversationPhase, IN_FLIGHT_PHASES, LIVE_PHASES, TERMINAL_PHASES,
)


# --- User commands (rejected when illegal) ------------------------------------

def check_can_start(state: ConversationState) -> dict | None:
    if state.phase != ConversationPhase.IDLE:
        return _error(
            "request_start", state,
            "A conversation is already in progress. Reset it before starting again.",
        )
    return None


def check_can_end(state: ConversationState) -> dict | None:
    if state.phase not in LIVE_PHASES:
        return _error("request_end", state)
    return None


def check_can_retry(state: ConversationState) -> dict | None:
    """Retry only after a recorded scoring/persistence failure, never mid-flight."""
    if state.phase != ConversationPhase.ENDING:
        return _error("retry", state)
    if state.is_evaluating or state.is_saving or not state.has_failure:
        return _error(
            "retry", state, "The end-of-conversation sequence is still running.",
        )
    return None


def check_can_submit_reflection(state: ConversationState) -> dict | None:
    if not state.is_reflection_pending:
        return _error("submit_reflection", state, "No reflection is pending.")
    if state.phase not in IN_FLIGHT_PHASES and state.phase != ConversationPhase.COMPLETED:
        return _error("submit_reflection", state)
    return None


def check_can_reset(state: ConversationState) -> dict | None:
    """Reset is only legal once the session is over; live sessions must end first."""
    if state.phase not in TERMINAL_PHASES:
        return _error(
            "reset", state,
            f"Cannot reset while the conversation is {state.phase.value}. "
            "End the conversation first.",
        )
    return None


# --- Transport / timer events (dropped when illegal) ---------------------------

def check_accepts_connection(state: ConversationState) -> dict | None:
    if state.phase != ConversationPhase.CONNECTING:
        return _error("transport_connected", state)
    return None


def check_accepts_message(state: ConversationState) -> dict | None:
    """Live speech and late in-flight speech are both kept."""
    if state.phase not in LIVE_PHASES and state.phase not in IN_FLIGHT_PHASES:
        return _error("message_received", state)
    return None


def check_accepts_timer_warning(state: ConversationState) -> dict | None:
    if state.phase != ConversationPhase.ACTIVE:
        return _error("timer_warning", state)
    return None


def check_accepts_censorship(state: ConversationState) -> dict | None:
    if state.phase not in LIVE_PHASES and state.phase != ConversationPhase.CONNECTING:
        return _error("censorship_flagged", state)
    return None


def check_accepts_transport_failure(state: ConversationState) -> dict | None:
    """After request_end the transport is released; its failures no longer matter."""
    if state.phase not in LIVE_PHASES and state.phase != ConversationPhase.CONNECTING:
        return _error("transport_failed", state)
    return None


def _error(event: str, state: ConversationState, message: str | None = None) -> dict:
    return {
        "status": "error",
        "error_code": "INVALID_TRANSITION",
        "event": event,
        "phase": state.phase.value,
        "message": message or (
            f"'{event}' is not allowed while the conversation is {state.phase.value}."
        ),
    }
