"""Conversation State: the aggregate owned by one conversation session.

Invariants:
    - Mutated only through the methods below, each called after its guard in enforce_transitions
    - show_evaluation_modal is only ever set together with non-null evaluation_data
    - user_session_id is assigned at most once and never reassigned
    - is_ending is true exactly while phase == ENDING, is_saving exactly while phase == SAVING
    - messages is append-only; readers get tuple snapshots via message_log
    - A new conversation gets a new ConversationState (no field carries over)
"""

from dataclasses import dataclass, field
from datetime import datetime

from coach.core.domain_types import ConnectionStatus, ConversationPhase
from coach.core.evaluation import EvaluationMetrics
from coach.core.message import Message


@dataclass
class ConversationState:
    """Per-conversation lifecycle state. Pure dataclass, no IO."""

    phase: ConversationPhase = ConversationPhase.IDLE

    # === Connection ===
    has_permission: bool = False

    # === Live conversation ===
    messages: list[Message] = field(default_factory=list)
    is_censored: bool = False
    conversation_start_time: datetime | None = None
    show_time_limit_warning: bool = False

    # === End-of-session sequence ===
    conversation_end_time: datetime | None = None
    is_ending: bool = False
    is_evaluating: bool = False
    is_saving: bool = False
    transcript: str | None = None
    transcript_url: str | None = None
    user_session_id: str | None = None
    evaluation_data: EvaluationMetrics | None = None

    # === UI gates ===
    show_reflection_modal: bool = False
    is_reflection_pending: bool = False
    show_evaluation_modal: bool = False
    reflection: str | None = None

    # === Last surfaced error ===
    error_code: str | None = None
    error_message: str = ""

    # --- Computed properties ---------------------------------------------------

    @property
    def connection_status(self) -> ConnectionStatus:
        if self.phase == ConversationPhase.CONNECTING:
            return ConnectionStatus.CONNECTING
        if self.phase in (ConversationPhase.ACTIVE, ConversationPhase.WARNED):
            return ConnectionStatus.CONNECTED
        return ConnectionStatus.DISCONNECTED

    @property
    def message_log(self) -> tuple[Message, ...]:
        """Read-only snapshot of the log for transcript/scoring."""
        return tuple(self.messages)

    @property
    def has_failure(self) -> bool:
        return self.error_code is not None

    # --- Mutation methods --------------------------------------------------------

    def mark_connecting(self) -> None:
        self.phase = ConversationPhase.CONNECTING
        self.has_permission = True
        self.clear_error()

    def mark_active(self, now: datetime) -> None:
        self.phase = ConversationPhase.ACTIVE
        self.conversation_start_time = now

    def append_message(self, message: Message) -> None:
        self.messages.append(message)

    def flag_time_limit(self) -> None:
        self.phase = ConversationPhase.WARNED
        self.show_time_limit_warning = True

    def dismiss_time_limit_warning(self) -> None:
        self.show_time_limit_warning = False

    def flag_censored(self) -> None:
        self.is_censored = True

    def mark_failed(self, code: str, message: str) -> None:
        """Absorbing failure: nothing is in flight afterwards."""
        self.phase = ConversationPhase.FAILED
        self.is_ending = False
        self.is_evaluating = False
        self.is_saving = False
        self.error_code = code
        self.error_message = message

    def begin_ending(self, now: datetime) -> None:
        self.phase = ConversationPhase.ENDING
        self.is_ending = True
        self.conversation_end_time = now
        self.show_reflection_modal = True
        self.is_reflection_pending = True
        self.clear_error()

    def record_transcript(self, transcript: str) -> None:
        self.transcript = transcript

    def record_transcript_url(self, url: str) -> None:
        self.transcript_url = url

    def assign_user_session(self, user_session_id: str) -> None:
        if self.user_session_id is not None:
            raise ValueError(
                f"user_session_id already assigned ({self.user_session_id})",
            )
        self.user_session_id = user_session_id

    def begin_evaluation(self) -> None:
        self.is_evaluating = True

    def attach_evaluation(self, metrics: EvaluationMetrics) -> None:
        """Ending -> Saving. Metrics are replaced whole, never patched."""
        self.evaluation_data = metrics
        self.phase = ConversationPhase.SAVING
        self.is_evaluating = False
        self.is_ending = False
        self.is_saving = True

    def record_recoverable_failure(self, code: str, message: str) -> None:
        """Scoring or persistence failed: back to (or stay in) Ending, keep evaluation_data."""
        self.phase = ConversationPhase.ENDING
        self.is_ending = True
        self.is_evaluating = False
        self.is_saving = False
        self.error_code = code
        self.error_message = message

    def mark_completed(self) -> None:
        if self.evaluation_data is None:
            raise ValueError("Cannot complete a conversation without evaluation data")
        self.phase = ConversationPhase.COMPLETED
        self.is_saving = False
        self.is_ending = False
        self.show_evaluation_modal = True

    def record_reflection(self, reflection: str) -> None:
        self.reflection = reflection
        self.show_reflection_modal = False
        self.is_reflection_pending = False

    def clear_error(self) -> None:
        self.error_code = None
        self.error_message = ""

    # --- Serialization -------------------------------------------------------------

    def to_snapshot(self) -> dict:
        """JSON-safe view for API responses."""
        return {
            "phase": self.phase.value,
            "connection_status": self.connection_status.value,
            "has_permission": self.has_permission,
            "messages": [m.to_dict() for m in self.messages],
            "is_censored": self.is_censored,
            "conversation_start_time": _iso(self.conversation_start_time),
            "conversation_end_time": _iso(self.conversation_end_time),
            "show_time_limit_warning": self.show_time_limit_warning,
            "is_ending": self.is_ending,
            "is_evaluating": self.is_evaluating,
            "is_saving": self.is_saving,
            "transcript_url": self.transcript_url,
            "user_session_id": self.user_session_id,
            "evaluation_data": (
                self.evaluation_data.to_dict() if self.evaluation_data else None
            ),
            "show_reflection_modal": self.show_reflection_modal,
            "is_reflection_pending": self.is_reflection_pending,
            "show_evaluation_modal": self.show_evaluation_modal,
            "reflection": self.reflection,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment else None
