"""Conversation Session: the state machine driving one voice conversation end to end.

Invariants:
    - One ConversationSession per conversation; it alone mutates its ConversationState
    - Every event goes through its guard in core/enforce_transitions first
    - Synchronous transitions run to completion on the event loop, so no two interleave
    - The only suspension points are transport begin/end, transcript export,
      participation creation, scoring and persistence; while Ending/Saving is
      in flight only message_received is applied, start/end/retry are rejected
    - Scoring happens at most once per successful evaluation: a persistence
      retry reuses evaluation_data
    - show_evaluation_modal is only set by persistence_succeeded

Lifecycle:
    Idle -> Connecting -> Active -> (Warned) -> Ending -> Saving -> Completed
    Failed is absorbing (permission denied, transport failure)
"""

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID, uuid4

from coach.core.auth_context import AuthContext
from coach.core.conversation_state import ConversationState
from coach.core.domain_types import ConnectionStatus
from coach.core.enforce_transitions import (
    check_accepts_censorship,
    check_accepts_connection,
    check_accepts_message,
    check_accepts_timer_warning,
    check_accepts_transport_failure,
    check_can_end,
    check_can_reset,
    check_can_retry,
    check_can_start,
    check_can_submit_reflection,
)
from coach.core.errors import (
    CoachError,
    ErrorContext,
    InvalidTransitionError,
    PermissionDeniedError,
    PersistenceFailureError,
    ScoringFailureError,
    TransportFailureError,
)
from coach.core.evaluation import EvaluationMetrics
from coach.core.format_transcript import format_transcript, transcript_filename
from coach.core.message import Message
from coach.core.normalize_message import normalize_message
from coach.core.repository_protocols import (
    EvaluationPersistence,
    PermissionSource,
    TranscriptScorer,
    TranscriptStore,
    VoiceTransport,
)
from coach.core.speech_timing import compute_speech_timing
from coach.services.conversation_timer import ConversationTimer
from coach.services.recovery_policy import RecoveryPolicy

logger = logging.getLogger(__name__)


class ConversationSession:
    """Owns the lifecycle state of one conversation and its collaborators."""

    def __init__(
        self,
        *,
        auth: AuthContext,
        session_id: str,
        transport: VoiceTransport,
        scorer: TranscriptScorer,
        persistence: EvaluationPersistence,
        transcript_store: TranscriptStore,
        timer: ConversationTimer,
        export_policy: RecoveryPolicy | None = None,
        clock: Callable[[], datetime] = datetime.now,
        conversation_id: UUID | None = None,
    ):
        self.id = conversation_id or uuid4()
        self.auth = auth
        self.session_id = session_id
        self.state = ConversationState()
        self.connection: dict | None = None
        self._transport = transport
        self._scorer = scorer
        self._persistence = persistence
        self._store = transcript_store
        self._timer = timer
        self._export_policy = export_policy or RecoveryPolicy(name="transcript export")
        self._clock = clock
        self._closed = False
        self._saved_reflection: str | None = None

    # ─── Start ───────────────────────────────────────────────────

    async def request_start(self, permission: PermissionSource) -> None:
        """Idle -> Connecting, or Idle -> Failed when permission is missing."""
        self._reject_if(check_can_start(self.state))
        if not permission.has_permission():
            error = PermissionDeniedError(self._context())
            self.state.mark_failed(error.code, error.message)
            self._log_transition("permission denied", logging.WARNING)
            raise error

        self.state.mark_connecting()
        self._log_transition("connecting")
        try:
            self.connection = await self._transport.begin()
        except Exception as e:
            error = e if isinstance(e, TransportFailureError) else TransportFailureError(
                str(e), self._context(),
            )
            self.transport_failed(error.reason)
            raise error

    def transport_connected(self) -> None:
        """Connecting -> Active; arms the time-limit warning."""
        if self._drop_if(check_accepts_connection(self.state)):
            return
        self.state.mark_active(self._clock())
        self._timer.arm(self.timer_warning)
        self._log_transition("active")

    # ─── Live events ─────────────────────────────────────────────

    def message_received(self, raw: object) -> Message | None:
        """Append in arrival order. Late speech during Ending/Saving is kept too."""
        if self._drop_if(check_accepts_message(self.state)):
            return None
        message = normalize_message(raw, now=self._clock())
        self.state.append_message(message)
        return message

    def timer_warning(self) -> None:
        """Active -> Warned. Advisory only; the conversation keeps going."""
        if self._drop_if(check_accepts_timer_warning(self.state)):
            return
        self.state.flag_time_limit()
        self._log_transition("time-limit warning")

    def dismiss_warning(self) -> None:
        self.state.dismiss_time_limit_warning()

    def censorship_flagged(self) -> None:
        """Advisory flag; never ends the conversation on its own."""
        if self._drop_if(check_accepts_censorship(self.state)):
            return
        self.state.flag_censored()
        self._log_transition("censorship flagged", logging.WARNING)

    def transport_failed(self, reason: str) -> None:
        """Any connecting/live phase -> Failed. No automatic reconnect."""
        if self._drop_if(check_accepts_transport_failure(self.state)):
            return
        self._timer.cancel()
        error = TransportFailureError(reason, self._context())
        self.state.mark_failed(error.code, error.message)
        self._log_transition(f"transport failure: {reason}", logging.ERROR)

    # ─── End-of-conversation sequence ─────────────────────────────

    async def request_end(self) -> None:
        """Active/Warned -> Ending, then transcript, export, scoring, persistence.

        Raises ScoringFailureError or PersistenceFailureError when a step
        fails; the session stays in Ending and retry() resumes it.
        """
        self._reject_if(check_can_end(self.state))
        self._timer.cancel()
        self.state.begin_ending(self._clock())
        self._log_transition("ending")

        try:
            await self._transport.end()
        except Exception as e:
            logger.warning(
                f"Transport did not close cleanly: {e}",
                extra={"conversation_id": str(self.id)},
            )
        if self._closed:
            return

        self.state.record_transcript(format_transcript(
            self.state.message_log,
            self.state.conversation_start_time,
            now=self.state.conversation_end_time,
        ))
        await self._run_end_sequence()

    async def retry(self) -> None:
        """Resume after a scoring/persistence failure without re-ending."""
        self._reject_if(check_can_retry(self.state))
        self.state.clear_error()
        self._log_transition("retrying end sequence")
        await self._run_end_sequence()

    def evaluation_ready(self, metrics: EvaluationMetrics) -> None:
        """Ending -> Saving with the freshly computed metrics."""
        self.state.attach_evaluation(metrics)
        self._log_transition("saving")

    def persistence_succeeded(self) -> None:
        """Saving -> Completed; the evaluation modal may now be shown."""
        self.state.mark_completed()
        self._log_transition("completed")

    def persistence_failed(self, error: CoachError) -> None:
        """Saving -> Ending; evaluation_data is kept for the retry."""
        self.state.record_recoverable_failure(error.code, error.message)
        self._log_transition(f"persistence failed: {error.message}", logging.WARNING)

    async def _run_end_sequence(self) -> None:
        await self._export_transcript()
        if self._closed:
            return
        await self._ensure_participation()
        if self._closed:
            return
        await self._sync_reflection()
        if self._closed:
            return
        if self.state.evaluation_data is None:
            await self._evaluate()
            if self._closed:
                return
        await self._persist()

    async def _export_transcript(self) -> None:
        """Best effort: a failed export degrades to 'no transcript URL', never blocks scoring.

        Skipped once the participation record exists, since the record holds the URL.
        """
        state = self.state
        if state.transcript is None or state.transcript_url or state.user_session_id:
            return
        file_name = transcript_filename(self.session_id, self.auth.user_id)
        content = self.state.transcript
        owner = self.auth.user_id
        outcome = await self._export_policy.run(
            lambda: self._store.upload(file_name, content, owner=owner),
        )
        if outcome.ok:
            self.state.record_transcript_url(outcome.value)
        else:
            logger.error(
                f"Transcript export degraded: {outcome.fault}",
                extra={"conversation_id": str(self.id)},
            )

    async def _ensure_participation(self) -> None:
        """Create the participation record once; its id keys every later save."""
        if self.state.user_session_id is not None:
            return
        reflection = self.state.reflection
        try:
            user_session_id = await self._persistence.create_participation(
                self.session_id, self.auth.user_id,
                self.state.transcript_url, reflection,
            )
        except Exception as e:
            self._fail_persistence(e)
        self.state.assign_user_session(user_session_id)
        self._saved_reflection = reflection

    async def _sync_reflection(self) -> None:
        """Write a reflection that arrived while the record was being created.

        A failure is recorded like any persistence failure, so retry() re-runs it.
        """
        reflection = self.state.reflection
        if reflection is None or reflection == self._saved_reflection:
            return
        try:
            await self._persistence.save_reflection(self.state.user_session_id, reflection)
        except Exception as e:
            self._fail_persistence(e)
        self._saved_reflection = reflection

    async def _evaluate(self) -> None:
        self.state.begin_evaluation()
        log = self.state.message_log
        end_time = self.state.conversation_end_time or self._clock()
        timing = compute_speech_timing(log, self.state.conversation_start_time, end_time)
        try:
            metrics = await self._scorer.score(log, self.state.transcript or "", timing)
        except Exception as e:
            error = e if isinstance(e, ScoringFailureError) else ScoringFailureError(
                str(e), self._context(),
            )
            self.state.record_recoverable_failure(error.code, error.message)
            self._log_transition(f"scoring failed: {error.reason}", logging.WARNING)
            raise error
        if self._closed:
            return
        self.evaluation_ready(metrics)

    async def _persist(self) -> None:
        metrics = self.state.evaluation_data
        try:
            await self._persistence.save(self.state.user_session_id, metrics)
        except Exception as e:
            self._fail_persistence(e)
        if self._closed:
            return
        self.persistence_succeeded()

    def _fail_persistence(self, e: Exception) -> None:
        error = e if isinstance(e, PersistenceFailureError) else PersistenceFailureError(
            str(e), self._context(),
        )
        self.persistence_failed(error)
        raise error

    # ─── Reflection ──────────────────────────────────────────────

    async def submit_reflection(self, reflection: str) -> None:
        """Store the user's reflection on the participation record."""
        self._reject_if(check_can_submit_reflection(self.state))
        if self.state.user_session_id is not None:
            await self._save_reflection(reflection)
            self._saved_reflection = reflection
        self.state.record_reflection(reflection)

    async def _save_reflection(self, reflection: str) -> None:
        try:
            await self._persistence.save_reflection(self.state.user_session_id, reflection)
        except Exception as e:
            logger.error(
                f"Failed to save reflection: {e}",
                extra={"conversation_id": str(self.id)},
            )
            raise PersistenceFailureError(str(e), self._context())

    # ─── Reset / discard ─────────────────────────────────────────

    def reset(self) -> None:
        """Completed/Failed -> Idle. Every field returns to its initial value."""
        self._reject_if(check_can_reset(self.state))
        self._timer.cancel()
        self.state = ConversationState()
        self.connection = None
        self._saved_reflection = None
        self._log_transition("reset")

    async def discard(self) -> None:
        """User navigated away: stop the timer and release the transport."""
        self._closed = True
        self._timer.cancel()
        if self.state.connection_status != ConnectionStatus.DISCONNECTED:
            try:
                await self._transport.end()
            except Exception as e:
                logger.warning(
                    f"Transport release failed on discard: {e}",
                    extra={"conversation_id": str(self.id)},
                )

    # ─── Views ───────────────────────────────────────────────────

    def to_snapshot(self) -> dict:
        return {
            "id": str(self.id),
            "session_id": self.session_id,
            "user_id": self.auth.user_id,
            "connection": self.connection,
            **self.state.to_snapshot(),
        }

    def current_transcript(self, now: datetime | None = None) -> str:
        """Transcript of the full log so far, including late in-flight speech."""
        return format_transcript(
            self.state.message_log, self.state.conversation_start_time, now=now,
        )

    # ─── Helpers ─────────────────────────────────────────────────

    def _context(self) -> ErrorContext:
        return ErrorContext(
            conversation_id=str(self.id), phase=self.state.phase.value,
        )

    def _reject_if(self, error: dict | None) -> None:
        if error:
            raise InvalidTransitionError(
                error["event"], error["phase"], error["message"], self._context(),
            )

    def _drop_if(self, error: dict | None) -> bool:
        if error:
            logger.info(
                f"Dropped {error['event']} in phase {error['phase']}",
                extra={"conversation_id": str(self.id), "phase": error["phase"]},
            )
            return True
        return False

    def _log_transition(self, what: str, level: int = logging.INFO) -> None:
        logger.log(
            level, f"Conversation {what}",
            extra={"conversation_id": str(self.id), "phase": self.state.phase.value},
        )
