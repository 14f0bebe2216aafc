"""Speech Timing: pure summary of who spoke how much, handed to the scorer with the transcript.

Invariants:
    - Inputs are the message log and session bounds (no IO, no clock reads)
    - Returns a flat JSON-safe dict
    - Never raises: unparseable timestamps are skipped in turn-duration sums
"""

from collections.abc import Sequence
from datetime import datetime, timedelta

from coach.core.domain_types import MessageSource
from coach.core.message import Message


def compute_speech_timing(
    messages: Sequence[Message], start_time: datetime | None, end_time: datetime,
) -> dict:
    """Summarize turns, word counts and student speaking time."""
    user_turns = [m for m in messages if m.source == MessageSource.USER]
    ai_turns = len(messages) - len(user_turns)
    session_seconds = (
        max(0.0, (end_time - start_time).total_seconds()) if start_time else 0.0
    )
    return {
        "conversation_start": start_time.isoformat() if start_time else None,
        "conversation_end": end_time.isoformat(),
        "session_seconds": round(session_seconds, 1),
        "duration": format_duration(session_seconds),
        "total_turns": len(messages),
        "user_turns": len(user_turns),
        "ai_turns": ai_turns,
        "user_words": sum(len(m.text.split()) for m in user_turns),
        "user_speaking_seconds": round(
            _user_speaking_seconds(messages, start_time, end_time), 1,
        ),
    }


def format_duration(seconds: float) -> str:
    whole = int(seconds)
    return f"{whole // 60} min {whole % 60} sec"


def _user_speaking_seconds(
    messages: Sequence[Message], start_time: datetime | None, end_time: datetime,
) -> float:
    """A user turn lasts until the next turn (any speaker), or until the end."""
    if start_time is None:
        return 0.0
    moments = [_on_day(m.timestamp, start_time) for m in messages]
    total = 0.0
    for i, message in enumerate(messages):
        if message.source != MessageSource.USER or moments[i] is None:
            continue
        following = next((t for t in moments[i + 1:] if t is not None), end_time)
        total += max(0.0, (following - moments[i]).total_seconds())
    return total


def _on_day(timestamp: str, start_time: datetime) -> datetime | None:
    """Place an HH:MM:SS display stamp on the session's timeline (handles midnight)."""
    try:
        clock = datetime.strptime(timestamp, "%H:%M:%S").time()
    except ValueError:
        return None
    moment = datetime.combine(start_time.date(), clock, tzinfo=start_time.tzinfo)
    if moment < start_time.replace(microsecond=0):
        moment += timedelta(days=1)
    return moment
