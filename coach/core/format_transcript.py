"""Transcript Formatter: renders the message log as a plain-text transcript document.

Invariants:
    - Header and body depend only on (messages, start_time): identical inputs give identical lines
    - Only the footer ("Conversation ends at") reflects the invocation time
    - Dates use a fixed day/month/year, 24-hour format independent of process locale
    - Input messages are read, never mutated

Format:
    // Conversation starts at 19/10/2026, 14:05
    Coach (14:05:12): Hello
    User (14:05:15): Hi there
    // Conversation ends at 19/10/2026, 14:09
"""

from collections.abc import Sequence
from datetime import datetime, timezone

from coach.core.domain_types import AI_FALLBACK_SPEAKER, USER_SPEAKER, MessageSource
from coach.core.message import Message

_STAMP_FORMAT = "%d/%m/%Y, %H:%M"


def format_transcript(
    messages: Sequence[Message],
    start_time: datetime | None = None,
    now: datetime | None = None,
) -> str:
    """Format messages into a transcript. `now` defaults to the wall clock."""
    end_time = now or datetime.now()
    lines = [f"// Conversation starts at {_stamp(start_time or end_time)}"]
    lines.extend(format_line(m) for m in messages)
    lines.append(f"// Conversation ends at {_stamp(end_time)}")
    return "\n".join(lines) + "\n"


def format_line(message: Message) -> str:
    return f"{speaker_name(message)} ({message.timestamp}): {message.text}"


def speaker_name(message: Message) -> str:
    if message.source == MessageSource.USER:
        return USER_SPEAKER
    return message.speaker_label or AI_FALLBACK_SPEAKER


def transcript_filename(
    session_id: str, user_id: str, now: datetime | None = None,
) -> str:
    """Deterministic export filename; timestamp is UTC with millisecond precision."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"
    safe = iso.replace(":", "-").replace(".", "-")
    return f"transcript_{session_id}_{user_id}_{safe}.txt"


def _stamp(moment: datetime) -> str:
    return moment.strftime(_STAMP_FORMAT)
