"""Canonical Message: one normalized, speaker-tagged utterance.

Invariants:
    - Message is frozen; the session log only ever appends new values
    - id is unique within a session (uuid4 hex, not security-relevant)
    - color_tag is derived from source, never chosen independently
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from coach.core.domain_types import COLOR_TAGS, MessageSource


@dataclass(frozen=True)
class Message:
    id: str
    text: str
    source: MessageSource
    timestamp: str
    speaker_label: str | None = None

    @property
    def color_tag(self) -> str:
        return COLOR_TAGS[self.source]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "source": self.source.value,
            "timestamp": self.timestamp,
            "speaker_label": self.speaker_label,
            "color_tag": self.color_tag,
        }


def display_timestamp(now: datetime | None = None) -> str:
    """Wall-clock display string at second precision (HH:MM:SS)."""
    return (now or datetime.now()).strftime("%H:%M:%S")


def new_message(
    text: str,
    source: MessageSource,
    speaker_label: str | None = None,
    now: datetime | None = None,
) -> Message:
    return Message(
        id=uuid4().hex,
        text=text,
        source=source,
        timestamp=display_timestamp(now),
        speaker_label=speaker_label,
    )
