"""Message Normalizer: converts heterogeneous transport payloads into a canonical Message.

Invariants:
    - normalize_message NEVER raises: every failure path yields a best-effort Message
    - Unrecognized payloads are attributed to the AI, never dropped
    - Speaker markup is only recognized when it wraps the whole text: <Label>...</Label>
    - No deduplication: identical payloads produce distinct Messages

Accepted inputs:
    - JSON string or dict with "message" and "source" keys (transport's native shape)
    - Plain string that is not JSON (used verbatim as AI text)
    - Anything else (JSON-encoded, or str() if not encodable) as AI text
"""

import json
import logging
import re
from datetime import datetime

from coach.core.domain_types import MessageSource
from coach.core.message import Message, new_message

logger = logging.getLogger(__name__)

_SPEAKER_MARKUP = re.compile(r"^<([^>]+)>(.*)</[^>]+>$", re.DOTALL)


def extract_speaker(text: str) -> tuple[str | None, str]:
    """Split '<Label>content</Label>' into (label, content). No match: (None, text)."""
    match = _SPEAKER_MARKUP.match(text)
    if match:
        return match.group(1), match.group(2)
    return None, text


def normalize_message(raw: object, now: datetime | None = None) -> Message:
    """Normalize one inbound payload. Pure apart from id generation and the clock."""
    try:
        text, source = _decode(raw)
    except Exception as e:
        logger.warning(f"Unreadable conversation payload, keeping as AI text: {e}")
        text = raw if isinstance(raw, str) else "Received a message"
        source = MessageSource.AI
    label, content = extract_speaker(text)
    return new_message(content, source, speaker_label=label, now=now)


def _decode(raw: object) -> tuple[str, MessageSource]:
    parsed = _parse_json(raw) if isinstance(raw, str) else raw

    if isinstance(parsed, dict) and "message" in parsed and "source" in parsed:
        return _as_text(parsed["message"]), _as_source(parsed["source"])

    if isinstance(raw, str):
        return raw, MessageSource.AI
    return _encode(raw), MessageSource.AI


def _parse_json(raw: str) -> object:
    try:
        return json.loads(raw)
    except ValueError:
        return None


def _as_text(value: object) -> str:
    if isinstance(value, str):
        return value
    return _encode(value)


def _as_source(value: object) -> MessageSource:
    try:
        return MessageSource(value)
    except ValueError:
        return MessageSource.AI


def _encode(value: object) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)
