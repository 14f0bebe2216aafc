"""Conversation Logging: one JSON object per log line, tagged with conversation fields.

Invariants:
    - Every line has timestamp, level, logger and message
    - Conversation fields passed through `extra=` are copied onto the line when set
    - fmt="text" gives plain lines for local runs
    - setup_logging() can run more than once without stacking handlers
"""

import logging
import json
from datetime import datetime, timezone

CONVERSATION_FIELDS = (
    "conversation_id", "user_session_id", "phase", "error_code",
    "attempt", "input_tokens", "output_tokens",
)
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConversationJSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(_conversation_fields(record))
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def _conversation_fields(record: logging.LogRecord) -> dict:
    return {
        name: getattr(record, name)
        for name in CONVERSATION_FIELDS
        if getattr(record, name, None) is not None
    }


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "coach_owned", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(
        ConversationJSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT),
    )
    handler.coach_owned = True
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
