"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - All valid states are Enums, never raw string matching
    - str Enums serialize to JSON without custom encoders
"""

from enum import Enum


# ─── Enums ───────────────────────────────────────────────────────

class MessageSource(str, Enum):
    """Who produced an utterance."""
    AI = "ai"
    USER = "user"


class ConversationPhase(str, Enum):
    """Lifecycle of one conversation session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    WARNED = "warned"
    ENDING = "ending"
    SAVING = "saving"
    COMPLETED = "completed"
    FAILED = "failed"


class ConnectionStatus(str, Enum):
    """Transport connection status as shown to the client."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


# ─── Phase groups ────────────────────────────────────────────────

LIVE_PHASES: frozenset[ConversationPhase] = frozenset({
    ConversationPhase.ACTIVE, ConversationPhase.WARNED,
})
IN_FLIGHT_PHASES: frozenset[ConversationPhase] = frozenset({
    ConversationPhase.ENDING, ConversationPhase.SAVING,
})
TERMINAL_PHASES: frozenset[ConversationPhase] = frozenset({
    ConversationPhase.COMPLETED, ConversationPhase.FAILED,
})

# Default presentation palette, keyed by source family
COLOR_TAGS: dict[MessageSource, str] = {
    MessageSource.AI: "bg-blue-500",
    MessageSource.USER: "bg-green-500",
}

AI_FALLBACK_SPEAKER = "AI Assistant"
USER_SPEAKER = "User"
