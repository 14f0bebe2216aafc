"""Error Hierarchy: one exception type per way a conversation can go wrong.

Invariants:
    - Every error carries a code, a category and a severity
    - Severity decides recoverability: WARNING errors (scoring, persistence)
      leave the session retryable in Ending, ERROR errors end it in Failed
    - http_status is chosen here, so routes never pick status codes
    - to_response() is the only shape clients see; debug_info never leaves the process
    - Malformed inbound messages have no error type: the normalizer never raises
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Which side of the system failed."""
    VALIDATION = "validation"
    PERMISSION = "permission"
    CONFLICT = "conflict"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EXTERNAL_API = "external_api"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Where in a conversation the error happened."""
    conversation_id: str | None = None
    phase: str | None = None
    retry_after_ms: int | None = None
    debug_info: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class CoachError(Exception):
    """Base for every error the conversation backend raises on purpose."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)

    def to_response(self) -> dict:
        ctx = self.context
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "recoverable": self.recoverable,
                "timestamp": ctx.timestamp.isoformat(),
                "context": {
                    "conversation_id": ctx.conversation_id,
                    "phase": ctx.phase,
                    "retry_after_ms": ctx.retry_after_ms,
                },
            }
        }


# ─── Session Errors (fatal to the session) ──────────────────────

class PermissionDeniedError(CoachError):
    """Microphone/recording permission was not granted."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Microphone access denied. Grant permission and start again.",
            "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.ERROR, context, 403,
        )


class TransportFailureError(CoachError):
    """Voice transport could not connect or dropped the conversation."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Voice connection failed: {reason}",
            "TRANSPORT_FAILURE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.reason = reason


# ─── Recoverable-in-place Errors ────────────────────────────────

class ScoringFailureError(CoachError):
    """External scorer failed; the session stays in Ending and can retry."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Failed to get AI evaluation: {reason}",
            "SCORING_FAILURE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, context, 502,
        )
        self.reason = reason


class PersistenceFailureError(CoachError):
    """Saving the evaluation failed; computed metrics are kept for the retry."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Failed to save evaluation: {reason}",
            "PERSISTENCE_FAILURE", ErrorCategory.DATABASE,
            ErrorSeverity.WARNING, context, 503,
        )
        self.reason = reason


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidTransitionError(CoachError):
    """Event is not legal in the session's current phase. State is unchanged."""
    def __init__(
        self, event: str, phase: str, message: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message or f"'{event}' is not allowed while the conversation is {phase}.",
            "INVALID_TRANSITION", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.event = event
        self.phase = phase


class ResourceNotFoundError(CoachError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class AuthenticationError(CoachError):
    """Request carried no usable credentials."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHENTICATED", ErrorCategory.PERMISSION,
            ErrorSeverity.ERROR, context, 401,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(CoachError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class AnthropicAPIError(CoachError):
    """Anthropic API call failed."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Anthropic API error ({api_error_type}): {message}",
            "ANTHROPIC_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type
