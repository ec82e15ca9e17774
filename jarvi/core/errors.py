"""
Error taxonomy for the delegation core.

Two kinds of failure flow through the system:

1. Interpretation failures (bad time expressions, unresolvable boundaries,
   missing event references) are raised as JarviError subclasses and
   caught once, at the chat service boundary.
2. Provider failures are never raised across the executor boundary.
   Adapters return a ProviderResult carrying an ErrorKind, and executors
   aggregate them per descriptor.

Both share the closed ErrorKind enum so the caller can render a single
explanation format.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure categories."""
    MALFORMED_TIME_EXPRESSION = "malformed_time_expression"
    AMBIGUOUS_EVENT_BOUNDARY = "ambiguous_event_boundary"
    VALIDATION_FAILURE = "validation_failure"
    MISSING_EVENT_ID = "missing_event_id"
    PROVIDER_AUTH_EXPIRED = "provider_auth_expired"
    PROVIDER_TIMEOUT = "provider_timeout"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_NOT_FOUND = "provider_not_found"
    PROVIDER_RATE_LIMITED = "provider_rate_limited"
    UNCLASSIFIED_INTENT = "unclassified_intent"
    DUPLICATE_EVENT = "duplicate_event"


# Short remediation shown next to a failed descriptor
ERROR_HINTS = {
    ErrorKind.MALFORMED_TIME_EXPRESSION: "check the time format (e.g. 3:30 or 3:30-4:00)",
    ErrorKind.AMBIGUOUS_EVENT_BOUNDARY: "add an end time or a duration",
    ErrorKind.VALIDATION_FAILURE: "times overlap or run backwards",
    ErrorKind.MISSING_EVENT_ID: "say which event, e.g. id abc123 or \"Title\"",
    ErrorKind.PROVIDER_AUTH_EXPIRED: "reconnect calendar",
    ErrorKind.PROVIDER_TIMEOUT: "the provider did not answer in time, try again",
    ErrorKind.PROVIDER_UNAVAILABLE: "the provider is unavailable, try again later",
    ErrorKind.PROVIDER_NOT_FOUND: "no matching item was found",
    ErrorKind.PROVIDER_RATE_LIMITED: "too many requests, try again in a minute",
    ErrorKind.UNCLASSIFIED_INTENT: "rephrase the request",
    ErrorKind.DUPLICATE_EVENT: "already in your calendar",
}

# Read-only calls are retried once on these
TRANSIENT_KINDS = frozenset({
    ErrorKind.PROVIDER_TIMEOUT,
    ErrorKind.PROVIDER_UNAVAILABLE,
    ErrorKind.PROVIDER_RATE_LIMITED,
})


def hint_for(kind: Optional[ErrorKind]) -> str:
    if kind is None:
        return ""
    return ERROR_HINTS.get(kind, kind.value)


# ---------------------------------------------------------------------------
# EXCEPTIONS
# ---------------------------------------------------------------------------


class JarviError(Exception):
    """
    Base exception for interpretation failures.

    Attributes:
        kind: ErrorKind category
        message: Human-readable explanation
        clause: The offending clause text, when one can be named
    """

    kind: ErrorKind = ErrorKind.VALIDATION_FAILURE

    def __init__(self, message: str, clause: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.clause = clause

    def user_message(self) -> str:
        if self.clause:
            return f"{self.message} (offending clause: \"{self.clause}\")"
        return self.message


class MalformedTimeExpression(JarviError):
    """A clause looks timed but matches no recognized time shape."""
    kind = ErrorKind.MALFORMED_TIME_EXPRESSION


class AmbiguousEventBoundary(JarviError):
    """An event start or end cannot be derived from the message."""
    kind = ErrorKind.AMBIGUOUS_EVENT_BOUNDARY


class ValidationFailure(JarviError):
    """The ordering invariant cannot be satisfied."""
    kind = ErrorKind.VALIDATION_FAILURE


class MissingEventId(JarviError):
    """Update or delete requested without an identifiable event."""
    kind = ErrorKind.MISSING_EVENT_ID


class UnclassifiedIntent(JarviError):
    """No executor is mapped to the classified intent."""
    kind = ErrorKind.UNCLASSIFIED_INTENT
