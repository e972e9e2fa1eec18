# jym/core/errors.py
"""Error taxonomy and the Outcome result type shared by services"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class ErrorKind(str, Enum):
    NOT_INITIALIZED = "not_initialized"
    UPSTREAM_GENERATION = "upstream_generation"
    PERSISTENCE = "persistence"
    DELIVERY = "delivery"
    MALFORMED_INBOUND = "malformed_inbound"


class JymError(Exception):
    """Base class for all domain errors"""

    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class NotInitializedError(JymError):
    """A conversation operation was used before initialize()"""

    kind = ErrorKind.NOT_INITIALIZED


class GenerationError(JymError):
    """The generation gateway failed or timed out"""

    kind = ErrorKind.UPSTREAM_GENERATION


class PersistenceError(JymError):
    """A durable write failed"""

    kind = ErrorKind.PERSISTENCE


class DeliveryError(JymError):
    """An outbound channel send failed"""

    kind = ErrorKind.DELIVERY


class MalformedPayloadError(JymError):
    """An inbound webhook payload is missing required fields"""

    kind = ErrorKind.MALFORMED_INBOUND


class Outcome(BaseModel):
    """Result of a best-effort operation.

    Services that must never raise into the message path (profile writes,
    channel sends) return an Outcome instead of an exception. Callers decide
    whether a failure matters.
    """

    ok: bool
    value: Any = None
    kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, error: Any) -> "Outcome":
        return cls(ok=False, kind=kind, error=str(error))

    @classmethod
    def from_error(cls, exc: JymError) -> "Outcome":
        return cls(ok=False, kind=exc.kind, error=exc.message or str(exc))


# The only failure text an end user ever sees
FALLBACK_REPLY = "shit, my brain just glitched. mind sending that again?"
FALLBACK_ACKNOWLEDGMENT = "got it, thanks"
