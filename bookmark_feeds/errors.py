"""Error classification for link processing.

Every fallible operation on a link raises a LinkError tagged with an
ErrorKind. Transient errors are retried on a later run without penalising
the link; permanent errors stop the current attempt.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Whether a failure is expected to heal on its own."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class LinkError(Exception):
    """A failure while discovering or refreshing a link's feed."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.PERMANENT):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    def __str__(self) -> str:
        if self.transient:
            return f"TRANSIENT: {self.message}"
        return self.message


def transient_error(fmt: str, *args) -> LinkError:
    """Build a transient error, formatting args into fmt %-style."""
    return LinkError(fmt % args if args else fmt, ErrorKind.TRANSIENT)


def permanent_error(fmt: str, *args) -> LinkError:
    """Build a permanent error, formatting args into fmt %-style."""
    return LinkError(fmt % args if args else fmt, ErrorKind.PERMANENT)


def classify(error: Optional[BaseException]) -> ErrorKind:
    """Return the kind of an error.

    Anything that is not a LinkError carries no tag and is permanent.
    """
    kind = getattr(error, "kind", None)
    if isinstance(kind, ErrorKind):
        return kind
    return ErrorKind.PERMANENT


def is_transient(error: Optional[BaseException]) -> bool:
    return classify(error) is ErrorKind.TRANSIENT
