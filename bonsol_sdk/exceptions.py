"""
Exceptions for the Bonsol SDK.

Every error carries the protocol phase it belongs to and a coarse kind that
tells the caller whether retrying makes sense.
"""
from enum import Enum
from typing import Optional


class Phase(str, Enum):
    """Phase of the request lifecycle an error was raised in."""
    LOCATE = "Locate"
    BUILD = "Build"
    SUBMIT = "Submit"
    WATCH = "Watch"


class ErrorKind(str, Enum):
    """
    Error categories.

    CONFIGURATION errors are caller bugs and are never retried. RESOURCE errors
    are fatal to the current attempt but can be fixed with new identities or
    funding. TRANSIENT errors come from the network. TIMEOUT, CANCELLED and
    EXPIRED describe how a watch ended rather than a fault in the request.
    """
    CONFIGURATION = "configuration"
    RESOURCE = "resource"
    TRANSIENT = "transient"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BonsolError(Exception):
    """Base exception for all Bonsol SDK errors."""

    phase: Optional[Phase] = None
    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        phase: Optional[Phase] = None
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
        if phase is not None:
            self.phase = phase

    @property
    def retryable(self) -> bool:
        """Whether the same call may succeed if attempted again."""
        return self.kind in (ErrorKind.TRANSIENT, ErrorKind.TIMEOUT)

    def __str__(self) -> str:
        prefix = f"[{self.phase.value}] " if self.phase else ""
        return f"{prefix}{self.message}"


# Locate phase

class LocateError(BonsolError):
    """Raised while deriving or verifying an image address."""
    phase = Phase.LOCATE


class InvalidImageId(LocateError):
    """Raised when an image id is not a 32-byte hash."""
    kind = ErrorKind.CONFIGURATION


class ImageNotRegistered(LocateError):
    """Raised when no account exists at the derived image address."""
    kind = ErrorKind.RESOURCE


class ImageOwnerMismatch(LocateError):
    """Raised when the image account is owned by an unexpected program."""
    kind = ErrorKind.CONFIGURATION


class ImageLookupFailed(LocateError):
    """Raised when the image account could not be read from the ledger."""
    kind = ErrorKind.TRANSIENT


# Build phase

class BuildError(BonsolError):
    """Raised while assembling an execution request."""
    phase = Phase.BUILD


class MissingClockReference(BuildError):
    """Raised when no current ledger slot is available to compute expiry."""
    kind = ErrorKind.CONFIGURATION


class InputTooLarge(BuildError):
    """Raised when an inline payload does not fit the account capacity budget."""
    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, size: int = 0, budget: int = 0, **kwargs):
        self.size = size
        self.budget = budget
        super().__init__(message, **kwargs)


class InvalidRequestOptions(BuildError):
    """Raised when tip, expiry offset or callback program are invalid."""
    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        self.field = field
        super().__init__(message, **kwargs)


# Submit phase

class SubmitError(BonsolError):
    """Raised while creating the request account and submitting the request."""
    phase = Phase.SUBMIT


class AccountCapacityError(SubmitError):
    """Raised when the request account would be too small (or too large)."""
    kind = ErrorKind.CONFIGURATION


class InsufficientFunds(SubmitError):
    """Raised when the funding identity cannot pay for the request account."""
    kind = ErrorKind.RESOURCE


class AccountCollision(SubmitError):
    """Raised when the request account address is already in use."""
    kind = ErrorKind.RESOURCE


class LedgerRejected(SubmitError):
    """Raised when the ledger refuses the transaction."""
    kind = ErrorKind.TRANSIENT

    def __init__(self, message: str, reason: Optional[str] = None, **kwargs):
        self.reason = reason
        super().__init__(message, **kwargs)


class ConfirmationTimeout(SubmitError):
    """
    Raised when a sent transaction is not confirmed within the bounded wait.

    The transaction may still land. Retry with a new request account identity;
    reusing the same one risks AccountCollision.
    """
    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, signature: Optional[str] = None, **kwargs):
        self.signature = signature
        super().__init__(message, **kwargs)


# Watch phase

class WatchError(BonsolError):
    """Raised while watching a request account for a claim."""
    phase = Phase.WATCH

    def __init__(self, message: str, observation=None, **kwargs):
        # Last observation made before the watch ended, if any
        self.observation = observation
        # Submission the watch belongs to, set by RequestSession
        self.confirmation = None
        super().__init__(message, **kwargs)


class WatchTimeout(WatchError):
    """The request was still unclaimed when the watch timeout elapsed."""
    kind = ErrorKind.TIMEOUT


class WatchCancelled(WatchError):
    """The watch was stopped by an external cancellation signal."""
    kind = ErrorKind.CANCELLED


class WatchAborted(WatchError):
    """Too many consecutive polls failed to read the request account."""
    kind = ErrorKind.TRANSIENT

    def __init__(self, message: str, failures: int = 0, **kwargs):
        self.failures = failures
        super().__init__(message, **kwargs)


class RequestExpired(WatchError):
    """The request account stayed missing past the request's expiry slot."""
    kind = ErrorKind.EXPIRED
