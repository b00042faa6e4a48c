"""
Bonsol SDK - submit execution requests to a prover network and watch them
being claimed.
"""
from .builder import ExecutionRequestBuilder
from .clock import CancellationToken, Clock, SystemClock, VirtualClock
from .codec import decode_request_account, encode_request, encoded_size
from .config import NetworkConfig, SessionConfig, load_keypair
from .exceptions import (
    AccountCapacityError, AccountCollision, BonsolError, BuildError, ConfirmationTimeout,
    ErrorKind, ImageLookupFailed, ImageNotRegistered, ImageOwnerMismatch, InputTooLarge,
    InsufficientFunds, InvalidImageId, InvalidRequestOptions, LedgerRejected, LocateError,
    MissingClockReference, Phase, RequestExpired, SubmitError, WatchAborted, WatchCancelled,
    WatchError, WatchTimeout
)
from .instructions import BONSOL_PROGRAM_ID
from .locator import ImageLocator
from .models import (
    AccountInfo, ClaimObservation, ClaimState, Confirmation, ConfirmationStatus, ExecutionRequest,
    ImageAddress, InlineInput, InputReference, RequestOptions, SessionResult, StateSignature
)
from .observers import LoggingObserver
from .outcome import Outcome
from .session import RequestSession, SessionEvent, SessionListener
from .submitter import RequestSubmitter
from .version import __version__
from .watcher import ClaimWatcher

__all__ = [
    # Components
    "ImageLocator",
    "ExecutionRequestBuilder",
    "RequestSubmitter",
    "ClaimWatcher",
    "RequestSession",
    "SessionEvent",
    "SessionListener",
    "LoggingObserver",
    # Time
    "Clock",
    "SystemClock",
    "VirtualClock",
    "CancellationToken",
    # Models
    "AccountInfo",
    "ClaimObservation",
    "ClaimState",
    "Confirmation",
    "ConfirmationStatus",
    "ExecutionRequest",
    "ImageAddress",
    "InlineInput",
    "InputReference",
    "RequestOptions",
    "SessionResult",
    "StateSignature",
    "Outcome",
    # Codec
    "encode_request",
    "decode_request_account",
    "encoded_size",
    # Config
    "NetworkConfig",
    "SessionConfig",
    "load_keypair",
    "BONSOL_PROGRAM_ID",
    # Errors
    "BonsolError",
    "Phase",
    "ErrorKind",
    "LocateError",
    "InvalidImageId",
    "ImageNotRegistered",
    "ImageOwnerMismatch",
    "ImageLookupFailed",
    "BuildError",
    "MissingClockReference",
    "InputTooLarge",
    "InvalidRequestOptions",
    "SubmitError",
    "AccountCapacityError",
    "InsufficientFunds",
    "AccountCollision",
    "LedgerRejected",
    "ConfirmationTimeout",
    "WatchError",
    "WatchTimeout",
    "WatchCancelled",
    "WatchAborted",
    "RequestExpired",
    "__version__",
]
