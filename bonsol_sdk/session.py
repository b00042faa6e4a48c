"""
RequestSession - runs one execution request end to end.

locate -> build -> submit -> watch, stopping at the first failure. Every
failure carries the phase it happened in, so callers can tell "never
submitted" (Locate, Build, Submit) from "submitted but unclaimed" (Watch).
"""
from typing import Iterable, List, NamedTuple, Optional, Union

from pydantic import ValidationError
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .builder import ExecutionRequestBuilder
from .clock import CancellationToken, Clock, SystemClock
from .config import SessionConfig
from .exceptions import BonsolError, InvalidRequestOptions, MissingClockReference, Phase
from .instructions import BONSOL_PROGRAM_ID
from .ledger.exceptions import LedgerError
from .ledger.transport import LedgerTransport
from .locator import ImageLocator
from .models import (
    ClaimObservation, Confirmation, InlineInput, InputReference, RequestOptions, SessionResult
)
from .outcome import Outcome
from .submitter import RequestSubmitter
from .watcher import ClaimWatcher

InputLike = Union[InlineInput, InputReference, bytes, str]


class SessionEvent(NamedTuple):
    phase: Phase
    status: str  # "started", "succeeded" or "failed"
    detail: object = None


class SessionListener:
    """
    Receives session progress. Subclass and override what you need.
    """

    def on_event(self, event: SessionEvent) -> None:
        pass

    def on_poll(self, observation: Optional[ClaimObservation], error: Optional[Exception]) -> None:
        pass


def to_input(value: InputLike) -> Union[InlineInput, InputReference]:
    if isinstance(value, (InlineInput, InputReference)):
        return value
    if isinstance(value, str):
        return InlineInput.from_text(value)
    if isinstance(value, (bytes, bytearray)):
        return InlineInput(data=bytes(value))
    raise TypeError(f"Unsupported input type: {type(value).__name__}")


class RequestSession:
    """
    Orchestrates ImageLocator, ExecutionRequestBuilder, RequestSubmitter and
    ClaimWatcher over one ledger connection and one funding identity.

    The ledger transport and payer are owned by the caller and may be shared
    between sessions.
    """

    def __init__(
        self,
        ledger: LedgerTransport,
        payer: Keypair,
        program_id: Pubkey,
        config: Optional[SessionConfig] = None,
        bonsol_program_id: Pubkey = BONSOL_PROGRAM_ID,
        image_owner: Optional[Pubkey] = None,
        clock: Optional[Clock] = None,
        listeners: Iterable[SessionListener] = ()
    ):
        """
        Args:
            ledger: Ledger transport
            payer: Funding identity
            program_id: Target program (image addresses are derived under it)
            config: Session tuning
            bonsol_program_id: Bonsol program id passed to the target program
            image_owner: Expected owner of image accounts (defaults to program_id)
            clock: Time source for the watch phase
            listeners: Progress listeners, e.g. LoggingObserver
        """
        self.ledger = ledger
        self.payer = payer
        self.program_id = program_id
        self.config = config or SessionConfig()
        self.image_owner = image_owner
        self.listeners: List[SessionListener] = list(listeners)

        self.locator = ImageLocator(program_id, ledger)
        self.builder = ExecutionRequestBuilder(
            capacity_budget=self.config.capacity_budget,
            claim_state_reserve=self.config.claim_state_reserve
        )
        self.submitter = RequestSubmitter(
            ledger,
            program_id,
            bonsol_program_id=bonsol_program_id,
            claim_state_reserve=self.config.claim_state_reserve,
            capacity=self.config.capacity,
            instruction_name=self.config.instruction_name,
            confirm_timeout=self.config.confirm_timeout
        )
        self.watcher = ClaimWatcher(
            ledger,
            clock=clock or SystemClock(),
            read_retries=self.config.read_retries,
            max_consecutive_failures=self.config.max_consecutive_failures,
            on_poll=self._dispatch_poll
        )

    def subscribe(self, listener: SessionListener) -> None:
        self.listeners.append(listener)

    def run(
        self,
        image_id: Union[bytes, str],
        input_payload: InputLike,
        expiry_offset: int,
        tip: int = 0,
        callback_program: Optional[Pubkey] = None,
        request_account: Optional[Keypair] = None,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None
    ) -> Outcome[SessionResult]:
        """
        Locate, build, submit and watch one execution request.

        Args:
            image_id: 32-byte image id, raw or hex
            input_payload: Inline bytes/text or an InputReference
            expiry_offset: Slots after the current slot until the request expires
            tip: Incentive for provers
            callback_program: Program notified on fulfillment (defaults to program_id)
            request_account: Fresh keypair for the request account (generated when None)
            cancel: Cancellation token for the watch phase
            timeout: Watch timeout in seconds (defaults to config.watch_timeout)

        Returns:
            Outcome with a SessionResult, or the first phase error
        """
        try:
            self._emit(Phase.LOCATE, "started")
            image = self.locator.locate(image_id)
            if self.config.verify_image:
                self.locator.verify(image, self.image_owner)
            self._emit(Phase.LOCATE, "succeeded", image)

            self._emit(Phase.BUILD, "started")
            options, payload = self._prepare(expiry_offset, tip, callback_program, input_payload)
            request = self.builder.build(image, payload, options, self._current_slot())
            self._emit(Phase.BUILD, "succeeded", request)
        except BonsolError as e:
            return self._fail(e)

        self._emit(Phase.SUBMIT, "started")
        submitted = self.submitter.submit(request, self.payer, request_account or Keypair())
        if not submitted.ok:
            return self._fail(submitted.error)
        confirmation = submitted.value
        self._emit(Phase.SUBMIT, "succeeded", confirmation)

        watched = self.rewatch(confirmation, timeout=timeout, cancel=cancel)
        if not watched.ok:
            watched.error.confirmation = confirmation
            return Outcome.failure(watched.error)

        return Outcome.success(SessionResult(
            image=image,
            request=request,
            confirmation=confirmation,
            observation=watched.value
        ))

    def rewatch(
        self,
        confirmation: Confirmation,
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
        since: Optional[ClaimObservation] = None
    ) -> Outcome[ClaimObservation]:
        """
        Watch a confirmed request, e.g. again after a WatchTimeout.

        The baseline is the account state the submitter wrote. Passing an
        unclaimed observation (``error.observation``) as ``since`` makes that
        snapshot the baseline instead.
        """
        baseline = confirmation.expected_state
        if since is not None and since.account_exists and not since.claimed:
            baseline = since.state_signature

        self._emit(Phase.WATCH, "started", confirmation.request_account)
        outcome = self.watcher.watch(
            confirmation.request_account,
            poll_interval=self.config.poll_interval,
            timeout=self.config.watch_timeout if timeout is None else timeout,
            baseline=baseline,
            cancel=cancel,
            expiry_slot=confirmation.expiry_slot
        )
        if not outcome.ok:
            self._emit(Phase.WATCH, "failed", outcome.error)
            return outcome
        self._emit(Phase.WATCH, "succeeded", outcome.value)
        return outcome

    def _prepare(self, expiry_offset, tip, callback_program, input_payload):
        try:
            options = RequestOptions(
                expiry_offset=expiry_offset,
                callback_program=callback_program or self.program_id,
                tip=tip
            )
        except ValidationError as e:
            errors = e.errors()
            field = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else None
            raise InvalidRequestOptions(f"Invalid request options: {e}", field=field, cause=e)
        try:
            payload = to_input(input_payload)
        except (TypeError, ValidationError) as e:
            raise InvalidRequestOptions(f"Invalid input payload: {e}", field="input_payload", cause=e)
        return options, payload

    def _current_slot(self) -> Optional[int]:
        try:
            return self.ledger.get_current_slot()
        except LedgerError as e:
            raise MissingClockReference(f"Could not read the current slot: {e}", cause=e)

    def _fail(self, error: BonsolError) -> Outcome[SessionResult]:
        self._emit(error.phase, "failed", error)
        return Outcome.failure(error)

    def _emit(self, phase: Phase, status: str, detail: object = None) -> None:
        event = SessionEvent(phase, status, detail)
        for listener in self.listeners:
            listener.on_event(event)

    def _dispatch_poll(self, observation: Optional[ClaimObservation], error: Optional[Exception]) -> None:
        for listener in self.listeners:
            listener.on_poll(observation, error)
