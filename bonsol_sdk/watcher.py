"""
ClaimWatcher - polls a request account until a prover touches it.

The watcher only sees account length and content, so it cannot tell a claimed
request from a fulfilled one. It reports the first departure from the
account's empty state together with a raw snapshot for the caller to decode.
"""
from typing import Callable, Optional, Tuple

from solders.pubkey import Pubkey

from .clock import CancellationToken, Clock, SystemClock
from .exceptions import RequestExpired, WatchAborted, WatchCancelled, WatchTimeout
from .ledger.exceptions import LedgerError
from .ledger.transport import LedgerTransport
from .models import AccountInfo, ClaimObservation, ClaimState, StateSignature
from .outcome import Outcome

# Called after every poll with either an observation or the read error
PollCallback = Callable[[Optional[ClaimObservation], Optional[Exception]], None]

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_READ_RETRIES = 2
DEFAULT_MAX_CONSECUTIVE_FAILURES = 5


class ClaimWatcher:
    """
    Watches one request account at a time.

    A state change is final: once the account leaves its empty state the watch
    returns and does not look again.
    """

    def __init__(
        self,
        ledger: LedgerTransport,
        clock: Optional[Clock] = None,
        read_retries: int = DEFAULT_READ_RETRIES,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
        on_poll: Optional[PollCallback] = None
    ):
        """
        Args:
            ledger: Ledger transport used for reads
            clock: Time source; defaults to the system clock
            read_retries: Extra attempts for a failed read within one poll
            max_consecutive_failures: Failed polls in a row before the watch is aborted
            on_poll: Optional callback receiving every poll result
        """
        if read_retries < 0 or max_consecutive_failures < 1:
            raise ValueError("read_retries must be >= 0 and max_consecutive_failures >= 1")
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.read_retries = read_retries
        self.max_consecutive_failures = max_consecutive_failures
        self.on_poll = on_poll

    @staticmethod
    def classify(info: AccountInfo, baseline: StateSignature) -> ClaimState:
        if not info.exists:
            return ClaimState.MISSING
        if baseline.matches(info):
            return ClaimState.UNCLAIMED
        return ClaimState.CLAIMED_OR_FULFILLED

    def watch(
        self,
        account: Pubkey,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = 60.0,
        baseline: Optional[StateSignature] = None,
        cancel: Optional[CancellationToken] = None,
        expiry_slot: Optional[int] = None
    ) -> Outcome[ClaimObservation]:
        """
        Poll ``account`` until it leaves its empty state.

        Args:
            account: Request account address
            poll_interval: Seconds between polls
            timeout: Seconds to keep watching while the request is unclaimed
            baseline: Empty-state signature; taken from the first read when None.
                A baseline without digest takes its digest from the first read.
            cancel: Token that stops the watch within one poll interval
            expiry_slot: Request expiry; a missing account past it ends the watch

        Returns:
            Outcome holding the first Claimed-or-Fulfilled observation, or
            WatchTimeout, WatchCancelled, WatchAborted or RequestExpired
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        if timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {timeout}")

        deadline = self.clock.now() + timeout
        failures = 0
        polls = 0
        last: Optional[ClaimObservation] = None

        while True:
            if cancel is not None and cancel.cancelled:
                return Outcome.failure(WatchCancelled(f"Watch of {account} cancelled", observation=last))

            polls += 1
            info, error = self._read(account)

            if info is None:
                failures += 1
                self._notify(None, error)
                if failures >= self.max_consecutive_failures:
                    return Outcome.failure(WatchAborted(
                        f"{failures} consecutive polls of {account} failed: {error}",
                        failures=failures, cause=error, observation=last
                    ))
            else:
                failures = 0
                if info.exists:
                    if baseline is None:
                        baseline = StateSignature.of(info)
                    elif baseline.digest is None and info.data_length == baseline.data_length:
                        baseline = StateSignature(data_length=baseline.data_length, digest=info.digest)

                state = self.classify(info, baseline or StateSignature(data_length=info.data_length))
                last = ClaimObservation(
                    account=account,
                    account_exists=info.exists,
                    data_length=info.data_length,
                    observed_at=self.clock.now(),
                    state=state,
                    data=info.data,
                    polls=polls
                )
                self._notify(last, None)

                if state == ClaimState.CLAIMED_OR_FULFILLED:
                    return Outcome.success(last)
                if state == ClaimState.MISSING and expiry_slot is not None and self._past(expiry_slot):
                    return Outcome.failure(RequestExpired(
                        f"Request account {account} missing past expiry slot {expiry_slot}", observation=last
                    ))

            remaining = deadline - self.clock.now()
            if remaining <= 0:
                return Outcome.failure(WatchTimeout(
                    f"Request account {account} still unclaimed after {timeout}s", observation=last
                ))
            if self.clock.sleep(min(poll_interval, remaining), cancel):
                return Outcome.failure(WatchCancelled(f"Watch of {account} cancelled", observation=last))

    def _read(self, account: Pubkey) -> Tuple[Optional[AccountInfo], Optional[LedgerError]]:
        error: Optional[LedgerError] = None
        for _ in range(self.read_retries + 1):
            try:
                return self.ledger.get_account(account), None
            except LedgerError as e:
                error = e
        return None, error

    def _past(self, expiry_slot: int) -> bool:
        try:
            return self.ledger.get_current_slot() > expiry_slot
        except LedgerError:
            return False

    def _notify(self, observation: Optional[ClaimObservation], error: Optional[Exception]) -> None:
        if self.on_poll is not None:
            self.on_poll(observation, error)
