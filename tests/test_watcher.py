"""
Tests for ClaimWatcher.
"""
import pytest

from bonsol_sdk import (
    CancellationToken, ClaimState, ClaimWatcher, ErrorKind, RequestExpired, WatchAborted,
    WatchCancelled, WatchTimeout
)
from bonsol_sdk.ledger import LedgerConnectionError
from bonsol_sdk.models import AccountInfo, StateSignature

from tests.test_helpers import make_keypair


@pytest.fixture
def watcher(ledger, clock):
    return ClaimWatcher(ledger, clock=clock)


def test_detects_claim_once(watcher, ledger, clock, confirmation):
    account = confirmation.request_account
    clock.call_at(2.5, lambda: ledger.claim(account, b"\x01"))

    outcome = watcher.watch(account, poll_interval=1.0, timeout=10.0, baseline=confirmation.expected_state)

    assert outcome.ok
    observation = outcome.value
    assert observation.claimed
    assert observation.state == ClaimState.CLAIMED_OR_FULFILLED
    assert observation.polls == 4
    assert observation.observed_at == 3.0
    assert observation.data_length == confirmation.capacity
    assert clock.sleeps == [1.0, 1.0, 1.0]


def test_detects_growth(watcher, ledger, clock, confirmation):
    account = confirmation.request_account
    clock.call_at(0.5, lambda: ledger.append(account, b"\x00" * 64))

    observation = watcher.watch(account, timeout=10.0, baseline=confirmation.expected_state).unwrap()

    assert observation.data_length == confirmation.capacity + 64
    assert observation.polls == 2


def test_baseline_from_first_read(watcher, ledger, clock, confirmation):
    account = confirmation.request_account
    clock.call_at(1.5, lambda: ledger.claim(account, b"\x02"))

    observation = watcher.watch(account, timeout=10.0).unwrap()
    assert observation.polls == 3


def test_claim_before_first_poll(watcher, ledger, clock, confirmation):
    account = confirmation.request_account
    ledger.claim(account, b"\x03")

    observation = watcher.watch(account, timeout=10.0, baseline=confirmation.expected_state).unwrap()

    assert observation.claimed
    assert observation.polls == 1
    assert clock.sleeps == []


def test_zero_timeout_polls_once(watcher, confirmation, clock):
    outcome = watcher.watch(confirmation.request_account, timeout=0, baseline=confirmation.expected_state)

    assert isinstance(outcome.error, WatchTimeout)
    assert outcome.error.observation.state == ClaimState.UNCLAIMED
    assert outcome.error.observation.polls == 1
    assert outcome.error.retryable
    assert clock.sleeps == []


def test_timeout_bounds_last_sleep(watcher, confirmation, clock):
    outcome = watcher.watch(confirmation.request_account, poll_interval=1.0, timeout=3.5)

    assert isinstance(outcome.error, WatchTimeout)
    assert clock.sleeps == [1.0, 1.0, 1.0, 0.5]
    assert outcome.error.observation.polls == 5
    assert clock.now() == 3.5


def test_cancel_during_sleep(watcher, confirmation, clock):
    token = CancellationToken()
    clock.call_at(2.5, token.cancel)

    outcome = watcher.watch(confirmation.request_account, poll_interval=1.0, timeout=60.0, cancel=token)

    assert isinstance(outcome.error, WatchCancelled)
    assert outcome.error.kind == ErrorKind.CANCELLED
    assert not outcome.error.retryable
    assert clock.now() == 2.5
    assert outcome.error.observation.polls == 3


def test_cancelled_before_first_poll(watcher, ledger, confirmation):
    token = CancellationToken()
    token.cancel()
    reads = ledger.read_count

    outcome = watcher.watch(confirmation.request_account, cancel=token)

    assert isinstance(outcome.error, WatchCancelled)
    assert outcome.error.observation is None
    assert ledger.read_count == reads


def test_transient_failures_are_tolerated(ledger, clock, confirmation):
    seen = []
    watcher = ClaimWatcher(ledger, clock=clock, read_retries=2,
                           on_poll=lambda observation, error: seen.append((observation, error)))
    account = confirmation.request_account
    ledger.fail_reads(4)
    clock.call_at(2.5, lambda: ledger.claim(account, b"\x01"))

    observation = watcher.watch(account, timeout=10.0, baseline=confirmation.expected_state).unwrap()

    assert observation.claimed
    assert observation.polls == 4
    assert seen[0][0] is None and isinstance(seen[0][1], LedgerConnectionError)
    assert [obs.state for obs, _ in seen[1:]] == [
        ClaimState.UNCLAIMED, ClaimState.UNCLAIMED, ClaimState.CLAIMED_OR_FULFILLED
    ]


def test_aborts_after_consecutive_failures(ledger, clock, confirmation):
    watcher = ClaimWatcher(ledger, clock=clock, read_retries=0, max_consecutive_failures=3)
    ledger.fail_reads(100)

    outcome = watcher.watch(confirmation.request_account, timeout=60.0)

    assert isinstance(outcome.error, WatchAborted)
    assert outcome.error.failures == 3
    assert outcome.error.retryable
    assert isinstance(outcome.error.cause, LedgerConnectionError)
    assert clock.now() == 2.0


def test_missing_account_past_expiry(watcher, ledger, clock, confirmation):
    account = confirmation.request_account
    ledger.close_account(account)
    clock.call_at(2.5, lambda: ledger.advance_slot(5000))

    outcome = watcher.watch(account, timeout=60.0, baseline=confirmation.expected_state,
                            expiry_slot=confirmation.expiry_slot)

    assert isinstance(outcome.error, RequestExpired)
    assert outcome.error.kind == ErrorKind.EXPIRED
    assert outcome.error.observation.state == ClaimState.MISSING
    assert not outcome.error.observation.account_exists
    assert outcome.error.observation.polls == 4


def test_missing_account_before_expiry_keeps_watching(watcher, clock):
    account = make_keypair(7).pubkey()
    outcome = watcher.watch(account, timeout=2.0, expiry_slot=10_000)

    assert isinstance(outcome.error, WatchTimeout)
    assert outcome.error.observation.state == ClaimState.MISSING


@pytest.mark.parametrize("kwargs", [{"poll_interval": 0}, {"poll_interval": -1}, {"timeout": -0.1}])
def test_invalid_watch_arguments(watcher, confirmation, kwargs):
    with pytest.raises(ValueError):
        watcher.watch(confirmation.request_account, **kwargs)


@pytest.mark.parametrize("kwargs", [{"read_retries": -1}, {"max_consecutive_failures": 0}])
def test_invalid_watcher_config(ledger, kwargs):
    with pytest.raises(ValueError):
        ClaimWatcher(ledger, **kwargs)


class TestClassify:
    """Tests for the state classification of a single read."""

    def test_missing(self):
        assert ClaimWatcher.classify(AccountInfo.missing(), StateSignature(data_length=10)) == ClaimState.MISSING

    def test_same_length_without_digest(self):
        info = AccountInfo(exists=True, data_length=10, data=b"\x01" * 10)
        assert ClaimWatcher.classify(info, StateSignature(data_length=10)) == ClaimState.UNCLAIMED

    def test_changed_content(self):
        before = AccountInfo(exists=True, data_length=4, data=bytes(4))
        after = AccountInfo(exists=True, data_length=4, data=b"\x00\x00\x00\x01")
        assert ClaimWatcher.classify(after, StateSignature.of(before)) == ClaimState.CLAIMED_OR_FULFILLED

    def test_changed_length(self):
        info = AccountInfo(exists=True, data_length=12, data=bytes(12))
        assert ClaimWatcher.classify(info, StateSignature(data_length=10)) == ClaimState.CLAIMED_OR_FULFILLED
