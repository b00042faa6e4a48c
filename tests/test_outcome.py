"""
Tests for Outcome and the error hierarchy.
"""
import pytest

from bonsol_sdk import (
    AccountCollision, BonsolError, ConfirmationTimeout, ErrorKind, ImageLookupFailed,
    ImageNotRegistered, InputTooLarge, InvalidImageId, LedgerRejected, Outcome, Phase,
    RequestExpired, WatchAborted, WatchCancelled, WatchTimeout
)
from bonsol_sdk.ledger import LedgerConnectionError


class TestOutcome:
    def test_success(self):
        outcome = Outcome.success(3)
        assert outcome.ok
        assert outcome.unwrap() == 3
        assert outcome.error is None

    def test_failure(self):
        error = WatchTimeout("late")
        outcome = Outcome.failure(error)
        assert not outcome.ok
        assert outcome.error is error
        with pytest.raises(WatchTimeout):
            outcome.unwrap()

    def test_needs_exactly_one(self):
        with pytest.raises(ValueError):
            Outcome()
        with pytest.raises(ValueError):
            Outcome(value=1, error=WatchTimeout("late"))

    def test_map(self):
        assert Outcome.success(2).map(lambda v: v * 10).unwrap() == 20
        error = AccountCollision("taken")
        assert Outcome.failure(error).map(lambda v: v * 10).error is error


class TestErrors:
    @pytest.mark.parametrize("error,phase", [
        (InvalidImageId("x"), Phase.LOCATE),
        (InputTooLarge("x"), Phase.BUILD),
        (LedgerRejected("x"), Phase.SUBMIT),
        (RequestExpired("x"), Phase.WATCH),
    ])
    def test_phase(self, error, phase):
        assert error.phase == phase
        assert str(error) == f"[{phase.value}] x"

    @pytest.mark.parametrize("error,retryable", [
        (InvalidImageId("x"), False),
        (ImageNotRegistered("x"), False),
        (ImageLookupFailed("x"), True),
        (AccountCollision("x"), False),
        (LedgerRejected("x"), True),
        (ConfirmationTimeout("x"), True),
        (WatchTimeout("x"), True),
        (WatchCancelled("x"), False),
        (WatchAborted("x"), True),
        (RequestExpired("x"), False),
    ])
    def test_retryable(self, error, retryable):
        assert error.retryable is retryable

    def test_cause_is_chained(self):
        cause = LedgerConnectionError("down")
        error = LedgerRejected("send failed", reason="down", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause
        assert error.kind == ErrorKind.TRANSIENT

    def test_phase_override(self):
        error = BonsolError("generic", phase=Phase.WATCH)
        assert str(error) == "[Watch] generic"
        assert str(BonsolError("generic")) == "generic"

    def test_watch_error_context(self):
        error = WatchTimeout("late", observation="obs")
        assert error.observation == "obs"
        assert error.confirmation is None
