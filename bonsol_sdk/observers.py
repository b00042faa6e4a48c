"""
Session listeners that turn protocol progress into log records.
"""
import logging
from typing import Optional

from ._rate_limited_log import rate_limited_log
from .exceptions import BonsolError, ErrorKind
from .models import ClaimObservation, ClaimState, Confirmation
from .session import SessionEvent, SessionListener

logger = logging.getLogger(__name__)


class LoggingObserver(SessionListener):
    """
    Logs session phases and watch polls.

    Poll read failures are rate limited so a misbehaving RPC node does not
    flood the log during a long watch.
    """

    def __init__(self, logger_instance: Optional[logging.Logger] = None, failure_log_interval: int = 30):
        self.logger = logger_instance or logger
        self.failure_log_interval = failure_log_interval

    def on_event(self, event: SessionEvent) -> None:
        phase = event.phase.value if event.phase else "?"
        if event.status == "started":
            self.logger.debug(f"{phase}: started")
        elif event.status == "succeeded":
            self.logger.info(f"{phase}: {self._describe(event.detail)}")
        elif event.status == "failed":
            error = event.detail
            if isinstance(error, BonsolError) and error.kind in (ErrorKind.TIMEOUT, ErrorKind.CANCELLED):
                self.logger.warning(f"{phase}: {error}")
            else:
                self.logger.error(f"{phase} failed: {error}")

    def on_poll(self, observation: Optional[ClaimObservation], error: Optional[Exception]) -> None:
        if error is not None:
            rate_limited_log(
                f"Request account poll failed: {error}",
                level="warning",
                interval=self.failure_log_interval,
                logger_instance=self.logger,
                key=f"poll-failure:{type(error).__name__}"
            )
            return
        if observation is None:
            return
        if observation.state == ClaimState.MISSING:
            rate_limited_log(
                f"Request account {observation.account} not found (poll {observation.polls})",
                level="warning",
                interval=self.failure_log_interval,
                logger_instance=self.logger,
                key=f"poll-missing:{observation.account}"
            )
        else:
            self.logger.debug(
                f"Poll {observation.polls}: {observation.state.value}, {observation.data_length} bytes"
            )

    @staticmethod
    def _describe(detail: object) -> str:
        if isinstance(detail, Confirmation):
            return f"request account {detail.request_account} created, signature {detail.signature[:16]}..."
        if isinstance(detail, ClaimObservation):
            return f"{detail.state.value} after {detail.polls} poll(s)"
        return str(detail)
