"""Bounded exponential backoff around single remote calls.

Transient failures (rate limiting, 5xx gateways, dropped connections) are
retried with exponential backoff: 1s initial interval, growing by 1.5x, capped
at 30s between attempts and 2 minutes in total. Anything else fails on the
first attempt. Cancellation interrupts the wait immediately and surfaces as
:class:`OperationCancelledError`, never as a timeout.
"""

import logging
import socket
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from googleapiclient.errors import HttpError
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_before_delay,
    wait_exponential,
)

from drive_organizer.cancellation import CancellationToken
from drive_organizer.errors import OperationCancelledError, RemoteOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_MESSAGES = ("connection reset", "connection refused", "timeout", "timed out")


@dataclass(frozen=True)
class RetryPolicy:
    initial_interval: float = 1.0
    multiplier: float = 1.5
    max_interval: float = 30.0
    max_elapsed: float = 120.0


def status_code(exc: BaseException) -> int | None:
    if isinstance(exc, HttpError):
        try:
            return int(exc.resp.status)
        except (AttributeError, TypeError, ValueError):
            return None
    return None


def is_retryable(exc: BaseException) -> bool:
    """Classify a remote failure as transient (True) or permanent (False)."""
    if isinstance(exc, OperationCancelledError):
        return False

    code = status_code(exc)
    if code is not None:
        return code in RETRYABLE_STATUS_CODES

    if isinstance(exc, (ConnectionResetError, ConnectionRefusedError, TimeoutError, socket.timeout)):
        return True

    message = str(exc).lower()
    return any(fragment in message for fragment in RETRYABLE_MESSAGES)


class RetryExecutor:
    def __init__(
        self,
        token: CancellationToken | None = None,
        policy: RetryPolicy = RetryPolicy(),
    ):
        self.token = token if token is not None else CancellationToken()
        self.policy = policy

    def _retrying(self) -> Retrying:
        policy = self.policy
        return Retrying(
            retry=retry_if_exception(is_retryable),
            wait=wait_exponential(
                multiplier=policy.initial_interval,
                exp_base=policy.multiplier,
                max=policy.max_interval,
            ),
            stop=stop_before_delay(policy.max_elapsed),
            sleep=self.token.sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )

    def _attempt(self, operation: Callable[[], T]) -> T:
        self.token.raise_if_cancelled()
        return operation()

    def execute(
        self,
        operation: Callable[[], T],
        target_id: str,
        description: str = "remote operation",
    ) -> T:
        """Run ``operation`` with retries.

        Raises:
            OperationCancelledError: the token fired before or between attempts
            RemoteOperationError: permanent failure, or the elapsed-time budget ran out
        """
        try:
            return self._retrying()(self._attempt, operation)
        except OperationCancelledError:
            raise
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error(f"{description} '{target_id}' gave up after retries: {cause}")
            raise RemoteOperationError(description, target_id, cause, retryable=True) from cause
        except Exception as e:
            raise RemoteOperationError(description, target_id, e) from e
