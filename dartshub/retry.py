#===============================================================================
#  Darts_Hub_Core | retry.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Bounded exponential-backoff retry for network operations (version check,
#  size probe, download). Transient errors are retried, everything else is
#  raised at once. Attempts and the backoff countdown are published on the bus.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import logging
import math
import threading
from typing import Callable, Optional, TypeVar

import requests

from .constants import RETRY_BASE_DELAY, RETRY_MAX_ATTEMPTS, RETRY_MAX_DELAY
from .errors import OperationCancelled, RetryExhaustedError
from .events import EventBus, RetryProgress

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


def is_retryable(exc: BaseException) -> bool:
    """Timeouts and dropped connections are transient; bad URLs, 4xx and local I/O errors are not."""
    if isinstance(exc, requests.exceptions.HTTPError):
        resp = exc.response
        return resp is not None and resp.status_code in RETRYABLE_STATUS
    if isinstance(exc, (requests.exceptions.InvalidURL,
                        requests.exceptions.MissingSchema,
                        requests.exceptions.InvalidSchema)):
        return False
    return isinstance(exc, (requests.exceptions.ConnectionError,
                            requests.exceptions.Timeout,
                            requests.exceptions.ChunkedEncodingError))


class RetryHelper:
    def __init__(
        self,
        bus: Optional[EventBus] = None,
        max_attempts: int = RETRY_MAX_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY,
        max_delay: float = RETRY_MAX_DELAY,
    ):
        self.bus = bus
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay

    def delay_for(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))

    def execute(
        self,
        operation: Callable[[], T],
        operation_name: str = "Operation",
        cancel: Optional[threading.Event] = None,
    ) -> T:
        last: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            if cancel is not None and cancel.is_set():
                raise OperationCancelled(operation_name)
            logger.info("%s - attempt %d of %d", operation_name, attempt, self.max_attempts)
            self._publish(RetryProgress(operation_name, attempt, self.max_attempts,
                                        message=f"Attempting {operation_name}..."))
            try:
                result = operation()
            except Exception as exc:
                if not is_retryable(exc):
                    logger.error("%s - non-retryable error on attempt %d: %s", operation_name, attempt, exc)
                    raise
                last = exc
                logger.warning("%s - attempt %d failed: %s", operation_name, attempt, exc)
                if attempt < self.max_attempts:
                    self._wait(self.delay_for(attempt), attempt + 1, operation_name, cancel)
                continue
            if attempt > 1:
                logger.info("%s - succeeded on attempt %d", operation_name, attempt)
            return result

        logger.error("%s - all %d attempts failed", operation_name, self.max_attempts)
        raise RetryExhaustedError(operation_name, self.max_attempts, last) from last

    def _wait(self, delay: float, next_attempt: int, operation_name: str,
              cancel: Optional[threading.Event]) -> None:
        stop = cancel or threading.Event()
        remaining = delay
        while remaining > 0:
            secs = int(math.ceil(remaining))
            self._publish(RetryProgress(
                operation_name, next_attempt, self.max_attempts,
                is_retrying=True, remaining_seconds=secs,
                message=f"Retrying {operation_name} in {secs} seconds... "
                        f"(Retry {next_attempt} of {self.max_attempts})",
            ))
            step = min(1.0, remaining)
            if stop.wait(step):
                raise OperationCancelled(operation_name)
            remaining -= step

    def _publish(self, progress: RetryProgress) -> None:
        if self.bus is not None:
            self.bus.retry_progressed.emit(progress)
