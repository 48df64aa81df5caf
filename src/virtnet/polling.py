"""
Cooperative polling until an external system converges.
"""

import time
from dataclasses import dataclass
from typing import Callable

from virtnet.errors import ConvergenceTimeoutError, ExternalServiceError
from virtnet.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class PollSettings:
    """Delay before the first check, interval between checks, overall deadline."""

    delay: float = 5.0
    interval: float = 3.0
    timeout: float = 60.0


def poll_until(
    check: Callable[[], bool],
    settings: PollSettings,
    description: str,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Call ``check`` until it returns True.

    An ``ExternalServiceError`` raised by ``check`` counts as "not yet";
    anything else propagates. The deadline is measured from the call,
    including the initial delay.

    Returns:
        Number of checks performed

    Raises:
        ConvergenceTimeoutError: deadline passed without convergence
    """
    deadline = clock() + settings.timeout
    sleep(min(settings.delay, settings.timeout))

    attempts = 0
    while True:
        attempts += 1
        try:
            if check():
                log.debug(f"Converged: {description}", attempts=attempts)
                return attempts
            log.debug(f"Waiting for {description}", attempt=attempts)
        except ExternalServiceError as e:
            log.debug(f"Check failed while waiting for {description}", attempt=attempts, error=str(e))

        remaining = deadline - clock()
        if remaining <= 0:
            raise ConvergenceTimeoutError(description, settings.timeout, attempts)
        sleep(min(settings.interval, remaining))
