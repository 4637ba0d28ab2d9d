"""Bounded readiness polling.

Turns an asynchronous convergence (a service starting, a file appearing, a node
registering) into a synchronous yes/no with a hard attempt ceiling.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from edgectl.config import RetryPolicy
from edgectl.errors import ConvergenceTimeout

logger = logging.getLogger("edgectl.poller")

# Predicates take the per-attempt timeout as keyword argument
Predicate = Callable[..., bool]


@dataclass(frozen=True)
class PollResult:
    ok: bool
    attempts: int
    elapsed: float
    last_error: Optional[str] = None


def await_condition(
    predicate: Predicate,
    policy: RetryPolicy,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """Evaluate ``predicate`` until it returns True or the policy is exhausted.

    An exception raised by the predicate counts as a failed attempt.

    Args:
        predicate: Called as ``predicate(timeout=policy.per_attempt_timeout)``
        policy: Attempt count, interval and per-attempt timeout
        description: Human readable name used in log lines
        sleep: Sleep function, replaceable in tests

    Returns:
        PollResult describing the outcome; never raises on exhaustion
    """
    attempts = 0
    last_error: Optional[str] = None

    def attempt() -> bool:
        nonlocal attempts, last_error
        attempts += 1
        try:
            ready = bool(predicate(timeout=policy.per_attempt_timeout))
        except Exception as e:
            last_error = f"{type(e).__name__}: {e}"
            logger.debug(f"{description}: attempt {attempts} raised {last_error}")
            ready = False
        if not ready and attempts % 10 == 0:
            logger.info(f"⏳ Still waiting for {description} ({attempts}/{policy.max_attempts})")
        return ready

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_fixed(policy.interval),
        retry=retry_if_result(lambda ready: not ready),
        sleep=sleep,
    )

    logger.info(f"⏳ Waiting for {description} (up to {policy.max_attempts} x {policy.interval}s)")
    start = time.monotonic()
    try:
        ok = retrying(attempt)
    except RetryError:
        ok = False
    elapsed = time.monotonic() - start

    if ok:
        logger.info(f"✅ {description} ready after {attempts} attempt(s)")
    return PollResult(ok=ok, attempts=attempts, elapsed=elapsed, last_error=last_error)


def require_condition(
    predicate: Predicate,
    policy: RetryPolicy,
    description: str,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """Like ``await_condition`` but raises ConvergenceTimeout on exhaustion."""
    result = await_condition(predicate, policy, description, sleep=sleep)
    if not result.ok:
        message = (
            f"{description} not ready after {result.attempts} attempts "
            f"(ceiling {policy.ceiling:.0f}s)"
        )
        if result.last_error:
            message += f"; last error: {result.last_error}"
        raise ConvergenceTimeout(message)
    return result
