"""
Retry policy around a single adapter call.

Attempts, backoff and sleeping are driven by tenacity. Each attempt runs on a
worker thread with its own AttemptSession while the calling thread polls for
the worker finishing, the service's per-attempt deadline, and user
cancellation. When the deadline or a cancellation wins, the session is
aborted, which interrupts the in-flight response, and the worker is joined
before the next attempt starts, so at most one request is in flight.

Transient failures (network errors, 5xx, rate limits, per-attempt timeouts)
are retried with exponential backoff. Everything else propagates unchanged
on first occurrence.
"""

import functools
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import requests
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from zoombg.core.config import Config
from zoombg.core.image_gen import GenerationResult
from zoombg.core.providers.base import ServiceAdapter
from zoombg.core.transport import AttemptSession
from zoombg.logging_config import get_logger
from zoombg.utils.cleanup import ResourceScope
from zoombg.utils.exceptions import (
    CancellationError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    RetryExhaustedError,
)

logger = get_logger(__name__)

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)

OUTCOME_SUCCESS = "success"
OUTCOME_TRANSIENT = "transient"
OUTCOME_FATAL = "fatal"

DEFAULT_POLL_INTERVAL = 0.25
DEFAULT_ABORT_GRACE = 2.0


def is_transient(exc: BaseException) -> bool:
    """Return True if retrying could plausibly fix this failure."""
    if isinstance(exc, RetryExhaustedError):
        return False
    return isinstance(exc, TRANSIENT_ERRORS)


@dataclass
class Attempt:
    """One call made by the policy. Not persisted."""

    number: int
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    outcome: str = ""
    error: BaseException | None = None
    duration: float = 0.0


RetryCallback = Callable[[int, float, BaseException], None]


class RetryPolicy:
    """Exponential backoff with a hard per-attempt timeout."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        max_delay: float = 30.0,
        jitter: float = 0.0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
        session_factory: Callable[[int], requests.Session] = AttemptSession,
        scope: ResourceScope | None = None,
        abort_grace: float = DEFAULT_ABORT_GRACE,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self.poll_interval = poll_interval
        self.abort_grace = abort_grace
        self._sleep = sleep
        self._clock = clock
        self._rng = rng
        self._session_factory = session_factory
        self._exponential = wait_exponential(
            multiplier=base_delay, exp_base=multiplier, max=max_delay
        )
        self.scope = scope

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "RetryPolicy":
        """Build a policy from Config retry tunables."""
        kwargs = {
            "max_attempts": config.max_attempts,
            "base_delay": config.backoff_base,
            "multiplier": config.backoff_multiplier,
            "max_delay": config.backoff_cap,
            "jitter": config.backoff_jitter,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    def delay_for(self, attempt: int, error: BaseException | None = None) -> float:
        """
        Delay to wait after failed attempt number ``attempt`` (1-based).

        ``base * multiplier^(attempt-1)``, capped at ``max_delay``, plus
        optional jitter (still within the cap). A provider ``retry_after``
        hint replaces the computed delay when it is larger.
        """
        state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
        state.attempt_number = attempt
        if error is not None:
            state.set_exception((type(error), error, error.__traceback__))
        return self._backoff(state)

    def _backoff(self, retry_state: RetryCallState) -> float:
        delay = float(self._exponential(retry_state))
        if self.jitter:
            delay = min(delay + delay * self.jitter * self._rng(), self.max_delay)
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None and outcome.failed else None
        hint = getattr(error, "retry_after", None)
        if hint is not None and hint > delay:
            delay = float(hint)
        return delay

    def run(
        self,
        adapter: ServiceAdapter,
        prompt: str,
        api_key: str | None = None,
        *,
        cancel_check: Callable[[], bool] | None = None,
        on_retry: RetryCallback | None = None,
    ) -> GenerationResult:
        """
        Call ``adapter.generate_image`` until it succeeds or fails for good.

        Raises:
            RetryExhaustedError: After max_attempts transient failures
            CancellationError: If cancel_check returned True
            Any non-transient error from the adapter, unchanged
        """
        attempts: list[Attempt] = []
        name = adapter.get_service_name()
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._backoff,
            retry=retry_if_exception(is_transient),
            before_sleep=functools.partial(self._before_sleep, name=name, on_retry=on_retry),
            sleep=functools.partial(self._sleep_interruptibly, cancel_check=cancel_check),
        )
        result: GenerationResult | None = None
        try:
            for call in retrying:
                with call:
                    result = self._recorded_attempt(
                        attempts,
                        call.retry_state.attempt_number,
                        adapter,
                        prompt,
                        api_key,
                        cancel_check,
                    )
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise RetryExhaustedError(
                f"{name} failed after {self.max_attempts} attempts: {last_error}",
                attempts=attempts,
                last_error=last_error,
                timeout_ms=adapter.get_timeout(),
            ) from last_error

        if len(attempts) > 1:
            logger.info("Succeeded on attempt %d/%d", len(attempts), self.max_attempts)
        assert result is not None
        return result

    def _recorded_attempt(
        self,
        attempts: list[Attempt],
        number: int,
        adapter: ServiceAdapter,
        prompt: str,
        api_key: str | None,
        cancel_check: Callable[[], bool] | None,
    ) -> GenerationResult:
        attempt = Attempt(number=number)
        attempts.append(attempt)
        start = self._clock()
        try:
            result = self._attempt(adapter, prompt, api_key, number, cancel_check)
        except BaseException as e:
            attempt.duration = self._clock() - start
            attempt.error = e
            attempt.outcome = OUTCOME_TRANSIENT if is_transient(e) else OUTCOME_FATAL
            if attempt.outcome == OUTCOME_FATAL:
                logger.debug(
                    "Attempt %d with %s failed fatally: %s", number, adapter.get_service_name(), e
                )
            raise
        attempt.duration = self._clock() - start
        attempt.outcome = OUTCOME_SUCCESS
        return result

    def _before_sleep(
        self,
        retry_state: RetryCallState,
        *,
        name: str,
        on_retry: RetryCallback | None,
    ) -> None:
        error = retry_state.outcome.exception()
        delay = retry_state.next_action.sleep
        logger.warning(
            "Attempt %d/%d with %s failed: %s; retrying in %.1fs",
            retry_state.attempt_number,
            self.max_attempts,
            name,
            error,
            delay,
        )
        if on_retry is not None:
            on_retry(retry_state.attempt_number, delay, error)

    def _attempt(
        self,
        adapter: ServiceAdapter,
        prompt: str,
        api_key: str | None,
        number: int,
        cancel_check: Callable[[], bool] | None,
    ) -> GenerationResult:
        """Run one adapter call on a worker thread under the service deadline."""
        timeout_ms = adapter.get_timeout()
        deadline = self._clock() + timeout_ms / 1000
        session = self._session_factory(timeout_ms)
        if self.scope is not None:
            self.scope.register(session.close, f"HTTP session for attempt {number}")
        result_holder: list[GenerationResult | None] = [None]
        exc_holder: list[BaseException | None] = [None]

        def worker() -> None:
            try:
                result_holder[0] = adapter.generate_image(prompt, api_key, session=session)
            except BaseException as e:
                exc_holder[0] = e

        thread = threading.Thread(
            target=worker,
            name=f"zoombg-{adapter.get_service_name()}-attempt-{number}",
            daemon=True,
        )
        thread.start()
        try:
            while True:
                remaining = deadline - self._clock()
                thread.join(timeout=max(0.0, min(self.poll_interval, remaining)))
                if not thread.is_alive():
                    break
                if self._clock() >= deadline:
                    raise RequestTimeoutError(
                        f"{adapter.get_service_name()} did not answer within "
                        f"{timeout_ms / 1000:g} seconds.",
                        timeout_ms=timeout_ms,
                    )
                if cancel_check is not None and cancel_check():
                    raise CancellationError("Image generation was cancelled.")
        finally:
            if thread.is_alive():
                session.abort()
                thread.join(timeout=self.abort_grace)
                if thread.is_alive():
                    logger.warning(
                        "Attempt %d with %s still running %.1fs after abort",
                        number,
                        adapter.get_service_name(),
                        self.abort_grace,
                    )
            session.close()

        if exc_holder[0] is not None:
            raise exc_holder[0]
        assert result_holder[0] is not None
        return result_holder[0]

    def _sleep_interruptibly(
        self, delay: float, cancel_check: Callable[[], bool] | None = None
    ) -> None:
        """Sleep for ``delay`` seconds in poll-sized steps, honouring cancellation."""
        if cancel_check is None:
            self._sleep(delay)
            return
        remaining = delay
        while remaining > 0:
            if cancel_check():
                raise CancellationError("Image generation was cancelled.")
            step = min(self.poll_interval, remaining)
            self._sleep(step)
            remaining -= step
        if cancel_check():
            raise CancellationError("Image generation was cancelled.")
