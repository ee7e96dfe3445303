"""
HTTP session for a single generation attempt.

Every request made through an AttemptSession shares the attempt's deadline:
the timeout an adapter passes is capped to the time left. ``abort()`` shuts
down the socket of every response the session has received, which wakes a
worker thread blocked reading a body, and refuses any further requests.

A request still waiting for response headers cannot be shut down from
outside; its connect and read timeouts are already capped to the deadline.
"""

import threading
import time
from collections.abc import Callable

import requests
from requests.adapters import HTTPAdapter

from zoombg.logging_config import get_logger

logger = get_logger(__name__)


class _TrackingAdapter(HTTPAdapter):
    """Hands every response to the owning session as soon as headers arrive."""

    def __init__(self, owner: "AttemptSession") -> None:
        super().__init__()
        self._owner = owner

    def send(self, request, **kwargs):
        response = super().send(request, **kwargs)
        self._owner._track(response)
        return response


def _cap_timeout(timeout, remaining: float):
    if timeout is None:
        return remaining
    if isinstance(timeout, tuple):
        return tuple(remaining if t is None else min(t, remaining) for t in timeout)
    return min(timeout, remaining)


def _shutdown(response: requests.Response) -> None:
    raw = response.raw
    if raw is None:
        return
    try:
        raw.shutdown()
    except (ValueError, RuntimeError, OSError) as e:
        # Already released to the pool or closed: nothing left to interrupt
        logger.debug("Response socket not shut down: %s", e)


class AttemptSession(requests.Session):
    """requests.Session bound to one attempt's deadline, abortable from another thread."""

    def __init__(
        self,
        timeout_ms: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self._clock = clock
        self.timeout_ms = timeout_ms
        self.deadline = clock() + timeout_ms / 1000
        self._lock = threading.Lock()
        self._responses: list[requests.Response] = []
        self._aborted = False
        adapter = _TrackingAdapter(self)
        self.mount("http://", adapter)
        self.mount("https://", adapter)

    @property
    def aborted(self) -> bool:
        return self._aborted

    def remaining(self) -> float:
        """Seconds left before the attempt deadline (never negative)."""
        return max(0.0, self.deadline - self._clock())

    def request(self, method, url, *args, **kwargs):
        if self._aborted:
            raise requests.exceptions.ConnectionError(f"Attempt aborted before {method} {url}")
        remaining = self.remaining()
        if remaining <= 0:
            raise requests.exceptions.Timeout(f"Attempt deadline passed before {method} {url}")
        kwargs["timeout"] = _cap_timeout(kwargs.get("timeout"), remaining)
        return super().request(method, url, *args, **kwargs)

    def _track(self, response: requests.Response) -> None:
        with self._lock:
            aborted = self._aborted
            if not aborted:
                self._responses.append(response)
        if aborted:
            _shutdown(response)

    def abort(self) -> None:
        """Interrupt any response being read and refuse new requests."""
        with self._lock:
            self._aborted = True
            responses, self._responses = self._responses, []
        logger.debug("Aborting attempt session (%d tracked responses)", len(responses))
        for response in responses:
            _shutdown(response)
