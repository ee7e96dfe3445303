"""
Adapter protocol for image generation services.

Defines the interface every provider implements, plus the helpers they share
for turning HTTP outcomes into the zoombg error taxonomy. Adapters are
stateless: everything per-call (session, key) is passed in.
"""

from __future__ import annotations

import email.utils
import time
from dataclasses import dataclass
from datetime import timezone
from typing import TYPE_CHECKING, Protocol

import requests

from zoombg.logging_config import get_logger
from zoombg.utils.exceptions import (
    APIError,
    AuthError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)

if TYPE_CHECKING:
    from zoombg.core.image_gen import GenerationResult

logger = get_logger(__name__)

_RESPONSE_SNIPPET_MAX = 500
_CONTENT_POLICY_MARKERS = ("content_policy", "content policy", "safety", "moderation")


@dataclass(frozen=True)
class ServiceProfile:
    """Static facts about one service. ``timeout_ms`` bounds every attempt."""

    name: str
    display_name: str
    requires_api_key: bool
    timeout_ms: int
    key_help: str = ""

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class ServiceAdapter(Protocol):
    """Protocol for image generation services.

    ``generate_image`` performs one outbound request through ``session`` and
    must not retry; retrying is the caller's job. It may raise AuthError,
    RateLimitError, APIError, NetworkError or RequestTimeoutError.
    """

    profile: ServiceProfile

    def get_service_name(self) -> str:
        ...

    def requires_api_key(self) -> bool:
        ...

    def get_timeout(self) -> int:
        """Per-attempt timeout in milliseconds."""
        ...

    def generate_image(
        self,
        prompt: str,
        api_key: str | None = None,
        *,
        session: requests.Session,
    ) -> GenerationResult:
        ...


class ProfileMixin:
    """Implements the read-only part of ServiceAdapter from ``profile``."""

    profile: ServiceProfile

    def get_service_name(self) -> str:
        return self.profile.name

    def requires_api_key(self) -> bool:
        return self.profile.requires_api_key

    def get_timeout(self) -> int:
        return self.profile.timeout_ms


def parse_retry_after(value: str | None, now: float | None = None) -> float | None:
    """Parse a Retry-After header (delta-seconds or HTTP-date) into seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        current = now if now is not None else time.time()
        seconds = when.timestamp() - current
    if seconds < 0:
        return 0.0
    return seconds


def _snippet(text: str) -> str:
    if len(text) > _RESPONSE_SNIPPET_MAX:
        return text[:_RESPONSE_SNIPPET_MAX] + f"... <truncated, {len(text)} chars total>"
    return text


def raise_for_status(response: requests.Response, profile: ServiceProfile) -> None:
    """Map a non-2xx response onto the error taxonomy."""
    status = response.status_code
    if 200 <= status < 300:
        return
    name = profile.display_name
    body = _snippet(response.text or "")
    logger.debug("%s error response status=%s body=%s", name, status, body)

    if status in (401, 403):
        raise AuthError(
            f"{name} rejected the credentials (HTTP {status}).",
            status_code=status,
            response=body,
            remedy=profile.key_help or AuthError.default_remedy,
        )
    if status == 429:
        retry_after = parse_retry_after(response.headers.get("retry-after"))
        raise RateLimitError(
            f"Rate limit exceeded for {name}.",
            retry_after=retry_after,
            response=body,
        )
    if status >= 500:
        raise NetworkError(
            f"{name} service error: {status}",
            status_code=status,
            remedy="The service may be temporarily unavailable. Try again shortly.",
        )
    lowered = body.lower()
    if status == 400 and any(marker in lowered for marker in _CONTENT_POLICY_MARKERS):
        raise APIError(
            f"{name} refused the prompt (content policy).",
            status_code=status,
            response=body,
            remedy="Try rephrasing to avoid explicit, violent, or copyrighted content.",
        )
    raise APIError(
        f"{name} request failed with status {status}: {body}",
        status_code=status,
        response=body,
    )


def translate_request_exception(
    exc: requests.exceptions.RequestException, profile: ServiceProfile
) -> Exception:
    """Return the zoombg error for a requests-level failure."""
    if isinstance(exc, requests.exceptions.Timeout):
        err: Exception = RequestTimeoutError(
            f"Request to {profile.display_name} timed out after "
            f"{profile.timeout_seconds:g} seconds.",
            timeout_ms=profile.timeout_ms,
        )
    elif isinstance(exc, requests.exceptions.ConnectionError):
        err = NetworkError(
            f"Failed to connect to {profile.display_name}.",
            original_error=exc,
        )
    else:
        err = NetworkError(
            f"Network error during {profile.display_name} request: {exc}",
            original_error=exc,
        )
    err.__cause__ = exc
    return err


def bearer_headers(api_key: str | None, extra: dict[str, str] | None = None) -> dict[str, str]:
    """Build request headers, adding a bearer token when a key is given."""
    headers = dict(extra or {})
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers