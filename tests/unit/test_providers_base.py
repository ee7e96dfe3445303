"""Unit tests for shared provider helpers (status mapping, Retry-After)."""

from datetime import datetime, timezone
from email.utils import format_datetime
from unittest.mock import MagicMock

import pytest
import requests

from zoombg.core.providers.base import (
    ServiceProfile,
    bearer_headers,
    parse_retry_after,
    raise_for_status,
    translate_request_exception,
)
from zoombg.utils.exceptions import (
    APIError,
    AuthError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)

PROFILE = ServiceProfile(
    name="openai",
    display_name="OpenAI",
    requires_api_key=True,
    timeout_ms=60_000,
    key_help="set the key",
)


def _response(status: int, text: str = "", headers: dict | None = None) -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.text = text
    r.headers = headers or {}
    return r


@pytest.mark.unit
class TestServiceProfile:
    def test_timeout_seconds(self):
        assert PROFILE.timeout_seconds == 60.0


@pytest.mark.unit
class TestParseRetryAfter:
    def test_seconds(self):
        assert parse_retry_after("12") == 12.0

    def test_missing(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None

    def test_http_date(self):
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        later = datetime(2024, 5, 1, 12, 0, 30, tzinfo=timezone.utc)
        assert parse_retry_after(format_datetime(later, usegmt=True), now=now.timestamp()) == 30.0

    def test_past_date_is_zero(self):
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        earlier = datetime(2024, 5, 1, 11, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after(format_datetime(earlier, usegmt=True), now=now.timestamp()) == 0.0

    def test_garbage(self):
        assert parse_retry_after("soon-ish") is None


@pytest.mark.unit
class TestRaiseForStatus:
    def test_success_passes(self):
        raise_for_status(_response(200), PROFILE)
        raise_for_status(_response(201), PROFILE)

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth(self, status):
        with pytest.raises(AuthError) as exc_info:
            raise_for_status(_response(status, "denied"), PROFILE)
        assert exc_info.value.status_code == status
        assert exc_info.value.remedy == "set the key"

    def test_rate_limit_with_retry_after(self):
        with pytest.raises(RateLimitError) as exc_info:
            raise_for_status(_response(429, "slow", {"retry-after": "7"}), PROFILE)
        assert exc_info.value.retry_after == 7.0

    def test_rate_limit_without_retry_after(self):
        with pytest.raises(RateLimitError) as exc_info:
            raise_for_status(_response(429), PROFILE)
        assert exc_info.value.retry_after is None

    @pytest.mark.parametrize("status", [500, 502, 503])
    def test_server_errors_are_network_errors(self, status):
        with pytest.raises(NetworkError) as exc_info:
            raise_for_status(_response(status), PROFILE)
        assert exc_info.value.status_code == status

    def test_content_policy(self):
        body = '{"error": {"code": "content_policy_violation"}}'
        with pytest.raises(APIError) as exc_info:
            raise_for_status(_response(400, body), PROFILE)
        assert "rephras" in exc_info.value.remedy

    def test_other_client_error(self):
        with pytest.raises(APIError) as exc_info:
            raise_for_status(_response(404, "nope"), PROFILE)
        assert not isinstance(exc_info.value, (AuthError, RateLimitError))
        assert exc_info.value.status_code == 404

    def test_long_body_truncated(self):
        with pytest.raises(APIError) as exc_info:
            raise_for_status(_response(418, "x" * 5000), PROFILE)
        assert "truncated" in exc_info.value.response


@pytest.mark.unit
class TestTranslateRequestException:
    def test_timeout(self):
        err = translate_request_exception(requests.exceptions.ReadTimeout("slow"), PROFILE)
        assert isinstance(err, RequestTimeoutError)
        assert err.timeout_ms == 60_000

    def test_connection(self):
        inner = requests.exceptions.ConnectionError("refused")
        err = translate_request_exception(inner, PROFILE)
        assert isinstance(err, NetworkError)
        assert err.original_error is inner

    def test_other(self):
        err = translate_request_exception(requests.exceptions.TooManyRedirects("loop"), PROFILE)
        assert isinstance(err, NetworkError)


@pytest.mark.unit
class TestBearerHeaders:
    def test_with_key(self):
        assert bearer_headers("k", {"Accept": "image/*"}) == {
            "Accept": "image/*",
            "Authorization": "Bearer k",
        }

    def test_without_key(self):
        assert bearer_headers(None) == {}
