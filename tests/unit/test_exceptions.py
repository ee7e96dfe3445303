"""Unit tests for zoombg exceptions."""

import pytest

from zoombg.utils.exceptions import (
    APIError,
    AuthError,
    CancellationError,
    ConfigurationError,
    FilesystemError,
    HostApplicationError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    RetryExhaustedError,
    ValidationError,
    ZoombgError,
)


@pytest.mark.unit
class TestZoombgError:
    def test_base_is_exception(self):
        assert issubclass(ZoombgError, Exception)

    def test_subclasses_are_zoombg_error(self):
        for cls in (
            ValidationError,
            ConfigurationError,
            APIError,
            AuthError,
            RateLimitError,
            NetworkError,
            RequestTimeoutError,
            RetryExhaustedError,
            FilesystemError,
            HostApplicationError,
            CancellationError,
        ):
            assert issubclass(cls, ZoombgError)

    def test_remedy_defaults_to_empty(self):
        assert ZoombgError("boom").remedy == ""

    def test_explicit_remedy_kept(self):
        e = ConfigurationError("no key", remedy="set one")
        assert str(e) == "no key"
        assert e.remedy == "set one"


@pytest.mark.unit
class TestValidationError:
    def test_message_and_field(self):
        e = ValidationError("bad value", field="prompt")
        assert str(e) == "bad value"
        assert e.field == "prompt"

    def test_field_optional(self):
        e = ValidationError("invalid")
        assert e.field == ""


@pytest.mark.unit
class TestAPIError:
    def test_message_status_response(self):
        e = APIError("failed", status_code=400, response="body")
        assert e.status_code == 400
        assert e.response == "body"

    def test_auth_error_has_default_remedy(self):
        e = AuthError("denied", status_code=401)
        assert isinstance(e, APIError)
        assert "config set-key" in e.remedy


@pytest.mark.unit
class TestRateLimitError:
    def test_retry_after_in_remedy(self):
        e = RateLimitError("slow down", retry_after=12)
        assert e.retry_after == 12
        assert e.status_code == 429
        assert "12 seconds" in e.remedy

    def test_without_retry_after(self):
        e = RateLimitError("slow down")
        assert e.retry_after is None
        assert "wait" in e.remedy.lower()


@pytest.mark.unit
class TestNetworkError:
    def test_original_error(self):
        inner = ConnectionError("refused")
        e = NetworkError("network failed", original_error=inner)
        assert e.original_error is inner
        assert e.remedy

    def test_status_code_for_server_errors(self):
        assert NetworkError("5xx", status_code=503).status_code == 503


@pytest.mark.unit
class TestRetryExhaustedError:
    def test_is_timeout_family(self):
        assert issubclass(RetryExhaustedError, RequestTimeoutError)

    def test_carries_attempts_and_last_error(self):
        last = NetworkError("down", remedy="check wifi")
        e = RetryExhaustedError("gave up", attempts=[1, 2, 3], last_error=last, timeout_ms=1000)
        assert e.attempts == [1, 2, 3]
        assert e.last_error is last
        assert e.timeout_ms == 1000
        assert e.remedy == "check wifi"


@pytest.mark.unit
class TestFilesystemError:
    def test_path(self):
        e = FilesystemError("missing", path="/tmp/x")
        assert e.path == "/tmp/x"
