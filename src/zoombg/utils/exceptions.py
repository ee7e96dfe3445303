"""
Custom exceptions for zoombg.

Every exception carries a technical message (``str(exc)``) and an optional
``remedy``: a short instruction shown to the user next to the error.
"""


class ZoombgError(Exception):
    """Base exception for all zoombg errors."""

    default_remedy = ""

    def __init__(self, message: str, remedy: str = "") -> None:
        self.remedy = remedy or self.default_remedy
        super().__init__(message)


class ValidationError(ZoombgError):
    """Raised when input validation fails (bad service name, empty prompt)."""

    def __init__(self, message: str, field: str = "", remedy: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
            remedy: Suggested fix shown to the user (optional)
        """
        self.field = field
        super().__init__(message, remedy)


class ConfigurationError(ZoombgError):
    """Raised when there is a configuration problem (missing or invalid credential)."""

    pass


class APIError(ZoombgError):
    """Raised when a provider rejects a request for a reason retrying cannot fix."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response: str = "",
        remedy: str = "",
    ) -> None:
        """
        Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response: Raw API response (if available)
            remedy: Suggested fix shown to the user (optional)
        """
        self.status_code = status_code
        self.response = response
        super().__init__(message, remedy)


class AuthError(APIError):
    """Raised on 401/403 responses. Never retried."""

    default_remedy = "Check the API key with: zoombg config set-key <service> <key>"


class RateLimitError(APIError):
    """Raised on 429 responses. Retried, honouring ``retry_after`` when present."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        status_code: int = 429,
        response: str = "",
        remedy: str = "",
    ) -> None:
        self.retry_after = retry_after
        if not remedy:
            if retry_after:
                remedy = f"Rate limit will reset in {retry_after:g} seconds."
            else:
                remedy = "Please wait a few minutes before trying again."
        super().__init__(message, status_code=status_code, response=response, remedy=remedy)


class NetworkError(ZoombgError):
    """Raised when a network operation fails (connection failure or 5xx)."""

    default_remedy = "Check your internet connection and try again."

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        status_code: int = 0,
        remedy: str = "",
    ) -> None:
        """
        Initialize network error.

        Args:
            message: Error message
            original_error: The underlying exception that caused this error
            status_code: HTTP status code for server-side failures (5xx)
            remedy: Suggested fix shown to the user (optional)
        """
        self.original_error = original_error
        self.status_code = status_code
        super().__init__(message, remedy)


class RequestTimeoutError(ZoombgError):
    """Raised when a single provider call exceeds its service timeout."""

    default_remedy = "Try a simpler prompt or check your network connection."

    def __init__(self, message: str, timeout_ms: int = 0, remedy: str = "") -> None:
        self.timeout_ms = timeout_ms
        super().__init__(message, remedy)


class RetryExhaustedError(RequestTimeoutError):
    """Raised when every retry attempt failed with a transient error."""

    def __init__(
        self,
        message: str,
        attempts: list | None = None,
        last_error: BaseException | None = None,
        timeout_ms: int = 0,
    ) -> None:
        self.attempts = list(attempts or [])
        self.last_error = last_error
        remedy = getattr(last_error, "remedy", "") or self.default_remedy
        super().__init__(message, timeout_ms=timeout_ms, remedy=remedy)


class FilesystemError(ZoombgError):
    """Raised when the target directory is missing or not writable."""

    def __init__(self, message: str, path: str = "", remedy: str = "") -> None:
        """
        Initialize filesystem error.

        Args:
            message: Error message
            path: Path involved in the failure
            remedy: Suggested fix shown to the user (optional)
        """
        self.path = path
        super().__init__(message, remedy)


class HostApplicationError(ZoombgError):
    """Raised when Zoom is not installed or the user has not signed in."""

    pass


class CancellationError(ZoombgError):
    """Raised when an operation is cancelled by the user."""

    pass
