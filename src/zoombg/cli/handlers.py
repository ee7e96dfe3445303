"""
Error handling and signal management for the CLI.

This module maps exceptions to exit codes and user messages, and manages
interruption: SIGINT while an image is being generated sets a cancellation
event polled by the retry policy; SIGINT anywhere else interrupts immediately
(click turns it into Abort inside prompts). SIGTERM exits with 143 through
SystemExit so resource scopes still release what they hold.
"""

import errno
import signal
import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import click

from zoombg import (
    APIError,
    CancellationError,
    ConfigurationError,
    FilesystemError,
    HostApplicationError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
    ZoombgError,
)
from zoombg.cli import progress
from zoombg.cli.utils import (
    EXIT_API_OR_NETWORK,
    EXIT_CANCELLED,
    EXIT_FILESYSTEM,
    EXIT_TERMINATED,
    EXIT_VALIDATION_OR_CONFIG,
)

# Cancellation event; set on SIGINT so cancel_check can be used by library calls
_cancel_event = threading.Event()
# True while the retry policy is polling cancel_check
_generation_active = threading.Event()


def cancel_check() -> bool:
    """Return True if cancellation has been requested."""
    return _cancel_event.is_set()


def reset_cancellation() -> None:
    """Reset the cancellation event for a new operation."""
    _cancel_event.clear()
    _generation_active.clear()


@contextmanager
def cancellable() -> Iterator[None]:
    """Mark a block where SIGINT should request cancellation instead of interrupting."""
    _generation_active.set()
    try:
        yield
    finally:
        _generation_active.clear()


def handle_sigint(_signum: int, _frame: object) -> None:
    """Signal handler for SIGINT (Ctrl+C)."""
    _cancel_event.set()
    if not _generation_active.is_set():
        raise KeyboardInterrupt


def handle_sigterm(_signum: int, _frame: object) -> None:
    """Signal handler for SIGTERM - unwinds the stack so cleanup runs."""
    _cancel_event.set()
    raise SystemExit(EXIT_TERMINATED)


_OS_REMEDIES = {
    errno.EACCES: "Check that you have write permission for the Zoom backgrounds directory.",
    errno.EPERM: "Check that you have write permission for the Zoom backgrounds directory.",
    errno.EROFS: "The target location is read-only.",
    errno.ENOENT: "The target directory no longer exists. Open Zoom and sign in again.",
    errno.ENOSPC: "Free up some disk space and try again.",
}


def map_exception_to_exit(exc: BaseException) -> tuple[int, str, str]:
    """Map library and known exceptions to (exit_code, user_message, remedy)."""
    remedy = getattr(exc, "remedy", "") or ""
    if isinstance(exc, ValidationError):
        msg = exc.args[0] if exc.args else "Validation failed."
        if getattr(exc, "field", None):
            msg = f"{msg} (field: {exc.field})"
        return (EXIT_VALIDATION_OR_CONFIG, msg, remedy)
    if isinstance(exc, ConfigurationError):
        msg = exc.args[0] if exc.args else "Invalid configuration."
        return (EXIT_VALIDATION_OR_CONFIG, msg, remedy)
    if isinstance(exc, FilesystemError):
        return (EXIT_FILESYSTEM, exc.args[0] if exc.args else "Could not save file.", remedy)
    if isinstance(exc, (CancellationError, click.Abort, KeyboardInterrupt)):
        return (EXIT_CANCELLED, "Cancelled.", "")
    if isinstance(exc, HostApplicationError):
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "Zoom is not ready.", remedy)
    if isinstance(exc, (APIError, NetworkError, RequestTimeoutError)):
        msg = exc.args[0] if exc.args else "API or network error."
        return (EXIT_API_OR_NETWORK, msg, remedy)
    if isinstance(exc, ZoombgError):
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "An error occurred.", remedy)
    if isinstance(exc, OSError):
        target = f": {exc.filename}" if exc.filename else ""
        msg = f"Could not save file{target} ({exc.strerror or exc})"
        return (EXIT_FILESYSTEM, msg, _OS_REMEDIES.get(exc.errno, ""))
    # Unhandled
    return (EXIT_API_OR_NETWORK, str(exc) if exc.args else "An unexpected error occurred.", "")


def _report(code: int, msg: str, remedy: str, quiet: bool) -> None:
    if code == EXIT_CANCELLED:
        if not quiet:
            progress.print_warning(msg)
        return
    if quiet:
        click.echo(msg, err=True)
        if remedy:
            click.echo(f"Suggestion: {remedy}", err=True)
        return
    progress.print_error(msg)
    if remedy:
        progress.print_suggestion(remedy)


def run_with_error_handling(
    fn: Callable[[], None],
    *,
    quiet: bool = False,
    debug: bool = False,
) -> None:
    """
    Run fn(); on exception map to exit code and message, print and sys.exit.
    Used so command bodies stay free of try/except for known errors. With
    ``debug`` an unexpected (non-zoombg) exception propagates with its traceback.
    """
    try:
        fn()
    except (ZoombgError, click.Abort, KeyboardInterrupt, OSError) as e:
        code, msg, remedy = map_exception_to_exit(e)
        _report(code, msg, remedy, quiet)
        sys.exit(code)
    except Exception as e:
        if debug:
            raise
        code, msg, remedy = map_exception_to_exit(e)
        _report(code, msg, remedy, quiet)
        sys.exit(EXIT_API_OR_NETWORK)


def install_signal_handlers() -> dict[int, object]:
    """Install SIGINT and SIGTERM handlers, return the previous ones."""
    previous = {signal.SIGINT: signal.signal(signal.SIGINT, handle_sigint)}
    if hasattr(signal, "SIGTERM"):
        previous[signal.SIGTERM] = signal.signal(signal.SIGTERM, handle_sigterm)
    return previous


def restore_signal_handlers(previous: dict[int, object]) -> None:
    """Restore handlers returned by install_signal_handlers."""
    for signum, handler in previous.items():
        signal.signal(signum, handler)  # type: ignore[arg-type]


__all__ = [
    "cancel_check",
    "cancellable",
    "handle_sigint",
    "handle_sigterm",
    "reset_cancellation",
    "map_exception_to_exit",
    "run_with_error_handling",
    "install_signal_handlers",
    "restore_signal_handlers",
]
