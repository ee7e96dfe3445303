"""
Resource scope for temporary files and open network handles.

One ResourceScope is created per CLI invocation and passed to the pieces that
create temporary resources (preview directory, in-flight HTTP session). All
registered releasers run when the scope closes, on every exit path: normal
completion, a raised error, KeyboardInterrupt or a SystemExit raised from a
signal handler.
"""

from collections.abc import Callable
from contextlib import ExitStack
from types import TracebackType

from zoombg.logging_config import get_logger

logger = get_logger(__name__)


class ResourceScope:
    """Collects releasers and runs them in reverse order on close."""

    def __init__(self) -> None:
        self._stack = ExitStack()
        self._closed = False

    def register(self, releaser: Callable[[], object], description: str = "") -> None:
        """Register a releaser. Failures while releasing are logged, never raised."""
        label = description or getattr(releaser, "__name__", "resource")

        def _release() -> None:
            try:
                releaser()
                logger.debug("Released %s", label)
            except Exception as e:
                logger.warning("Cleanup of %s failed: %s", label, e)

        self._stack.callback(_release)

    def close(self) -> None:
        """Run all releasers. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._stack.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "ResourceScope":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
