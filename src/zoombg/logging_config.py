"""
Logging for zoombg.

Everything logs under the ``zoombg`` logger to stderr, keeping stdout free for
the saved path. Nothing is configured on import; the CLI calls
configure_logging, and library users get no output unless they ask for it.

What each verbosity shows:

====  =======  ===========================================================
 0    INFO     chosen service, attempt failures and backoff, saved path
 1    INFO     level 0 plus every prompt tried (first and regenerated)
 2    DEBUG    level 1 plus workflow state changes, provider requests and
               responses, aborted attempts, resource cleanup
====  =======  ===========================================================

``--quiet`` drops to WARNING: only retries, cleanup problems and errors.
``--debug-api`` (or ZOOMBG_DEBUG_API) turns on DEBUG for the provider
loggers alone. API keys are never logged.
"""

import logging
import os

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "zoombg"
PROVIDERS_LOGGER_NAME = ROOT_LOGGER_NAME + ".core.providers"
VERBOSITY_ENV = "ZOOMBG_VERBOSITY"

# verbosity -> (root level, prompt text logged)
VERBOSITY_LEVELS: dict[int, tuple[int, bool]] = {
    0: (logging.INFO, False),
    1: (logging.INFO, True),
    2: (logging.DEBUG, True),
}
MAX_VERBOSITY = max(VERBOSITY_LEVELS)

_log_prompts: bool = False
_configured: bool = False


def _root() -> logging.Logger:
    """Return the zoombg logger, attaching the stderr handler on first use."""
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not _configured:
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)
        _configured = True
    return root


def set_verbosity(level: int) -> None:
    """Apply verbosity ``level``; values outside 0..2 are clamped."""
    global _log_prompts
    level = min(max(level, 0), MAX_VERBOSITY)
    log_level, _log_prompts = VERBOSITY_LEVELS[level]
    _root().setLevel(log_level)


def log_prompts() -> bool:
    """True when prompt text may be written to the log (verbosity 1 and up)."""
    return _log_prompts


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """Entry point for the CLI: ``quiet`` wins over any verbosity."""
    global _log_prompts
    if quiet:
        _root().setLevel(logging.WARNING)
        _log_prompts = False
        return
    set_verbosity(verbose_level)


def enable_api_debug(enabled: bool = True) -> None:
    """Log provider request/response summaries at DEBUG regardless of verbosity."""
    providers = logging.getLogger(PROVIDERS_LOGGER_NAME)
    _root()
    providers.setLevel(logging.DEBUG if enabled else logging.NOTSET)


def get_verbosity_from_env() -> int:
    """Read ZOOMBG_VERBOSITY; anything but 1 or 2 means 0."""
    raw = os.environ.get(VERBOSITY_ENV, "").strip()
    try:
        level = int(raw)
    except ValueError:
        return 0
    return level if level in VERBOSITY_LEVELS else 0


def get_logger(name: str) -> logging.Logger:
    """Return a logger below ``zoombg`` for a module name."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


__all__ = [
    "configure_logging",
    "enable_api_debug",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompts",
    "set_verbosity",
]
