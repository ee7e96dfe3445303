"""
zoombg - AI-generated Zoom virtual backgrounds

Generates an image from a text prompt through one of several image services
(Hugging Face free tier by default, OpenAI, Stability AI), previews it in the
browser, and saves the approved image into Zoom's custom backgrounds folder.

Library usage:
- Build a GenerationWorkflow with a ConfigStore, ZoomHost and RetryPolicy, then
  call run(WorkflowOptions(...)). Pass a WorkflowUI to drive prompts yourself;
  without one the workflow runs non-interactively.
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  ZOOMBG_VERBOSITY env (0/1/2) is read when the CLI runs.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("zoombg")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from zoombg.core.config import DEFAULT_SERVICE, KNOWN_SERVICES, Config, ConfigStore
from zoombg.core.host import ZoomHost
from zoombg.core.image_gen import (
    GenerationMetadata,
    GenerationRequest,
    GenerationResult,
    validate_prompt,
)
from zoombg.core.persist import Persister, SaveResult
from zoombg.core.preview import BrowserPreview
from zoombg.core.providers import build_registry, get_registry
from zoombg.core.resolver import ResolvedService, resolve_service
from zoombg.core.retry import RetryPolicy
from zoombg.core.workflow import (
    Decision,
    GenerationWorkflow,
    WorkflowOptions,
    WorkflowOutcome,
    WorkflowSession,
    WorkflowState,
)
from zoombg.logging_config import configure_logging, set_verbosity
from zoombg.utils.cleanup import ResourceScope
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

__all__ = [
    "APIError",
    "AuthError",
    "BrowserPreview",
    "CancellationError",
    "Config",
    "ConfigStore",
    "ConfigurationError",
    "DEFAULT_SERVICE",
    "Decision",
    "FilesystemError",
    "GenerationMetadata",
    "GenerationRequest",
    "GenerationResult",
    "GenerationWorkflow",
    "HostApplicationError",
    "KNOWN_SERVICES",
    "NetworkError",
    "Persister",
    "RateLimitError",
    "RequestTimeoutError",
    "ResolvedService",
    "ResourceScope",
    "RetryExhaustedError",
    "RetryPolicy",
    "SaveResult",
    "ValidationError",
    "WorkflowOptions",
    "WorkflowOutcome",
    "WorkflowSession",
    "WorkflowState",
    "ZoomHost",
    "ZoombgError",
    "build_registry",
    "configure_logging",
    "get_registry",
    "resolve_service",
    "set_verbosity",
    "validate_prompt",
]
