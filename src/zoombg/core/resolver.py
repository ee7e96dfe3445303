"""
Service resolution.

Picks which adapter a run uses: an explicit request wins, then the service
remembered from the last successful save, then the free-tier default. The
chosen service is validated and, if it needs an API key, the key is looked up
here so a missing credential fails before any network call.
"""

from dataclasses import dataclass

from zoombg.core.config import DEFAULT_SERVICE, ConfigStore, validate_service_name
from zoombg.core.providers import ProviderRegistry, ServiceAdapter, get_registry
from zoombg.logging_config import get_logger
from zoombg.utils.exceptions import ConfigurationError, ValidationError

logger = get_logger(__name__)

SOURCE_EXPLICIT = "explicit"
SOURCE_REMEMBERED = "remembered"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class ResolvedService:
    """The adapter chosen for a run and the credential it will use."""

    name: str
    adapter: ServiceAdapter
    api_key: str | None
    source: str

    @property
    def timeout_ms(self) -> int:
        return self.adapter.get_timeout()


def choose_service_name(
    requested: str | None,
    last_used: str | None,
    default: str = DEFAULT_SERVICE,
) -> tuple[str, str]:
    """Apply resolution order and return (name, source) without validating."""
    if requested is not None and requested.strip():
        return requested, SOURCE_EXPLICIT
    if last_used:
        return last_used, SOURCE_REMEMBERED
    return default, SOURCE_DEFAULT


def resolve_service(
    requested: str | None,
    store: ConfigStore,
    registry: ProviderRegistry | None = None,
    default: str = DEFAULT_SERVICE,
) -> ResolvedService:
    """
    Resolve the service for this run.

    Args:
        requested: Service named on the command line, or None
        store: Config store providing the remembered service and keys
        registry: Adapters by service id (defaults to the shared registry)
        default: Fallback when nothing was requested or remembered

    Returns:
        ResolvedService with adapter and API key (None for keyless services)

    Raises:
        ValidationError: If the resolved name is not a known service
        ConfigurationError: If the service requires a key and none is configured
    """
    registry = registry or get_registry()
    last_used = store.get_last_used_service() if store.has_last_used_service() else None
    raw_name, source = choose_service_name(requested, last_used, default)
    name = validate_service_name(raw_name)

    adapter = registry.get(name)
    if adapter is None:
        raise ValidationError(
            f"Service {name!r} is not available.",
            field="service",
            remedy=f"Valid services: {', '.join(registry.service_ids())}",
        )

    api_key = store.get_api_key(name)
    if adapter.requires_api_key() and not api_key:
        raise ConfigurationError(
            f"{adapter.profile.display_name} API key required.",
            remedy=f"Set it with: zoombg config set-key {name} YOUR_KEY",
        )

    logger.info("Using service %s (%s)", name, source)
    return ResolvedService(name=name, adapter=adapter, api_key=api_key, source=source)
