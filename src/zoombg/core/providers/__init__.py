"""
Image generation services: adapter protocol, registry, and built-in adapters.

The built-in set is fixed: huggingface (free tier, default), openai and
stability. ``build_registry(config)`` creates adapters with the endpoints from
a Config; ``get_registry()`` returns a shared registry using default endpoints.
"""

from zoombg.core.config import (
    DEFAULT_SERVICE,
    KNOWN_SERVICES,
    SERVICE_HUGGINGFACE,
    SERVICE_OPENAI,
    SERVICE_STABILITY,
    Config,
)
from zoombg.core.providers.base import ServiceAdapter as ServiceAdapter
from zoombg.core.providers.base import ServiceProfile as ServiceProfile
from zoombg.core.providers.registry import ProviderRegistry

__all__ = [
    "DEFAULT_SERVICE",
    "KNOWN_SERVICES",
    "SERVICE_HUGGINGFACE",
    "SERVICE_OPENAI",
    "SERVICE_STABILITY",
    "ProviderRegistry",
    "ServiceAdapter",
    "ServiceProfile",
    "build_registry",
    "get_registry",
]

_registry: ProviderRegistry | None = None


def build_registry(config: Config | None = None) -> ProviderRegistry:
    """Return a registry holding one adapter per known service."""
    from zoombg.core.providers.huggingface import HuggingFaceAdapter
    from zoombg.core.providers.openai import OpenAIAdapter
    from zoombg.core.providers.stability import StabilityAdapter

    config = config or Config()
    reg = ProviderRegistry()
    reg.register(
        SERVICE_HUGGINGFACE,
        HuggingFaceAdapter(base_url=config.huggingface_base_url, model=config.huggingface_model),
    )
    reg.register(
        SERVICE_OPENAI,
        OpenAIAdapter(base_url=config.openai_base_url, model=config.openai_model),
    )
    reg.register(SERVICE_STABILITY, StabilityAdapter(base_url=config.stability_base_url))
    return reg


def get_registry() -> ProviderRegistry:
    """Return the shared registry with default endpoints. Creates it on first call."""
    global _registry
    if _registry is None:
        _registry = build_registry()
    return _registry
