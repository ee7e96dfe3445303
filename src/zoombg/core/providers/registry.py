"""
Registry for image generation services.

Maps service ids (e.g. "huggingface", "openai") to adapter instances.
"""

from zoombg.core.providers.base import ServiceAdapter


class ProviderRegistry:
    """Registry mapping service id to ServiceAdapter implementation."""

    def __init__(self) -> None:
        self._impls: dict[str, ServiceAdapter] = {}

    def register(self, service_id: str, impl: ServiceAdapter) -> None:
        """Register an adapter. Re-registering an id replaces the previous adapter."""
        self._impls[service_id] = impl

    def get(self, service_id: str) -> ServiceAdapter | None:
        """Return the registered adapter for service_id, or None if unknown."""
        return self._impls.get(service_id)

    def service_ids(self) -> list[str]:
        """Return the registered service ids in registration order."""
        return list(self._impls.keys())

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._impls
