"""
Generation Service Registry with Entry Points Discovery.

Provides dynamic service loading via Python entry points
(phaseflow.generation_services group). External packages can register
services in their pyproject.toml:

    [project.entry-points."phaseflow.generation_services"]
    my-service = "mypackage.services:MyGenerationService"
"""

import logging
from importlib.metadata import entry_points
from typing import Any

from phaseflow.domain.interfaces import GenerationServiceInterface
from phaseflow.infrastructure.llm import MockGenerationService, OpenAIGenerationService

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "phaseflow.generation_services"

BUILTIN_SERVICES: dict[str, type[GenerationServiceInterface]] = {
    "openai": OpenAIGenerationService,
    "mock": MockGenerationService,
}


class GenerationServiceRegistry:
    """
    Registry for GenerationServiceInterface implementations.

    Built-in services are always available; third-party ones are discovered
    via the 'phaseflow.generation_services' entry point group. Uses lazy
    loading - entry points are only loaded on first access.

    Example usage:
        service = GenerationServiceRegistry.create("openai", model="qwen2.5:14b")
    """

    _services: dict[str, type[GenerationServiceInterface]] = {}
    _loaded: bool = False

    @classmethod
    def _load_entry_points(cls) -> None:
        """Load services from entry points (lazy, called once)."""
        if cls._loaded:
            return

        for name, service_class in BUILTIN_SERVICES.items():
            cls._services.setdefault(name, service_class)

        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                cls._services[ep.name] = ep.load()
            except Exception as e:
                logger.warning(
                    "Failed to load generation service '%s' from entry point: %s",
                    ep.name,
                    e,
                )

        cls._loaded = True

    @classmethod
    def register(
        cls, name: str, service_class: type[GenerationServiceInterface]
    ) -> None:
        """
        Manually register a service class.

        Args:
            name: Service identifier (e.g., "openai")
            service_class: Class implementing GenerationServiceInterface
        """
        cls._services[name] = service_class

    @classmethod
    def get(cls, name: str) -> type[GenerationServiceInterface]:
        """
        Get a service class by name.

        Raises:
            KeyError: If the service is not registered
        """
        cls._load_entry_points()
        if name not in cls._services:
            available = ", ".join(sorted(cls._services)) or "(none)"
            raise KeyError(
                f"Generation service '{name}' not found. Available: {available}"
            )
        return cls._services[name]

    @classmethod
    def create(cls, name: str, **config: Any) -> GenerationServiceInterface:
        """
        Create a service instance by name.

        Args:
            name: Service identifier
            **config: Configuration passed to the service constructor

        Raises:
            KeyError: If the service is not registered
            TypeError: If config doesn't match the constructor signature
        """
        service_class = cls.get(name)
        return service_class(**config)

    @classmethod
    def available(cls) -> list[str]:
        cls._load_entry_points()
        return sorted(cls._services)

    @classmethod
    def clear(cls) -> None:
        """
        Clear all registered services (useful for testing).

        Also resets the loaded flag so built-ins and entry points reload.
        """
        cls._services.clear()
        cls._loaded = False
