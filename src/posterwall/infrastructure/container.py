"""Dependency injection container."""

import inspect
import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Type, TypeVar

from ..config import Config, ConfigManager
from ..core.interfaces import (
    ICatalogClient,
    ILibraryIndex,
    IMetadataResolver,
    IPathClassifier,
    IScanOrchestrator,
    IShareAccess,
)

T = TypeVar("T")


class Container:
    """Dependency injection container using registry pattern.

    Implementations registered with ``register_singleton`` are built on first
    ``get``; constructor parameters annotated with ``Config`` or with a
    registered interface are injected.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        """Initialize container.

        Args:
            config_manager: Configuration manager instance. If None, creates default.
        """
        self._services: Dict[Type, Type] = {}
        self._singletons: Dict[Type, Any] = {}
        self._config_manager = config_manager or ConfigManager()
        self._logger = logging.getLogger(__name__)

    def register_singleton(self, interface: Type[T], implementation: Type[Any]) -> None:
        """Register an implementation built once, on first use.

        Args:
            interface: Interface type.
            implementation: Implementation type.
        """
        self._services[interface] = implementation
        self._singletons.pop(interface, None)
        self._logger.debug(
            f"Registered singleton: {interface.__name__} -> {implementation.__name__}"
        )

    def register_instance(self, interface: Type[T], instance: T) -> None:
        """Register a pre-built instance, replacing any other registration.

        Args:
            interface: Interface type.
            instance: Pre-created instance.
        """
        self._singletons[interface] = instance
        self._logger.debug(f"Registered instance: {interface.__name__}")

    def get(self, interface: Type[T]) -> T:
        """Get service instance.

        Args:
            interface: Interface type to resolve.

        Returns:
            Service instance.

        Raises:
            ValueError: If service is not registered.
        """
        if interface in self._singletons:
            return self._singletons[interface]  # type: ignore

        if interface not in self._services:
            raise ValueError(f"Service not registered: {interface.__name__}")

        instance = self._create_instance(self._services[interface])
        self._singletons[interface] = instance
        return instance  # type: ignore

    def _create_instance(self, implementation: Type[T]) -> T:
        """Create instance with dependency injection.

        Args:
            implementation: Implementation class to instantiate.

        Returns:
            Created instance with dependencies injected.
        """
        kwargs = {}
        for name, param in inspect.signature(implementation.__init__).parameters.items():
            if name == "self" or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue

            annotation = param.annotation
            if annotation is Config:
                kwargs[name] = self.get_config()
            elif hasattr(annotation, "__origin__"):
                # Optional collaborators (pacers, clocks) keep their defaults
                continue
            elif annotation in self._services or annotation in self._singletons:
                kwargs[name] = self.get(annotation)
            elif param.default is inspect.Parameter.empty:
                self._logger.warning(
                    f"Cannot resolve dependency {name} of {implementation.__name__}"
                )

        return implementation(**kwargs)

    @lru_cache(maxsize=1)
    def get_config(self) -> Config:
        """Get configuration instance.

        Returns:
            Configuration instance.
        """
        return self._config_manager.get_config()

    def configure_default_services(self) -> None:
        """Wire the share, catalog, classifier, resolver, index and orchestrator."""
        from ..core.services import (
            LibraryIndex,
            LocalShareAccess,
            MetadataResolver,
            PathClassifier,
            ScanOrchestrator,
            TMDbCatalogClient,
        )

        config = self.get_config()

        # The classifier needs the share layout, not the whole configuration
        self.register_instance(
            IPathClassifier,  # type: ignore
            PathClassifier(extensions=config.share.extensions, root_folders=config.scan_roots),
        )

        self.register_singleton(IShareAccess, LocalShareAccess)  # type: ignore
        self.register_singleton(ICatalogClient, TMDbCatalogClient)  # type: ignore
        self.register_singleton(IMetadataResolver, MetadataResolver)  # type: ignore
        self.register_singleton(ILibraryIndex, LibraryIndex)  # type: ignore
        self.register_singleton(IScanOrchestrator, ScanOrchestrator)  # type: ignore

        self._logger.debug("Default services configured")

    async def aclose(self) -> None:
        """Close services holding network sessions."""
        catalog = self._singletons.get(ICatalogClient)
        if catalog is not None:
            await catalog.close()
