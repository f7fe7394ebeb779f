"""
Service Registry with lazy loading
Factories are registered up front in create_app() and only invoked the first
time a route, task or CLI command asks for the service
"""
from typing import Dict, Any, Callable, Optional, Set, List
from enum import Enum
import threading
import logging

logger = logging.getLogger(__name__)


class ServiceLifecycle(Enum):
    """How long a created instance is reused"""
    SINGLETON = "singleton"  # one instance per application
    TRANSIENT = "transient"  # new instance on every get()


class ServiceDescriptor:
    """Registration record for one service"""

    def __init__(
        self,
        name: str,
        factory: Callable,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        dependencies: Optional[List[str]] = None
    ):
        self.name = name
        self.factory = factory
        self.instance = None
        self.lifecycle = lifecycle
        self.dependencies = dependencies or []
        self.lock = threading.Lock()


class ServiceRegistry:
    """
    Lazy service container.

    Dependencies are passed to a factory as keyword arguments named after
    the dependency, e.g. ``lambda client_repository: ClientService(client_repository)``.
    Circular dependencies are detected per thread while instances are built.
    """

    def __init__(self):
        self._descriptors: Dict[str, ServiceDescriptor] = {}
        self._thread_local = threading.local()
        self._lock = threading.Lock()

    def register_factory(
        self,
        name: str,
        factory: Callable,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        dependencies: Optional[List[str]] = None
    ) -> None:
        """
        Register a factory function for lazy service instantiation.

        Args:
            name: Service identifier
            factory: Callable that returns a service instance
            lifecycle: Service lifecycle type
            dependencies: Services this factory depends on
        """
        if factory is None:
            raise ValueError(f"A factory must be provided for '{name}'")

        descriptor = ServiceDescriptor(
            name=name,
            factory=factory,
            lifecycle=lifecycle,
            dependencies=dependencies
        )
        with self._lock:
            self._descriptors[name] = descriptor

    def register_singleton(self, name: str, factory: Callable, **kwargs) -> None:
        self.register_factory(name, factory, ServiceLifecycle.SINGLETON, **kwargs)

    def register_transient(self, name: str, factory: Callable, **kwargs) -> None:
        self.register_factory(name, factory, ServiceLifecycle.TRANSIENT, **kwargs)

    def get(self, name: str) -> Any:
        """
        Get a service by name, building it and its dependencies if needed.

        Raises:
            ValueError: If service is not registered
            RuntimeError: If a circular dependency is detected
        """
        if name not in self._descriptors:
            raise ValueError(f"Service '{name}' is not registered")

        descriptor = self._descriptors[name]
        stack = self._initialization_stack()
        if name in stack:
            cycle = " -> ".join(stack + [name])
            raise RuntimeError(f"Circular dependency detected: {cycle}")

        if descriptor.lifecycle == ServiceLifecycle.SINGLETON:
            return self._get_singleton(descriptor)
        return self._create_instance(descriptor)

    def _initialization_stack(self) -> List[str]:
        if not hasattr(self._thread_local, 'initialization_stack'):
            self._thread_local.initialization_stack = []
        return self._thread_local.initialization_stack

    def _get_singleton(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.instance is not None:
            return descriptor.instance

        with descriptor.lock:
            # Another thread may have finished while we waited
            if descriptor.instance is None:
                descriptor.instance = self._create_instance(descriptor)
            return descriptor.instance

    def _create_instance(self, descriptor: ServiceDescriptor) -> Any:
        stack = self._initialization_stack()
        stack.append(descriptor.name)
        try:
            deps = {dep: self.get(dep) for dep in descriptor.dependencies}
            instance = descriptor.factory(**deps)
            logger.debug(f"Created service instance: {descriptor.name}")
            return instance
        finally:
            stack.pop()

    def has(self, name: str) -> bool:
        return name in self._descriptors

    def set_instance(self, name: str, instance: Any) -> None:
        """Pin an already built instance, e.g. a test double or a test session."""
        if name not in self._descriptors:
            raise ValueError(f"Service '{name}' is not registered")
        self._descriptors[name].instance = instance
        self._descriptors[name].lifecycle = ServiceLifecycle.SINGLETON

    def reset_service(self, name: str) -> None:
        """Drop the cached instance of a service so the next get() rebuilds it"""
        if name in self._descriptors:
            descriptor = self._descriptors[name]
            with descriptor.lock:
                descriptor.instance = None

    def list_services(self) -> List[str]:
        return sorted(self._descriptors.keys())

    def validate_dependencies(self) -> List[str]:
        """
        Check every declared dependency is registered.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        for name, descriptor in self._descriptors.items():
            for dep in descriptor.dependencies:
                if dep not in self._descriptors:
                    errors.append(f"Service '{name}' depends on unregistered service '{dep}'")
        return errors

    def get_initialization_order(self) -> List[str]:
        """
        Topologically sorted service names, dependencies first.

        Raises:
            RuntimeError: If circular dependency exists
        """
        visited: Set[str] = set()
        order: List[str] = []

        def visit(node: str, path: List[str]):
            if node in path:
                raise RuntimeError(f"Circular dependency detected: {' -> '.join(path + [node])}")
            if node in visited:
                return
            descriptor = self._descriptors.get(node)
            for dep in (descriptor.dependencies if descriptor else []):
                visit(dep, path + [node])
            visited.add(node)
            order.append(node)

        for service_name in self._descriptors:
            visit(service_name, [])
        return order


def create_registry() -> ServiceRegistry:
    """Factory function used by create_app()"""
    return ServiceRegistry()
