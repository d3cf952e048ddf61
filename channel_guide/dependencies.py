"""
Dependency Injection

The application lifespan builds the guide services once and registers them
here; request handlers pull them out through the FastAPI dependencies at
the bottom of this module. Tests either register their own instances or
use `app.dependency_overrides`.
"""
import logging
from typing import Any, TypeVar

from channel_guide.services.playlist_lookup import InMemoryPlaylistLookup
from channel_guide.services.resolution_service import ScheduleResolver


logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceLocator:
    """Process-wide registry of explicitly constructed service instances, keyed by type."""

    def __init__(self):
        self._services: dict[type, Any] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        """
        Register the instance handed out for a service type.

        Registering the same type again replaces the previous instance.
        """
        if service_type in self._services:
            logger.debug(f"Replacing registered {service_type.__name__}")
        self._services[service_type] = instance
        logger.debug(f"Registered {service_type.__name__}")

    def get(self, service_type: type[T]) -> T:
        """
        Look up a registered service.

        Raises:
            KeyError: If nothing is registered for service_type (for example
                before the application lifespan has started)
        """
        try:
            return self._services[service_type]
        except KeyError:
            raise KeyError(f"Service {service_type.__name__} is not registered") from None

    def __contains__(self, service_type: type) -> bool:
        return service_type in self._services


_service_locator: ServiceLocator | None = None


def get_service_locator() -> ServiceLocator:
    """Return the process-wide locator, creating it on first use."""
    global _service_locator
    if _service_locator is None:
        _service_locator = ServiceLocator()
    return _service_locator


def reset_service_locator() -> None:
    """Drop every registered service (application shutdown and tests)."""
    global _service_locator
    _service_locator = None
    logger.debug("Service locator reset")


def get_schedule_resolver() -> ScheduleResolver:
    """FastAPI dependency returning the registered ScheduleResolver."""
    return get_service_locator().get(ScheduleResolver)


def get_playlist_lookup() -> InMemoryPlaylistLookup:
    """FastAPI dependency returning the registered playlist lookup."""
    return get_service_locator().get(InMemoryPlaylistLookup)
