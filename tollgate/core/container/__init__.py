"""Dependency Injection Container Module.

Usage:
------
    # Initialize at startup (call once)
    from tollgate.core.container import initialize_container
    from tollgate.core.config import settings
    initialize_container(settings)

    # Import the global container after initialization
    from tollgate.core import container as container_module
    checker = container_module.container.access_checker

    # In tests (construct directly with fakes, don't use global)
    from tollgate.core.container import Container
    test_container = Container(permission_registry=..., grant_repo=FakeGrantRepository(), ...)

Module structure:
-----------------
    container/
    ├── __init__.py      # This file - exports public API
    ├── container.py     # Container dataclass (serves)
    └── factory.py       # create_container() (builds)
"""

from typing import TYPE_CHECKING, Any

from tollgate.core.container.container import Container
from tollgate.core.container.factory import create_container

if TYPE_CHECKING:
    from tollgate.core.config import Settings

__all__ = [
    "Container",
    "create_container",
    "container",
    "initialize_container",
    "reset_container",
]


# ---------------------------------------------------------------------------
# Global container instance
# ---------------------------------------------------------------------------

container: Container | None = None
"""Global container instance.

Initialized via `initialize_container()` at application startup.

Do NOT import this in domain code. Domains receive dependencies
via constructor parameters, never by importing the container directly.
"""


def initialize_container(settings: "Settings", **kwargs: Any) -> Container:
    """Initialize the global container. Call once at startup.

    Args:
        settings: Application settings from core/config
        **kwargs: Passed through to create_container()

    Returns:
        The initialized container

    Raises:
        RuntimeError: If called more than once (container already initialized)
    """
    global container

    if container is not None:
        raise RuntimeError(
            "Container already initialized. "
            "initialize_container() should only be called once at startup."
        )

    container = create_container(settings, **kwargs)
    return container


def reset_container() -> None:
    """Reset the global container to None. For testing only."""
    global container
    container = None
