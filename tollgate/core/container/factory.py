"""Container Factory.

All construction logic lives here. The factory reads settings and builds the
container; broken wiring (for example a cyclic permission graph) fails at
startup rather than on the first access check.
"""

from typing import Iterable, Optional

from tollgate.core.config import Settings
from tollgate.core.container.container import Container
from tollgate.core.logging import logger
from tollgate.domains.access.checker import AccessChecker
from tollgate.domains.access.protocols import OwnerResolverProtocol, PermissionRegistryProtocol
from tollgate.domains.access.registry import build_default_registry
from tollgate.domains.access.repository import GrantRepository
from tollgate.domains.access.service import AccessService


def create_container(
    settings: Settings,
    *,
    extra_permissions: Iterable = (),
    registry: Optional[PermissionRegistryProtocol] = None,
    owner_resolver: Optional[OwnerResolverProtocol] = None,
) -> Container:
    """Build the container.

    Args:
        settings: Application settings (from core/config)
        extra_permissions: Permissions registered next to the standard set
        registry: A prepared registry to use instead of the default one; it
            is finalized here
        owner_resolver: Resolver for targets that cannot report their owner

    Returns:
        Fully constructed Container ready for use
    """
    # -----------------------------------------------------------------
    # Permission registry: populate, then freeze
    # -----------------------------------------------------------------
    if registry is None:
        registry = build_default_registry(extra=extra_permissions, finalize=False)
    else:
        for permission in extra_permissions:
            registry.register(permission)
    registry.finalize()

    # -----------------------------------------------------------------
    # Storage, checker and service
    # -----------------------------------------------------------------
    grant_repo = GrantRepository()
    access_checker = AccessChecker(
        registry=registry, grant_repository=grant_repo, owner_resolver=owner_resolver
    )
    access_service = AccessService(
        registry=registry,
        grant_repo=grant_repo,
        checker=access_checker,
        settings=settings,
    )

    logger.with_context(component="container").info(
        f"Container built with {len(registry.registered())} permissions "
        f"(environment={settings.ENVIRONMENT.value})"
    )

    return Container(
        permission_registry=registry,
        grant_repo=grant_repo,
        access_checker=access_checker,
        access_service=access_service,
    )
