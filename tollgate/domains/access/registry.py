"""Permission registry: populated at startup, finalized once, read-only after."""

import re
from graphlib import CycleError, TopologicalSorter
from typing import Any, Iterable, Optional

from tollgate.core.logging import logger
from tollgate.domains.access.exceptions import (
    DuplicateBitError,
    DuplicateNameError,
    GrantorCycleError,
    InvalidPermissionBitError,
    RegistryFrozenError,
    RegistryNotFinalizedError,
    UnknownPermissionError,
)
from tollgate.domains.access.permissions import (
    STANDARD_PERMISSIONS,
    Permission,
    permission_name,
)
from tollgate.domains.access.protocols import PermissionRegistryProtocol

registry_logger = logger.with_prefix("PermissionRegistry: ").with_context(
    component="permission_registry"
)

_NUMERIC_MASK_RE = re.compile(r"^(0[xX][0-9a-fA-F]+|\d+)$")


def _is_power_of_two(bit: Any) -> bool:
    return isinstance(bit, int) and not isinstance(bit, bool) and bit > 0 and bit & (bit - 1) == 0


def parse_mask(value: Any) -> Optional[int]:
    """Read an integer mask or a decimal or ``0x`` hex string; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _NUMERIC_MASK_RE.match(value):
        return int(value, 16) if value[:2].lower() == "0x" else int(value)
    return None


class PermissionRegistry(PermissionRegistryProtocol):
    """In-memory permission catalog.

    Registration happens while the process starts. ``finalize()`` then checks
    the forwarding graph, computes its forward closure (``expanded_grants``)
    and its inverse closure (``grantors``), and freezes the registry. After
    that every query is a dict read, so one instance can be shared by all
    checkers without locking.
    """

    def __init__(self) -> None:
        """Initialize an empty, unfinalized registry."""
        self._permissions: dict[str, Permission] = {}
        self._bits: dict[int, str] = {}
        self._expanded: dict[str, frozenset[str]] = {}
        self._grantors: dict[str, frozenset[str]] = {}
        self._masks: dict[str, int] = {}
        self._finalized = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, permission: Any) -> Permission:
        """Register a permission.

        Args:
            permission: A ``Permission`` instance, or a ``Permission`` subclass
                that declares ``NAME`` (it is instantiated with no arguments).

        Returns:
            The registered instance.

        Raises:
            RegistryFrozenError: If the registry is already finalized.
            DuplicateNameError: If the name is taken.
            DuplicateBitError: If another permission uses the same bit.
            InvalidPermissionBitError: If the bit is not a positive power of two.
        """
        if isinstance(permission, type) and issubclass(permission, Permission):
            permission = permission()
        if not isinstance(permission, Permission):
            raise TypeError(f"Expected a Permission instance or subclass, got {permission!r}")

        name = permission.name
        if self._finalized:
            raise RegistryFrozenError(name)
        if name in self._permissions:
            raise DuplicateNameError(name)

        bit = permission.bit
        if bit is not None:
            if not _is_power_of_two(bit):
                raise InvalidPermissionBitError(name, bit)
            if bit in self._bits:
                raise DuplicateBitError(name, bit, self._bits[bit])
            self._bits[bit] = name

        self._permissions[name] = permission
        return permission

    def register_permission(
        self,
        name: str,
        bit: Optional[int] = None,
        grants: Iterable[Any] = (),
        description: Optional[str] = None,
    ) -> Permission:
        """Create a permission from its parts and register it."""
        return self.register(
            Permission(name=name, bit=bit, grants=list(grants), description=description)
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, permission: Any) -> Optional[Permission]:
        """Find a registered permission by name, instance or class."""
        name = permission_name(permission)
        if name is None:
            return None
        return self._permissions.get(name)

    def lookup_permission(self, name: Any) -> Optional[Permission]:
        """Alias of :meth:`lookup`."""
        return self.lookup(name)

    def registered(self) -> list[str]:
        """Names of all registered permissions, in registration order."""
        return list(self._permissions)

    def __contains__(self, permission: Any) -> bool:
        return self.lookup(permission) is not None

    def __len__(self) -> int:
        return len(self._permissions)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def finalize(self) -> None:
        """Validate the forwarding graph, compute closures and freeze.

        Calling it again is a no-op.

        Raises:
            UnknownPermissionError: If a permission grants an unregistered name.
            GrantorCycleError: If a permission directly or transitively grants itself.
        """
        if self._finalized:
            return

        graph: dict[str, tuple[str, ...]] = {}
        for name, permission in self._permissions.items():
            for granted in permission.grants:
                if granted not in self._permissions:
                    raise UnknownPermissionError(granted)
                if granted == name:
                    raise GrantorCycleError([name, name])
            graph[name] = permission.grants

        # Dependencies first: a permission's grants are closed before it is.
        try:
            order = list(TopologicalSorter(graph).static_order())
        except CycleError as e:
            raise GrantorCycleError(e.args[1]) from e

        expanded: dict[str, frozenset[str]] = {}
        for name in order:
            closure: set[str] = set()
            for granted in graph[name]:
                closure.add(granted)
                closure |= expanded[granted]
            expanded[name] = frozenset(closure)

        inverse: dict[str, set[str]] = {name: set() for name in self._permissions}
        for name, closure in expanded.items():
            for granted in closure:
                inverse[granted].add(name)

        masks: dict[str, int] = {}
        for name, closure in expanded.items():
            mask = self._permissions[name].bit or 0
            for granted in closure:
                mask |= self._permissions[granted].bit or 0
            masks[name] = mask

        self._expanded = expanded
        self._grantors = {name: frozenset(g) for name, g in inverse.items()}
        self._masks = masks
        self._finalized = True

        registry_logger.info(
            f"Finalized permission registry with {len(self._permissions)} permissions."
        )
        registry_logger.debug(
            "Grantor closure computed",
            extra={"grantors": {k: sorted(v) for k, v in self._grantors.items() if v}},
        )

    def _require_finalized(self) -> None:
        if not self._finalized:
            raise RegistryNotFinalizedError()

    def _require_name(self, permission: Any) -> str:
        registered = self.lookup(permission)
        if registered is None:
            raise UnknownPermissionError(permission)
        return registered.name

    # ------------------------------------------------------------------
    # Closures
    # ------------------------------------------------------------------

    def grantors(self, permission: Any) -> frozenset[str]:
        """Names of the permissions whose possession satisfies ``permission``.

        Transitively closed: with the standard set, ``grantors("read")`` is
        ``{"edit", "manage"}``. A permission is never its own grantor.

        Raises:
            RegistryNotFinalizedError: Before finalize().
            UnknownPermissionError: If ``permission`` is not registered.
        """
        self._require_finalized()
        return self._grantors[self._require_name(permission)]

    def expanded_grants(self, permission: Any) -> frozenset[str]:
        """Names of the permissions ``permission`` satisfies, transitively."""
        self._require_finalized()
        return self._expanded[self._require_name(permission)]

    def permission_grantors(self) -> dict[str, frozenset[str]]:
        """The full grantor map, keyed by permission name."""
        self._require_finalized()
        return dict(self._grantors)

    # ------------------------------------------------------------------
    # Masks
    # ------------------------------------------------------------------

    def mask_for(self, permissions: Any) -> int:
        """Compute a bitmask from one or more permissions.

        Each entry may be a permission name, a ``Permission`` instance or
        subclass, an integer mask, or a decimal or ``0x`` hex string. The mask
        of a named permission includes the bits of everything it grants, so
        ``mask_for("edit")`` is ``read | write``. ``None`` entries are skipped.

        Raises:
            RegistryNotFinalizedError: Before finalize().
            UnknownPermissionError: For unregistered names or unusable values.
        """
        self._require_finalized()
        if permissions is None:
            return 0
        if isinstance(permissions, (str, int, Permission, type)):
            permissions = [permissions]

        mask = 0
        for entry in permissions:
            if entry is None:
                continue
            if isinstance(entry, bool):
                raise UnknownPermissionError(entry)
            numeric = parse_mask(entry)
            if numeric is not None:
                mask |= numeric
            else:
                mask |= self._masks[self._require_name(entry)]
        return mask

    def mask(self, permissions: Any) -> int:
        """Alias of :meth:`mask_for`."""
        return self.mask_for(permissions)

    def names_for_mask(self, mask: int) -> list[str]:
        """Names of the bit-carrying permissions whose bit is set in ``mask``."""
        return [
            name
            for name, permission in self._permissions.items()
            if permission.bit is not None and mask & permission.bit
        ]


def build_default_registry(
    extra: Iterable[Any] = (), finalize: bool = True
) -> PermissionRegistry:
    """Build a registry holding the standard permissions.

    Args:
        extra: Additional permissions (instances or subclasses) to register.
        finalize: Whether to finalize before returning.
    """
    registry = PermissionRegistry()
    for permission in STANDARD_PERMISSIONS:
        registry.register(permission)
    for permission in extra:
        registry.register(permission)
    if finalize:
        registry.finalize()
    return registry
