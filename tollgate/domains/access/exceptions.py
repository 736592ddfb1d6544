"""Domain exceptions for access control.

Registry errors are programming errors surfaced at startup. Unknown
permissions and unresolvable references are caught at the access-check
boundary and turned into "not granted".
"""

from typing import Any, Iterable

from tollgate.core.exceptions import ConfigurationError, TollgateException


class PermissionRegistryError(ConfigurationError):
    """Base class for permission registration and finalization failures."""


class DuplicateNameError(PermissionRegistryError):
    """Raised when a permission name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Permission '{name}' is already registered")


class DuplicateBitError(PermissionRegistryError):
    """Raised when two permissions claim the same bit."""

    def __init__(self, name: str, bit: int, owner: str):
        self.name = name
        self.bit = bit
        self.owner = owner
        super().__init__(f"Permission '{name}' uses bit {bit:#x}, already assigned to '{owner}'")


class InvalidPermissionBitError(PermissionRegistryError):
    """Raised when a permission bit is not a positive power of two."""

    def __init__(self, name: str, bit: Any):
        self.name = name
        self.bit = bit
        super().__init__(f"Permission '{name}' has invalid bit {bit!r}; expected a power of two")


class GrantorCycleError(PermissionRegistryError):
    """Raised when a permission directly or transitively grants itself."""

    def __init__(self, cycle: Iterable[str]):
        self.cycle = list(cycle)
        super().__init__(f"Permission grants form a cycle: {' -> '.join(self.cycle)}")


class RegistryFrozenError(PermissionRegistryError):
    """Raised when registering after the registry was finalized."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Cannot register '{name}': the permission registry is finalized")


class RegistryNotFinalizedError(PermissionRegistryError):
    """Raised when grantor data is requested before finalize()."""

    def __init__(self) -> None:
        super().__init__("The permission registry has not been finalized")


class UnknownPermissionError(TollgateException):
    """Raised when a permission name is not registered."""

    def __init__(self, permission: Any):
        self.permission = permission
        super().__init__(f"Unknown permission: {permission!r}")


class ReferenceResolutionError(TollgateException):
    """Raised when a value cannot be resolved to an entity reference."""

    def __init__(self, value: Any, reason: str = "not a reference"):
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot resolve reference {value!r}: {reason}")
