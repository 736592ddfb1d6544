"""Permission descriptors and the standard permission set.

A permission is a named capability. Simple permissions carry a unique bit so
sets of them can be stored as an integer mask; composite permissions carry no
bit and only forward to other permissions through ``grants``. For example,
``edit`` grants ``read`` and ``write``, so a checker asked for ``write``
accepts a held ``edit``.

Permissions can be declared inline::

    Permission("publish", bit=0x40, grants=["read"])

or as a subclass, which also lets callers refer to the permission by class::

    class Publish(Permission):
        NAME = "publish"
        BIT = 0x40
        GRANTS = ("read",)
"""

from typing import Any, ClassVar, Iterable, Optional


class Permission:
    """A named capability with an optional bit and forwarded grants."""

    NAME: ClassVar[Optional[str]] = None
    BIT: ClassVar[Optional[int]] = None
    GRANTS: ClassVar[tuple[Any, ...]] = ()
    DESCRIPTION: ClassVar[Optional[str]] = None

    def __init__(
        self,
        name: Optional[str] = None,
        bit: Optional[int] = None,
        grants: Optional[Iterable[Any]] = None,
        description: Optional[str] = None,
    ) -> None:
        """Create a permission.

        Args:
            name: Unique permission name; defaults to the class ``NAME``.
            bit: Power-of-two bit; defaults to the class ``BIT``.
            grants: Permissions also satisfied by this one, as names,
                instances or classes; defaults to the class ``GRANTS``.
            description: Free-form description.
        """
        resolved = name if name is not None else self.NAME
        if not isinstance(resolved, str) or not resolved:
            raise ValueError("A permission needs a non-empty name")
        self._name = resolved
        self._bit = bit if bit is not None else self.BIT
        raw_grants = grants if grants is not None else self.GRANTS
        names = []
        for g in raw_grants:
            gn = permission_name(g)
            if gn is None:
                raise ValueError(f"Permission '{resolved}' lists an invalid grant: {g!r}")
            if gn not in names:
                names.append(gn)
        self._grants = tuple(names)
        self._description = description if description is not None else self.DESCRIPTION

    @property
    def name(self) -> str:
        return self._name

    @property
    def bit(self) -> Optional[int]:
        return self._bit

    @property
    def grants(self) -> tuple[str, ...]:
        """Names of the permissions this permission forwards to (unexpanded)."""
        return self._grants

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def is_composite(self) -> bool:
        return self._bit is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Permission):
            return NotImplemented
        return (self._name, self._bit, self._grants) == (other._name, other._bit, other._grants)

    def __hash__(self) -> int:
        return hash(self._name)

    def __repr__(self) -> str:
        bit = f"{self._bit:#x}" if self._bit is not None else "None"
        return f"{type(self).__name__}(name={self._name!r}, bit={bit}, grants={list(self._grants)})"


def permission_name(permission: Any) -> Optional[str]:
    """Get the name of a permission given as a name, an instance or a class.

    Returns None when the value cannot be interpreted as a permission.
    """
    if isinstance(permission, Permission):
        return permission.name
    if isinstance(permission, str):
        return permission or None
    if isinstance(permission, type) and issubclass(permission, Permission):
        return permission.NAME
    return None


class Owner(Permission):
    """Marks the owner of a target; used by queries that list owned targets."""

    NAME = "owner"
    BIT = 0x01


class Create(Permission):
    """Create objects inside a container target."""

    NAME = "create"
    BIT = 0x02


class Read(Permission):
    """Read-only access."""

    NAME = "read"
    BIT = 0x04


class Write(Permission):
    """Write-only access; use Edit for read and write."""

    NAME = "write"
    BIT = 0x08


class Delete(Permission):
    """Delete-only access; use Manage for read, write and delete."""

    NAME = "delete"
    BIT = 0x10


class Index(Permission):
    """List the contents of a container target."""

    NAME = "index"
    BIT = 0x20


class Edit(Permission):
    """Read and write access."""

    NAME = "edit"
    GRANTS = (Read.NAME, Write.NAME)


class Manage(Permission):
    """Read, write and delete access."""

    NAME = "manage"
    GRANTS = (Edit.NAME, Delete.NAME)


STANDARD_PERMISSIONS: tuple[type[Permission], ...] = (
    Owner,
    Create,
    Read,
    Write,
    Delete,
    Index,
    Edit,
    Manage,
)
