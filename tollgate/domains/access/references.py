"""Entity references ("fingerprints").

Grants point at heterogeneous targets and actors, so a foreign key cannot be
used. Every entity is instead identified by a ``Reference(kind, id)`` that
serializes to ``"Kind/id"``; the string form is what gets stored and compared.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union, runtime_checkable

from tollgate.domains.access.exceptions import ReferenceResolutionError

FINGERPRINT_RE = re.compile(r"^(?P<kind>[A-Za-z_][A-Za-z0-9_.:]*)/(?P<id>[^/\s]+)$")


@dataclass(frozen=True, order=True)
class Reference:
    """A (kind, id) pair identifying one entity.

    ``id`` is always stored as a string so integer and UUID keys compare the
    same way once they have been through a fingerprint.
    """

    kind: str
    id: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        if not self.kind or not FINGERPRINT_RE.match(f"{self.kind}/{self.id}"):
            raise ReferenceResolutionError((self.kind, self.id), "malformed kind or id")

    @property
    def fingerprint(self) -> str:
        return f"{self.kind}/{self.id}"

    @classmethod
    def parse(cls, fingerprint: str) -> "Reference":
        """Parse a ``"Kind/id"`` string.

        Raises:
            ReferenceResolutionError: If ``fingerprint`` is not well formed.
        """
        if not isinstance(fingerprint, str):
            raise ReferenceResolutionError(fingerprint, "fingerprint must be a string")
        match = FINGERPRINT_RE.match(fingerprint)
        if match is None:
            raise ReferenceResolutionError(fingerprint, "malformed fingerprint")
        return cls(kind=match.group("kind"), id=match.group("id"))

    def __str__(self) -> str:
        return self.fingerprint


@runtime_checkable
class Referenceable(Protocol):
    """An entity that can produce its own reference."""

    @property
    def reference(self) -> Reference:
        """The entity's reference."""
        ...


@runtime_checkable
class Ownable(Protocol):
    """A target that knows its owner.

    Owners implicitly hold every permission on the target.
    """

    @property
    def owner_reference(self) -> Optional[Reference]:
        """Reference to the owning actor, or None for unowned targets."""
        ...


ReferenceLike = Union[Reference, Referenceable, str]


def split_fingerprint(fingerprint: Any) -> tuple[Optional[str], Optional[str]]:
    """Split a fingerprint into ``(kind, id)``; returns ``(None, None)`` when malformed."""
    if not isinstance(fingerprint, str):
        return None, None
    match = FINGERPRINT_RE.match(fingerprint)
    if match is None:
        return None, None
    return match.group("kind"), match.group("id")


def is_fingerprint(value: Any) -> bool:
    """Whether ``value`` is a well-formed ``"Kind/id"`` string."""
    return split_fingerprint(value) != (None, None)


def resolve_reference(value: Any) -> Reference:
    """Resolve a reference, a referenceable entity or a fingerprint string.

    Raises:
        ReferenceResolutionError: If ``value`` is none of those.
    """
    if isinstance(value, Reference):
        return value
    if isinstance(value, str):
        return Reference.parse(value)
    if value is not None and isinstance(value, Referenceable):
        ref = value.reference
        if isinstance(ref, Reference):
            return ref
        raise ReferenceResolutionError(value, "entity returned an invalid reference")
    raise ReferenceResolutionError(value)


def owner_of(target: Any) -> Optional[Reference]:
    """Return the owner reference exposed by an ``Ownable`` target, if any."""
    if target is None or isinstance(target, (str, Reference)):
        return None
    if not isinstance(target, Ownable):
        return None
    owner = target.owner_reference
    return owner if isinstance(owner, Reference) else None
